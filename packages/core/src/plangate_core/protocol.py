"""Text protocol spoken with the Atlantis bot.

Atlantis has no structured message format, so everything here is substring
matching against literal phrases it emits. Keep these strings exactly as the
bot writes them.
"""

from __future__ import annotations

PLAN_MARKER = "Ran Plan for dir"
PLAN_ERROR_MARKER = "Plan Error"
APPLY_MARKER = "Ran Apply for dir"
APPLY_ERROR_MARKER = "Apply Error"

# Autoplan occasionally fails to fetch PR data upstream; re-running plan fixes it.
REPLAN_SIGNATURE = "404 Not Found"
REPLAN_COMMAND = "atlantis plan"

PATH_DELIMITER = "`"


def extract_path(body: str) -> str:
    """Return the directory named on the first line of a plan comment.

    The first line looks like ``Ran Plan for dir: `infra/network` workspace: ...``;
    the path is the text between the first pair of backticks.
    """
    first_line = (body or "").split("\n", 1)[0]
    parts = first_line.split(PATH_DELIMITER)
    if len(parts) < 3 or not parts[1].strip():
        raise ValueError(f"No {PATH_DELIMITER}-delimited directory on first line: {first_line!r}")
    return parts[1].strip()


def workspace_for(path: str) -> str:
    """Derive the Atlantis workspace name for a directory: ``infra/network`` -> ``infra_network``."""
    return path.replace("/", "_")


def apply_command(path: str) -> str:
    return f"atlantis apply -d {path} -w {workspace_for(path)}"
