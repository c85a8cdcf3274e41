"""Locate the GitHub token the gate acts with.

The gate approves and comments as whoever owns this token, so it must not be
the bot's own token: Atlantis ignores its own comments and GitHub refuses
self-approval. Sources, first non-empty wins:

  GITHUB_API_TOKEN   exported by the generated Actions workflow
  GITHUB_TOKEN       the Actions default, or a manual override
  gh auth token      a local GitHub CLI session, for gating a PR by hand
"""

from __future__ import annotations

import logging
import os
import subprocess

logger = logging.getLogger(__name__)

TOKEN_ENV_VARS = ("GITHUB_API_TOKEN", "GITHUB_TOKEN")
GH_TIMEOUT = 5


def resolve_github_token() -> str | None:
    """Return the first token found, or None. Never raises."""
    for name in TOKEN_ENV_VARS:
        if os.environ.get(name):
            logger.debug("Using GitHub token from $%s", name)
            return os.environ[name]

    token = _gh_cli_token()
    if token:
        logger.debug("Using GitHub token from the gh CLI session")
    return token


def _gh_cli_token() -> str | None:
    try:
        result = subprocess.run(
            ["gh", "auth", "token"],
            capture_output=True,
            text=True,
            timeout=GH_TIMEOUT,
            check=True,
        )
    except (FileNotFoundError, subprocess.TimeoutExpired, subprocess.CalledProcessError) as e:
        logger.debug("gh CLI token unavailable: %s", e)
        return None
    return result.stdout.strip() or None
