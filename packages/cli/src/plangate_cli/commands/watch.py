"""watch command: wait for one Atlantis comment without touching the PR."""

from __future__ import annotations

import click
from rich.console import Console

from plangate_cli.commands.common import prepare
from plangate_core.models import WatchSpec
from plangate_core.protocol import APPLY_ERROR_MARKER, APPLY_MARKER, PLAN_ERROR_MARKER, PLAN_MARKER
from plangate_core.watcher import CommentWatcher

console = Console()

_PHASES = {
    "plan": (PLAN_MARKER, PLAN_ERROR_MARKER, "plan_tolerance"),
    "apply": (APPLY_MARKER, APPLY_ERROR_MARKER, "apply_tolerance"),
}


@click.command("watch")
@click.argument("pr_number", type=int)
@click.option("--phase", type=click.Choice(sorted(_PHASES)), default="plan", show_default=True)
@click.option("--repo", default=None, help="GitHub repository in owner/name format. Defaults to $GITHUB_REPOSITORY.")
@click.option("--bot-login", default=None, help="GitHub login Atlantis comments as. Overrides config file.")
@click.option("--tolerance", type=int, default=None, help="Seconds allowed for the comment. Overrides config file.")
@click.pass_context
def watch_cmd(ctx, pr_number: int, phase: str, repo: str | None, bot_login: str | None, tolerance: int | None):
    """Wait for the Atlantis plan or apply comment on PR_NUMBER and print it.

    Read-only: nothing is approved or commented.
    """
    success, error, tolerance_key = _PHASES[phase]
    config, context = prepare(ctx, repo, pr_number, {"bot_login": bot_login, tolerance_key: tolerance})

    watcher = CommentWatcher(context, config["bot_login"], backoff_settings=config.get("backoff"))
    result = watcher.watch(
        WatchSpec(
            success_pattern=success,
            error_pattern=error,
            max_elapsed=config["backoff"]["max_elapsed"],
            tolerance=config[tolerance_key],
        )
    )

    if result.comment is not None:
        console.print(result.comment.body, markup=False)
    if not result.found:
        raise click.ClickException(f"{phase} watch ended {result.outcome.value}: {result.message}")

    console.print(
        f"[green]Found [{success}] after {result.attempts} attempt(s), {result.elapsed:.1f}s[/green]"
    )
