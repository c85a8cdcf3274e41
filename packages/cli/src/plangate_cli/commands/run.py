"""run command: gate a pull request through Atlantis plan and apply."""

from __future__ import annotations

import click
from rich.console import Console

from plangate_cli.commands.common import prepare
from plangate_core.gate import GateError, GateSummary, run_gate

console = Console()


@click.command("run")
@click.argument("pr_number", type=int)
@click.option("--repo", default=None, help="GitHub repository in owner/name format. Defaults to $GITHUB_REPOSITORY.")
@click.option("--bot-login", default=None, help="GitHub login Atlantis comments as. Overrides config file.")
@click.option("--plan-tolerance", type=int, default=None, help="Seconds allowed for the plan comment to appear.")
@click.option("--apply-tolerance", type=int, default=None, help="Seconds allowed for the apply comment to appear.")
@click.option(
    "--shadow",
    "-s",
    is_flag=True,
    help="Dry-run mode: wait for the plan and print the apply command without approving or commenting.",
)
@click.pass_context
def run_cmd(
    ctx,
    pr_number: int,
    repo: str | None,
    bot_login: str | None,
    plan_tolerance: int | None,
    apply_tolerance: int | None,
    shadow: bool,
):
    """Approve and apply PR_NUMBER once Atlantis reports a successful plan.

    Exits non-zero if the plan or apply errors, if the bot's comment is stale,
    or if no comment arrives within the polling budget.

    \b
    Required environment variables:
      GITHUB_API_TOKEN     GitHub token (or GITHUB_TOKEN, or use gh CLI)
      GITHUB_REPOSITORY    owner/name, unless --repo is given
    """
    config, context = prepare(
        ctx,
        repo,
        pr_number,
        {"bot_login": bot_login, "plan_tolerance": plan_tolerance, "apply_tolerance": apply_tolerance},
    )

    try:
        summary = run_gate(context, config, shadow=shadow)
    except GateError as e:
        raise click.ClickException(str(e)) from e

    console.print(_describe(summary), style="dim", markup=False, highlight=False, soft_wrap=True)


def _describe(summary: GateSummary) -> str:
    line = f"{summary.repo}#{summary.pr_number}: {summary.outcome}"
    if summary.path:
        line += f" {summary.path} (workspace {summary.workspace})"
    if summary.replanned:
        line += " after a re-plan"
    return f"{line} at {summary.finished_at}"
