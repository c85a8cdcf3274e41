"""Shared setup for commands that talk to a pull request."""

from __future__ import annotations

import click
from github import GithubException

from plangate_core.config import apply_overrides, validate_config
from plangate_core.models import GateContext


def prepare(ctx: click.Context, repo: str | None, pr_number: int, overrides: dict) -> tuple[dict, GateContext]:
    """Merge CLI overrides into the group config, validate it and connect to the PR.

    Configuration problems surface as click.UsageError.
    """
    config = dict((ctx.obj or {}).get("config") or {})
    apply_overrides(config, {"repository": repo, **overrides})

    if not config.get("github_token"):
        raise click.UsageError(
            "No GitHub token found. Set GITHUB_API_TOKEN or GITHUB_TOKEN, or run `gh auth login` first."
        )
    if not config.get("repository"):
        raise click.UsageError("No repository given. Pass --repo owner/name or set GITHUB_REPOSITORY.")
    if not config.get("bot_login"):
        raise click.UsageError("No bot login configured. Set bot_login in .plangate.yml or pass --bot-login.")

    try:
        validate_config(config)
        context = GateContext.connect(config["repository"], pr_number, token=config["github_token"])
    except ValueError as e:
        raise click.UsageError(str(e)) from e
    except GithubException as e:
        raise click.ClickException(f"Could not open {config['repository']}: {e}") from e

    return config, context
