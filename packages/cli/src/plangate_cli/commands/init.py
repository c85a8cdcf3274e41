"""init command: interactive setup wizard.

Writes .plangate.yml with the bot identity and tolerances, and optionally a
GitHub Actions workflow that runs `plangate run` for every pull request.
"""

from __future__ import annotations

import importlib.metadata
import os
import re
import subprocess
from pathlib import Path

import click
import yaml
from rich.console import Console

console = Console()

WORKFLOW_PATH = Path(".github/workflows/plangate.yml")
_REMOTE_RE = re.compile(r"github\.com[:/](?P<slug>[^/]+/[^/]+?)(?:\.git)?/?$")

_WORKFLOW_TEMPLATE = """\
name: Atlantis plan gate

on:
  pull_request:
    types: [opened, synchronize, reopened]

jobs:
  gate:
    runs-on: ubuntu-latest
    permissions:
      contents: read
      pull-requests: write

    steps:
      - uses: actions/checkout@v4

      - name: Set up Python
        uses: actions/setup-python@v5
        with:
          python-version: "3.12"

      - name: Install plangate
        run: pip install "plangate=={version}"

      - name: Approve and apply once Atlantis plans
        env:
          GITHUB_API_TOKEN: ${{{{ secrets.{token_secret} }}}}
        run: plangate run ${{{{ github.event.pull_request.number }}}}
"""


@click.command("init")
@click.option(
    "--repo",
    default=None,
    help="GitHub repository (owner/name). Defaults to $GITHUB_REPOSITORY or the origin remote.",
)
@click.pass_context
def init_cmd(ctx, repo: str | None):
    """Set up plangate for a repository.

    Creates .plangate.yml and optionally a GitHub Actions workflow.
    """
    console.print("\n[bold cyan]plangate init[/bold cyan]: setup wizard\n")

    if repo is None:
        repo = _detect_repo()
        if repo:
            console.print(f"[dim]Detected repository: {repo}[/dim]")
        else:
            repo = click.prompt("GitHub repository (owner/name)")

    bot_login = click.prompt("GitHub login Atlantis comments as")
    plan_tolerance = click.prompt("Seconds allowed for the plan comment", type=int, default=65)
    apply_tolerance = click.prompt("Seconds allowed for the apply comment", type=int, default=120)
    approval = click.prompt(
        "On a successful plan",
        type=click.Choice(["approve", "request_reviewers"]),
        default="approve",
    )

    config: dict = {
        "bot_login": bot_login,
        "plan_tolerance": plan_tolerance,
        "apply_tolerance": apply_tolerance,
        "approval": approval,
    }
    if approval == "request_reviewers":
        reviewers = click.prompt("Reviewers to request (comma-separated logins)")
        config["reviewers"] = [r.strip() for r in reviewers.split(",") if r.strip()]

    config_path = (ctx.obj or {}).get("config_path", ".plangate.yml")
    _write_config(config_path, config)
    console.print(f"[green]Wrote {config_path}[/green]")

    setup_ci = click.confirm(f"\nGenerate {WORKFLOW_PATH} for GitHub Actions?", default=True)
    if setup_ci:
        token_secret = click.prompt("Repository secret holding the GitHub token", default="GITHUB_TOKEN")
        workflow = _write_workflow(token_secret)
        console.print(f"[green]Created {workflow}[/green]")
        if token_secret != "GITHUB_TOKEN":
            console.print(
                f"\n[yellow]Remember to add [bold]{token_secret}[/bold] to your "
                "GitHub repository secrets (Settings → Secrets → Actions).[/yellow]"
            )

    console.print("\n[bold green]Setup complete![/bold green]")
    console.print(f"Gate a pull request with: [bold]plangate run --repo {repo} <number>[/bold]")


def _detect_repo() -> str | None:
    """Guess owner/name from $GITHUB_REPOSITORY, then from the origin remote."""
    slug = os.environ.get("GITHUB_REPOSITORY")
    if slug:
        return slug
    try:
        remote = subprocess.run(
            ["git", "remote", "get-url", "origin"],
            capture_output=True,
            text=True,
            timeout=5,
            check=True,
        ).stdout.strip()
    except (FileNotFoundError, subprocess.TimeoutExpired, subprocess.CalledProcessError):
        return None
    # https://github.com/acme/infra.git or git@github.com:acme/infra.git
    match = _REMOTE_RE.search(remote)
    return match.group("slug") if match else None


def _write_config(config_path: str, settings: dict) -> None:
    """Merge the wizard's answers into the config file, keeping unrelated keys."""
    path = Path(config_path)
    current = (yaml.safe_load(path.read_text()) or {}) if path.exists() else {}
    current.update(settings)
    path.write_text(yaml.safe_dump(current, default_flow_style=False, sort_keys=False))


def _write_workflow(token_secret: str) -> Path:
    target = WORKFLOW_PATH
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_text(
        _WORKFLOW_TEMPLATE.format(version=importlib.metadata.version("plangate"), token_secret=token_secret)
    )
    return target
