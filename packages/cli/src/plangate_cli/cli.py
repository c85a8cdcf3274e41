"""CLI entry point for plangate.

Commands:
  run    wait for the Atlantis plan, approve, apply, and wait for the apply result
  watch  wait for a single plan or apply comment without side effects
  init   write .plangate.yml and an optional GitHub Actions workflow
"""

from __future__ import annotations

import importlib.metadata
import logging

import click

from plangate_cli.commands.init import init_cmd
from plangate_cli.commands.run import run_cmd
from plangate_cli.commands.watch import watch_cmd


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@click.group()
@click.version_option(
    version=importlib.metadata.version("plangate"),
    prog_name="plangate",
)
@click.option(
    "--config",
    "config_path",
    default=".plangate.yml",
    show_default=True,
    help="Path to the configuration file.",
    envvar="PLANGATE_CONFIG",
)
@click.option("--verbose", "-v", is_flag=True, help="Log every polling attempt.")
@click.pass_context
def main(ctx: click.Context, config_path: str, verbose: bool):
    """Approve and apply Atlantis-managed pull requests once their plan succeeds."""
    from plangate_core.config import load_config
    from plangate_cli.auth import resolve_github_token

    _configure_logging(verbose)
    ctx.ensure_object(dict)

    config = load_config(config_path)

    # Resolve token early so all subcommands share the same resolution.
    token = resolve_github_token()
    if token:
        config["github_token"] = token

    ctx.obj["config"] = config
    ctx.obj["config_path"] = config_path


main.add_command(run_cmd)
main.add_command(watch_cmd)
main.add_command(init_cmd)
