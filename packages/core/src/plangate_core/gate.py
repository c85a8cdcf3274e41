"""Plan → approve → apply orchestration for a single Atlantis-managed PR.

    CheckMerged ──merged──▶ Done
        │
    AwaitPlan ◀──(once, on the 404 autoplan quirk: post `atlantis plan`)
        │
    Approve ─▶ TriggerApply ─▶ AwaitApply ─▶ Done

Every failure raises GateError; nothing is rolled back. Approval and the apply
command are one-shot side effects, so re-running after they happened is not
guarded against.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Callable

from github import GithubException
from rich.console import Console

from plangate_core.gh.pull_request import approve_pull, get_pull, is_merged, post_comment, request_reviewers
from plangate_core.models import Comment, GateContext, WatchOutcome, WatchResult, WatchSpec
from plangate_core.protocol import (
    APPLY_ERROR_MARKER,
    APPLY_MARKER,
    PLAN_ERROR_MARKER,
    PLAN_MARKER,
    REPLAN_COMMAND,
    REPLAN_SIGNATURE,
    apply_command,
    extract_path,
    workspace_for,
)
from plangate_core.watcher import CommentWatcher

console = Console()
logger = logging.getLogger(__name__)

MAX_REPLANS = 1
APPROVAL_BODY = "Atlantis plan succeeded; approving so the plan can be applied."


class GateError(Exception):
    """A fatal condition that aborts the run. The CLI maps it to a non-zero exit."""

    def __init__(self, message: str, outcome: WatchOutcome | None = None, comment: Comment | None = None):
        super().__init__(message)
        self.outcome = outcome
        self.comment = comment

    @classmethod
    def from_watch(cls, phase: str, result: WatchResult) -> GateError:
        return cls(f"{phase} failed ({result.outcome.value}): {result.message}", result.outcome, result.comment)


@dataclass
class GateSummary:
    """What a gate run did. ``outcome`` is "merged", "planned" (shadow) or "applied"."""

    repo: str
    pr_number: int
    outcome: str
    path: str | None = None
    workspace: str | None = None
    command: str | None = None
    replanned: bool = False
    finished_at: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())


class GateController:
    def __init__(
        self,
        context: GateContext,
        watcher: CommentWatcher,
        config: dict,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.context = context
        self.watcher = watcher
        self.config = config
        self._sleep = sleep
        self._pr = None
        # Reference time for tolerance checks; moves forward if we had to re-plan.
        self._since: datetime | None = None
        self.replanned = False

    @property
    def pr(self):
        if self._pr is None:
            try:
                self._pr = get_pull(self.context.repo, self.context.ref.number)
            except GithubException as e:
                raise GateError(f"PR #{self.context.ref.number} not found in {self.context.ref.slug}: {e}") from e
        return self._pr

    def _spec(self, success: str, error: str, tolerance: int) -> WatchSpec:
        return WatchSpec(
            success_pattern=success,
            error_pattern=error,
            max_elapsed=self.config["backoff"]["max_elapsed"],
            tolerance=tolerance,
            since=self._since,
        )

    # ------------------------------------------------------------------ #
    # States                                                               #
    # ------------------------------------------------------------------ #

    def check_already_merged(self) -> bool:
        return is_merged(self.pr)

    def await_plan(self) -> Comment:
        """Wait for a successful plan comment, re-planning at most once on the 404 quirk."""
        console.print(
            f"Waiting for [bold]{PLAN_MARKER}[/bold] "
            f"(within {self.config['plan_tolerance']}s of the PR being opened)..."
        )
        spec = self._spec(PLAN_MARKER, PLAN_ERROR_MARKER, self.config["plan_tolerance"])

        replans = 0
        while True:
            result = self.watcher.watch(spec)
            if result.found:
                return result.comment

            quirk = (
                result.outcome is WatchOutcome.ERROR_DETECTED
                and result.comment is not None
                and REPLAN_SIGNATURE in result.comment.body
            )
            if quirk and replans < MAX_REPLANS:
                console.print(f"[yellow]Atlantis reported {REPLAN_SIGNATURE!r}; re-running plan.[/yellow]")
                posted = self._post(REPLAN_COMMAND)
                replans += 1
                self._since = posted.created_at
                self.replanned = True
                spec = replace(spec, since=self._since)
                continue

            if result.comment is not None:
                console.print(result.comment.body, markup=False)
            raise GateError.from_watch("Plan", result)

    def approve(self) -> None:
        mode = self.config.get("approval", "approve")
        try:
            if mode == "request_reviewers":
                reviewers = self.config.get("reviewers") or []
                request_reviewers(self.pr, reviewers)
                console.print(f"[green]Requested review from {', '.join(reviewers)}[/green]")
            else:
                approve_pull(self.pr, APPROVAL_BODY)
                console.print("[green]Approved[/green]")
        except GithubException as e:
            raise GateError(f"Could not approve {self.context.ref}: {e}") from e

    def trigger_apply(self, path: str) -> str:
        command = apply_command(path)
        self._post(command)
        console.print(f"Commented `{command}`")
        console.print("Waiting for apply to start...")
        return command

    def await_apply(self) -> Comment:
        console.print(f"Waiting for [bold]{APPLY_MARKER}[/bold]...")
        result = self.watcher.watch(self._spec(APPLY_MARKER, APPLY_ERROR_MARKER, self.config["apply_tolerance"]))
        if not result.found:
            if result.comment is not None:
                console.print(result.comment.body, markup=False)
            raise GateError.from_watch("Apply", result)
        return result.comment

    def _post(self, body: str) -> Comment:
        try:
            return post_comment(self.pr, body)
        except GithubException as e:
            raise GateError(f"Could not comment {body!r} on {self.context.ref}: {e}") from e

    # ------------------------------------------------------------------ #
    # Driver                                                               #
    # ------------------------------------------------------------------ #

    def run(self, shadow: bool = False) -> GateSummary:
        ref = self.context.ref
        console.print(f"[bold]Processing PR {ref}[/bold]")

        if self.check_already_merged():
            console.print("[yellow]This PR has already been merged, skipping.[/yellow]")
            return GateSummary(repo=ref.slug, pr_number=ref.number, outcome="merged")

        plan = self.await_plan()
        try:
            path = extract_path(plan.body)
        except ValueError as e:
            raise GateError(f"Could not read the planned directory: {e}", WatchOutcome.FOUND, plan) from e
        logger.info("Plan comment first line: %s (created %s)", plan.first_line, plan.created_at)

        summary = GateSummary(
            repo=ref.slug,
            pr_number=ref.number,
            outcome="planned",
            path=path,
            workspace=workspace_for(path),
            command=apply_command(path),
            replanned=self.replanned,
        )

        if shadow:
            console.print(f"[bold]Shadow run:[/bold] plan found for `{path}`; would approve and comment:")
            console.print(f"  {summary.command}")
            return summary

        self.approve()
        delay = self.config.get("apply_delay", 0)
        if delay:
            self._sleep(delay)
        self.trigger_apply(path)

        apply = self.await_apply()
        console.print(apply.body, markup=False)
        console.print("\n[green]PR is OK to merge![/green]")
        summary.outcome = "applied"
        summary.finished_at = datetime.now(timezone.utc).isoformat()
        return summary


def run_gate(
    context: GateContext,
    config: dict,
    shadow: bool = False,
    watcher: CommentWatcher | None = None,
) -> GateSummary:
    """Build a watcher and controller for ``context`` and run the gate once."""
    if watcher is None:
        watcher = CommentWatcher(context, config["bot_login"], backoff_settings=config.get("backoff"))
    return GateController(context, watcher, config).run(shadow=shadow)
