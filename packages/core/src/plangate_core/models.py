"""Data models shared by the watcher and the gate controller."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum


@dataclass(frozen=True)
class PullRequestRef:
    """Identifies the pull request being gated. Resolved once per invocation."""

    owner: str
    repo_name: str
    number: int

    @classmethod
    def parse(cls, slug: str, number: int) -> PullRequestRef:
        """Build a ref from an ``owner/name`` slug (the GITHUB_REPOSITORY format)."""
        owner, sep, name = (slug or "").strip().partition("/")
        if not sep or not owner or not name or "/" in name:
            raise ValueError(f"Expected repository in owner/name format, got {slug!r}.")
        return cls(owner=owner, repo_name=name, number=number)

    @property
    def slug(self) -> str:
        return f"{self.owner}/{self.repo_name}"

    def __str__(self) -> str:
        return f"{self.slug}/pull/{self.number}"


@dataclass(frozen=True)
class Comment:
    """Read-only snapshot of a PR issue comment, taken once per poll."""

    author: str
    body: str
    created_at: datetime

    @classmethod
    def from_github(cls, issue_comment) -> Comment:
        user = getattr(issue_comment, "user", None)
        return cls(
            author=(user.login if user is not None else "") or "",
            body=issue_comment.body or "",
            created_at=issue_comment.created_at,
        )

    @property
    def first_line(self) -> str:
        return self.body.split("\n", 1)[0]


@dataclass(frozen=True)
class WatchSpec:
    """What a single watch looks for and how long it may take.

    ``tolerance`` is the maximum gap (seconds) between the reference time and
    the matching comment; None disables the staleness check. The reference time
    is the PR creation time unless ``since`` is given, in which case comments
    older than ``since`` are ignored and the gap is measured from it instead.
    """

    success_pattern: str
    error_pattern: str
    max_elapsed: float
    tolerance: int | None = None
    since: datetime | None = None


class WatchOutcome(str, Enum):
    FOUND = "found"
    TIMED_OUT = "timed_out"
    ERROR_DETECTED = "error_detected"
    STALE = "stale"
    TRANSIENT_FAILURE = "transient_failure"


@dataclass(frozen=True)
class WatchResult:
    """Terminal outcome of one watch call. Exactly one outcome per result."""

    outcome: WatchOutcome
    comment: Comment | None = None
    message: str = ""
    attempts: int = 0
    elapsed: float = 0.0

    @property
    def found(self) -> bool:
        return self.outcome is WatchOutcome.FOUND


@dataclass(frozen=True)
class GateContext:
    """The PR being gated plus the one GitHub repository handle used for it.

    Constructed once by the CLI and handed to both the watcher and the
    controller; nothing else holds a client.
    """

    ref: PullRequestRef
    repo: object

    @classmethod
    def connect(cls, slug: str, number: int, token: str) -> GateContext:
        from plangate_core.gh.pull_request import get_repo

        ref = PullRequestRef.parse(slug, number)
        return cls(ref=ref, repo=get_repo(ref.slug, token=token))
