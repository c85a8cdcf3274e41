"""Polls a PR's comment feed until the bot reports a result.

Comments arrive in provider-defined order and the feed is eventually
consistent, so every attempt re-fetches the PR and the full comment list and
scans it newest-first. The first bot comment that decides the watch wins:

  - error marker present          -> ERROR_DETECTED (checked before success)
  - success marker, within window -> FOUND
  - success marker, outside window -> STALE (a leftover from an earlier push;
    waiting longer cannot change its timestamp)

Anything else means "not yet" and the next attempt is scheduled by an
ExponentialBackoff until its elapsed budget is spent.
"""

from __future__ import annotations

import logging
import random
import time
from typing import Callable

from github import GithubException

from plangate_core.backoff import ExponentialBackoff
from plangate_core.gh.pull_request import get_pull, list_comments
from plangate_core.models import Comment, GateContext, WatchOutcome, WatchResult, WatchSpec

logger = logging.getLogger(__name__)


def newest_first(comments: list[Comment]) -> list[Comment]:
    """Order comments by creation time, newest first.

    Ties keep later-listed comments ahead of earlier ones, matching a reverse scan.
    """
    return sorted(reversed(comments), key=lambda c: c.created_at, reverse=True)


class CommentWatcher:
    def __init__(
        self,
        context: GateContext,
        bot_login: str,
        backoff_settings: dict | None = None,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
        rng: Callable[[], float] = random.random,
    ):
        if not bot_login:
            raise ValueError("bot_login is required to recognise the bot's comments.")
        self.context = context
        self.bot_login = bot_login
        self._backoff_settings = {k: v for k, v in (backoff_settings or {}).items() if k != "max_elapsed"}
        self._sleep = sleep
        self._clock = clock
        self._rng = rng

    def watch(self, spec: WatchSpec) -> WatchResult:
        """Block until ``spec`` is decided or its ``max_elapsed`` budget runs out."""
        backoff = ExponentialBackoff(
            max_elapsed=spec.max_elapsed, clock=self._clock, rng=self._rng, **self._backoff_settings
        )
        logger.info(
            "Watching %s for [%s] from %s for up to %.1f minutes",
            self.context.ref,
            spec.success_pattern,
            self.bot_login,
            spec.max_elapsed / 60,
        )

        attempts = 0
        while True:
            attempts += 1
            fetch_error: Exception | None = None
            try:
                result = self.check_once(spec)
            except (GithubException, OSError) as e:
                logger.warning("Fetching comments for %s failed (attempt %d): %s", self.context.ref, attempts, e)
                fetch_error = e
                result = None

            if result is not None:
                return WatchResult(
                    outcome=result.outcome,
                    comment=result.comment,
                    message=result.message,
                    attempts=attempts,
                    elapsed=backoff.elapsed,
                )

            interval = backoff.next_interval()
            if interval is None:
                elapsed = backoff.elapsed
                if fetch_error is not None:
                    return WatchResult(
                        outcome=WatchOutcome.TRANSIENT_FAILURE,
                        message=f"Could not fetch comments after {attempts} attempt(s): {fetch_error}",
                        attempts=attempts,
                        elapsed=elapsed,
                    )
                return WatchResult(
                    outcome=WatchOutcome.TIMED_OUT,
                    message=(
                        f"Timed out after ~{elapsed / 60:.1f} minutes waiting for "
                        f"[{spec.success_pattern}] from {self.bot_login}."
                    ),
                    attempts=attempts,
                    elapsed=elapsed,
                )

            logger.debug(
                "No decision for [%s] yet; elapsed %.3fs, retrying in %.3fs",
                spec.success_pattern,
                backoff.elapsed,
                interval,
            )
            self._sleep(interval)

    def check_once(self, spec: WatchSpec) -> WatchResult | None:
        """Run a single fetch-and-scan. Returns None when nothing decides the watch yet.

        Fetch errors propagate; ``watch`` decides whether they are retried.
        """
        pr = get_pull(self.context.repo, self.context.ref.number)
        reference = spec.since or pr.created_at
        comments = list_comments(pr)

        for comment in newest_first(comments):
            if comment.author != self.bot_login:
                logger.debug("Skipping comment by %s created at %s", comment.author, comment.created_at)
                continue
            if spec.since is not None and comment.created_at < spec.since:
                break

            if spec.error_pattern in comment.body:
                logger.warning("Error marker [%s] found in latest bot comment", spec.error_pattern)
                return WatchResult(
                    outcome=WatchOutcome.ERROR_DETECTED,
                    comment=comment,
                    message=f"{comment.author} reported [{spec.error_pattern}] at {comment.created_at}.",
                )

            if spec.success_pattern not in comment.body:
                continue

            delta = int(abs((comment.created_at - reference).total_seconds()))
            if spec.tolerance is None or delta <= spec.tolerance:
                logger.info(
                    "Found [%s] by %s: reference %s, comment %s, delta %ds",
                    spec.success_pattern,
                    comment.author,
                    reference,
                    comment.created_at,
                    delta,
                )
                return WatchResult(outcome=WatchOutcome.FOUND, comment=comment)

            return WatchResult(
                outcome=WatchOutcome.STALE,
                comment=comment,
                message=(
                    f"Latest [{spec.success_pattern}] comment is {delta}s from {reference}, "
                    f"beyond the {spec.tolerance}s tolerance (comment created {comment.created_at})."
                ),
            )

        return None
