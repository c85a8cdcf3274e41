"""Exponential backoff with jitter, bounded by a total elapsed budget."""

from __future__ import annotations

import random
import time
from typing import Callable

DEFAULT_INITIAL_INTERVAL = 0.8
DEFAULT_MULTIPLIER = 3.0
DEFAULT_RANDOMIZATION_FACTOR = 0.5
# Lower max_interval polls more often within the same max_elapsed budget.
DEFAULT_MAX_INTERVAL = 15.0
DEFAULT_MAX_ELAPSED = 20 * 60.0


class ExponentialBackoff:
    """Produces successive sleep intervals until the elapsed budget runs out.

    Each interval is the current interval randomized by
    ``± randomization_factor`` (uniformly). After every call the current
    interval grows by ``multiplier`` and is capped at ``max_interval``.
    ``next_interval`` returns None once sleeping the next interval would
    overrun ``max_elapsed``; a ``max_elapsed`` of 0 never stops.
    """

    def __init__(
        self,
        initial_interval: float = DEFAULT_INITIAL_INTERVAL,
        multiplier: float = DEFAULT_MULTIPLIER,
        randomization_factor: float = DEFAULT_RANDOMIZATION_FACTOR,
        max_interval: float = DEFAULT_MAX_INTERVAL,
        max_elapsed: float = DEFAULT_MAX_ELAPSED,
        clock: Callable[[], float] = time.monotonic,
        rng: Callable[[], float] = random.random,
    ):
        if initial_interval <= 0:
            raise ValueError("initial_interval must be positive")
        if multiplier < 1:
            raise ValueError("multiplier must be >= 1")
        if not 0 <= randomization_factor < 1:
            raise ValueError("randomization_factor must be in [0, 1)")
        self.initial_interval = initial_interval
        self.multiplier = multiplier
        self.randomization_factor = randomization_factor
        self.max_interval = max_interval
        self.max_elapsed = max_elapsed
        self._clock = clock
        self._rng = rng
        self.reset()

    def reset(self) -> None:
        self._current = self.initial_interval
        self._start = self._clock()

    @property
    def elapsed(self) -> float:
        return self._clock() - self._start

    @property
    def current_interval(self) -> float:
        return self._current

    def next_interval(self) -> float | None:
        elapsed = self.elapsed
        delta = self.randomization_factor * self._current
        low = self._current - delta
        interval = low + self._rng() * (2 * delta)

        if self._current >= self.max_interval / self.multiplier:
            self._current = self.max_interval
        else:
            self._current *= self.multiplier

        if self.max_elapsed and elapsed + interval > self.max_elapsed:
            return None
        return interval
