"""Tests for ExponentialBackoff."""

import pytest

from plangate_core.backoff import ExponentialBackoff


class FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now


def _backoff(clock=None, rng=lambda: 0.5, **kwargs):
    settings = {"initial_interval": 1, "multiplier": 2, "randomization_factor": 0.5, "max_interval": 5}
    settings.update(kwargs)
    return ExponentialBackoff(clock=clock or FakeClock(), rng=rng, **settings)


def test_intervals_grow_by_multiplier_and_cap():
    backoff = _backoff(max_elapsed=0)
    assert [backoff.next_interval() for _ in range(5)] == [1, 2, 4, 5, 5]


def test_jitter_lower_bound():
    backoff = _backoff(rng=lambda: 0.0, max_elapsed=0)
    assert backoff.next_interval() == pytest.approx(0.5)


def test_jitter_upper_bound():
    backoff = _backoff(rng=lambda: 1.0, max_elapsed=0)
    assert backoff.next_interval() == pytest.approx(1.5)


def test_no_randomization_gives_exact_intervals():
    backoff = _backoff(rng=lambda: 0.9, randomization_factor=0, max_elapsed=0)
    assert [backoff.next_interval() for _ in range(3)] == [1, 2, 4]


def test_stops_when_next_interval_would_exceed_budget():
    clock = FakeClock()
    backoff = _backoff(clock=clock, max_elapsed=3)

    assert backoff.next_interval() == 1
    clock.now = 1
    assert backoff.next_interval() == 2  # 1 + 2 == 3, still within budget
    clock.now = 3
    assert backoff.next_interval() is None


def test_elapsed_tracks_clock():
    clock = FakeClock()
    clock.now = 10
    backoff = _backoff(clock=clock)
    clock.now = 17.5
    assert backoff.elapsed == 17.5 - 10


def test_reset_restarts_interval_and_clock():
    clock = FakeClock()
    backoff = _backoff(clock=clock, max_elapsed=0)
    backoff.next_interval()
    backoff.next_interval()
    clock.now = 40

    backoff.reset()

    assert backoff.elapsed == 0
    assert backoff.current_interval == 1
    assert backoff.next_interval() == 1


@pytest.mark.parametrize(
    "kwargs",
    [
        {"initial_interval": 0},
        {"multiplier": 0.5},
        {"randomization_factor": 1},
        {"randomization_factor": -0.1},
    ],
)
def test_invalid_settings_raise(kwargs):
    with pytest.raises(ValueError):
        _backoff(**kwargs)
