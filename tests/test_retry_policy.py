from __future__ import annotations

import random

from gcmsender.retry import BackoffPolicy, BackoffScheduler


class _StubRandom:
    def __init__(self, pick_max: bool) -> None:
        self.pick_max = pick_max
        self.calls: list[int] = []

    def randrange(self, stop: int) -> int:
        self.calls.append(stop)
        return stop - 1 if self.pick_max else 0


def test_first_delay_uses_half_backoff_plus_jitter() -> None:
    low = BackoffScheduler(rng=_StubRandom(pick_max=False))
    high = BackoffScheduler(rng=_StubRandom(pick_max=True))

    assert low.next_delay_ms() == 500
    assert high.next_delay_ms() == 999


def test_backoff_doubles_until_cap() -> None:
    scheduler = BackoffScheduler(
        BackoffPolicy(initial_delay_ms=1000, max_delay_ms=3000),
        rng=_StubRandom(pick_max=False),
    )

    observed = []
    for _ in range(4):
        observed.append(scheduler.current)
        scheduler.next_delay_ms()

    assert observed == [1000, 2000, 3000, 3000]


def test_default_cap_is_1024_seconds() -> None:
    scheduler = BackoffScheduler(rng=random.Random(7))
    for _ in range(20):
        scheduler.next_delay_ms()

    assert scheduler.current == 1024000


def test_zero_jitter_never_draws_random_numbers() -> None:
    rng = _StubRandom(pick_max=True)
    scheduler = BackoffScheduler(BackoffPolicy(jitter_percentage=0), rng=rng)

    assert scheduler.next_delay_ms() == 1000
    assert scheduler.next_delay_ms() == 2000
    assert rng.calls == []


def test_wait_sleeps_in_seconds() -> None:
    sleeps: list[float] = []
    scheduler = BackoffScheduler(sleep=sleeps.append, rng=random.Random(3))

    first = scheduler.wait()
    second = scheduler.wait()

    assert sleeps == [first / 1000, second / 1000]
    assert 500 <= first < 1000
    assert 1000 <= second < 2000
