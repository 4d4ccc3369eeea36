from __future__ import annotations

import pytest

from azqr.adapters.throttling import (
    ARM_BURST,
    ARM_LIMITER,
    GRAPH_LIMITER,
    GRAPH_RATE,
    TokenBucketLimiter,
    limiter_for_url,
)
from azqr.context import ContextCancelledError, ExecutionContext


class FakeClock:
    def __init__(self) -> None:
        self.now = 0.0
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


def test_burst_is_available_immediately() -> None:
    clock = FakeClock()
    limiter = TokenBucketLimiter(2.0, 10, clock=clock, sleep=clock.sleep)

    for _ in range(10):
        limiter.wait()

    assert clock.sleeps == []
    assert limiter.try_acquire() is False


def test_wait_sleeps_for_refill_once_burst_is_spent() -> None:
    clock = FakeClock()
    limiter = TokenBucketLimiter(GRAPH_RATE, 1, clock=clock, sleep=clock.sleep)

    limiter.wait()
    limiter.wait()

    assert clock.sleeps == [pytest.approx(0.5)]


def test_refill_is_capped_at_burst() -> None:
    clock = FakeClock()
    limiter = TokenBucketLimiter(3.0, 5, clock=clock, sleep=clock.sleep)
    for _ in range(5):
        limiter.try_acquire()

    clock.now = 1000.0

    assert limiter.available() == pytest.approx(5.0)


def test_wait_raises_when_context_cancelled() -> None:
    limiter = TokenBucketLimiter(1.0, 1)
    ctx = ExecutionContext.background()
    ctx.cancel()

    with pytest.raises(ContextCancelledError):
        limiter.wait(ctx)


def test_wait_raises_when_deadline_would_pass_first() -> None:
    clock = FakeClock()
    limiter = TokenBucketLimiter(0.01, 1, clock=clock, sleep=clock.sleep)
    limiter.wait()
    ctx = ExecutionContext.background().with_timeout(0.5)

    with pytest.raises(ContextCancelledError):
        limiter.wait(ctx)
    assert clock.sleeps == []


def test_invalid_settings_are_rejected() -> None:
    with pytest.raises(ValueError):
        TokenBucketLimiter(0, 1)
    with pytest.raises(ValueError):
        TokenBucketLimiter(1.0, 0)


def test_limiter_for_url_routes_by_api_family() -> None:
    assert limiter_for_url("https://prices.azure.com/api/retail/prices") is GRAPH_LIMITER
    assert (
        limiter_for_url(
            "https://management.azure.com/providers/Microsoft.ResourceGraph/resources?api-version=2022-10-01"
        )
        is GRAPH_LIMITER
    )
    assert limiter_for_url("https://management.azure.com/subscriptions?api-version=2022-12-01") is ARM_LIMITER
    assert ARM_LIMITER.burst == ARM_BURST


def test_permits_after_the_burst_arrive_at_the_steady_rate() -> None:
    clock = FakeClock()
    limiter = TokenBucketLimiter(2.0, 2, clock=clock, sleep=clock.sleep)
    granted: list[float] = []

    for _ in range(6):
        limiter.wait()
        granted.append(clock.now)

    assert granted[:2] == [0.0, 0.0]
    gaps = [later - earlier for earlier, later in zip(granted[1:], granted[2:])]
    assert gaps == [pytest.approx(0.5)] * 4
