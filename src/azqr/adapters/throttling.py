"""Token-bucket limiters gating calls to each upstream API family."""

from __future__ import annotations

import logging
import threading
import time
from typing import Callable

from ..context import ContextCancelledError, ExecutionContext

logger = logging.getLogger(__name__)

ARM_RATE = 3.0
ARM_BURST = 100
GRAPH_RATE = 2.0
GRAPH_BURST = 10

RETAIL_PRICES_HOST = "prices.azure.com"
RESOURCE_GRAPH_PATH = "Microsoft.ResourceGraph/resources"


class TokenBucketLimiter:
    """Thread-safe token bucket refilled at ``rate`` permits per second."""

    def __init__(
        self,
        rate: float,
        burst: int,
        *,
        name: str = "",
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        if rate <= 0 or burst < 1:
            raise ValueError("rate must be positive and burst at least 1")
        self.rate = float(rate)
        self.burst = int(burst)
        self.name = name
        self._clock = clock
        self._sleep = sleep
        self._tokens = float(burst)
        self._last = clock()
        self._lock = threading.Lock()

    # ------------------------------------------------------------------
    def _refill(self) -> None:
        now = self._clock()
        elapsed = max(0.0, now - self._last)
        self._last = now
        self._tokens = min(float(self.burst), self._tokens + elapsed * self.rate)

    def available(self) -> float:
        """Permits that could be taken right now without waiting."""

        with self._lock:
            self._refill()
            return max(0.0, self._tokens)

    def try_acquire(self) -> bool:
        with self._lock:
            self._refill()
            if self._tokens >= 1.0:
                self._tokens -= 1.0
                return True
            return False

    # ------------------------------------------------------------------
    def wait(self, ctx: ExecutionContext | None = None) -> None:
        """Block until a permit is available.

        Raises :class:`ContextCancelledError` when ``ctx`` is cancelled, or when
        its deadline passes before the permit would be granted.
        """

        if ctx is not None:
            ctx.check()

        with self._lock:
            self._refill()
            if self._tokens >= 1.0:
                self._tokens -= 1.0
                return

            delay = (1.0 - self._tokens) / self.rate
            if ctx is not None:
                remaining = ctx.remaining()
                if remaining is not None and delay > remaining:
                    raise ContextCancelledError(
                        f"{self.name or 'limiter'} wait would exceed context deadline"
                    )
            # reserve the permit; the caller sleeps outside the lock
            self._tokens -= 1.0

        logger.debug("Throttling %s request for %.3fs", self.name or "api", delay)
        try:
            if ctx is not None:
                ctx.sleep(delay)
            else:
                self._sleep(delay)
        except ContextCancelledError:
            with self._lock:
                self._tokens = min(float(self.burst), self._tokens + 1.0)
            raise


ARM_LIMITER = TokenBucketLimiter(ARM_RATE, ARM_BURST, name="arm")
GRAPH_LIMITER = TokenBucketLimiter(GRAPH_RATE, GRAPH_BURST, name="graph")


def wait_arm(ctx: ExecutionContext | None = None) -> None:
    ARM_LIMITER.wait(ctx)


def wait_graph(ctx: ExecutionContext | None = None) -> None:
    GRAPH_LIMITER.wait(ctx)


def wait_retail_prices(ctx: ExecutionContext | None = None) -> None:
    # retail prices share the graph budget
    GRAPH_LIMITER.wait(ctx)


def limiter_for_url(url: str) -> TokenBucketLimiter:
    """Return the limiter that governs requests to ``url``."""

    if RETAIL_PRICES_HOST in url:
        return GRAPH_LIMITER
    if RESOURCE_GRAPH_PATH in url:
        return GRAPH_LIMITER
    return ARM_LIMITER


__all__ = [
    "ARM_LIMITER",
    "GRAPH_LIMITER",
    "TokenBucketLimiter",
    "limiter_for_url",
    "wait_arm",
    "wait_graph",
    "wait_retail_prices",
]
