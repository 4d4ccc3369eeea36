"""Cancellable execution context propagated to every I/O-issuing component."""

from __future__ import annotations

import threading
import time
from typing import List


class ContextCancelledError(RuntimeError):
    """Raised when an execution context is cancelled or its deadline has passed."""


class ExecutionContext:
    """Cancellation channel with an optional monotonic deadline.

    Child contexts created with :meth:`with_timeout` or :meth:`with_cancel` are
    cancelled together with their parent, never the other way around.
    """

    def __init__(self, *, deadline: float | None = None) -> None:
        self._event = threading.Event()
        self._deadline = deadline
        self._children: List[ExecutionContext] = []
        self._lock = threading.Lock()
        self._parent: ExecutionContext | None = None
        self._reason = "context canceled"

    @classmethod
    def background(cls) -> "ExecutionContext":
        return cls()

    # ------------------------------------------------------------------
    def with_cancel(self) -> "ExecutionContext":
        child = ExecutionContext(deadline=self._deadline)
        self._attach(child)
        return child

    def with_timeout(self, seconds: float) -> "ExecutionContext":
        deadline = time.monotonic() + seconds
        if self._deadline is not None:
            deadline = min(deadline, self._deadline)
        child = ExecutionContext(deadline=deadline)
        self._attach(child)
        return child

    def _attach(self, child: "ExecutionContext") -> None:
        child._parent = self
        with self._lock:
            self._children.append(child)
        if self.cancelled:
            child.cancel()

    # ------------------------------------------------------------------
    def cancel(self) -> None:
        """Cancel this context and its children, then detach it from its parent."""

        self._event.set()
        with self._lock:
            children = list(self._children)
        for child in children:
            child.cancel()

        parent, self._parent = self._parent, None
        if parent is not None:
            parent._detach(self)

    def _detach(self, child: "ExecutionContext") -> None:
        with self._lock:
            if child in self._children:
                self._children.remove(child)

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    @property
    def deadline(self) -> float | None:
        return self._deadline

    def remaining(self) -> float | None:
        """Seconds left before the deadline, or ``None`` when there is none."""

        if self._deadline is None:
            return None
        return max(0.0, self._deadline - time.monotonic())

    def expired(self) -> bool:
        return self._deadline is not None and time.monotonic() >= self._deadline

    def done(self) -> bool:
        return self.cancelled or self.expired()

    def error(self) -> ContextCancelledError | None:
        if self.cancelled:
            return ContextCancelledError(self._reason)
        if self.expired():
            return ContextCancelledError("context deadline exceeded")
        return None

    def check(self) -> None:
        """Raise :class:`ContextCancelledError` when the context is done."""

        error = self.error()
        if error is not None:
            raise error

    def sleep(self, seconds: float) -> None:
        """Sleep for ``seconds`` unless the context is cancelled first."""

        self.check()
        if seconds <= 0:
            return

        remaining = self.remaining()
        if remaining is not None and remaining < seconds:
            self._event.wait(remaining)
            self.check()
            raise ContextCancelledError("context deadline exceeded")

        if self._event.wait(seconds):
            self.check()


__all__ = ["ContextCancelledError", "ExecutionContext"]
