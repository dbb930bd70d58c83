"""
RunContext: cancellation and deadline for one engine call.

Passed to start/stop and through to every exchange call. Cancel it from
another thread (e.g. a signal handler) to make the engine stop issuing
further venue requests.
"""

from __future__ import annotations

import threading
import time

from spotgrid_core.errors import GridCancelledError


class RunContext:
    """
    Cancellable context with an optional deadline.

    timeout is in seconds from construction; None means no deadline.
    """

    def __init__(self, timeout: float | None = None) -> None:
        self._cancelled = threading.Event()
        self._deadline = None if timeout is None else time.monotonic() + timeout
        self._reason: str | None = None

    def cancel(self, reason: str = "context cancelled") -> None:
        """Mark the context done. Idempotent; the first reason wins."""
        if not self._cancelled.is_set():
            self._reason = reason
            self._cancelled.set()

    @property
    def deadline(self) -> float | None:
        """Deadline on the time.monotonic() clock, or None."""
        return self._deadline

    @property
    def expired(self) -> bool:
        return self._deadline is not None and time.monotonic() >= self._deadline

    @property
    def done(self) -> bool:
        """True once cancelled or past the deadline."""
        return self._cancelled.is_set() or self.expired

    def remaining(self) -> float | None:
        """Seconds left before the deadline (never negative), or None if unbounded."""
        if self._deadline is None:
            return None
        return max(0.0, self._deadline - time.monotonic())

    def error(self) -> GridCancelledError:
        if self._cancelled.is_set():
            return GridCancelledError(self._reason or "context cancelled")
        return GridCancelledError("context deadline exceeded")

    def check(self) -> None:
        """Raise GridCancelledError if the context is done."""
        if self.done:
            raise self.error()

    def wait(self, timeout: float | None = None) -> bool:
        """Block until cancelled, the deadline passes, or timeout elapses. Returns done."""
        remaining = self.remaining()
        if remaining is not None and (timeout is None or remaining < timeout):
            timeout = remaining
        self._cancelled.wait(timeout)
        return self.done
