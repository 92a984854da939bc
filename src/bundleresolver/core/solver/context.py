"""Cancellation and deadlines for resolution calls.

A ``Context`` is created by the caller and passed into ``resolve``. The
resolver polls it between phases, and the SAT layer interrupts a running
solver as soon as the context is cancelled or its deadline passes.
"""

from __future__ import annotations

import threading
import time

from bundleresolver.exceptions import ResolutionCancelled


class Context:
    """A cancellable, optionally time-boxed resolution context.

    Args:
        timeout: Seconds until the context expires. None means no deadline.
    """

    def __init__(self, timeout: float | None = None) -> None:
        self._deadline = None if timeout is None else time.monotonic() + timeout
        self._cancelled = threading.Event()

    def cancel(self) -> None:
        self._cancelled.set()

    @property
    def cancelled(self) -> bool:
        """True once cancelled explicitly or past the deadline."""
        if self._cancelled.is_set():
            return True
        return self._deadline is not None and time.monotonic() >= self._deadline

    def remaining(self) -> float | None:
        """Seconds left before the deadline, or None without one."""
        if self._deadline is None:
            return None
        return max(0.0, self._deadline - time.monotonic())

    def check(self) -> None:
        """Raise ``ResolutionCancelled`` if the context is done."""
        if self._cancelled.is_set():
            raise ResolutionCancelled("resolution cancelled")
        if self.cancelled:
            raise ResolutionCancelled("resolution deadline exceeded")


def background() -> Context:
    """A context that is never cancelled and has no deadline."""
    return Context()
