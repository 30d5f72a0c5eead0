"""
Rate Limiter - Fixed-window admission control per tool

Responsibilities:
- Admit at most ``limit`` calls per ``window``
- Reject excess calls immediately (no blocking, no queueing)
- NO persistence: state resets on process restart

Each tool instance owns its limiter; limiters are never shared across tools.
"""

from __future__ import annotations

import threading
import time
from typing import Callable

from toolgate.exceptions import ERR_LIMIT_REACHED, DomainError


class RateLimiter:
    """
    Fixed-window counter.

    ``allow()`` is an atomic check-and-increment, safe under concurrent
    callers from threads and from the event loop alike.
    """

    def __init__(
        self,
        limit: int,
        window: float = 60.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        if limit < 1:
            raise ValueError(f"limit must be >= 1, got {limit}")
        if window <= 0:
            raise ValueError(f"window must be > 0, got {window}")
        self._limit = limit
        self._window = window
        self._clock = clock
        self._lock = threading.Lock()
        self._count = 0
        self._window_start = clock()

    @property
    def limit(self) -> int:
        return self._limit

    @property
    def window(self) -> float:
        return self._window

    def allow(self) -> bool:
        """Consume one slot in the current window. Returns False when exhausted."""
        with self._lock:
            now = self._clock()
            if now - self._window_start >= self._window:
                self._window_start = now
                self._count = 0
            if self._count >= self._limit:
                return False
            self._count += 1
            return True

    def admit(self, op: str, subsystem: str | None = None) -> None:
        """Like allow(), but raises when the window is exhausted.

        Raises:
            DomainError: wrapping ERR_LIMIT_REACHED (permanent at this layer)
        """
        if not self.allow():
            raise DomainError(
                op,
                ERR_LIMIT_REACHED,
                f"rate limit of {self.describe()} exceeded",
                subsystem=subsystem,
            )

    def describe(self) -> str:
        return f"{self._limit} calls per {self._window:g}s"


__all__ = ["RateLimiter"]
