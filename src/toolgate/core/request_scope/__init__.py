"""
Request Scope - Deadline-bearing context for one tool invocation

Responsibilities:
- Carry the caller's deadline and session identity down to handlers
- Apply a bounded sub-timeout around each backend call
- Convert expiry into a retryable timeout error

Cancellation is native asyncio task cancellation: ``CancelledError`` is
never caught here, so a cancelled caller aborts in-flight backend calls.
"""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass, replace
from typing import Awaitable, TypeVar

from toolgate.exceptions import ERR_TIMEOUT, DomainError

T = TypeVar("T")


@dataclass(frozen=True)
class RequestScope:
    """Immutable per-request scope.

    ``deadline`` is a ``time.monotonic()`` timestamp, or None for no deadline.
    """

    session_id: str | None = None
    deadline: float | None = None

    @classmethod
    def with_deadline_in(cls, seconds: float, session_id: str | None = None) -> RequestScope:
        return cls(session_id=session_id, deadline=time.monotonic() + seconds)

    def with_timeout(self, seconds: float) -> RequestScope:
        """Return a scope whose deadline is the earlier of the current one and now + seconds."""
        candidate = time.monotonic() + seconds
        if self.deadline is not None and self.deadline <= candidate:
            return self
        return replace(self, deadline=candidate)

    def with_session(self, session_id: str) -> RequestScope:
        return replace(self, session_id=session_id)

    def remaining(self) -> float | None:
        if self.deadline is None:
            return None
        return max(0.0, self.deadline - time.monotonic())

    @property
    def expired(self) -> bool:
        remaining = self.remaining()
        return remaining is not None and remaining <= 0

    async def bounded(
        self,
        awaitable: Awaitable[T],
        timeout: float | None = None,
        op: str = "backend",
        subsystem: str | None = None,
    ) -> T:
        """Await ``awaitable`` under the tighter of the scope deadline and ``timeout``.

        Raises:
            DomainError: wrapping ERR_TIMEOUT when the bound expires
        """
        scope = self.with_timeout(timeout) if timeout is not None else self
        limit = scope.remaining()
        try:
            if limit is None:
                return await awaitable
            return await asyncio.wait_for(awaitable, timeout=limit)
        except asyncio.TimeoutError as exc:
            raise DomainError(
                op,
                ERR_TIMEOUT,
                f"no response within {limit:.1f}s",
                subsystem=subsystem,
            ) from exc


__all__ = ["RequestScope"]
