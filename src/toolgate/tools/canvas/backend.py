"""
Canvas backend interface and in-memory implementation.

Canvases are scoped by session: the same name in two sessions refers to
two different canvases.
"""

from __future__ import annotations

import threading
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Callable

from pydantic import BaseModel

from toolgate.exceptions import ERR_DUPLICATE, ERR_LIMIT_REACHED, ERR_NOT_FOUND, DomainError

_SUBSYSTEM = "canvas"


class CanvasInfo(BaseModel):
    name: str
    session_id: str
    size: int
    created_at: datetime
    updated_at: datetime


class CanvasContent(CanvasInfo):
    content: str


class CanvasBackend(ABC):
    """Persistent storage for session-scoped canvases."""

    name: str = "abstract"

    @abstractmethod
    async def create(
        self, session_id: str, name: str, content: str, max_canvases: int | None = None
    ) -> CanvasInfo:
        """
        Store a new canvas.

        The ``max_canvases`` check and the insert must be one atomic step, so
        concurrent creates in a session can never overshoot the limit.

        Raises:
            DomainError: ERR_DUPLICATE, or ERR_LIMIT_REACHED when the session
                already holds ``max_canvases`` canvases
        """

    @abstractmethod
    async def update(self, session_id: str, name: str, content: str) -> CanvasInfo: ...

    @abstractmethod
    async def read(self, session_id: str, name: str) -> CanvasContent: ...

    @abstractmethod
    async def delete(self, session_id: str, name: str) -> None: ...

    @abstractmethod
    async def list_canvases(self, session_id: str) -> list[CanvasInfo]:
        """Canvases of one session, sorted by name."""


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class InMemoryCanvasBackend(CanvasBackend):
    """Deterministic in-process canvas store."""

    name = "memory"

    def __init__(self, clock: Callable[[], datetime] = _utcnow):
        self._clock = clock
        self._lock = threading.Lock()
        self._canvases: dict[tuple[str, str], CanvasContent] = {}

    def _missing(self, op: str, name: str) -> DomainError:
        return DomainError(op, ERR_NOT_FOUND, f"canvas {name!r}", subsystem=_SUBSYSTEM)

    async def create(
        self, session_id: str, name: str, content: str, max_canvases: int | None = None
    ) -> CanvasInfo:
        with self._lock:
            key = (session_id, name)
            if key in self._canvases:
                raise DomainError("create", ERR_DUPLICATE, f"canvas {name!r}", subsystem=_SUBSYSTEM)
            if max_canvases is not None:
                held = sum(1 for sid, _ in self._canvases if sid == session_id)
                if held >= max_canvases:
                    raise DomainError(
                        "create", ERR_LIMIT_REACHED,
                        f"canvas limit reached ({max_canvases} per session)",
                        subsystem=_SUBSYSTEM,
                    )
            now = self._clock()
            canvas = CanvasContent(
                name=name,
                session_id=session_id,
                size=len(content.encode("utf-8")),
                created_at=now,
                updated_at=now,
                content=content,
            )
            self._canvases[key] = canvas
            return CanvasInfo(**canvas.model_dump(exclude={"content"}))

    async def update(self, session_id: str, name: str, content: str) -> CanvasInfo:
        with self._lock:
            key = (session_id, name)
            existing = self._canvases.get(key)
            if existing is None:
                raise self._missing("update", name)
            canvas = existing.model_copy(
                update={
                    "content": content,
                    "size": len(content.encode("utf-8")),
                    "updated_at": self._clock(),
                }
            )
            self._canvases[key] = canvas
            return CanvasInfo(**canvas.model_dump(exclude={"content"}))

    async def read(self, session_id: str, name: str) -> CanvasContent:
        with self._lock:
            canvas = self._canvases.get((session_id, name))
        if canvas is None:
            raise self._missing("read", name)
        return canvas

    async def delete(self, session_id: str, name: str) -> None:
        with self._lock:
            if self._canvases.pop((session_id, name), None) is None:
                raise self._missing("delete", name)

    async def list_canvases(self, session_id: str) -> list[CanvasInfo]:
        with self._lock:
            canvases = [c for (sid, _), c in self._canvases.items() if sid == session_id]
        return [
            CanvasInfo(**c.model_dump(exclude={"content"}))
            for c in sorted(canvases, key=lambda c: c.name)
        ]


__all__ = ["CanvasBackend", "CanvasContent", "CanvasInfo", "InMemoryCanvasBackend"]
