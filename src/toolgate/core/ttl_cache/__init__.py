"""
TTL Cache - Expiring key/value store for read-mostly tools

Responsibilities:
- Serve entries until their TTL elapses; an expired entry is a miss
- Evict lazily: expired entries are swept on insert once the store
  grows beyond ``sweep_threshold``; there is no background sweeper
- Derive deterministic keys from request parameters (``cache_key``)
"""

from __future__ import annotations

import hashlib
import json
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Generic, TypeVar

V = TypeVar("V")


@dataclass(frozen=True)
class CacheEntry(Generic[V]):
    key: str
    value: V
    expires_at: float


def cache_key(*parts: Any, **params: Any) -> str:
    """Deterministic fingerprint of a request.

    Semantically identical requests (same values, any keyword order)
    produce the same key.
    """
    content = json.dumps(
        {"parts": list(parts), "params": params},
        sort_keys=True,
        separators=(",", ":"),
        default=str,
    )
    return hashlib.sha256(content.encode()).hexdigest()


class TTLCache(Generic[V]):
    """Thread-safe expiring cache with lazy eviction."""

    def __init__(
        self,
        sweep_threshold: int = 128,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._sweep_threshold = sweep_threshold
        self._clock = clock
        self._lock = threading.Lock()
        self._entries: dict[str, CacheEntry[V]] = {}

    def get(self, key: str) -> tuple[V | None, bool]:
        """Return ``(value, True)`` for a live entry, ``(None, False)`` otherwise."""
        with self._lock:
            entry = self._entries.get(key)
            if entry is None or self._clock() >= entry.expires_at:
                return None, False
            return entry.value, True

    def put(self, key: str, value: V, ttl: float) -> None:
        """Store ``value`` under ``key`` for ``ttl`` seconds (last write wins)."""
        with self._lock:
            now = self._clock()
            self._entries[key] = CacheEntry(key=key, value=value, expires_at=now + ttl)
            if len(self._entries) > self._sweep_threshold:
                self._sweep(now)

    def _sweep(self, now: float) -> None:
        """Drop expired entries. Must hold lock."""
        expired = [k for k, e in self._entries.items() if now >= e.expires_at]
        for k in expired:
            del self._entries[k]

    def invalidate(self, key: str) -> None:
        with self._lock:
            self._entries.pop(key, None)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


__all__ = ["CacheEntry", "TTLCache", "cache_key"]
