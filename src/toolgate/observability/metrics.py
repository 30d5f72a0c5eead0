"""
Toolgate Metrics Store.

Process-local counters fed by finished spans and by the schema gate:
- latency window and call count per span name
- error codes per span name and process-wide (codes from ``error_code_of``)
- calls rejected before a handler ran, keyed ``<tool>:<reason>``

All mutation happens under one lock; ``get_metrics_store()`` returns the
shared instance.
"""

from __future__ import annotations

import statistics
import threading
from collections import Counter, deque
from dataclasses import dataclass, field
from datetime import datetime, timezone
from functools import lru_cache
from typing import Any

LATENCY_WINDOW = 1000


def _nearest_rank(ordered: list[float], q: float) -> float:
    return ordered[min(len(ordered) - 1, int(len(ordered) * q))]


@dataclass
class SpanMetrics:
    """Rolling latency window and error tally for one span name."""

    latencies_ms: deque[float] = field(default_factory=lambda: deque(maxlen=LATENCY_WINDOW))
    errors: Counter[str] = field(default_factory=Counter)
    calls: int = 0
    last_seen: datetime | None = None

    def observe(self, ms: float) -> None:
        self.latencies_ms.append(ms)
        self.calls += 1
        self.last_seen = datetime.now(timezone.utc)

    def latency_stats(self) -> dict[str, float]:
        if not self.latencies_ms:
            return {}
        ordered = sorted(self.latencies_ms)
        return {
            "p50_ms": _nearest_rank(ordered, 0.5),
            "p90_ms": _nearest_rank(ordered, 0.9),
            "p99_ms": _nearest_rank(ordered, 0.99),
            "mean_ms": statistics.fmean(ordered),
            "max_ms": ordered[-1],
        }

    def snapshot(self) -> dict[str, Any]:
        return {
            "call_count": self.calls,
            "last_called": self.last_seen.isoformat() if self.last_seen else None,
            **self.latency_stats(),
            "errors": dict(self.errors),
        }


class MetricsStore:
    """Thread-safe in-process metrics for tool invocations."""

    def __init__(self):
        self._lock = threading.Lock()
        self._clear()

    def _clear(self) -> None:
        self._spans: dict[str, SpanMetrics] = {}
        self._errors: Counter[str] = Counter()
        self._rejections: Counter[str] = Counter()
        self._since = datetime.now(timezone.utc)

    def _span(self, name: str) -> SpanMetrics:
        metrics = self._spans.get(name)
        if metrics is None:
            metrics = self._spans[name] = SpanMetrics()
        return metrics

    def record_tool_latency(self, tool: str, ms: float) -> None:
        with self._lock:
            self._span(tool).observe(ms)

    def record_tool_error(self, tool: str, code: str) -> None:
        """Count ``code`` against ``tool`` and in the process-wide tally."""
        with self._lock:
            self._span(tool).errors[code] += 1
            self._errors[code] += 1

    def record_error(self, code: str) -> None:
        with self._lock:
            self._errors[code] += 1

    def record_rejection(self, tool: str, reason: str) -> None:
        """Count a call refused before its handler ran (bad JSON, schema miss)."""
        with self._lock:
            self._rejections[f"{tool}:{reason}"] += 1

    def get_summary(self) -> dict[str, Any]:
        """JSON-serializable view of everything collected since the last reset."""
        with self._lock:
            now = datetime.now(timezone.utc)
            return {
                "uptime_seconds": round((now - self._since).total_seconds(), 1),
                "collected_at": now.isoformat(),
                "tools": {name: m.snapshot() for name, m in self._spans.items()},
                "global_errors": dict(self._errors),
                "rejections": dict(self._rejections),
            }

    def reset(self) -> None:
        with self._lock:
            self._clear()


@lru_cache(maxsize=1)
def get_metrics_store() -> MetricsStore:
    return MetricsStore()


__all__ = ["MetricsStore", "SpanMetrics", "get_metrics_store", "LATENCY_WINDOW"]
