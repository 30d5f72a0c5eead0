"""
Toolgate Tracing.

One span per tool invocation, labeled with the span name (``tool.<name>``)
and attributes such as the dispatched action. Finished spans feed the
MetricsStore and a bounded in-memory recorder.
"""

from __future__ import annotations

import threading
import time
from collections import deque
from contextlib import contextmanager
from dataclasses import dataclass, field
from functools import lru_cache
from typing import Any, Iterator, Literal

from toolgate.exceptions import error_code_of
from toolgate.observability.metrics import get_metrics_store

SpanStatus = Literal["UNSET", "OK", "ERROR"]


@dataclass
class Span:
    """A single timed operation."""

    name: str
    attributes: dict[str, Any] = field(default_factory=dict)
    status: SpanStatus = "UNSET"
    error: str | None = None
    error_code: str | None = None
    started_at: float = field(default_factory=time.perf_counter)
    ended_at: float | None = None

    def set_attribute(self, key: str, value: Any) -> None:
        self.attributes[key] = value

    def set_ok(self) -> None:
        self.status = "OK"

    def record_error(self, err: BaseException | str) -> None:
        self.status = "ERROR"
        if isinstance(err, BaseException):
            self.error = str(err)
            self.error_code = error_code_of(err)
        else:
            self.error = err
            self.error_code = "UNKNOWN"

    @property
    def ended(self) -> bool:
        return self.ended_at is not None

    @property
    def duration_ms(self) -> float:
        end = self.ended_at if self.ended_at is not None else time.perf_counter()
        return (end - self.started_at) * 1000

    def end(self) -> None:
        if self.ended_at is None:
            self.ended_at = time.perf_counter()


class SpanRecorder:
    """Bounded buffer of finished spans."""

    def __init__(self, maxlen: int = 1000):
        self._lock = threading.Lock()
        self._spans: deque[Span] = deque(maxlen=maxlen)

    def add(self, span: Span) -> None:
        with self._lock:
            self._spans.append(span)

    def finished(self, name: str | None = None) -> list[Span]:
        with self._lock:
            spans = list(self._spans)
        if name is None:
            return spans
        return [s for s in spans if s.name == name]

    def clear(self) -> None:
        with self._lock:
            self._spans.clear()


@lru_cache(maxsize=1)
def get_span_recorder() -> SpanRecorder:
    """Get the global SpanRecorder singleton."""
    return SpanRecorder()


def _finish(span: Span) -> None:
    span.end()
    metrics = get_metrics_store()
    metrics.record_tool_latency(span.name, span.duration_ms)
    if span.status == "ERROR":
        metrics.record_tool_error(span.name, span.error_code or "UNKNOWN")
    get_span_recorder().add(span)


@contextmanager
def start_span(name: str, **attributes: Any) -> Iterator[Span]:
    """Open a span that is always ended, whatever happens inside the block."""
    span = Span(name=name, attributes={"tool.name": name, **attributes})
    try:
        yield span
    except Exception as exc:
        span.record_error(exc)
        raise
    finally:
        _finish(span)
