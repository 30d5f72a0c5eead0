"""
Toolgate Observability Module.

Provides in-process metrics collection and per-invocation spans.
"""

from toolgate.observability.metrics import MetricsStore, get_metrics_store
from toolgate.observability.tracing import Span, SpanRecorder, get_span_recorder, start_span

__all__ = [
    "MetricsStore",
    "get_metrics_store",
    "Span",
    "SpanRecorder",
    "get_span_recorder",
    "start_span",
]
