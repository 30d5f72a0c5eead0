"""Tests for observability metrics and tracing modules."""

import pytest

from toolgate.exceptions import ERR_TIMEOUT, DomainError
from toolgate.observability.metrics import LATENCY_WINDOW, MetricsStore, get_metrics_store
from toolgate.observability.tracing import Span, SpanRecorder, get_span_recorder, start_span


@pytest.fixture
def store():
    return MetricsStore()


class TestMetricsStore:
    """Per-span latency and error tallies."""

    def test_latency_stats(self, store):
        for ms in (20.0, 40.0, 60.0):
            store.record_tool_latency("tool.github", ms)

        github = store.get_summary()["tools"]["tool.github"]

        assert github["call_count"] == 3
        assert github["p50_ms"] == 40.0
        assert github["max_ms"] == 60.0
        assert github["mean_ms"] == pytest.approx(40.0)
        assert github["last_called"] is not None

    def test_latency_window_is_bounded(self, store):
        for i in range(LATENCY_WINDOW + 10):
            store.record_tool_latency("tool.shell", float(i))

        shell = store.get_summary()["tools"]["tool.shell"]

        assert shell["call_count"] == LATENCY_WINDOW + 10
        assert shell["max_ms"] == float(LATENCY_WINDOW + 9)

    def test_tool_errors_also_count_globally(self, store):
        store.record_tool_error("tool.canvas", "CANVAS_NOT_FOUND")
        store.record_tool_error("tool.canvas", "CANVAS_NOT_FOUND")
        store.record_tool_error("tool.browser", "BROWSER_TIMEOUT")
        store.record_error("UNKNOWN")

        summary = store.get_summary()

        assert summary["tools"]["tool.canvas"]["errors"] == {"CANVAS_NOT_FOUND": 2}
        assert summary["tools"]["tool.canvas"]["call_count"] == 0
        assert summary["global_errors"] == {"CANVAS_NOT_FOUND": 2, "BROWSER_TIMEOUT": 1, "UNKNOWN": 1}

    def test_rejections_keyed_by_tool_and_reason(self, store):
        store.record_rejection("browser", "schema")
        store.record_rejection("browser", "schema")
        store.record_rejection("shell", "invalid_json")

        assert store.get_summary()["rejections"] == {"browser:schema": 2, "shell:invalid_json": 1}

    def test_empty_summary(self, store):
        summary = store.get_summary()

        assert summary["tools"] == {}
        assert summary["global_errors"] == {}
        assert summary["rejections"] == {}
        assert summary["uptime_seconds"] >= 0
        assert summary["collected_at"]

    def test_reset_clears_everything(self, store):
        store.record_tool_latency("tool.filesystem", 5.0)
        store.record_error("TIMEOUT")
        store.record_rejection("filesystem", "schema")

        store.reset()

        summary = store.get_summary()
        assert (summary["tools"], summary["global_errors"], summary["rejections"]) == ({}, {}, {})

    def test_shared_instance(self):
        assert get_metrics_store() is get_metrics_store()


class TestTracing:
    """Tests for per-invocation spans."""

    @pytest.fixture(autouse=True)
    def clean(self):
        get_metrics_store().reset()
        get_span_recorder().clear()
        yield
        get_span_recorder().clear()

    def test_span_is_recorded_and_timed(self):
        with start_span("tool.web_fetch") as span:
            span.set_attribute("http.method", "GET")
            span.set_ok()

        [finished] = get_span_recorder().finished("tool.web_fetch")
        assert finished is span
        assert finished.ended
        assert finished.attributes == {"tool.name": "tool.web_fetch", "http.method": "GET"}
        assert get_metrics_store().get_summary()["tools"]["tool.web_fetch"]["call_count"] == 1

    def test_error_span_feeds_error_counts(self):
        with start_span("tool.github") as span:
            span.record_error(DomainError("get_repo", ERR_TIMEOUT, subsystem="github"))

        assert span.status == "ERROR"
        assert span.error_code == "GITHUB_TIMEOUT"
        errors = get_metrics_store().get_summary()["tools"]["tool.github"]["errors"]
        assert errors == {"GITHUB_TIMEOUT": 1}

    def test_exception_ends_span(self):
        with pytest.raises(RuntimeError):
            with start_span("tool.boom"):
                raise RuntimeError("boom")

        [span] = get_span_recorder().finished("tool.boom")
        assert span.ended
        assert span.status == "ERROR"
        assert span.error == "boom"

    def test_string_error(self):
        span = Span(name="t")
        span.record_error("invalid params: x")
        assert span.error_code == "UNKNOWN"

    def test_recorder_is_bounded(self):
        recorder = SpanRecorder(maxlen=2)
        for i in range(3):
            recorder.add(Span(name=f"s{i}"))
        assert [s.name for s in recorder.finished()] == ["s1", "s2"]
