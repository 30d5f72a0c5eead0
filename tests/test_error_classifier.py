"""Tests for retryable vs. permanent error classification."""

import asyncio

import pytest

from toolgate.core.error_classifier import (
    PERMANENT_SENTINELS,
    RETRYABLE_SENTINELS,
    classify_tool_error,
)
from toolgate.exceptions import (
    ERR_NOT_FOUND,
    ERR_PROVIDER_ERROR,
    ERR_SSRF_BLOCKED,
    ERR_TIMEOUT,
    DomainError,
    wrap_op,
)


def test_none_is_not_retryable():
    assert classify_tool_error(None) is False


@pytest.mark.parametrize("sentinel", RETRYABLE_SENTINELS, ids=lambda s: s.code)
def test_retryable_sentinels_survive_double_wrapping(sentinel):
    assert classify_tool_error(sentinel) is True
    assert classify_tool_error(wrap_op("outer", wrap_op("inner", sentinel))) is True


@pytest.mark.parametrize("sentinel", PERMANENT_SENTINELS, ids=lambda s: s.code)
def test_permanent_sentinels_survive_double_wrapping(sentinel):
    assert classify_tool_error(sentinel) is False
    assert classify_tool_error(wrap_op("outer", wrap_op("inner", sentinel))) is False


def test_permanent_wins_over_retryable():
    err = DomainError("op", ERR_NOT_FOUND, "after timeout")
    err.__cause__ = DomainError("inner", ERR_TIMEOUT)
    assert classify_tool_error(err) is False


def test_permanent_wins_over_pattern():
    err = DomainError("fetch", ERR_SSRF_BLOCKED, "connection refused")
    assert classify_tool_error(err) is False


@pytest.mark.parametrize(
    "message",
    [
        "dial tcp: Connection Refused",
        "read: connection reset by peer",
        "lookup api.example: no such host",
        "context deadline exceeded",
        "503 Service Unavailable",
        "rpc error: code = Unavailable",
        "ResourceExhausted: quota",
        "please TRY AGAIN later",
    ],
)
def test_message_patterns(message):
    assert classify_tool_error(RuntimeError(message)) is True


def test_pattern_found_deep_in_chain():
    inner = OSError("Temporary failure in name resolution")
    assert classify_tool_error(DomainError("github.list_repos", inner)) is True


def test_empty_message_uses_type_name():
    assert classify_tool_error(asyncio.TimeoutError()) is True
    assert classify_tool_error(TimeoutError()) is True


def test_unknown_error_defaults_to_permanent():
    assert classify_tool_error(ValueError("bad value")) is False


def test_provider_error_wrapped_in_foreign_cause():
    try:
        try:
            raise DomainError("llm", ERR_PROVIDER_ERROR)
        except DomainError as exc:
            raise RuntimeError("request failed") from exc
    except RuntimeError as outer:
        assert classify_tool_error(outer) is True
