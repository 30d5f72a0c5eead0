"""
Tool Executor - Uniform invocation pipeline for every tool

Responsibilities:
- Decode raw JSON params into the tool's typed params model
- Run the handler inside one span per invocation
- Convert handler output (text, structured value, pre-built result) into a ToolResult
- Convert handler errors into error results, classified retryable or permanent
- NO schema validation (that is schema_validator)
- NO action routing (that is action_dispatch)

``execute`` never raises for tool-level failures. The only exception it
lets through is ``asyncio.CancelledError``.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, TypeVar, Union

from pydantic import BaseModel, ValidationError
from pydantic_core import to_jsonable_python

from toolgate.core.error_classifier import classify_tool_error
from toolgate.core.request_scope import RequestScope
from toolgate.exceptions import UnknownActionError
from toolgate.observability.tracing import Span, start_span
from toolgate.schemas import ToolResult

logger = logging.getLogger(__name__)

P = TypeVar("P", bound=BaseModel)

RETRY_HINT = " (transient error, may succeed on retry)"


@dataclass(frozen=True)
class PlainText:
    """Handler output returned to the model verbatim."""

    text: str


@dataclass(frozen=True)
class Structured:
    """Handler output serialized as indented JSON."""

    value: Any


HandlerOutput = Union[PlainText, Structured, ToolResult]
Handler = Callable[[RequestScope, Span, P], Awaitable[HandlerOutput]]


# =============================================================================
# Result helpers
# =============================================================================


def text_result(text: str) -> ToolResult:
    return ToolResult(content=text)


def json_result(value: Any) -> ToolResult:
    """Serialize ``value`` as indented JSON, or an error result if it cannot be."""
    try:
        return ToolResult(content=_to_json(value))
    except (TypeError, ValueError) as exc:
        return error_result(f"failed to format response: {exc}")


def error_result(message: str, retryable: bool = False) -> ToolResult:
    return ToolResult(content=message, is_error=True, is_retryable=retryable)


def bad_action(action: str, valid: tuple[str, ...] | list[str]) -> UnknownActionError:
    """Build the error for an action outside the tool's declared set."""
    return UnknownActionError(action, valid)


def describe_validation_error(exc: ValidationError) -> str:
    """Flatten a pydantic ValidationError into one line: ``loc: msg; loc: msg``."""
    parts = []
    for error in exc.errors(include_url=False):
        loc = ".".join(str(p) for p in error.get("loc", ())) or "<root>"
        parts.append(f"{loc}: {error.get('msg', 'invalid')}")
    return "; ".join(parts) or str(exc)


def parse_params(
    raw: bytes | str | bytearray,
    model: type[P],
) -> tuple[P | None, ToolResult | None]:
    """Decode ``raw`` into ``model``.

    Returns ``(params, None)`` on success or ``(None, error_result)`` when
    the bytes are not valid JSON for the model.
    """
    if not isinstance(raw, (bytes, str, bytearray)):
        return None, error_result(
            f"invalid params: expected JSON text, got {type(raw).__name__}"
        )
    try:
        return model.model_validate_json(raw), None
    except ValidationError as exc:
        return None, error_result(f"invalid params: {describe_validation_error(exc)}")


def _to_json(value: Any) -> str:
    return json.dumps(to_jsonable_python(value), indent=2, ensure_ascii=False)


# =============================================================================
# Pipeline
# =============================================================================


def format_result(
    span: Span,
    output: HandlerOutput,
    log: logging.Logger | None = None,
) -> ToolResult:
    """Turn a successful handler output into a ToolResult."""
    log = log or logger

    if isinstance(output, ToolResult):
        if output.is_error:
            span.record_error(output.content)
        else:
            span.set_ok()
        return output

    if isinstance(output, PlainText):
        span.set_ok()
        return ToolResult(content=output.text)

    value = output.value if isinstance(output, Structured) else output
    try:
        content = _to_json(value)
    except (TypeError, ValueError) as exc:
        log.warning("%s: failed to format response: %s", span.name, exc)
        span.record_error(exc)
        return error_result(f"failed to format response: {exc}")

    span.set_ok()
    return ToolResult(content=content)


async def execute(
    scope: RequestScope,
    span_name: str,
    raw_params: bytes | str | bytearray,
    params_model: type[P],
    handler: Handler[P],
    log: logging.Logger | None = None,
) -> ToolResult:
    """
    Run one tool invocation end to end.

    Args:
        scope: Deadline and session for this call
        span_name: Span label, conventionally ``tool.<name>``
        raw_params: JSON object text as produced by the model
        params_model: Pydantic model the params decode into
        handler: Coroutine doing the tool's work
        log: Tool-specific logger (defaults to this module's)

    Returns:
        ToolResult (never raises except on cancellation)
    """
    log = log or logger

    with start_span(span_name) as span:
        params, error = parse_params(raw_params, params_model)
        if error is not None:
            span.record_error(error.content)
            return error

        try:
            output = await handler(scope, span, params)
        except Exception as exc:
            span.record_error(exc)
            log.warning("%s failed: %s", span_name, exc)
            retryable = classify_tool_error(exc)
            message = str(exc) or type(exc).__name__
            if retryable:
                message += RETRY_HINT
            return error_result(message, retryable=retryable)

        return format_result(span, output, log)


__all__ = [
    "PlainText",
    "Structured",
    "HandlerOutput",
    "Handler",
    "RETRY_HINT",
    "execute",
    "format_result",
    "text_result",
    "json_result",
    "error_result",
    "bad_action",
    "parse_params",
    "describe_validation_error",
]
