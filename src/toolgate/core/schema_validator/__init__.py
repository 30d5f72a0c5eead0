"""
Schema Validator - Gate every invocation behind the tool's JSON Schema

Responsibilities:
- Compile each tool's declared schema once (Draft 7)
- Reject payloads that are not JSON or that violate the schema
- Forward the ORIGINAL raw bytes to the inner tool on success
- NO execution of the tool's own logic
- NO transformation of the payload

Rejected payloads never reach the inner handler.
"""

from __future__ import annotations

import json
import logging
from typing import Any

import jsonschema
from jsonschema import Draft7Validator
from pydantic_core import from_json

from toolgate.core.request_scope import RequestScope
from toolgate.core.tool_executor import error_result
from toolgate.exceptions import SchemaCompileError
from toolgate.observability.metrics import get_metrics_store
from toolgate.schemas import ToolResult, ToolSchema
from toolgate.tools.base import BaseTool

logger = logging.getLogger(__name__)


def compile_schema(
    schema: dict[str, Any] | str | bytes | bool | None,
    tool_name: str = "<tool>",
) -> Draft7Validator | None:
    """
    Compile a parameter schema.

    Args:
        schema: Schema document, raw JSON text, or None
        tool_name: Used in error messages

    Returns:
        A reusable validator, or None when the schema is absent or ``null``

    Raises:
        SchemaCompileError: If the schema is not valid JSON or not a valid schema
    """
    if isinstance(schema, (str, bytes)):
        text = schema.strip()
        if not text:
            return None
        try:
            schema = json.loads(text)
        except ValueError as exc:
            raise SchemaCompileError(tool_name, f"invalid JSON: {exc}") from exc

    if schema is None:
        return None

    if not isinstance(schema, (dict, bool)):
        raise SchemaCompileError(
            tool_name, f"schema must be an object, got {type(schema).__name__}"
        )

    try:
        Draft7Validator.check_schema(schema)
    except jsonschema.SchemaError as exc:
        raise SchemaCompileError(tool_name, exc.message) from exc

    return Draft7Validator(schema)


def describe_schema_errors(errors: list[jsonschema.ValidationError]) -> str:
    """Human-readable, deterministic description of schema violations."""
    messages = []
    for error in sorted(errors, key=lambda e: [str(p) for p in e.absolute_path]):
        path = ".".join(str(p) for p in error.absolute_path)
        messages.append(f"{path}: {error.message}" if path else error.message)
    return "; ".join(messages)


class SchemaValidatingTool(BaseTool):
    """Wraps a tool so every call is schema-checked before it runs."""

    def __init__(self, inner: BaseTool, validator: Draft7Validator):
        self.inner = inner
        self._validator = validator

    @property
    def schema(self) -> ToolSchema:
        return self.inner.schema

    async def execute(
        self,
        params: bytes | str,
        scope: RequestScope | None = None,
    ) -> ToolResult:
        # from_json caps nesting depth.
        try:
            data = from_json(params)
        except (TypeError, ValueError, RecursionError) as exc:
            get_metrics_store().record_rejection(self.name, "invalid_json")
            return error_result(f"invalid JSON: {exc}")

        try:
            errors = list(self._validator.iter_errors(data))
        except RecursionError:
            get_metrics_store().record_rejection(self.name, "schema")
            return error_result("schema validation failed: payload nested too deeply")
        if errors:
            get_metrics_store().record_rejection(self.name, "schema")
            logger.debug("%s: schema rejected payload (%d errors)", self.name, len(errors))
            return error_result(f"schema validation failed: {describe_schema_errors(errors)}")

        return await self.inner.execute(params, scope)


def with_schema_validation(tool: BaseTool) -> BaseTool:
    """
    Wrap ``tool`` with schema validation.

    Returns the tool unchanged when it declares no schema (absent or ``null``).

    Raises:
        SchemaCompileError: If the declared schema cannot be compiled
    """
    validator = compile_schema(tool.parameters, tool.name)
    if validator is None:
        return tool
    return SchemaValidatingTool(tool, validator)


__all__ = [
    "SchemaValidatingTool",
    "compile_schema",
    "describe_schema_errors",
    "with_schema_validation",
]
