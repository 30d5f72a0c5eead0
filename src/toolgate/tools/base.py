"""
Toolgate Tools - Capability adapters behind the invocation boundary

Tools:
- Are the ONLY way the agent reaches a backend
- Publish a JSON Schema for their parameters
- Accept raw, untrusted JSON from the model
- Always return a ToolResult (never raise, except on cancellation)
- Default to an in-memory mock backend so they are testable in isolation
"""

from __future__ import annotations

import json
from abc import ABC, abstractmethod
from functools import lru_cache
from pathlib import Path
from typing import Any, Awaitable, TypeVar

from toolgate.core.request_scope import RequestScope
from toolgate.exceptions import DomainError, ToolgateException
from toolgate.schemas import ToolResult, ToolSchema

T = TypeVar("T")


@lru_cache(maxsize=None)
def load_parameters(module_file: str) -> dict[str, Any]:
    """Load the parameter schema shipped as schema.json next to a tool module."""
    schema_path = Path(module_file).parent / "schema.json"
    with open(schema_path, encoding="utf-8") as f:
        return json.load(f)


async def call_backend(
    scope: RequestScope,
    awaitable: Awaitable[T],
    op: str,
    timeout: float | None,
    subsystem: str | None = None,
) -> T:
    """Run one backend call under the tool's sub-timeout.

    Foreign exceptions gain operation context; toolgate errors pass through.
    """
    try:
        return await scope.bounded(awaitable, timeout, op=op, subsystem=subsystem)
    except ToolgateException:
        raise
    except Exception as exc:
        raise DomainError(op, exc, subsystem=subsystem) from exc


class BaseTool(ABC):
    """
    Base class for every tool.

    Each tool must:
    - Declare its schema (name, description, parameters)
    - Implement execute()
    - Stay immutable after construction
    """

    @property
    @abstractmethod
    def schema(self) -> ToolSchema:
        """Return the tool's schema."""
        pass

    @property
    def name(self) -> str:
        return self.schema.name

    @property
    def description(self) -> str:
        return self.schema.description

    @property
    def parameters(self) -> dict[str, Any] | str | None:
        return self.schema.parameters

    @abstractmethod
    async def execute(
        self,
        params: bytes | str,
        scope: RequestScope | None = None,
    ) -> ToolResult:
        """
        Run the tool.

        Args:
            params: Raw JSON object produced by the model
            scope: Deadline and session of the calling request

        Returns:
            ToolResult
        """
        pass

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.name!r}>"


__all__ = ["BaseTool", "call_backend", "load_parameters"]
