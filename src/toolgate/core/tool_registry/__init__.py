"""
Tool Registry - Central map of available tools

Responsibilities:
- Register tools by unique name (duplicates are refused)
- Wrap each tool with schema validation on registration
- Provide lookup, listing and function-calling descriptors
- NO execution logic of its own (``invoke`` only forwards)

Schema compile failures follow the configured policy: ``fail_open``
registers the tool unvalidated with a warning, ``fail_closed`` refuses it.
"""

from __future__ import annotations

import logging
import threading
from typing import Any, Literal

from toolgate.core.request_scope import RequestScope
from toolgate.core.schema_validator import with_schema_validation
from toolgate.core.tool_executor import error_result
from toolgate.exceptions import ERR_DUPLICATE, ERR_TOOL_NOT_FOUND, DomainError, SchemaCompileError
from toolgate.schemas import ToolResult, ToolSchema
from toolgate.tools.base import BaseTool

logger = logging.getLogger(__name__)

CompilePolicy = Literal["fail_open", "fail_closed"]


class ToolRegistry:
    """
    Central tool registry.

    Written at startup, read concurrently afterwards. A tool becomes
    visible only once fully wrapped.
    """

    def __init__(
        self,
        validate_schemas: bool = True,
        compile_policy: CompilePolicy = "fail_open",
    ):
        self._validate_schemas = validate_schemas
        self._compile_policy = compile_policy
        self._lock = threading.RLock()
        self._tools: dict[str, BaseTool] = {}

    def register(self, tool: BaseTool) -> None:
        """
        Register a tool.

        Args:
            tool: Tool instance

        Raises:
            DomainError: If a tool with the same name is already registered
            SchemaCompileError: If the schema is broken and the policy is fail_closed
        """
        name = tool.name
        registered = tool

        if self._validate_schemas:
            try:
                registered = with_schema_validation(tool)
            except SchemaCompileError as exc:
                if self._compile_policy == "fail_closed":
                    raise
                logger.warning(
                    "Tool %s registered WITHOUT schema validation: %s", name, exc
                )

        with self._lock:
            if name in self._tools:
                raise DomainError("register", ERR_DUPLICATE, f"tool {name!r}", subsystem="registry")
            self._tools[name] = registered
        logger.debug("Registered tool %s", name)

    def get(self, name: str) -> BaseTool | None:
        """Return the registered (possibly wrapped) tool, or None."""
        with self._lock:
            return self._tools.get(name)

    def list_tools(self) -> list[BaseTool]:
        """All registered tools, sorted by name."""
        with self._lock:
            return [self._tools[name] for name in sorted(self._tools)]

    def names(self) -> list[str]:
        with self._lock:
            return sorted(self._tools)

    def schemas(self) -> list[ToolSchema]:
        return [tool.schema for tool in self.list_tools()]

    def openai_tools(self) -> list[dict[str, Any]]:
        """Function-calling descriptors for every registered tool."""
        return [schema.to_openai_function() for schema in self.schemas()]

    async def invoke(
        self,
        name: str,
        params: bytes | str,
        scope: RequestScope | None = None,
    ) -> ToolResult:
        """Run the named tool. An unknown name yields an error result, not an exception."""
        tool = self.get(name)
        if tool is None:
            return error_result(str(DomainError("invoke", ERR_TOOL_NOT_FOUND, f"tool {name!r}")))
        return await tool.execute(params, scope or RequestScope())

    def __contains__(self, name: object) -> bool:
        with self._lock:
            return name in self._tools

    def __len__(self) -> int:
        with self._lock:
            return len(self._tools)


__all__ = ["ToolRegistry", "CompilePolicy"]
