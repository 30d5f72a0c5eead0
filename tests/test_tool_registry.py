"""Tests for the tool registry."""

import logging

import pytest

from toolgate.core.schema_validator import SchemaValidatingTool
from toolgate.core.tool_registry import ToolRegistry
from toolgate.exceptions import ERR_DUPLICATE, DomainError, SchemaCompileError, error_code_of, is_error
from toolgate.schemas import ToolResult, ToolSchema
from toolgate.tools.base import BaseTool


class StubTool(BaseTool):
    def __init__(self, name: str, parameters=None):
        self._schema = ToolSchema(
            name=name,
            description=f"{name} tool",
            parameters=parameters
            if parameters is not None
            else {"type": "object", "properties": {"q": {"type": "string"}}, "required": ["q"]},
        )
        self.calls = 0

    @property
    def schema(self) -> ToolSchema:
        return self._schema

    async def execute(self, params, scope=None) -> ToolResult:
        self.calls += 1
        return ToolResult(content=f"{self.name}: {params}")


class TestRegistration:
    """register / get / list."""

    def test_register_wraps_with_validation(self):
        registry = ToolRegistry()
        registry.register(StubTool("alpha"))

        assert isinstance(registry.get("alpha"), SchemaValidatingTool)
        assert "alpha" in registry
        assert len(registry) == 1

    def test_register_without_validation(self):
        registry = ToolRegistry(validate_schemas=False)
        tool = StubTool("alpha")
        registry.register(tool)
        assert registry.get("alpha") is tool

    def test_duplicate_rejected(self):
        registry = ToolRegistry()
        registry.register(StubTool("alpha"))

        with pytest.raises(DomainError) as exc_info:
            registry.register(StubTool("alpha"))

        assert is_error(exc_info.value, ERR_DUPLICATE)
        assert error_code_of(exc_info.value) == "TOOL_DUPLICATE"

    def test_get_unknown(self):
        assert ToolRegistry().get("nope") is None

    def test_list_sorted(self):
        registry = ToolRegistry()
        for name in ("gamma", "alpha", "beta"):
            registry.register(StubTool(name))

        assert registry.names() == ["alpha", "beta", "gamma"]
        assert [t.name for t in registry.list_tools()] == ["alpha", "beta", "gamma"]
        assert [s.name for s in registry.schemas()] == ["alpha", "beta", "gamma"]

    def test_openai_tools(self):
        registry = ToolRegistry()
        registry.register(StubTool("alpha"))

        [descriptor] = registry.openai_tools()
        assert descriptor["type"] == "function"
        assert descriptor["function"]["name"] == "alpha"
        assert descriptor["function"]["parameters"]["required"] == ["q"]


class TestCompilePolicy:
    """Tools whose schema does not compile."""

    def test_fail_open_registers_unvalidated_with_warning(self, caplog):
        registry = ToolRegistry(compile_policy="fail_open")
        tool = StubTool("broken", parameters="{not json")

        with caplog.at_level(logging.WARNING, logger="toolgate.core.tool_registry"):
            registry.register(tool)

        assert registry.get("broken") is tool
        assert "broken registered WITHOUT schema validation" in caplog.text

    def test_fail_closed_refuses(self):
        registry = ToolRegistry(compile_policy="fail_closed")

        with pytest.raises(SchemaCompileError):
            registry.register(StubTool("broken", parameters="{not json"))

        assert "broken" not in registry


class TestInvoke:
    """Invocation through the registry."""

    @pytest.mark.asyncio
    async def test_invoke_known_tool(self):
        registry = ToolRegistry()
        tool = StubTool("alpha")
        registry.register(tool)

        result = await registry.invoke("alpha", '{"q": "x"}')

        assert result.is_error is False
        assert tool.calls == 1

    @pytest.mark.asyncio
    async def test_invoke_rejected_by_schema(self):
        registry = ToolRegistry()
        tool = StubTool("alpha")
        registry.register(tool)

        result = await registry.invoke("alpha", "{}")

        assert result.is_error is True
        assert tool.calls == 0

    @pytest.mark.asyncio
    async def test_invoke_unknown_tool(self):
        result = await ToolRegistry().invoke("ghost", "{}")

        assert result.is_error is True
        assert result.is_retryable is False
        assert result.content == "invoke: tool 'ghost': tool not found"
