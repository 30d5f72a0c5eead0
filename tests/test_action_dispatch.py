"""Tests for action-based routing."""

from enum import Enum

import pytest
from pydantic import BaseModel

from toolgate.core.action_dispatch import ActionMap, dispatch
from toolgate.core.request_scope import RequestScope
from toolgate.core.tool_executor import PlainText, execute
from toolgate.exceptions import UnknownActionError
from toolgate.observability.tracing import Span


class Params(BaseModel):
    action: str
    value: str = ""


class Action(str, Enum):
    READ = "read"
    WRITE = "write"
    DELETE = "delete"


async def _read(scope, p):
    return PlainText(f"read {p.value}")


async def _write(scope, p):
    return PlainText(f"wrote {p.value}")


async def _delete(scope, p):
    return PlainText("deleted")


class TestActionMap:
    """Construction rules."""

    def test_valid_actions_sorted(self):
        forward = ActionMap({"write": _write, "delete": _delete, "read": _read})
        backward = ActionMap({"read": _read, "delete": _delete, "write": _write})
        assert forward.valid_actions == ("delete", "read", "write")
        assert forward.valid_actions == backward.valid_actions

    def test_enum_keys_normalized(self):
        actions = ActionMap({Action.READ: _read})
        assert "read" in actions
        assert list(actions) == ["read"]
        assert len(actions) == 1

    def test_empty_rejected(self):
        with pytest.raises(ValueError):
            ActionMap({})

    def test_for_enum_requires_full_coverage(self):
        with pytest.raises(ValueError, match="missing"):
            ActionMap.for_enum(Action, {Action.READ: _read, Action.WRITE: _write})

    def test_for_enum_rejects_extra(self):
        with pytest.raises(ValueError, match="unexpected"):
            ActionMap.for_enum(
                Action,
                {Action.READ: _read, Action.WRITE: _write, Action.DELETE: _delete, "purge": _delete},
            )


class TestDispatch:
    """Routing inside a span."""

    @pytest.mark.asyncio
    async def test_routes_and_labels_span(self):
        handler = dispatch(lambda p: p.action, ActionMap.for_enum(
            Action, {Action.READ: _read, Action.WRITE: _write, Action.DELETE: _delete}
        ))
        span = Span(name="tool.test")

        out = await handler(RequestScope(), span, Params(action="write", value="x"))

        assert out == PlainText("wrote x")
        assert span.attributes["tool.action"] == "write"

    @pytest.mark.asyncio
    async def test_unknown_action_lists_sorted_valid_actions(self):
        handler = dispatch(lambda p: p.action, {"write": _write, "read": _read, "delete": _delete})

        with pytest.raises(UnknownActionError) as first:
            await handler(RequestScope(), Span(name="t"), Params(action="fly"))
        with pytest.raises(UnknownActionError) as second:
            await handler(RequestScope(), Span(name="t"), Params(action="fly"))

        assert str(first.value) == 'unknown action "fly" (want: delete, read, write)'
        assert str(first.value) == str(second.value)

    @pytest.mark.asyncio
    async def test_unknown_action_through_pipeline_is_permanent(self):
        handler = dispatch(lambda p: p.action, {"read": _read})

        result = await execute(RequestScope(), "tool.test", '{"action": "fly"}', Params, handler)

        assert result.is_error is True
        assert result.is_retryable is False
        assert result.content == 'unknown action "fly" (want: read)'
