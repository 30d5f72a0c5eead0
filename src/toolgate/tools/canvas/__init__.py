"""
canvas - Session-scoped HTML/CSS/JS canvases

Responsibilities:
- Create, update, read, delete and list canvases of the calling session
- Enforce name format, content size and the per-session canvas limit
- Block script-injection, storage and network primitives in content
- Filter eval_js expressions through the JS blocklist

Requires a session on the request scope. Rendering happens elsewhere:
present/hide/eval_js only publish events for a renderer.
"""

from __future__ import annotations

import logging
import re
from enum import Enum
from typing import Any, Callable

from pydantic import BaseModel

from toolgate.core.action_dispatch import ActionMap, dispatch
from toolgate.core.field_validation import validate_max_length
from toolgate.core.request_scope import RequestScope
from toolgate.core.tool_executor import HandlerOutput, PlainText, Structured, execute
from toolgate.exceptions import ERR_INVALID_INPUT, DomainError, InvalidInputError
from toolgate.schemas import ToolResult, ToolSchema
from toolgate.security.blocklist import CANVAS_CONTENT_BLOCKLIST, JS_EXPRESSION_BLOCKLIST
from toolgate.tools.base import BaseTool, call_backend, load_parameters
from toolgate.tools.browser import MAX_JS_EXPRESSION_LEN
from toolgate.tools.canvas.backend import CanvasBackend, InMemoryCanvasBackend

logger = logging.getLogger(__name__)

DEFAULT_MAX_CONTENT_BYTES = 512 * 1024
MAX_NAME_LEN = 128
MAX_CANVASES_PER_SESSION = 50

NAME_PATTERN = re.compile(r"^[a-zA-Z0-9][a-zA-Z0-9_-]*$")

_SUBSYSTEM = "canvas"

EventSink = Callable[[str, Any], None]


class CanvasAction(str, Enum):
    CREATE = "create"
    UPDATE = "update"
    READ = "read"
    DELETE = "delete"
    LIST = "list"
    PRESENT = "present"
    HIDE = "hide"
    SNAPSHOT = "snapshot"
    EVAL_JS = "eval_js"


class CanvasParams(BaseModel):
    action: str
    name: str = ""
    content: str = ""
    expression: str = ""


def validate_canvas_name(name: str) -> None:
    if not name.strip():
        raise DomainError("canvas", ERR_INVALID_INPUT, "name is required", subsystem=_SUBSYSTEM)
    if len(name) > MAX_NAME_LEN:
        raise DomainError(
            "canvas", ERR_INVALID_INPUT,
            f"name too long: {len(name)} chars (max {MAX_NAME_LEN})",
            subsystem=_SUBSYSTEM,
        )
    if not NAME_PATTERN.match(name):
        raise DomainError(
            "canvas", ERR_INVALID_INPUT,
            f"invalid canvas name {name!r}: must be alphanumeric with "
            "hyphens/underscores, starting with alphanumeric",
            subsystem=_SUBSYSTEM,
        )


class CanvasTool(BaseTool):
    """Canvas management behind a pluggable store."""

    def __init__(
        self,
        backend: CanvasBackend | None = None,
        max_content_bytes: int = DEFAULT_MAX_CONTENT_BYTES,
        max_canvases: int = MAX_CANVASES_PER_SESSION,
        publish: EventSink | None = None,
        timeout: float | None = None,
    ):
        self._backend = backend or InMemoryCanvasBackend()
        self._max_content_bytes = max_content_bytes if max_content_bytes > 0 else DEFAULT_MAX_CONTENT_BYTES
        self._max_canvases = max_canvases
        self._publish = publish
        self._timeout = timeout
        self._schema = ToolSchema(
            name="canvas",
            description=(
                "Create and manage interactive HTML/CSS/JS canvases. Use to build visual "
                "interfaces, charts, dashboards, interactive demos, or any rich content for the user."
            ),
            parameters=load_parameters(__file__),
        )
        self._handler = dispatch(
            lambda p: p.action,
            ActionMap.for_enum(
                CanvasAction,
                {
                    CanvasAction.CREATE: self._create,
                    CanvasAction.UPDATE: self._update,
                    CanvasAction.READ: self._read,
                    CanvasAction.DELETE: self._delete,
                    CanvasAction.LIST: self._list,
                    CanvasAction.PRESENT: self._present,
                    CanvasAction.HIDE: self._hide,
                    CanvasAction.SNAPSHOT: self._snapshot,
                    CanvasAction.EVAL_JS: self._eval_js,
                },
            ),
        )

    @property
    def schema(self) -> ToolSchema:
        return self._schema

    async def execute(self, params: bytes | str, scope: RequestScope | None = None) -> ToolResult:
        return await execute(scope or RequestScope(), "tool.canvas", params, CanvasParams, self._handler, logger)

    async def _call(self, scope: RequestScope, awaitable, op: str):
        return await call_backend(scope, awaitable, op=op, timeout=self._timeout, subsystem=_SUBSYSTEM)

    def _emit(self, event: str, payload: Any = None) -> None:
        if self._publish is not None:
            self._publish(event, payload)

    @staticmethod
    def _session(scope: RequestScope) -> str:
        if not scope.session_id:
            raise InvalidInputError("no session context available")
        return scope.session_id

    def _check_content(self, action: str, content: str) -> None:
        if not content.strip():
            raise InvalidInputError(f"content is required for {action} action", field="content")
        validate_max_length("content", content, self._max_content_bytes)
        CANVAS_CONTENT_BLOCKLIST.check(content, op=action, subsystem=_SUBSYSTEM)

    async def _create(self, scope: RequestScope, p: CanvasParams) -> HandlerOutput:
        session_id = self._session(scope)
        validate_canvas_name(p.name)
        self._check_content("create", p.content)

        info = await self._call(
            scope, self._backend.create(session_id, p.name, p.content, self._max_canvases), "create"
        )
        self._emit("canvas.created", info)
        logger.info("canvas %s created (%d bytes)", p.name, info.size)
        return PlainText(f"Canvas {p.name!r} created ({info.size} bytes). Use action=present to display it.")

    async def _update(self, scope: RequestScope, p: CanvasParams) -> HandlerOutput:
        session_id = self._session(scope)
        validate_canvas_name(p.name)
        self._check_content("update", p.content)

        info = await self._call(scope, self._backend.update(session_id, p.name, p.content), "update")
        self._emit("canvas.updated", info)
        logger.info("canvas %s updated (%d bytes)", p.name, info.size)
        return PlainText(f"Canvas {p.name!r} updated ({info.size} bytes)")

    async def _read(self, scope: RequestScope, p: CanvasParams) -> HandlerOutput:
        session_id = self._session(scope)
        validate_canvas_name(p.name)
        canvas = await self._call(scope, self._backend.read(session_id, p.name), "read")
        return PlainText(canvas.content)

    async def _delete(self, scope: RequestScope, p: CanvasParams) -> HandlerOutput:
        session_id = self._session(scope)
        validate_canvas_name(p.name)
        await self._call(scope, self._backend.delete(session_id, p.name), "delete")
        self._emit("canvas.deleted", {"name": p.name, "session_id": session_id})
        logger.info("canvas %s deleted", p.name)
        return PlainText(f"Canvas {p.name!r} deleted")

    async def _list(self, scope: RequestScope, p: CanvasParams) -> HandlerOutput:
        session_id = self._session(scope)
        canvases = await self._call(scope, self._backend.list_canvases(session_id), "list")
        if not canvases:
            return PlainText("No canvases in current session.")
        return Structured(canvases)

    async def _present(self, scope: RequestScope, p: CanvasParams) -> HandlerOutput:
        session_id = self._session(scope)
        validate_canvas_name(p.name)
        canvas = await self._call(scope, self._backend.read(session_id, p.name), "present")
        self._emit("canvas.presented", canvas)
        return PlainText(f"Canvas {p.name!r} is now displayed to the user ({canvas.size} bytes)")

    async def _hide(self, scope: RequestScope, p: CanvasParams) -> HandlerOutput:
        self._emit("canvas.hidden")
        return PlainText("Canvas panel hidden")

    async def _snapshot(self, scope: RequestScope, p: CanvasParams) -> HandlerOutput:
        session_id = self._session(scope)
        validate_canvas_name(p.name)
        canvas = await self._call(scope, self._backend.read(session_id, p.name), "snapshot")
        return PlainText(
            f"Snapshot of canvas {p.name!r} ({canvas.size} bytes, "
            f"updated {canvas.updated_at.isoformat()}):\n\n{canvas.content}"
        )

    async def _eval_js(self, scope: RequestScope, p: CanvasParams) -> HandlerOutput:
        if not p.expression.strip():
            raise InvalidInputError("expression is required for eval_js action", field="expression")
        validate_max_length("expression", p.expression, MAX_JS_EXPRESSION_LEN)
        JS_EXPRESSION_BLOCKLIST.check(p.expression, op="eval_js", subsystem=_SUBSYSTEM)

        self._emit("canvas.eval_js", {"canvas_name": p.name, "expression": p.expression})
        return PlainText(
            f"JavaScript evaluation requested ({len(p.expression)} chars). "
            "Result will be available when a renderer processes the event."
        )


__all__ = [
    "CanvasAction",
    "CanvasParams",
    "CanvasTool",
    "MAX_CANVASES_PER_SESSION",
    "validate_canvas_name",
]
