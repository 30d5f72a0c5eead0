"""
browser - Web browser control

Responsibilities:
- Navigate, extract content, click, type, screenshot, manage tabs
- Validate every model-chosen URL against SSRF before the backend sees it
- Filter evaluate expressions through the JS blocklist (10 KB cap)
- Bound every backend call with the configured sub-timeout
- NO browser driver here: the backend is pluggable (mock by default)
"""

from __future__ import annotations

import logging
from enum import Enum

from pydantic import BaseModel

from toolgate.core.action_dispatch import ActionMap, dispatch
from toolgate.core.field_validation import require_field, validate_max_length
from toolgate.core.request_scope import RequestScope
from toolgate.core.tool_executor import HandlerOutput, PlainText, Structured, execute
from toolgate.exceptions import InvalidInputError
from toolgate.schemas import ToolResult, ToolSchema
from toolgate.security.blocklist import JS_EXPRESSION_BLOCKLIST
from toolgate.security.ssrf import Resolver, default_resolve, validate_url_async
from toolgate.tools.base import BaseTool, call_backend, load_parameters
from toolgate.tools.browser.backend import BrowserBackend, MockBrowserBackend

logger = logging.getLogger(__name__)

MAX_JS_EXPRESSION_LEN = 10240
MAX_SCREENSHOT_BASE64 = 200000

_SUBSYSTEM = "browser"


class BrowserAction(str, Enum):
    NAVIGATE = "navigate"
    GET_CONTENT = "get_content"
    SCREENSHOT = "screenshot"
    CLICK = "click"
    TYPE = "type"
    EVALUATE = "evaluate"
    WAIT_VISIBLE = "wait_visible"
    TAB_LIST = "tab_list"
    TAB_OPEN = "tab_open"
    TAB_CLOSE = "tab_close"
    TAB_FOCUS = "tab_focus"
    STATUS = "status"


class BrowserParams(BaseModel):
    action: str
    url: str = ""
    selector: str = ""
    text: str = ""
    expression: str = ""
    full_page: bool = False
    target_id: str = ""


class BrowserTool(BaseTool):
    """
    Browser automation behind a pluggable backend.

    Selectors come from ``get_content`` output; the tool does not interpret them.
    """

    def __init__(
        self,
        backend: BrowserBackend | None = None,
        timeout: float = 30.0,
        max_screenshot_chars: int = MAX_SCREENSHOT_BASE64,
        resolve: Resolver = default_resolve,
    ):
        self._backend = backend or MockBrowserBackend()
        self._timeout = timeout
        self._max_screenshot_chars = max_screenshot_chars
        self._resolve = resolve
        self._schema = ToolSchema(
            name="browser",
            description=(
                "Control a web browser: navigate pages, extract content, click elements, "
                "type text, take screenshots, evaluate JavaScript, and manage tabs. Use CSS "
                "selectors from get_content output to interact with elements."
            ),
            parameters=load_parameters(__file__),
        )
        self._handler = dispatch(
            lambda p: p.action,
            ActionMap.for_enum(
                BrowserAction,
                {
                    BrowserAction.NAVIGATE: self._navigate,
                    BrowserAction.GET_CONTENT: self._get_content,
                    BrowserAction.SCREENSHOT: self._screenshot,
                    BrowserAction.CLICK: self._click,
                    BrowserAction.TYPE: self._type,
                    BrowserAction.EVALUATE: self._evaluate,
                    BrowserAction.WAIT_VISIBLE: self._wait_visible,
                    BrowserAction.TAB_LIST: self._tab_list,
                    BrowserAction.TAB_OPEN: self._tab_open,
                    BrowserAction.TAB_CLOSE: self._tab_close,
                    BrowserAction.TAB_FOCUS: self._tab_focus,
                    BrowserAction.STATUS: self._status,
                },
            ),
        )

    @property
    def schema(self) -> ToolSchema:
        return self._schema

    async def execute(self, params: bytes | str, scope: RequestScope | None = None) -> ToolResult:
        return await execute(scope or RequestScope(), "tool.browser", params, BrowserParams, self._handler, logger)

    async def _call(self, scope: RequestScope, awaitable, op: str):
        return await call_backend(scope, awaitable, op=op, timeout=self._timeout, subsystem=_SUBSYSTEM)

    async def _check_url(self, scope: RequestScope, url: str) -> None:
        # A stalled resolver counts against the same budget as the backend.
        await scope.bounded(
            validate_url_async(url, self._resolve), self._timeout, op="validate_url", subsystem=_SUBSYSTEM
        )

    async def _navigate(self, scope: RequestScope, p: BrowserParams) -> HandlerOutput:
        require_field("url", p.url.strip())
        await self._check_url(scope, p.url)
        await self._call(scope, self._backend.navigate(p.url), "navigate")
        logger.debug("browser navigated to %s", p.url)
        return PlainText(f"Navigated to {p.url}")

    async def _get_content(self, scope: RequestScope, p: BrowserParams) -> HandlerOutput:
        content = await self._call(scope, self._backend.get_content(p.selector), "get_content")
        return PlainText(f"Page: {content.title}\nURL: {content.url}\n\n{content.text}")

    async def _screenshot(self, scope: RequestScope, p: BrowserParams) -> HandlerOutput:
        data = await self._call(scope, self._backend.screenshot(p.full_page), "screenshot")
        if len(data) > self._max_screenshot_chars:
            raise InvalidInputError(
                f"screenshot too large ({len(data)} chars, max {self._max_screenshot_chars}) "
                "even at lowest quality. Try full_page=false or navigate to a simpler page."
            )
        return PlainText(f"Screenshot captured (base64, {len(data)} chars):\n{data}")

    async def _click(self, scope: RequestScope, p: BrowserParams) -> HandlerOutput:
        require_field("selector", p.selector.strip())
        await self._call(scope, self._backend.click(p.selector), "click")
        return PlainText(f"Clicked element: {p.selector}")

    async def _type(self, scope: RequestScope, p: BrowserParams) -> HandlerOutput:
        require_field("selector", p.selector.strip())
        require_field("text", p.text)
        await self._call(scope, self._backend.type(p.selector, p.text), "type")
        logger.debug("browser typed %d chars into %s", len(p.text), p.selector)
        return PlainText(f"Typed {len(p.text)} chars into element: {p.selector}")

    async def _evaluate(self, scope: RequestScope, p: BrowserParams) -> HandlerOutput:
        require_field("expression", p.expression.strip())
        validate_max_length("expression", p.expression, MAX_JS_EXPRESSION_LEN)
        JS_EXPRESSION_BLOCKLIST.check(p.expression, op="evaluate", subsystem=_SUBSYSTEM)
        result = await self._call(scope, self._backend.evaluate(p.expression), "evaluate")
        return PlainText(result)

    async def _wait_visible(self, scope: RequestScope, p: BrowserParams) -> HandlerOutput:
        require_field("selector", p.selector.strip())
        await self._call(scope, self._backend.wait_visible(p.selector), "wait_visible")
        return PlainText(f"Element is visible: {p.selector}")

    async def _tab_list(self, scope: RequestScope, p: BrowserParams) -> HandlerOutput:
        tabs = await self._call(scope, self._backend.tab_list(), "tab_list")
        return Structured(tabs)

    async def _tab_open(self, scope: RequestScope, p: BrowserParams) -> HandlerOutput:
        if p.url:
            await self._check_url(scope, p.url)
        target_id = await self._call(scope, self._backend.tab_open(p.url), "tab_open")
        logger.debug("browser tab opened: %s", target_id)
        return PlainText(f"Opened new tab (target_id: {target_id})")

    async def _tab_close(self, scope: RequestScope, p: BrowserParams) -> HandlerOutput:
        require_field("target_id", p.target_id.strip())
        await self._call(scope, self._backend.tab_close(p.target_id), "tab_close")
        return PlainText(f"Closed tab: {p.target_id}")

    async def _tab_focus(self, scope: RequestScope, p: BrowserParams) -> HandlerOutput:
        require_field("target_id", p.target_id.strip())
        await self._call(scope, self._backend.tab_focus(p.target_id), "tab_focus")
        return PlainText(f"Focused tab: {p.target_id}")

    async def _status(self, scope: RequestScope, p: BrowserParams) -> HandlerOutput:
        return Structured(await self._call(scope, self._backend.status(), "status"))


__all__ = ["BrowserAction", "BrowserParams", "BrowserTool", "MAX_JS_EXPRESSION_LEN"]
