"""
web_fetch - Fetch a URL over HTTP(S), SSRF protected

Responsibilities:
- Validate the target URL and EVERY redirect hop before connecting
- Re-check the resolved address when the connection is dialed
- Allow only GET and HEAD; reject headers containing CR/LF
- Cap redirects and the number of body bytes returned to the model

Redirects are followed here, one validated hop at a time, never by the
HTTP client itself.
"""

from __future__ import annotations

import logging

import httpcore
import httpx
from pydantic import BaseModel, Field

from toolgate.core.field_validation import require_field
from toolgate.core.request_scope import RequestScope
from toolgate.core.tool_executor import HandlerOutput, PlainText, execute
from toolgate.exceptions import ERR_LIMIT_REACHED, ERR_TIMEOUT, DomainError, InvalidInputError
from toolgate.observability.tracing import Span
from toolgate.schemas import ToolResult, ToolSchema
from toolgate.security.blocklist import contains_crlf
from toolgate.security.safe_transport import SSRFSafeTransport
from toolgate.security.ssrf import Resolver, default_resolve, validate_url_async
from toolgate.tools.base import BaseTool, load_parameters

logger = logging.getLogger(__name__)

DEFAULT_MAX_BODY_BYTES = 1024 * 1024
DEFAULT_MAX_REDIRECTS = 5
ALLOWED_METHODS = ("GET", "HEAD")

_SUBSYSTEM = "web_fetch"


class WebFetchParams(BaseModel):
    url: str
    method: str = "GET"
    headers: dict[str, str] = Field(default_factory=dict)


class WebFetchTool(BaseTool):
    """
    SSRF-safe HTTP fetcher.

    By default requests go through ``SSRFSafeTransport``. ``network_backend``
    replaces the socket layer beneath it; ``transport`` replaces the whole
    HTTP stack (``httpx.MockTransport`` in tests) and skips the dial-time check.
    """

    def __init__(
        self,
        timeout: float = 30.0,
        max_body_bytes: int = DEFAULT_MAX_BODY_BYTES,
        max_redirects: int = DEFAULT_MAX_REDIRECTS,
        resolve: Resolver = default_resolve,
        transport: httpx.AsyncBaseTransport | None = None,
        network_backend: httpcore.AsyncNetworkBackend | None = None,
    ):
        self._timeout = timeout
        self._max_body_bytes = max_body_bytes
        self._max_redirects = max_redirects
        self._resolve = resolve
        self._transport = transport
        self._network_backend = network_backend
        self._schema = ToolSchema(
            name="web_fetch",
            description="Fetch content from a URL (SSRF protected)",
            parameters=load_parameters(__file__),
        )

    @property
    def schema(self) -> ToolSchema:
        return self._schema

    async def execute(self, params: bytes | str, scope: RequestScope | None = None) -> ToolResult:
        return await execute(scope or RequestScope(), "tool.web_fetch", params, WebFetchParams, self._fetch, logger)

    async def _fetch(self, scope: RequestScope, span: Span, p: WebFetchParams) -> HandlerOutput:
        require_field("url", p.url.strip())
        method = (p.method or "GET").upper()
        if method not in ALLOWED_METHODS:
            raise InvalidInputError(
                f"invalid HTTP method: {p.method!r} (only GET and HEAD allowed)", field="method"
            )
        for key, value in p.headers.items():
            if contains_crlf(key) or contains_crlf(value):
                raise InvalidInputError("invalid header: CRLF characters not allowed", field="headers")

        span.set_attribute("http.method", method)
        status, body, truncated = await scope.bounded(
            self._follow(method, p.url, p.headers),
            self._timeout,
            op="http request",
            subsystem=_SUBSYSTEM,
        )

        logger.debug("web fetch %s %s -> %d (%d bytes)", method, p.url, status, len(body))
        text = body.decode("utf-8", errors="replace")
        if truncated:
            text += f"\n\n[truncated at {self._max_body_bytes} bytes]"
        return PlainText(f"HTTP {status}\n\n{text}")

    async def _follow(self, method: str, url: str, headers: dict[str, str]) -> tuple[int, bytes, bool]:
        async with httpx.AsyncClient(
            transport=self._transport or SSRFSafeTransport(self._resolve, self._network_backend),
            timeout=httpx.Timeout(self._timeout),
            follow_redirects=False,
            trust_env=False,
        ) as client:
            request = client.build_request(method, url, headers=headers)
            for _ in range(self._max_redirects + 1):
                await validate_url_async(str(request.url), self._resolve)
                try:
                    response = await client.send(request, stream=True)
                except httpx.TimeoutException as exc:
                    raise DomainError("http request", ERR_TIMEOUT, subsystem=_SUBSYSTEM) from exc
                except httpx.HTTPError as exc:
                    raise DomainError("http request", exc, subsystem=_SUBSYSTEM) from exc

                try:
                    if response.next_request is None:
                        body, truncated = await self._read_capped(response)
                        return response.status_code, body, truncated
                    request = response.next_request
                finally:
                    await response.aclose()

        raise DomainError(
            "http request",
            ERR_LIMIT_REACHED,
            f"stopped after {self._max_redirects} redirects",
            subsystem=_SUBSYSTEM,
        )

    async def _read_capped(self, response: httpx.Response) -> tuple[bytes, bool]:
        chunks: list[bytes] = []
        size = 0
        async for chunk in response.aiter_bytes():
            chunks.append(chunk)
            size += len(chunk)
            if size > self._max_body_bytes:
                # At most one chunk past the cap is ever read.
                return b"".join(chunks)[: self._max_body_bytes], True
        return b"".join(chunks), False


__all__ = ["WebFetchParams", "WebFetchTool", "ALLOWED_METHODS"]
