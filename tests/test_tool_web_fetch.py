"""Tests for the web fetch tool (network replaced by httpx.MockTransport)."""

import json

import httpx
import pytest

from toolgate.tools.web_fetch import WebFetchTool

from test_security_safe_transport import FlippingResolver, RecordingBackend


class FakeWeb:
    """Routes requests by URL and records every request that reached the network."""

    def __init__(self, routes):
        self.routes = routes
        self.requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        route = self.routes.get(str(request.url))
        if route is None:
            return httpx.Response(404, text="not found")
        if isinstance(route, Exception):
            raise route
        # Fresh response per request; a route may be hit more than once.
        return httpx.Response(route.status_code, headers=route.headers, content=route.content)


def make_tool(web, resolver, **kwargs):
    return WebFetchTool(resolve=resolver, transport=httpx.MockTransport(web), **kwargs)


def call(tool, **params):
    return tool.execute(json.dumps(params))


class TestFetch:
    """Successful fetches."""

    @pytest.mark.asyncio
    async def test_get(self, resolver):
        web = FakeWeb({"https://example.com/": httpx.Response(200, text="<h1>Example</h1>")})
        result = await call(make_tool(web, resolver), url="https://example.com/")

        assert result.is_error is False
        assert result.content == "HTTP 200\n\n<h1>Example</h1>"

    @pytest.mark.asyncio
    async def test_non_2xx_is_reported_not_raised(self, resolver):
        web = FakeWeb({})
        result = await call(make_tool(web, resolver), url="https://example.com/missing")
        assert result.content == "HTTP 404\n\nnot found"

    @pytest.mark.asyncio
    async def test_head_and_headers_forwarded(self, resolver):
        web = FakeWeb({"https://example.com/": httpx.Response(200)})
        tool = make_tool(web, resolver)

        result = await call(tool, url="https://example.com/", method="head", headers={"Accept": "text/plain"})

        assert result.content == "HTTP 200\n\n"
        assert web.requests[0].method == "HEAD"
        assert web.requests[0].headers["accept"] == "text/plain"

    @pytest.mark.asyncio
    async def test_body_truncated(self, resolver):
        web = FakeWeb({"https://example.com/big": httpx.Response(200, content=b"x" * 100)})
        tool = make_tool(web, resolver, max_body_bytes=10)

        result = await call(tool, url="https://example.com/big")

        assert result.content == "HTTP 200\n\n" + "x" * 10 + "\n\n[truncated at 10 bytes]"

    @pytest.mark.asyncio
    async def test_body_at_cap_not_marked(self, resolver):
        web = FakeWeb({"https://example.com/": httpx.Response(200, content=b"y" * 10)})
        result = await call(make_tool(web, resolver, max_body_bytes=10), url="https://example.com/")
        assert result.content == "HTTP 200\n\n" + "y" * 10


class TestRedirects:
    """Every hop is validated before it is requested."""

    @pytest.mark.asyncio
    async def test_public_redirect_followed(self, resolver):
        web = FakeWeb({
            "https://example.com/old": httpx.Response(301, headers={"Location": "https://docs.example.com/new"}),
            "https://docs.example.com/new": httpx.Response(200, text="moved here"),
        })
        result = await call(make_tool(web, resolver), url="https://example.com/old")

        assert result.content == "HTTP 200\n\nmoved here"
        assert len(web.requests) == 2

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "location",
        ["http://127.0.0.1/admin", "http://169.254.169.254/latest/meta-data", "https://internal.example.com/"],
    )
    async def test_redirect_to_private_blocked(self, resolver, location):
        web = FakeWeb({"https://example.com/": httpx.Response(302, headers={"Location": location})})
        result = await call(make_tool(web, resolver), url="https://example.com/")

        assert result.is_error is True
        assert result.is_retryable is False
        assert len(web.requests) == 1

    @pytest.mark.asyncio
    async def test_redirect_limit(self, resolver):
        web = FakeWeb({
            "https://example.com/a": httpx.Response(302, headers={"Location": "/b"}),
            "https://example.com/b": httpx.Response(302, headers={"Location": "/a"}),
        })
        result = await call(make_tool(web, resolver, max_redirects=2), url="https://example.com/a")

        assert result.is_error is True
        assert result.is_retryable is False
        assert "stopped after 2 redirects" in result.content
        assert len(web.requests) == 3


class TestRejections:
    """Input checks that happen before any request."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "url",
        ["http://127.0.0.1/", "http://169.254.169.254/latest/meta-data", "http://[::1]:8080/", "ftp://example.com/"],
    )
    async def test_private_target_blocked(self, resolver, url):
        web = FakeWeb({})
        result = await call(make_tool(web, resolver), url=url)

        assert result.is_error is True
        assert web.requests == []

    @pytest.mark.asyncio
    async def test_method_not_allowed(self, resolver):
        web = FakeWeb({})
        result = await call(make_tool(web, resolver), url="https://example.com/", method="POST")

        assert result.content == "invalid HTTP method: 'POST' (only GET and HEAD allowed)"
        assert web.requests == []

    @pytest.mark.asyncio
    async def test_crlf_header_rejected(self, resolver):
        web = FakeWeb({})
        result = await call(
            make_tool(web, resolver), url="https://example.com/", headers={"X-Test": "a\r\nInjected: 1"}
        )
        assert result.content == "invalid header: CRLF characters not allowed"
        assert web.requests == []

    @pytest.mark.asyncio
    async def test_url_required(self, resolver):
        result = await call(make_tool(FakeWeb({}), resolver), url="")
        assert result.content == "'url' is required"


class TestTransportErrors:
    """Network failures are classified."""

    @pytest.mark.asyncio
    async def test_timeout_is_retryable(self, resolver):
        web = FakeWeb({"https://example.com/": httpx.ReadTimeout("read timed out")})
        result = await call(make_tool(web, resolver), url="https://example.com/")

        assert result.is_error is True
        assert result.is_retryable is True

    @pytest.mark.asyncio
    async def test_connection_refused_is_retryable(self, resolver):
        web = FakeWeb({"https://example.com/": httpx.ConnectError("Connection refused")})
        result = await call(make_tool(web, resolver), url="https://example.com/")

        assert result.is_retryable is True
        assert result.content.startswith("http request: Connection refused")


class TestDialTimeCheck:
    """The address is checked again when the connection is opened."""

    @pytest.mark.asyncio
    async def test_rebinding_after_validation_blocked(self):
        inner = RecordingBackend()
        resolve = FlippingResolver(["93.184.216.34"], ["169.254.169.254"])
        tool = WebFetchTool(resolve=resolve, network_backend=inner)

        result = await call(tool, url="http://rebind.example.com/latest/meta-data")

        assert result.is_error is True
        assert result.is_retryable is False
        assert "private/reserved" in result.content
        assert "169.254.169.254" not in result.content
        assert resolve.lookups == 2
        assert inner.dialed == []

    @pytest.mark.asyncio
    async def test_stable_public_host_fetched(self):
        inner = RecordingBackend()
        tool = WebFetchTool(resolve=lambda host: ["93.184.216.34"], network_backend=inner)

        result = await call(tool, url="http://example.com/")

        assert result.content == "HTTP 200\n\nok"
        assert inner.dialed == [("93.184.216.34", 80)]
