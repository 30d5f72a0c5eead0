"""Tests for the browser tool."""

import asyncio
import json
import time

import pytest

from toolgate.tools.browser import BrowserTool
from toolgate.tools.browser.backend import MockBrowserBackend, PageContent


@pytest.fixture
def backend():
    return MockBrowserBackend(
        pages={
            "https://example.com": PageContent(
                title="Example Domain", url="https://example.com", text="This domain is for examples."
            )
        },
        eval_results={"document.title": "Example Domain"},
    )


@pytest.fixture
def tool(backend, resolver):
    return BrowserTool(backend=backend, resolve=resolver)


def call(tool, **params):
    return tool.execute(json.dumps(params))


class TestNavigation:
    """navigate / get_content with SSRF checks."""

    @pytest.mark.asyncio
    async def test_navigate_and_read(self, tool, backend):
        result = await call(tool, action="navigate", url="https://example.com")
        assert result.content == "Navigated to https://example.com"

        content = await call(tool, action="get_content")
        assert content.content == (
            "Page: Example Domain\nURL: https://example.com\n\nThis domain is for examples."
        )
        assert backend.calls[0] == ("navigate", "https://example.com")

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "url",
        ["http://127.0.0.1/", "http://169.254.169.254/latest/meta-data", "https://internal.example.com", "file:///etc/passwd"],
    )
    async def test_navigate_blocked_before_backend(self, tool, backend, url):
        result = await call(tool, action="navigate", url=url)

        assert result.is_error is True
        assert result.is_retryable is False
        assert backend.calls == []

    @pytest.mark.asyncio
    async def test_navigate_requires_url(self, tool):
        result = await call(tool, action="navigate", url="  ")
        assert result.is_error is True
        assert result.content == "'url' is required"

    @pytest.mark.asyncio
    async def test_tab_open_validates_url(self, tool, backend):
        result = await call(tool, action="tab_open", url="http://10.0.0.1/")
        assert result.is_error is True
        assert backend.calls == []

        opened = await call(tool, action="tab_open")
        assert opened.content == "Opened new tab (target_id: tab-2)"


class TestEvaluate:
    """JS expression filtering."""

    @pytest.mark.asyncio
    async def test_allowed_expression(self, tool):
        result = await call(tool, action="evaluate", expression="document.title")
        assert result.content == "Example Domain"

    @pytest.mark.asyncio
    async def test_blocked_expression_never_reaches_backend(self, tool, backend):
        result = await call(tool, action="evaluate", expression="fs.readFileSync('/etc/passwd')")

        assert result.is_error is True
        assert "prohibited pattern" in result.content
        assert backend.calls == []

    @pytest.mark.asyncio
    async def test_prefs_theme_not_blocked(self, tool, backend):
        result = await call(tool, action="evaluate", expression="prefs.theme")
        assert result.is_error is False
        assert backend.calls == [("evaluate", "prefs.theme")]

    @pytest.mark.asyncio
    async def test_expression_length_cap(self, tool, backend):
        result = await call(tool, action="evaluate", expression="1+" * 6000)
        assert result.is_error is True
        assert "exceeds maximum length of 10240" in result.content
        assert backend.calls == []


class TestElementsAndTabs:
    """click / type / tabs / status."""

    @pytest.mark.asyncio
    async def test_click_and_type(self, tool, backend):
        assert (await call(tool, action="click", selector="#go")).content == "Clicked element: #go"
        typed = await call(tool, action="type", selector="input[name=q]", text="hello")
        assert typed.content == "Typed 5 chars into element: input[name=q]"
        assert backend.calls[-1] == ("type", "input[name=q]", "hello")

    @pytest.mark.asyncio
    async def test_click_requires_selector(self, tool):
        result = await call(tool, action="click")
        assert result.content == "'selector' is required"

    @pytest.mark.asyncio
    async def test_tab_list_is_json(self, tool):
        result = await call(tool, action="tab_list")
        tabs = json.loads(result.content)
        assert tabs[0]["target_id"] == "tab-1"
        assert tabs[0]["active"] is True

    @pytest.mark.asyncio
    async def test_focus_unknown_tab(self, tool):
        result = await call(tool, action="tab_focus", target_id="tab-99")
        assert result.is_error is True
        assert result.is_retryable is False
        assert "tab 'tab-99'" in result.content

    @pytest.mark.asyncio
    async def test_status(self, tool):
        status = json.loads((await call(tool, action="status")).content)
        assert status["connected"] is True
        assert status["backend"] == "mock"

    @pytest.mark.asyncio
    async def test_screenshot_cap(self, resolver):
        tool = BrowserTool(
            backend=MockBrowserBackend(screenshot_data="A" * 50), max_screenshot_chars=10, resolve=resolver
        )
        result = await call(tool, action="screenshot")
        assert result.is_error is True
        assert "screenshot too large" in result.content


class TestFailures:
    """Unknown actions and slow backends."""

    @pytest.mark.asyncio
    async def test_unknown_action(self, tool):
        result = await call(tool, action="fly")
        assert result.is_error is True
        assert result.content.startswith('unknown action "fly" (want: click, evaluate, get_content,')

    @pytest.mark.asyncio
    async def test_backend_timeout_is_retryable(self, resolver):
        class SlowBackend(MockBrowserBackend):
            async def click(self, selector):
                await asyncio.sleep(5)

        tool = BrowserTool(backend=SlowBackend(), timeout=0.01, resolve=resolver)
        result = await call(tool, action="click", selector="#slow")

        assert result.is_error is True
        assert result.is_retryable is True
        assert result.content.startswith("click: no response within")

    @pytest.mark.asyncio
    @pytest.mark.parametrize("params", [{"action": "navigate"}, {"action": "tab_open"}])
    async def test_slow_dns_is_bounded(self, backend, params):
        def slow_resolve(host):
            time.sleep(0.3)
            return ["93.184.216.34"]

        tool = BrowserTool(backend=backend, timeout=0.05, resolve=slow_resolve)
        result = await call(tool, url="https://example.com", **params)

        assert result.is_error is True
        assert result.is_retryable is True
        assert result.content.startswith("validate_url: no response within")
        assert backend.calls == []
