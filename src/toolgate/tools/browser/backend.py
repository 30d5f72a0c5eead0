"""
Browser backend interface and in-memory mock.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from pydantic import BaseModel, Field

from toolgate.exceptions import ERR_NOT_FOUND, DomainError


class PageLink(BaseModel):
    index: int
    text: str
    href: str
    selector: str


class PageContent(BaseModel):
    """AI-friendly extraction of a page."""

    title: str
    url: str
    text: str
    links: list[PageLink] = Field(default_factory=list)


class TabInfo(BaseModel):
    target_id: str
    title: str
    url: str
    active: bool = False


class BrowserStatus(BaseModel):
    connected: bool
    backend: str
    tab_count: int
    active_tab_url: str | None = None


class BrowserBackend(ABC):
    """Browser automation operations."""

    name: str = "abstract"

    @abstractmethod
    async def navigate(self, url: str) -> None: ...

    @abstractmethod
    async def get_content(self, selector: str = "") -> PageContent:
        """Extract page text; a non-empty selector scopes extraction to that subtree."""

    @abstractmethod
    async def screenshot(self, full_page: bool = False) -> str:
        """Base64-encoded JPEG of the viewport (or the whole page)."""

    @abstractmethod
    async def click(self, selector: str) -> None: ...

    @abstractmethod
    async def type(self, selector: str, text: str) -> None: ...

    @abstractmethod
    async def evaluate(self, expression: str) -> str: ...

    @abstractmethod
    async def wait_visible(self, selector: str) -> None: ...

    @abstractmethod
    async def tab_list(self) -> list[TabInfo]: ...

    @abstractmethod
    async def tab_open(self, url: str = "") -> str:
        """Open a tab, optionally at ``url``. Returns the new target id."""

    @abstractmethod
    async def tab_close(self, target_id: str) -> None: ...

    @abstractmethod
    async def tab_focus(self, target_id: str) -> None: ...

    @abstractmethod
    async def status(self) -> BrowserStatus: ...

    async def close(self) -> None:
        return None


class MockBrowserBackend(BrowserBackend):
    """Deterministic in-memory browser. Records every call in ``calls``."""

    name = "mock"

    def __init__(
        self,
        pages: dict[str, PageContent] | None = None,
        screenshot_data: str = "/9j/4AAQSkZJRgABAQ==",
        eval_results: dict[str, str] | None = None,
    ):
        self.pages = dict(pages or {})
        self.screenshot_data = screenshot_data
        self.eval_results = dict(eval_results or {})
        self.calls: list[tuple[str, ...]] = []
        self._tabs: dict[str, TabInfo] = {
            "tab-1": TabInfo(target_id="tab-1", title="New Tab", url="about:blank", active=True)
        }
        self._next_tab = 2

    def _active(self) -> TabInfo:
        for tab in self._tabs.values():
            if tab.active:
                return tab
        raise DomainError("browser", ERR_NOT_FOUND, "no active tab", subsystem="browser")

    def _tab(self, target_id: str) -> TabInfo:
        try:
            return self._tabs[target_id]
        except KeyError:
            raise DomainError("browser", ERR_NOT_FOUND, f"tab {target_id!r}", subsystem="browser") from None

    async def navigate(self, url: str) -> None:
        self.calls.append(("navigate", url))
        active = self._active()
        page = self.pages.get(url)
        active.url = url
        active.title = page.title if page else url

    async def get_content(self, selector: str = "") -> PageContent:
        self.calls.append(("get_content", selector))
        active = self._active()
        page = self.pages.get(active.url)
        if page is not None:
            return page
        return PageContent(title=active.title, url=active.url, text=f"Content of {active.url}")

    async def screenshot(self, full_page: bool = False) -> str:
        self.calls.append(("screenshot", str(full_page)))
        return self.screenshot_data

    async def click(self, selector: str) -> None:
        self.calls.append(("click", selector))

    async def type(self, selector: str, text: str) -> None:
        self.calls.append(("type", selector, text))

    async def evaluate(self, expression: str) -> str:
        self.calls.append(("evaluate", expression))
        return self.eval_results.get(expression, "undefined")

    async def wait_visible(self, selector: str) -> None:
        self.calls.append(("wait_visible", selector))

    async def tab_list(self) -> list[TabInfo]:
        self.calls.append(("tab_list",))
        return [tab.model_copy() for tab in self._tabs.values()]

    async def tab_open(self, url: str = "") -> str:
        self.calls.append(("tab_open", url))
        target_id = f"tab-{self._next_tab}"
        self._next_tab += 1
        self._tabs[target_id] = TabInfo(target_id=target_id, title=url or "New Tab", url=url or "about:blank")
        return target_id

    async def tab_close(self, target_id: str) -> None:
        self.calls.append(("tab_close", target_id))
        tab = self._tab(target_id)
        del self._tabs[target_id]
        if tab.active and self._tabs:
            next(iter(self._tabs.values())).active = True

    async def tab_focus(self, target_id: str) -> None:
        self.calls.append(("tab_focus", target_id))
        target = self._tab(target_id)
        for tab in self._tabs.values():
            tab.active = False
        target.active = True

    async def status(self) -> BrowserStatus:
        self.calls.append(("status",))
        active = next((t for t in self._tabs.values() if t.active), None)
        return BrowserStatus(
            connected=True,
            backend=self.name,
            tab_count=len(self._tabs),
            active_tab_url=active.url if active else None,
        )


__all__ = [
    "BrowserBackend",
    "BrowserStatus",
    "MockBrowserBackend",
    "PageContent",
    "PageLink",
    "TabInfo",
]
