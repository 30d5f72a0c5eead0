"""
github - Repositories, issues, pull requests and code search

Responsibilities:
- Admit at most ``max_requests_per_minute`` calls (fixed window, per tool)
- Cache list_repos results for ``cache_ttl`` seconds, keyed by paging params
- Bound every API call with the configured sub-timeout
- NO REST client here: the backend is pluggable (mock by default)
"""

from __future__ import annotations

import logging
import time
from enum import Enum
from typing import Callable

from pydantic import BaseModel, Field

from toolgate.core.action_dispatch import ActionMap, dispatch
from toolgate.core.field_validation import (
    require_field,
    require_fields,
    validate_enum,
    validate_positive,
    validate_range,
)
from toolgate.core.rate_limiter import RateLimiter
from toolgate.core.request_scope import RequestScope
from toolgate.core.tool_executor import HandlerOutput, PlainText, Structured, execute
from toolgate.core.ttl_cache import TTLCache, cache_key
from toolgate.schemas import ToolResult, ToolSchema
from toolgate.tools.base import BaseTool, call_backend, load_parameters
from toolgate.tools.github.backend import GitHubBackend, GitHubRepo, MockGitHubBackend, Page

logger = logging.getLogger(__name__)

_SUBSYSTEM = "github"

MAX_PER_PAGE = 100


class GitHubAction(str, Enum):
    LIST_REPOS = "list_repos"
    LIST_ISSUES = "list_issues"
    GET_ISSUE = "get_issue"
    CREATE_ISSUE = "create_issue"
    LIST_PRS = "list_prs"
    GET_PR = "get_pr"
    CREATE_PR = "create_pr"
    SEARCH_CODE = "search_code"


class GitHubParams(BaseModel):
    action: str
    owner: str = ""
    repo: str = ""
    number: int = 0
    title: str = ""
    body: str = ""
    labels: list[str] = Field(default_factory=list)
    head: str = ""
    base: str = ""
    query: str = ""
    state: str = ""
    page: int = 0
    per_page: int = 0


class GitHubTool(BaseTool):
    """GitHub access with admission control and a repo-list cache."""

    def __init__(
        self,
        backend: GitHubBackend | None = None,
        timeout: float = 15.0,
        max_requests_per_minute: int = 30,
        cache_ttl: float = 300.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._backend = backend or MockGitHubBackend()
        self._timeout = timeout
        self._limiter = (
            RateLimiter(max_requests_per_minute, 60.0, clock=clock)
            if max_requests_per_minute > 0
            else None
        )
        self._cache_ttl = cache_ttl
        self._repos_cache: TTLCache[list[GitHubRepo]] = TTLCache(clock=clock)
        self._schema = ToolSchema(
            name="github",
            description="Interact with GitHub: list repos, manage issues and pull requests, and search code.",
            parameters=load_parameters(__file__),
        )
        self._handler = dispatch(
            lambda p: p.action,
            ActionMap.for_enum(
                GitHubAction,
                {
                    GitHubAction.LIST_REPOS: self._list_repos,
                    GitHubAction.LIST_ISSUES: self._list_issues,
                    GitHubAction.GET_ISSUE: self._get_issue,
                    GitHubAction.CREATE_ISSUE: self._create_issue,
                    GitHubAction.LIST_PRS: self._list_prs,
                    GitHubAction.GET_PR: self._get_pr,
                    GitHubAction.CREATE_PR: self._create_pr,
                    GitHubAction.SEARCH_CODE: self._search_code,
                },
            ),
        )

    @property
    def schema(self) -> ToolSchema:
        return self._schema

    async def execute(self, params: bytes | str, scope: RequestScope | None = None) -> ToolResult:
        return await execute(scope or RequestScope(), "tool.github", params, GitHubParams, self._handler, logger)

    async def _call(self, scope: RequestScope, awaitable, op: str):
        return await call_backend(scope, awaitable, op=op, timeout=self._timeout, subsystem=_SUBSYSTEM)

    def _admit(self, op: str) -> None:
        if self._limiter is not None:
            self._limiter.admit(op, subsystem=_SUBSYSTEM)

    @staticmethod
    def _page(p: GitHubParams) -> Page:
        if p.page:
            validate_positive("page", p.page)
        if p.per_page:
            validate_range("per_page", p.per_page, 1, MAX_PER_PAGE)
        return Page(page=p.page, per_page=p.per_page)

    @staticmethod
    def _require_repo(p: GitHubParams) -> None:
        require_fields(owner=p.owner, repo=p.repo)

    async def _list_repos(self, scope: RequestScope, p: GitHubParams) -> HandlerOutput:
        self._admit("list_repos")
        page = self._page(p)
        key = cache_key("list_repos", page=page.page, per_page=page.per_page)

        repos, hit = self._repos_cache.get(key)
        if not hit:
            repos = await self._call(scope, self._backend.list_repos(page), "list_repos")
            self._repos_cache.put(key, repos, self._cache_ttl)
        else:
            logger.debug("github list_repos served from cache")

        if not repos:
            return PlainText("No repositories found.")
        return Structured(repos)

    async def _list_issues(self, scope: RequestScope, p: GitHubParams) -> HandlerOutput:
        self._admit("list_issues")
        self._require_repo(p)
        validate_enum("state", p.state, "open", "closed", "all")
        issues = await self._call(
            scope, self._backend.list_issues(p.owner, p.repo, p.state, self._page(p)), "list_issues"
        )
        if not issues:
            return PlainText("No issues found.")
        return Structured(issues)

    async def _get_issue(self, scope: RequestScope, p: GitHubParams) -> HandlerOutput:
        self._admit("get_issue")
        self._require_repo(p)
        validate_positive("number", p.number)
        return Structured(await self._call(scope, self._backend.get_issue(p.owner, p.repo, p.number), "get_issue"))

    async def _create_issue(self, scope: RequestScope, p: GitHubParams) -> HandlerOutput:
        self._admit("create_issue")
        self._require_repo(p)
        require_field("title", p.title)
        issue = await self._call(
            scope, self._backend.create_issue(p.owner, p.repo, p.title, p.body, p.labels), "create_issue"
        )
        logger.info("github issue created: %s/%s#%d", p.owner, p.repo, issue.number)
        return Structured(issue)

    async def _list_prs(self, scope: RequestScope, p: GitHubParams) -> HandlerOutput:
        self._admit("list_prs")
        self._require_repo(p)
        validate_enum("state", p.state, "open", "closed", "all")
        prs = await self._call(
            scope, self._backend.list_prs(p.owner, p.repo, p.state, self._page(p)), "list_prs"
        )
        if not prs:
            return PlainText("No pull requests found.")
        return Structured(prs)

    async def _get_pr(self, scope: RequestScope, p: GitHubParams) -> HandlerOutput:
        self._admit("get_pr")
        self._require_repo(p)
        validate_positive("number", p.number)
        return Structured(await self._call(scope, self._backend.get_pr(p.owner, p.repo, p.number), "get_pr"))

    async def _create_pr(self, scope: RequestScope, p: GitHubParams) -> HandlerOutput:
        self._admit("create_pr")
        self._require_repo(p)
        require_fields(title=p.title, head=p.head, base=p.base)
        pr = await self._call(
            scope, self._backend.create_pr(p.owner, p.repo, p.title, p.body, p.head, p.base), "create_pr"
        )
        logger.info("github pull request created: %s/%s#%d", p.owner, p.repo, pr.number)
        return Structured(pr)

    async def _search_code(self, scope: RequestScope, p: GitHubParams) -> HandlerOutput:
        self._admit("search_code")
        require_field("query", p.query)
        results = await self._call(scope, self._backend.search_code(p.query, self._page(p)), "search_code")
        if not results:
            return PlainText("No code results found.")
        return Structured(results)


__all__ = ["GitHubAction", "GitHubParams", "GitHubTool"]
