"""
GitHub backend interface and in-memory mock.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections import Counter

from pydantic import BaseModel, Field

from toolgate.exceptions import ERR_NOT_FOUND, DomainError


class Page(BaseModel):
    page: int = 0
    per_page: int = 0


class GitHubRepo(BaseModel):
    full_name: str
    description: str = ""
    private: bool = False
    html_url: str = ""
    language: str | None = None
    stars: int = 0


class GitHubIssue(BaseModel):
    number: int
    title: str
    body: str = ""
    state: str = "open"
    html_url: str = ""
    labels: list[str] = Field(default_factory=list)


class GitHubPR(BaseModel):
    number: int
    title: str
    body: str = ""
    state: str = "open"
    html_url: str = ""
    head: str = ""
    base: str = ""


class GitHubCodeResult(BaseModel):
    repository: str
    path: str
    html_url: str = ""


class GitHubBackend(ABC):
    """Subset of the GitHub REST API the tool needs."""

    @abstractmethod
    async def list_repos(self, page: Page) -> list[GitHubRepo]: ...

    @abstractmethod
    async def list_issues(self, owner: str, repo: str, state: str, page: Page) -> list[GitHubIssue]: ...

    @abstractmethod
    async def get_issue(self, owner: str, repo: str, number: int) -> GitHubIssue: ...

    @abstractmethod
    async def create_issue(
        self, owner: str, repo: str, title: str, body: str, labels: list[str]
    ) -> GitHubIssue: ...

    @abstractmethod
    async def list_prs(self, owner: str, repo: str, state: str, page: Page) -> list[GitHubPR]: ...

    @abstractmethod
    async def get_pr(self, owner: str, repo: str, number: int) -> GitHubPR: ...

    @abstractmethod
    async def create_pr(
        self, owner: str, repo: str, title: str, body: str, head: str, base: str
    ) -> GitHubPR: ...

    @abstractmethod
    async def search_code(self, query: str, page: Page) -> list[GitHubCodeResult]: ...


def _paginate(items: list, page: Page) -> list:
    if page.per_page <= 0:
        return list(items)
    start = max(page.page - 1, 0) * page.per_page
    return items[start:start + page.per_page]


def _by_state(items: list, state: str) -> list:
    if not state or state == "all":
        return list(items)
    return [item for item in items if item.state == state]


class MockGitHubBackend(GitHubBackend):
    """Deterministic in-memory GitHub. ``calls`` counts backend hits per method."""

    def __init__(
        self,
        repos: list[GitHubRepo] | None = None,
        issues: dict[str, list[GitHubIssue]] | None = None,
        prs: dict[str, list[GitHubPR]] | None = None,
        code: list[GitHubCodeResult] | None = None,
    ):
        self.repos = list(repos or [])
        self.issues = {k: list(v) for k, v in (issues or {}).items()}
        self.prs = {k: list(v) for k, v in (prs or {}).items()}
        self.code = list(code or [])
        self.calls: Counter[str] = Counter()

    def _missing(self, what: str) -> DomainError:
        return DomainError("github", ERR_NOT_FOUND, what, subsystem="github")

    async def list_repos(self, page: Page) -> list[GitHubRepo]:
        self.calls["list_repos"] += 1
        return _paginate(self.repos, page)

    async def list_issues(self, owner: str, repo: str, state: str, page: Page) -> list[GitHubIssue]:
        self.calls["list_issues"] += 1
        return _paginate(_by_state(self.issues.get(f"{owner}/{repo}", []), state), page)

    async def get_issue(self, owner: str, repo: str, number: int) -> GitHubIssue:
        self.calls["get_issue"] += 1
        for issue in self.issues.get(f"{owner}/{repo}", []):
            if issue.number == number:
                return issue
        raise self._missing(f"issue {owner}/{repo}#{number}")

    async def create_issue(
        self, owner: str, repo: str, title: str, body: str, labels: list[str]
    ) -> GitHubIssue:
        self.calls["create_issue"] += 1
        bucket = self.issues.setdefault(f"{owner}/{repo}", [])
        number = len(bucket) + 1
        issue = GitHubIssue(
            number=number,
            title=title,
            body=body,
            labels=list(labels),
            html_url=f"https://github.com/{owner}/{repo}/issues/{number}",
        )
        bucket.append(issue)
        return issue

    async def list_prs(self, owner: str, repo: str, state: str, page: Page) -> list[GitHubPR]:
        self.calls["list_prs"] += 1
        return _paginate(_by_state(self.prs.get(f"{owner}/{repo}", []), state), page)

    async def get_pr(self, owner: str, repo: str, number: int) -> GitHubPR:
        self.calls["get_pr"] += 1
        for pr in self.prs.get(f"{owner}/{repo}", []):
            if pr.number == number:
                return pr
        raise self._missing(f"pull request {owner}/{repo}#{number}")

    async def create_pr(
        self, owner: str, repo: str, title: str, body: str, head: str, base: str
    ) -> GitHubPR:
        self.calls["create_pr"] += 1
        bucket = self.prs.setdefault(f"{owner}/{repo}", [])
        number = len(bucket) + 1
        pr = GitHubPR(
            number=number,
            title=title,
            body=body,
            head=head,
            base=base,
            html_url=f"https://github.com/{owner}/{repo}/pull/{number}",
        )
        bucket.append(pr)
        return pr

    async def search_code(self, query: str, page: Page) -> list[GitHubCodeResult]:
        self.calls["search_code"] += 1
        needle = query.lower()
        hits = [r for r in self.code if needle in r.path.lower() or needle in r.repository.lower()]
        return _paginate(hits, page)


__all__ = [
    "GitHubBackend",
    "GitHubCodeResult",
    "GitHubIssue",
    "GitHubPR",
    "GitHubRepo",
    "MockGitHubBackend",
    "Page",
]
