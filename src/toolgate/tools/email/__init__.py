"""
email - Read, search and send mail through a pluggable mailbox

Responsibilities:
- List, read and search messages; draft, send and reply
- Require ``confirm: true`` before anything leaves the mailbox
- Restrict recipients to ``allowed_domains`` when configured
- Admit at most ``max_sends_per_hour`` sends and replies
"""

from __future__ import annotations

import logging
import time
from enum import Enum
from typing import Callable, Iterable

from pydantic import BaseModel, Field

from toolgate.core.action_dispatch import ActionMap, dispatch
from toolgate.core.field_validation import require_field, require_fields, validate_positive, validate_range
from toolgate.core.rate_limiter import RateLimiter
from toolgate.core.request_scope import RequestScope
from toolgate.core.tool_executor import HandlerOutput, PlainText, Structured, execute
from toolgate.exceptions import ERR_PERMISSION_DENIED, DomainError, InvalidInputError
from toolgate.schemas import ToolResult, ToolSchema
from toolgate.tools.base import BaseTool, call_backend, load_parameters
from toolgate.tools.email.backend import EmailBackend, MailboxPage, MockEmailBackend

logger = logging.getLogger(__name__)

_SUBSYSTEM = "email"

DEFAULT_SEARCH_LIMIT = 20
MAX_SEARCH_LIMIT = 100
MAX_PER_PAGE = 100


class EmailAction(str, Enum):
    LIST = "list"
    READ = "read"
    SEARCH = "search"
    DRAFT = "draft"
    SEND = "send"
    REPLY = "reply"


class EmailParams(BaseModel):
    action: str
    id: str = ""
    to: str = ""
    cc: list[str] = Field(default_factory=list)
    subject: str = ""
    body: str = ""
    query: str = ""
    message_id: str = ""
    confirm: bool = False
    folder: str = ""
    limit: int = 0
    page: int = 0
    per_page: int = 0


def address_domain(address: str) -> str:
    local, sep, domain = address.strip().partition("@")
    if not sep or not local or not domain or "@" in domain:
        raise InvalidInputError(f"invalid email address {address!r}", field="to")
    return domain.lower()


class EmailTool(BaseTool):
    """Mailbox access with a confirmation gate and a send budget."""

    def __init__(
        self,
        backend: EmailBackend | None = None,
        timeout: float = 15.0,
        max_sends_per_hour: int = 20,
        allowed_domains: Iterable[str] = (),
        clock: Callable[[], float] = time.monotonic,
    ):
        self._backend = backend or MockEmailBackend()
        self._timeout = timeout
        self._send_limiter = (
            RateLimiter(max_sends_per_hour, 3600.0, clock=clock)
            if max_sends_per_hour > 0
            else None
        )
        self._allowed_domains = frozenset(d.lower() for d in allowed_domains)
        self._schema = ToolSchema(
            name="email",
            description=(
                "Manage email: list inbox, read messages, search, draft, send, and reply. "
                "Send and reply require explicit confirmation (confirm: true)."
            ),
            parameters=load_parameters(__file__),
        )
        self._handler = dispatch(
            lambda p: p.action,
            ActionMap.for_enum(
                EmailAction,
                {
                    EmailAction.LIST: self._list,
                    EmailAction.READ: self._read,
                    EmailAction.SEARCH: self._search,
                    EmailAction.DRAFT: self._draft,
                    EmailAction.SEND: self._send,
                    EmailAction.REPLY: self._reply,
                },
            ),
        )

    @property
    def schema(self) -> ToolSchema:
        return self._schema

    async def execute(self, params: bytes | str, scope: RequestScope | None = None) -> ToolResult:
        return await execute(scope or RequestScope(), "tool.email", params, EmailParams, self._handler, logger)

    async def _call(self, scope: RequestScope, awaitable, op: str):
        return await call_backend(scope, awaitable, op=op, timeout=self._timeout, subsystem=_SUBSYSTEM)

    def _check_recipients(self, op: str, to: str, cc: list[str]) -> None:
        for address in (to, *cc):
            domain = address_domain(address)
            if self._allowed_domains and domain not in self._allowed_domains:
                raise DomainError(
                    op, ERR_PERMISSION_DENIED,
                    f"domain {domain!r} is not in the allowed list",
                    subsystem=_SUBSYSTEM,
                )

    def _admit_send(self, op: str) -> None:
        if self._send_limiter is not None:
            self._send_limiter.admit(op, subsystem=_SUBSYSTEM)

    async def _list(self, scope: RequestScope, p: EmailParams) -> HandlerOutput:
        if p.page:
            validate_positive("page", p.page)
        if p.per_page:
            validate_range("per_page", p.per_page, 1, MAX_PER_PAGE)
        page = MailboxPage(folder=p.folder or "inbox", page=p.page, per_page=p.per_page)
        messages = await self._call(scope, self._backend.list_messages(page), "list")
        if not messages:
            return PlainText("No emails found.")
        return Structured(messages)

    async def _read(self, scope: RequestScope, p: EmailParams) -> HandlerOutput:
        require_field("id", p.id)
        return Structured(await self._call(scope, self._backend.read(p.id), "read"))

    async def _search(self, scope: RequestScope, p: EmailParams) -> HandlerOutput:
        require_field("query", p.query)
        limit = p.limit or DEFAULT_SEARCH_LIMIT
        validate_range("limit", limit, 1, MAX_SEARCH_LIMIT)
        results = await self._call(scope, self._backend.search(p.query, limit), "search")
        if not results:
            return PlainText("No emails match the search query.")
        return Structured(results)

    async def _draft(self, scope: RequestScope, p: EmailParams) -> HandlerOutput:
        require_fields(to=p.to, subject=p.subject, body=p.body)
        self._check_recipients("draft", p.to, p.cc)
        return Structured(await self._call(scope, self._backend.draft(p.to, p.subject, p.body, p.cc), "draft"))

    async def _send(self, scope: RequestScope, p: EmailParams) -> HandlerOutput:
        if not p.confirm:
            raise InvalidInputError("'confirm' must be true to send email", field="confirm")
        require_fields(to=p.to, subject=p.subject, body=p.body)
        self._check_recipients("send", p.to, p.cc)
        self._admit_send("send")
        logger.info("sending email to %s (subject %r)", p.to, p.subject)
        return Structured(await self._call(scope, self._backend.send(p.to, p.subject, p.body, p.cc), "send"))

    async def _reply(self, scope: RequestScope, p: EmailParams) -> HandlerOutput:
        if not p.confirm:
            raise InvalidInputError("'confirm' must be true to send reply", field="confirm")
        require_fields(message_id=p.message_id, body=p.body)
        self._admit_send("reply")
        logger.info("replying to email %s", p.message_id)
        return Structured(await self._call(scope, self._backend.reply(p.message_id, p.body), "reply"))


__all__ = ["EmailAction", "EmailParams", "EmailTool", "address_domain"]
