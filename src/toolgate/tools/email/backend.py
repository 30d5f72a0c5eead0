"""
Email backend interface and in-memory mock.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections import Counter
from datetime import datetime, timezone
from typing import Callable

from pydantic import BaseModel, Field

from toolgate.exceptions import ERR_NOT_FOUND, DomainError


class EmailSummary(BaseModel):
    id: str
    sender: str
    to: list[str] = Field(default_factory=list)
    subject: str = ""
    date: str = ""
    snippet: str = ""


class EmailMessage(BaseModel):
    id: str
    sender: str
    to: list[str] = Field(default_factory=list)
    cc: list[str] = Field(default_factory=list)
    subject: str = ""
    body: str = ""
    date: str = ""
    folder: str = "inbox"

    def summary(self, snippet_len: int = 100) -> EmailSummary:
        return EmailSummary(
            id=self.id,
            sender=self.sender,
            to=self.to,
            subject=self.subject,
            date=self.date,
            snippet=self.body[:snippet_len],
        )


class EmailDraft(BaseModel):
    id: str
    to: list[str]
    cc: list[str] = Field(default_factory=list)
    subject: str
    body: str


class SendReceipt(BaseModel):
    message_id: str
    status: str = "sent"


class MailboxPage(BaseModel):
    folder: str = "inbox"
    page: int = 0
    per_page: int = 0


class EmailBackend(ABC):
    """Mailbox operations of one account."""

    @abstractmethod
    async def list_messages(self, page: MailboxPage) -> list[EmailSummary]:
        """Newest first."""

    @abstractmethod
    async def read(self, message_id: str) -> EmailMessage: ...

    @abstractmethod
    async def search(self, query: str, limit: int) -> list[EmailSummary]: ...

    @abstractmethod
    async def draft(self, to: str, subject: str, body: str, cc: list[str]) -> EmailDraft: ...

    @abstractmethod
    async def send(self, to: str, subject: str, body: str, cc: list[str]) -> SendReceipt: ...

    @abstractmethod
    async def reply(self, message_id: str, body: str) -> SendReceipt: ...


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class MockEmailBackend(EmailBackend):
    """Deterministic in-memory mailbox. ``calls`` counts backend hits per method."""

    def __init__(
        self,
        messages: list[EmailMessage] | None = None,
        address: str = "agent@example.com",
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.messages = list(messages or [])
        self.drafts: list[EmailDraft] = []
        self.address = address
        self.calls: Counter[str] = Counter()
        self._clock = clock
        self._next_id = 1

    def _new_id(self, prefix: str) -> str:
        new_id = f"{prefix}-{self._next_id}"
        self._next_id += 1
        return new_id

    def _find(self, message_id: str) -> EmailMessage:
        for message in self.messages:
            if message.id == message_id:
                return message
        raise DomainError("email", ERR_NOT_FOUND, f"message {message_id!r}", subsystem="email")

    def _deliver(self, to: list[str], cc: list[str], subject: str, body: str) -> SendReceipt:
        message = EmailMessage(
            id=self._new_id("msg"),
            sender=self.address,
            to=to,
            cc=cc,
            subject=subject,
            body=body,
            date=self._clock().isoformat(),
            folder="sent",
        )
        self.messages.append(message)
        return SendReceipt(message_id=message.id)

    async def list_messages(self, page: MailboxPage) -> list[EmailSummary]:
        self.calls["list_messages"] += 1
        folder = page.folder or "inbox"
        found = [m for m in reversed(self.messages) if m.folder == folder]
        if page.per_page > 0:
            start = max(page.page - 1, 0) * page.per_page
            found = found[start:start + page.per_page]
        return [m.summary() for m in found]

    async def read(self, message_id: str) -> EmailMessage:
        self.calls["read"] += 1
        return self._find(message_id)

    async def search(self, query: str, limit: int) -> list[EmailSummary]:
        self.calls["search"] += 1
        needle = query.lower()
        hits = [
            m for m in reversed(self.messages)
            if needle in m.subject.lower() or needle in m.body.lower() or needle in m.sender.lower()
        ]
        return [m.summary() for m in hits[:limit]]

    async def draft(self, to: str, subject: str, body: str, cc: list[str]) -> EmailDraft:
        self.calls["draft"] += 1
        draft = EmailDraft(id=self._new_id("draft"), to=[to], cc=list(cc), subject=subject, body=body)
        self.drafts.append(draft)
        return draft

    async def send(self, to: str, subject: str, body: str, cc: list[str]) -> SendReceipt:
        self.calls["send"] += 1
        return self._deliver([to], list(cc), subject, body)

    async def reply(self, message_id: str, body: str) -> SendReceipt:
        self.calls["reply"] += 1
        original = self._find(message_id)
        subject = original.subject if original.subject.lower().startswith("re:") else f"Re: {original.subject}"
        return self._deliver([original.sender], [], subject, body)


__all__ = [
    "EmailBackend",
    "EmailDraft",
    "EmailMessage",
    "EmailSummary",
    "MailboxPage",
    "MockEmailBackend",
    "SendReceipt",
]
