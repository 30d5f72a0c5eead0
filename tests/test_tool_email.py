"""Tests for the email tool."""

import json
from datetime import datetime, timezone

import pytest

from toolgate.tools.email import EmailTool, address_domain
from toolgate.tools.email.backend import EmailMessage, MockEmailBackend
from toolgate.exceptions import InvalidInputError

FIXED = datetime(2026, 3, 1, 9, 30, tzinfo=timezone.utc)


@pytest.fixture
def backend():
    return MockEmailBackend(
        messages=[
            EmailMessage(id="m1", sender="alice@example.com", to=["agent@example.com"], subject="Lunch", body="Noon?"),
            EmailMessage(id="m2", sender="bob@corp.test", to=["agent@example.com"], subject="Q3 report", body="Attached."),
        ],
        clock=lambda: FIXED,
    )


@pytest.fixture
def tool(backend, clock):
    return EmailTool(backend=backend, max_sends_per_hour=2, clock=clock)


def call(tool, **params):
    return tool.execute(json.dumps(params))


class TestReading:
    """list / read / search."""

    @pytest.mark.asyncio
    async def test_list_newest_first(self, tool):
        result = await call(tool, action="list")
        assert [m["id"] for m in json.loads(result.content)] == ["m2", "m1"]

    @pytest.mark.asyncio
    async def test_list_empty_folder(self, tool):
        result = await call(tool, action="list", folder="sent")
        assert result.content == "No emails found."

    @pytest.mark.asyncio
    async def test_read(self, tool):
        message = json.loads((await call(tool, action="read", id="m1")).content)
        assert message["body"] == "Noon?"

    @pytest.mark.asyncio
    async def test_read_missing_is_permanent(self, tool):
        result = await call(tool, action="read", id="nope")

        assert result.is_error is True
        assert result.is_retryable is False
        assert "message 'nope'" in result.content

    @pytest.mark.asyncio
    async def test_search(self, tool):
        hits = json.loads((await call(tool, action="search", query="report")).content)
        assert [h["id"] for h in hits] == ["m2"]

        none = await call(tool, action="search", query="holiday")
        assert none.content == "No emails match the search query."

    @pytest.mark.asyncio
    async def test_search_limit_range(self, tool):
        result = await call(tool, action="search", query="x", limit=500)
        assert result.content == "limit must be 1-100"

    @pytest.mark.asyncio
    async def test_read_requires_id(self, tool):
        assert (await call(tool, action="read")).content == "'id' is required"


class TestSending:
    """Confirmation gate, recipient policy and send budget."""

    @pytest.mark.asyncio
    async def test_send_requires_confirm(self, tool, backend):
        result = await call(tool, action="send", to="carol@example.com", subject="Hi", body="Hello")

        assert result.is_error is True
        assert result.content == "'confirm' must be true to send email"
        assert backend.calls["send"] == 0

    @pytest.mark.asyncio
    async def test_send_lands_in_sent(self, tool, backend):
        result = await call(tool, action="send", to="carol@example.com", subject="Hi", body="Hello", confirm=True)

        assert json.loads(result.content) == {"message_id": "msg-1", "status": "sent"}
        sent = json.loads((await call(tool, action="list", folder="sent")).content)
        assert sent[0]["to"] == ["carol@example.com"]
        assert sent[0]["date"] == FIXED.isoformat()

    @pytest.mark.asyncio
    async def test_reply_addresses_sender(self, tool, backend):
        await call(tool, action="reply", message_id="m1", body="Sure", confirm=True)

        reply = backend.messages[-1]
        assert reply.to == ["alice@example.com"]
        assert reply.subject == "Re: Lunch"

    @pytest.mark.asyncio
    async def test_send_budget(self, tool, backend, clock):
        for _ in range(2):
            ok = await call(tool, action="send", to="c@example.com", subject="s", body="b", confirm=True)
            assert ok.is_error is False

        over = await call(tool, action="reply", message_id="m1", body="b", confirm=True)
        assert over.is_error is True
        assert over.is_retryable is False
        assert "rate limit of 2 calls per 3600s exceeded" in over.content
        assert backend.calls["reply"] == 0

        clock.advance(3600)
        again = await call(tool, action="send", to="c@example.com", subject="s", body="b", confirm=True)
        assert again.is_error is False

    @pytest.mark.asyncio
    async def test_allowed_domains(self, backend):
        tool = EmailTool(backend=backend, allowed_domains=["Example.com"])

        ok = await call(tool, action="draft", to="carol@EXAMPLE.com", subject="s", body="b")
        assert ok.is_error is False

        blocked = await call(
            tool, action="send", to="carol@example.com", cc=["eve@evil.test"], subject="s", body="b", confirm=True
        )
        assert blocked.is_error is True
        assert blocked.is_retryable is False
        assert "domain 'evil.test' is not in the allowed list" in blocked.content
        assert backend.calls["send"] == 0

    @pytest.mark.asyncio
    async def test_draft_requires_fields(self, tool):
        result = await call(tool, action="draft", to="carol@example.com", body="b")
        assert result.content == "'subject' is required"


@pytest.mark.parametrize("address", ["carol", "@example.com", "carol@", "a@b@c.com"])
def test_address_domain_rejects(address):
    with pytest.raises(InvalidInputError):
        address_domain(address)


def test_address_domain():
    assert address_domain(" Carol@Example.COM ") == "example.com"
