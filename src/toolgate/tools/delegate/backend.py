"""
Delegation broker interface and in-memory mock.

The real broker (agent registry, per-agent sessions, event bus) lives
outside the invocation boundary; tools only see this interface.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Awaitable, Callable

from pydantic import BaseModel

from toolgate.exceptions import ERR_NOT_FOUND, DomainError


class AgentInfo(BaseModel):
    id: str
    name: str


class DelegateRequest(BaseModel):
    from_agent: str
    to_agent: str
    session_id: str
    message: str


class DelegateResponse(BaseModel):
    from_agent: str
    content: str


class DelegationBroker(ABC):
    @abstractmethod
    def list_agents(self) -> list[AgentInfo]: ...

    @abstractmethod
    async def delegate(self, request: DelegateRequest) -> DelegateResponse: ...


AgentHandler = Callable[[str, str], Awaitable[str]]


def session_key(request: DelegateRequest) -> str:
    """Isolated session key for one delegation: delegate|from|to|session."""
    return f"delegate|{request.from_agent}|{request.to_agent}|{request.session_id}"


class MockDelegationBroker(DelegationBroker):
    """
    Agents are async callables ``(session_key, message) -> reply``.

    Without handlers every agent echoes the message back.
    """

    def __init__(
        self,
        agents: list[AgentInfo] | None = None,
        handlers: dict[str, AgentHandler] | None = None,
    ):
        self.agents = list(agents or [])
        self.handlers = dict(handlers or {})
        self.requests: list[DelegateRequest] = []

    def list_agents(self) -> list[AgentInfo]:
        return list(self.agents)

    async def delegate(self, request: DelegateRequest) -> DelegateResponse:
        self.requests.append(request)
        if not any(a.id == request.to_agent for a in self.agents):
            raise DomainError(
                "broker", ERR_NOT_FOUND, f"target agent {request.to_agent!r}", subsystem="delegate"
            )
        handler = self.handlers.get(request.to_agent)
        if handler is None:
            content = f"[{request.to_agent}] {request.message}"
        else:
            content = await handler(session_key(request), request.message)
        return DelegateResponse(from_agent=request.to_agent, content=content)


__all__ = [
    "AgentInfo",
    "DelegateRequest",
    "DelegateResponse",
    "DelegationBroker",
    "MockDelegationBroker",
    "session_key",
]
