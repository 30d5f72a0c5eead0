"""
delegate - Hand a task to another agent

Responsibilities:
- Forward a message from the owning agent to a target agent
- Generate a session id when the model gives none

Session ids come from a ``SessionSequence`` owned by the tool instance
(or shared explicitly), never from module state.
"""

from __future__ import annotations

import itertools
import logging
import threading
import time
from typing import Callable

from pydantic import BaseModel

from toolgate.core.field_validation import require_fields
from toolgate.core.request_scope import RequestScope
from toolgate.core.tool_executor import HandlerOutput, PlainText, execute
from toolgate.exceptions import DomainError
from toolgate.observability.tracing import Span
from toolgate.schemas import ToolResult, ToolSchema
from toolgate.tools.base import BaseTool, load_parameters
from toolgate.tools.delegate.backend import DelegateRequest, DelegationBroker, MockDelegationBroker

logger = logging.getLogger(__name__)

_SUBSYSTEM = "delegate"


class SessionSequence:
    """Thread-safe generator of ``auto_<unix_ms>_<n>`` session ids."""

    def __init__(self, clock: Callable[[], float] = time.time):
        self._clock = clock
        self._counter = itertools.count(1)
        self._lock = threading.Lock()

    def next_id(self) -> str:
        with self._lock:
            n = next(self._counter)
        return f"auto_{int(self._clock() * 1000)}_{n}"


class DelegateParams(BaseModel):
    agent_id: str = ""
    message: str = ""
    session_id: str = ""


class DelegateTool(BaseTool):
    def __init__(
        self,
        broker: DelegationBroker | None = None,
        agent_id: str = "main",
        sequence: SessionSequence | None = None,
        timeout: float | None = None,
    ):
        self._broker = broker or MockDelegationBroker()
        self._agent_id = agent_id
        self._sequence = sequence or SessionSequence()
        self._timeout = timeout

        others = [f"{a.id} ({a.name})" for a in self._broker.list_agents() if a.id != agent_id]
        self._schema = ToolSchema(
            name="delegate",
            description=f"Delegate a task to another agent. Available agents: {', '.join(others) or 'none'}",
            parameters=load_parameters(__file__),
        )

    @property
    def schema(self) -> ToolSchema:
        return self._schema

    async def execute(self, params: bytes | str, scope: RequestScope | None = None) -> ToolResult:
        return await execute(scope or RequestScope(), "tool.delegate", params, DelegateParams, self._delegate, logger)

    async def _delegate(self, scope: RequestScope, span: Span, p: DelegateParams) -> HandlerOutput:
        require_fields(agent_id=p.agent_id, message=p.message)
        session_id = p.session_id or self._sequence.next_id()
        span.set_attribute("delegate.to", p.agent_id)

        request = DelegateRequest(
            from_agent=self._agent_id,
            to_agent=p.agent_id,
            session_id=session_id,
            message=p.message,
        )
        logger.info("delegating from %s to %s (session %s)", self._agent_id, p.agent_id, session_id)
        try:
            response = await scope.bounded(
                self._broker.delegate(request), self._timeout, op="delegate", subsystem=_SUBSYSTEM
            )
        except Exception as exc:
            raise DomainError("delegation failed", exc, subsystem=_SUBSYSTEM) from exc
        return PlainText(response.content)


__all__ = ["DelegateParams", "DelegateTool", "SessionSequence"]
