"""
smart_home - Entities, services, history and automations of a home hub

Responsibilities:
- Admit at most ``max_calls_per_minute`` calls (fixed window, per tool)
- Cache list_entities for ``cache_ttl`` seconds; a service call invalidates it
- Bound every hub call with the configured sub-timeout
"""

from __future__ import annotations

import logging
import time
from enum import Enum
from typing import Any, Callable

from pydantic import BaseModel, Field

from toolgate.core.action_dispatch import ActionMap, dispatch
from toolgate.core.field_validation import require_field, require_fields
from toolgate.core.rate_limiter import RateLimiter
from toolgate.core.request_scope import RequestScope
from toolgate.core.tool_executor import HandlerOutput, PlainText, Structured, execute
from toolgate.core.ttl_cache import TTLCache
from toolgate.schemas import ToolResult, ToolSchema
from toolgate.tools.base import BaseTool, call_backend, load_parameters
from toolgate.tools.smart_home.backend import MockSmartHomeBackend, SmartHomeBackend, SmartHomeEntity

logger = logging.getLogger(__name__)

_SUBSYSTEM = "smart_home"
_ENTITIES_KEY = "list_entities"


class SmartHomeAction(str, Enum):
    LIST_ENTITIES = "list_entities"
    GET_ENTITY = "get_entity"
    CALL_SERVICE = "call_service"
    GET_HISTORY = "get_history"
    LIST_AUTOMATIONS = "list_automations"
    TRIGGER_AUTOMATION = "trigger_automation"


class SmartHomeParams(BaseModel):
    action: str
    entity_id: str = ""
    domain: str = ""
    service: str = ""
    service_data: dict[str, Any] = Field(default_factory=dict)
    automation_id: str = ""
    start_time: str = ""
    end_time: str = ""


class SmartHomeTool(BaseTool):
    """Home automation with admission control and an entity-list cache."""

    def __init__(
        self,
        backend: SmartHomeBackend | None = None,
        timeout: float = 10.0,
        max_calls_per_minute: int = 60,
        cache_ttl: float = 60.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._backend = backend or MockSmartHomeBackend()
        self._timeout = timeout
        self._limiter = (
            RateLimiter(max_calls_per_minute, 60.0, clock=clock)
            if max_calls_per_minute > 0
            else None
        )
        self._cache_ttl = cache_ttl
        self._entities_cache: TTLCache[list[SmartHomeEntity]] = TTLCache(clock=clock)
        self._schema = ToolSchema(
            name="smart_home",
            description=(
                "Control smart home devices: list entities, get entity state, call services "
                "(turn on/off, etc.), view history, list automations, and trigger automations."
            ),
            parameters=load_parameters(__file__),
        )
        self._handler = dispatch(
            lambda p: p.action,
            ActionMap.for_enum(
                SmartHomeAction,
                {
                    SmartHomeAction.LIST_ENTITIES: self._list_entities,
                    SmartHomeAction.GET_ENTITY: self._get_entity,
                    SmartHomeAction.CALL_SERVICE: self._call_service,
                    SmartHomeAction.GET_HISTORY: self._get_history,
                    SmartHomeAction.LIST_AUTOMATIONS: self._list_automations,
                    SmartHomeAction.TRIGGER_AUTOMATION: self._trigger_automation,
                },
            ),
        )

    @property
    def schema(self) -> ToolSchema:
        return self._schema

    async def execute(self, params: bytes | str, scope: RequestScope | None = None) -> ToolResult:
        return await execute(scope or RequestScope(), "tool.smart_home", params, SmartHomeParams, self._handler, logger)

    async def _call(self, scope: RequestScope, awaitable, op: str):
        return await call_backend(scope, awaitable, op=op, timeout=self._timeout, subsystem=_SUBSYSTEM)

    def _admit(self, op: str) -> None:
        if self._limiter is not None:
            self._limiter.admit(op, subsystem=_SUBSYSTEM)

    async def _list_entities(self, scope: RequestScope, p: SmartHomeParams) -> HandlerOutput:
        self._admit("list_entities")
        entities, hit = self._entities_cache.get(_ENTITIES_KEY)
        if not hit:
            entities = await self._call(scope, self._backend.list_entities(), "list_entities")
            self._entities_cache.put(_ENTITIES_KEY, entities, self._cache_ttl)
        if not entities:
            return PlainText("No entities found.")
        return Structured(entities)

    async def _get_entity(self, scope: RequestScope, p: SmartHomeParams) -> HandlerOutput:
        self._admit("get_entity")
        require_field("entity_id", p.entity_id)
        return Structured(await self._call(scope, self._backend.get_entity(p.entity_id), "get_entity"))

    async def _call_service(self, scope: RequestScope, p: SmartHomeParams) -> HandlerOutput:
        self._admit("call_service")
        require_fields(domain=p.domain, service=p.service, entity_id=p.entity_id)
        await self._call(
            scope,
            self._backend.call_service(p.domain, p.service, p.entity_id, p.service_data),
            "call_service",
        )
        self._entities_cache.invalidate(_ENTITIES_KEY)
        logger.info("service %s.%s called on %s", p.domain, p.service, p.entity_id)
        return PlainText(f"Service {p.domain}.{p.service} called on {p.entity_id}")

    async def _get_history(self, scope: RequestScope, p: SmartHomeParams) -> HandlerOutput:
        self._admit("get_history")
        require_field("entity_id", p.entity_id)
        history = await self._call(
            scope, self._backend.get_history(p.entity_id, p.start_time, p.end_time), "get_history"
        )
        if not history:
            return PlainText("No history found for entity.")
        return Structured(history)

    async def _list_automations(self, scope: RequestScope, p: SmartHomeParams) -> HandlerOutput:
        self._admit("list_automations")
        automations = await self._call(scope, self._backend.list_automations(), "list_automations")
        if not automations:
            return PlainText("No automations found.")
        return Structured(automations)

    async def _trigger_automation(self, scope: RequestScope, p: SmartHomeParams) -> HandlerOutput:
        self._admit("trigger_automation")
        require_field("automation_id", p.automation_id)
        await self._call(scope, self._backend.trigger_automation(p.automation_id), "trigger_automation")
        logger.info("automation %s triggered", p.automation_id)
        return PlainText(f"Automation {p.automation_id!r} triggered")


__all__ = ["SmartHomeAction", "SmartHomeParams", "SmartHomeTool"]
