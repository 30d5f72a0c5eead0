"""
Smart home backend interface and in-memory mock.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from pydantic import BaseModel, Field

from toolgate.exceptions import ERR_NOT_FOUND, DomainError


class SmartHomeEntity(BaseModel):
    entity_id: str
    state: str
    attributes: dict[str, Any] = Field(default_factory=dict)
    last_changed: str | None = None


class SmartHomeState(BaseModel):
    state: str
    last_changed: str


class SmartHomeAutomation(BaseModel):
    id: str
    name: str
    enabled: bool = True


class ServiceCall(BaseModel):
    domain: str
    service: str
    entity_id: str
    data: dict[str, Any] = Field(default_factory=dict)


class SmartHomeBackend(ABC):
    """Home-automation hub operations."""

    @abstractmethod
    async def list_entities(self) -> list[SmartHomeEntity]: ...

    @abstractmethod
    async def get_entity(self, entity_id: str) -> SmartHomeEntity: ...

    @abstractmethod
    async def call_service(
        self, domain: str, service: str, entity_id: str, data: dict[str, Any]
    ) -> None: ...

    @abstractmethod
    async def get_history(
        self, entity_id: str, start_time: str = "", end_time: str = ""
    ) -> list[SmartHomeState]:
        """State changes of one entity; times are ISO 8601 strings, empty means unbounded."""

    @abstractmethod
    async def list_automations(self) -> list[SmartHomeAutomation]: ...

    @abstractmethod
    async def trigger_automation(self, automation_id: str) -> None: ...


class MockSmartHomeBackend(SmartHomeBackend):
    """Deterministic in-memory hub. Service calls are recorded, not executed."""

    def __init__(
        self,
        entities: list[SmartHomeEntity] | None = None,
        automations: list[SmartHomeAutomation] | None = None,
        history: dict[str, list[SmartHomeState]] | None = None,
    ):
        self.entities = list(entities or [])
        self.automations = list(automations or [])
        self.history = {k: list(v) for k, v in (history or {}).items()}
        self.service_calls: list[ServiceCall] = []
        self.triggered: list[str] = []
        self.list_calls = 0

    def _missing(self, what: str) -> DomainError:
        return DomainError("smart_home", ERR_NOT_FOUND, what, subsystem="smart_home")

    async def list_entities(self) -> list[SmartHomeEntity]:
        self.list_calls += 1
        return list(self.entities)

    async def get_entity(self, entity_id: str) -> SmartHomeEntity:
        for entity in self.entities:
            if entity.entity_id == entity_id:
                return entity
        raise self._missing(f"entity {entity_id!r}")

    async def call_service(
        self, domain: str, service: str, entity_id: str, data: dict[str, Any]
    ) -> None:
        self.service_calls.append(
            ServiceCall(domain=domain, service=service, entity_id=entity_id, data=dict(data))
        )

    async def get_history(
        self, entity_id: str, start_time: str = "", end_time: str = ""
    ) -> list[SmartHomeState]:
        states = self.history.get(entity_id, [])
        # ISO 8601 strings in one format compare correctly as text
        return [
            s for s in states
            if (not start_time or s.last_changed >= start_time)
            and (not end_time or s.last_changed <= end_time)
        ]

    async def list_automations(self) -> list[SmartHomeAutomation]:
        return list(self.automations)

    async def trigger_automation(self, automation_id: str) -> None:
        if not any(a.id == automation_id for a in self.automations):
            raise self._missing(f"automation {automation_id!r}")
        self.triggered.append(automation_id)


__all__ = [
    "MockSmartHomeBackend",
    "ServiceCall",
    "SmartHomeAutomation",
    "SmartHomeBackend",
    "SmartHomeEntity",
    "SmartHomeState",
]
