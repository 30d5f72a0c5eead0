"""
Remote nodes: devices that expose named capabilities to the agent.

``NodeInvoker`` is the seam the camera backend talks to. ``MockNodeManager``
keeps nodes in memory and raises the node sentinels the way a real manager
would:

- unknown node id -> ERR_NODE_NOT_FOUND
- node offline -> ERR_NODE_UNREACHABLE (retryable)
- capability missing on the node -> ERR_NODE_CAPABILITY
- capability handler failed -> ERR_NODE_INVOKE (retryable)
- registering outside the allowlist -> ERR_NODE_NOT_ALLOWED
- registering without an id -> ERR_NODE_AUTH
"""

from __future__ import annotations

import logging
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Callable, Iterable

from toolgate.exceptions import (
    ERR_DUPLICATE,
    ERR_NODE_AUTH,
    ERR_NODE_CAPABILITY,
    ERR_NODE_INVOKE,
    ERR_NODE_NOT_ALLOWED,
    ERR_NODE_NOT_FOUND,
    ERR_NODE_UNREACHABLE,
    DomainError,
)

logger = logging.getLogger(__name__)

Capability = Callable[[dict[str, Any]], Any]

_SUBSYSTEM = "node"


class NodeInvoker(ABC):
    @abstractmethod
    async def invoke(self, node_id: str, capability: str, params: dict[str, Any]) -> Any:
        """Run ``capability`` on a node and return its decoded JSON response."""


@dataclass
class Node:
    node_id: str
    capabilities: dict[str, Capability] = field(default_factory=dict)
    online: bool = True


class MockNodeManager(NodeInvoker):
    """In-memory node registry. ``calls`` records every invocation that reached a node."""

    def __init__(self, nodes: Iterable[Node] = (), allowed: Iterable[str] | None = None):
        self._lock = threading.Lock()
        self._nodes: dict[str, Node] = {}
        self._allowed = frozenset(allowed) if allowed is not None else None
        self.calls: list[tuple[str, str, dict[str, Any]]] = []
        for node in nodes:
            self.register(node)

    def register(self, node: Node) -> None:
        if not node.node_id:
            raise DomainError("register", ERR_NODE_AUTH, "empty node id", subsystem=_SUBSYSTEM)
        if self._allowed is not None and node.node_id not in self._allowed:
            raise DomainError("register", ERR_NODE_NOT_ALLOWED, node.node_id, subsystem=_SUBSYSTEM)
        with self._lock:
            if node.node_id in self._nodes:
                raise DomainError("register", ERR_DUPLICATE, node.node_id, subsystem=_SUBSYSTEM)
            self._nodes[node.node_id] = node
        logger.info("node %s registered (%d capabilities)", node.node_id, len(node.capabilities))

    def set_online(self, node_id: str, online: bool) -> None:
        with self._lock:
            node = self._nodes.get(node_id)
            if node is None:
                raise DomainError("set_online", ERR_NODE_NOT_FOUND, node_id, subsystem=_SUBSYSTEM)
            node.online = online

    async def invoke(self, node_id: str, capability: str, params: dict[str, Any]) -> Any:
        with self._lock:
            node = self._nodes.get(node_id)
        if node is None:
            raise DomainError("invoke", ERR_NODE_NOT_FOUND, node_id, subsystem=_SUBSYSTEM)
        if not node.online:
            raise DomainError("invoke", ERR_NODE_UNREACHABLE, node_id, subsystem=_SUBSYSTEM)
        handler = node.capabilities.get(capability)
        if handler is None:
            raise DomainError(
                "invoke", ERR_NODE_CAPABILITY, f"{capability} on {node_id}", subsystem=_SUBSYSTEM
            )

        self.calls.append((node_id, capability, dict(params)))
        try:
            return handler(params)
        except Exception as exc:
            raise DomainError("invoke", ERR_NODE_INVOKE, str(exc), subsystem=_SUBSYSTEM) from exc


__all__ = ["Capability", "MockNodeManager", "Node", "NodeInvoker"]
