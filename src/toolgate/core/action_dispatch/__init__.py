"""
Action Dispatch - Route multi-action tools to per-action handlers

Responsibilities:
- Map each declared action name to exactly one handler
- Label the invocation span with ``tool.action``
- Reject unknown actions with a message listing the valid ones (sorted)

Action sets are closed: an ActionMap built from an Enum must cover every
member, and the sorted list of valid names is computed once.
"""

from __future__ import annotations

from enum import Enum
from typing import Awaitable, Callable, Generic, Iterator, Mapping, TypeVar

from pydantic import BaseModel

from toolgate.core.request_scope import RequestScope
from toolgate.core.tool_executor import Handler, HandlerOutput, bad_action
from toolgate.observability.tracing import Span

P = TypeVar("P", bound=BaseModel)

ActionHandler = Callable[[RequestScope, P], Awaitable[HandlerOutput]]


def _action_name(action: str | Enum) -> str:
    return action.value if isinstance(action, Enum) else action


class ActionMap(Generic[P]):
    """Immutable action name -> handler table."""

    def __init__(self, handlers: Mapping[str | Enum, ActionHandler[P]]):
        if not handlers:
            raise ValueError("action map must declare at least one action")
        self._handlers: dict[str, ActionHandler[P]] = {
            _action_name(action): handler for action, handler in handlers.items()
        }
        self.valid_actions: tuple[str, ...] = tuple(sorted(self._handlers))

    @classmethod
    def for_enum(
        cls,
        actions: type[Enum],
        handlers: Mapping[str | Enum, ActionHandler[P]],
    ) -> ActionMap[P]:
        """Build a map that must cover every member of ``actions`` and nothing else."""
        action_map = cls(handlers)
        declared = {str(member.value) for member in actions}
        provided = set(action_map.valid_actions)
        missing = declared - provided
        extra = provided - declared
        if missing or extra:
            raise ValueError(
                f"action map for {actions.__name__} does not match its actions "
                f"(missing: {sorted(missing)}, unexpected: {sorted(extra)})"
            )
        return action_map

    def get(self, action: str) -> ActionHandler[P] | None:
        return self._handlers.get(action)

    def __contains__(self, action: object) -> bool:
        return action in self._handlers

    def __iter__(self) -> Iterator[str]:
        return iter(self.valid_actions)

    def __len__(self) -> int:
        return len(self._handlers)


def dispatch(
    get_action: Callable[[P], str],
    actions: ActionMap[P] | Mapping[str | Enum, ActionHandler[P]],
) -> Handler[P]:
    """
    Build an executor handler that routes on ``get_action(params)``.

    Args:
        get_action: Extracts the action name from decoded params
        actions: ActionMap or plain mapping of action -> handler

    Returns:
        Handler suitable for ``tool_executor.execute``
    """
    action_map = actions if isinstance(actions, ActionMap) else ActionMap(actions)

    async def handler(scope: RequestScope, span: Span, params: P) -> HandlerOutput:
        action = _action_name(get_action(params))
        span.set_attribute("tool.action", action)
        action_handler = action_map.get(action)
        if action_handler is None:
            raise bad_action(action, action_map.valid_actions)
        return await action_handler(scope, params)

    return handler


__all__ = ["ActionHandler", "ActionMap", "dispatch"]
