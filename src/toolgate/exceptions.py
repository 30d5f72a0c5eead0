"""
Toolgate - Custom Exceptions.

Centralized error taxonomy for the tool invocation boundary.

Errors are identified by *sentinels*: module-level values compared by
identity. Concrete failures wrap a sentinel in a ``DomainError`` that adds
operation context, and wrappers may be nested arbitrarily deep. The cause
chain is walked explicitly (``err`` attribute first, then ``__cause__``), so
classification never depends on the Python exception class hierarchy.
"""

from __future__ import annotations

import json
from typing import Any, Iterator


class ToolgateException(Exception):
    """Base exception for Toolgate."""

    def __init__(
        self,
        code: str,
        message: str,
        details: dict[str, Any] | None = None,
    ):
        self.code = code
        self.message = message
        self.details = details
        super().__init__(message)


class Sentinel(ToolgateException):
    """Identity-compared error value.

    A sentinel may wrap another sentinel (``err``) so that, for example,
    a node authentication failure is also an authentication failure.
    """

    def __init__(self, code: str, message: str, err: Sentinel | None = None):
        self.err = err
        if err is not None:
            message = f"{message}: {err.message}"
        super().__init__(code=code, message=message)

    def __repr__(self) -> str:
        return f"Sentinel({self.code})"


# =============================================================================
# Category sentinels
# =============================================================================

ERR_NOT_FOUND = Sentinel("NOT_FOUND", "not found")
ERR_DUPLICATE = Sentinel("DUPLICATE", "duplicate")
ERR_TIMEOUT = Sentinel("TIMEOUT", "operation timed out")
ERR_LIMIT_REACHED = Sentinel("LIMIT_REACHED", "limit reached")
ERR_PERMISSION_DENIED = Sentinel("PERMISSION_DENIED", "permission denied")
ERR_DISABLED = Sentinel("DISABLED", "disabled")
ERR_INVALID_INPUT = Sentinel("INVALID_INPUT", "invalid input")
ERR_PROVIDER_ERROR = Sentinel("PROVIDER_ERROR", "provider error")

# =============================================================================
# Specific sentinels
# =============================================================================

ERR_TOOL_NOT_FOUND = Sentinel("TOOL_NOT_FOUND", "tool not found")
ERR_TOOL_FAILURE = Sentinel("TOOL_FAILURE", "tool execution failed")
ERR_PATH_OUTSIDE_SANDBOX = Sentinel("PATH_OUTSIDE_SANDBOX", "path is outside sandbox boundary")
ERR_COMMAND_NOT_ALLOWED = Sentinel("COMMAND_NOT_ALLOWED", "command not in allowlist")
ERR_SSRF_BLOCKED = Sentinel("SSRF_BLOCKED", "request to private/reserved address blocked")
ERR_CONTENT_BLOCKED = Sentinel("CONTENT_BLOCKED", "content blocked by policy")

# Resilience
ERR_CONTEXT_OVERFLOW = Sentinel("CONTEXT_OVERFLOW", "context window exceeded")
ERR_RATE_LIMIT = Sentinel("RATE_LIMIT", "rate limit exceeded")
ERR_AUTH_INVALID = Sentinel("AUTH_INVALID", "authentication failed")

# Node system
ERR_NODE_NOT_FOUND = Sentinel("NODE_NOT_FOUND", "node not found")
ERR_NODE_UNREACHABLE = Sentinel("NODE_UNREACHABLE", "node unreachable")
ERR_NODE_CAPABILITY = Sentinel("NODE_CAPABILITY", "capability not found on node")
ERR_NODE_AUTH = Sentinel("NODE_AUTH", "node", err=ERR_AUTH_INVALID)
ERR_NODE_INVOKE = Sentinel("NODE_INVOKE", "node invocation failed")
ERR_NODE_NOT_ALLOWED = Sentinel("NODE_NOT_ALLOWED", "node not in allowlist")


# =============================================================================
# Wrapping errors
# =============================================================================


class DomainError(ToolgateException):
    """Wraps a sentinel (or any exception) with operation context."""

    def __init__(
        self,
        op: str,
        err: BaseException,
        detail: str = "",
        subsystem: str | None = None,
    ):
        self.op = op
        self.err = err
        self.detail = detail
        self.subsystem = subsystem
        if detail:
            message = f"{op}: {detail}: {err}"
        else:
            message = f"{op}: {err}"
        super().__init__(code=error_code_of(self), message=message)


class InvalidInputError(ToolgateException):
    """Raised when a tool parameter is missing or out of range."""

    def __init__(self, message: str, field: str | None = None):
        self.err = ERR_INVALID_INPUT
        super().__init__(
            code="INVALID_INPUT",
            message=message,
            details={"field": field} if field else None,
        )


class UnknownActionError(ToolgateException):
    """Raised when an action-based tool receives an action it does not handle."""

    def __init__(self, action: str, valid: tuple[str, ...] | list[str]):
        self.err = ERR_INVALID_INPUT
        self.action = action
        self.valid = tuple(valid)
        super().__init__(
            code="UNKNOWN_ACTION",
            message=f"unknown action {json.dumps(action)} (want: {', '.join(self.valid)})",
            details={"action": action, "valid": list(self.valid)},
        )


class SchemaCompileError(ToolgateException):
    """Raised when a tool's declared parameter schema cannot be compiled."""

    def __init__(self, tool: str, reason: str):
        super().__init__(
            code="SCHEMA_COMPILE",
            message=f"compile schema for {tool!r}: {reason}",
            details={"tool": tool},
        )


# =============================================================================
# Cause chain helpers
# =============================================================================


def cause_chain(err: BaseException | None) -> Iterator[BaseException]:
    """Yield ``err`` and every error it wraps, outermost first.

    Follows the explicit ``err`` attribute of toolgate errors, then
    ``__cause__`` (``raise ... from ...``). Cycles are cut.
    """
    seen: set[int] = set()
    stack = [err] if err is not None else []
    while stack:
        current = stack.pop()
        if id(current) in seen:
            continue
        seen.add(id(current))
        yield current

        if current.__cause__ is not None:
            stack.append(current.__cause__)
        inner = getattr(current, "err", None)
        if isinstance(inner, BaseException):
            stack.append(inner)


def is_error(err: BaseException | None, sentinel: Sentinel) -> bool:
    """Report whether ``sentinel`` appears anywhere in the cause chain of ``err``."""
    return any(e is sentinel for e in cause_chain(err))


def wrap_op(op: str, err: BaseException | None) -> DomainError | None:
    """Add operation context to ``err``. Returns None when ``err`` is None."""
    if err is None:
        return None
    return DomainError(op, err)


# =============================================================================
# Error codes
# =============================================================================

_SENTINELS: tuple[Sentinel, ...] = (
    ERR_NOT_FOUND,
    ERR_DUPLICATE,
    ERR_TIMEOUT,
    ERR_LIMIT_REACHED,
    ERR_PERMISSION_DENIED,
    ERR_DISABLED,
    ERR_INVALID_INPUT,
    ERR_PROVIDER_ERROR,
    ERR_TOOL_NOT_FOUND,
    ERR_TOOL_FAILURE,
    ERR_PATH_OUTSIDE_SANDBOX,
    ERR_COMMAND_NOT_ALLOWED,
    ERR_SSRF_BLOCKED,
    ERR_CONTENT_BLOCKED,
    ERR_CONTEXT_OVERFLOW,
    ERR_RATE_LIMIT,
    ERR_AUTH_INVALID,
    ERR_NODE_NOT_FOUND,
    ERR_NODE_UNREACHABLE,
    ERR_NODE_CAPABILITY,
    ERR_NODE_AUTH,
    ERR_NODE_INVOKE,
    ERR_NODE_NOT_ALLOWED,
)

# (category sentinel code, subsystem) -> specific code
_SUBSYSTEM_CODES: dict[str, dict[str, str]] = {
    "NOT_FOUND": {
        "canvas": "CANVAS_NOT_FOUND",
        "github": "GITHUB_NOT_FOUND",
        "smart_home": "SMART_HOME_NOT_FOUND",
        "delegate": "AGENT_NOT_FOUND",
    },
    "DUPLICATE": {
        "canvas": "CANVAS_EXISTS",
        "registry": "TOOL_DUPLICATE",
    },
    "TIMEOUT": {
        "browser": "BROWSER_TIMEOUT",
        "github": "GITHUB_TIMEOUT",
        "smart_home": "SMART_HOME_TIMEOUT",
        "shell": "SHELL_TIMEOUT",
        "web_fetch": "WEB_FETCH_TIMEOUT",
    },
    "LIMIT_REACHED": {
        "canvas": "CANVAS_LIMIT",
        "github": "GITHUB_RATE_LIMITED",
        "smart_home": "SMART_HOME_RATE_LIMITED",
    },
    "INVALID_INPUT": {
        "canvas": "CANVAS_NAME_INVALID",
    },
    "CONTENT_BLOCKED": {
        "browser": "BROWSER_JS_BLOCKED",
        "canvas": "CANVAS_CONTENT_BLOCKED",
    },
}


def error_code_of(err: BaseException | None) -> str:
    """Return the machine-parseable code for ``err``.

    The outermost ``DomainError`` carrying a subsystem refines category
    sentinels into subsystem-specific codes. Returns ``"UNKNOWN"`` when no
    sentinel is found in the chain.
    """
    if err is None:
        return "UNKNOWN"

    subsystem: str | None = None
    for e in cause_chain(err):
        if subsystem is None and isinstance(e, DomainError) and e.subsystem:
            subsystem = e.subsystem
        if isinstance(e, Sentinel) and any(e is s for s in _SENTINELS):
            if subsystem:
                specific = _SUBSYSTEM_CODES.get(e.code, {}).get(subsystem)
                if specific:
                    return specific
            return e.code

    return "UNKNOWN"


__all__ = [
    "ToolgateException",
    "Sentinel",
    "DomainError",
    "InvalidInputError",
    "UnknownActionError",
    "SchemaCompileError",
    "cause_chain",
    "is_error",
    "wrap_op",
    "error_code_of",
    "ERR_NOT_FOUND",
    "ERR_DUPLICATE",
    "ERR_TIMEOUT",
    "ERR_LIMIT_REACHED",
    "ERR_PERMISSION_DENIED",
    "ERR_DISABLED",
    "ERR_INVALID_INPUT",
    "ERR_PROVIDER_ERROR",
    "ERR_TOOL_NOT_FOUND",
    "ERR_TOOL_FAILURE",
    "ERR_PATH_OUTSIDE_SANDBOX",
    "ERR_COMMAND_NOT_ALLOWED",
    "ERR_SSRF_BLOCKED",
    "ERR_CONTENT_BLOCKED",
    "ERR_CONTEXT_OVERFLOW",
    "ERR_RATE_LIMIT",
    "ERR_AUTH_INVALID",
    "ERR_NODE_NOT_FOUND",
    "ERR_NODE_UNREACHABLE",
    "ERR_NODE_CAPABILITY",
    "ERR_NODE_AUTH",
    "ERR_NODE_INVOKE",
    "ERR_NODE_NOT_ALLOWED",
]
