"""
Error Classifier - Retryable vs. permanent taxonomy

Responsibilities:
- Decide whether the agent's outer loop may re-attempt a tool call
- Search sentinels through arbitrarily deep wrapping chains
- Fall back to case-insensitive message patterns for foreign errors
- Default to NOT retryable

This is the single place that makes the retry decision.
"""

from __future__ import annotations

from toolgate.exceptions import (
    ERR_AUTH_INVALID,
    ERR_COMMAND_NOT_ALLOWED,
    ERR_CONTENT_BLOCKED,
    ERR_CONTEXT_OVERFLOW,
    ERR_DISABLED,
    ERR_DUPLICATE,
    ERR_INVALID_INPUT,
    ERR_LIMIT_REACHED,
    ERR_NODE_CAPABILITY,
    ERR_NODE_INVOKE,
    ERR_NODE_NOT_ALLOWED,
    ERR_NODE_NOT_FOUND,
    ERR_NODE_UNREACHABLE,
    ERR_NOT_FOUND,
    ERR_PATH_OUTSIDE_SANDBOX,
    ERR_PERMISSION_DENIED,
    ERR_PROVIDER_ERROR,
    ERR_RATE_LIMIT,
    ERR_SSRF_BLOCKED,
    ERR_TIMEOUT,
    ERR_TOOL_NOT_FOUND,
    Sentinel,
    cause_chain,
)

# Transient backend/network conditions.
RETRYABLE_SENTINELS: tuple[Sentinel, ...] = (
    ERR_NODE_UNREACHABLE,
    ERR_NODE_INVOKE,
    ERR_TIMEOUT,
    ERR_PROVIDER_ERROR,
    ERR_RATE_LIMIT,
    ERR_CONTEXT_OVERFLOW,
)

# Conditions that will fail the same way on every attempt. These win over
# retryable sentinels and message patterns found deeper in the chain.
PERMANENT_SENTINELS: tuple[Sentinel, ...] = (
    ERR_NOT_FOUND,
    ERR_TOOL_NOT_FOUND,
    ERR_NODE_NOT_FOUND,
    ERR_NODE_CAPABILITY,
    ERR_AUTH_INVALID,
    ERR_NODE_NOT_ALLOWED,
    ERR_PATH_OUTSIDE_SANDBOX,
    ERR_COMMAND_NOT_ALLOWED,
    ERR_SSRF_BLOCKED,
    ERR_CONTENT_BLOCKED,
    ERR_DUPLICATE,
    ERR_LIMIT_REACHED,
    ERR_PERMISSION_DENIED,
    ERR_DISABLED,
    ERR_INVALID_INPUT,
)

# Substrings of error messages, compared case-insensitively.
RETRYABLE_PATTERNS: tuple[str, ...] = (
    "connection refused",
    "connection reset",
    "no such host",
    "name or service not known",
    "temporary failure in name resolution",
    "timeout",
    "timed out",
    "deadline exceeded",
    "temporarily unavailable",
    "service unavailable",
    "try again",
    "unavailable",  # gRPC UNAVAILABLE
    "resourceexhausted",  # gRPC RESOURCE_EXHAUSTED, no separator
    "resource_exhausted",
)


def _contains_sentinel(chain: list[BaseException], sentinels: tuple[Sentinel, ...]) -> bool:
    return any(e is s for e in chain for s in sentinels)


def _matches_pattern(err: BaseException) -> bool:
    # An empty message falls back to the type name (e.g. TimeoutError()).
    lower = str(err).lower() or type(err).__name__.lower()
    return any(p in lower for p in RETRYABLE_PATTERNS)


def classify_tool_error(err: BaseException | None) -> bool:
    """Return True if ``err`` is transient and the call may succeed on retry.

    Returns False for None, permanent, and unknown errors.
    """
    if err is None:
        return False

    chain = list(cause_chain(err))

    if _contains_sentinel(chain, PERMANENT_SENTINELS):
        return False
    if _contains_sentinel(chain, RETRYABLE_SENTINELS):
        return True

    return any(_matches_pattern(e) for e in chain)


__all__ = [
    "classify_tool_error",
    "RETRYABLE_SENTINELS",
    "PERMANENT_SENTINELS",
    "RETRYABLE_PATTERNS",
]
