"""
Field Validation - Domain-rule checks on decoded tool parameters

Every check raises InvalidInputError naming the offending field, so the
model gets an actionable, permanent error. Optional checks treat an empty
value as "not set"; combine with ``require_field`` to enforce presence.
"""

from __future__ import annotations

import json
from urllib.parse import urlsplit

from pydantic_core import from_json

from toolgate.exceptions import InvalidInputError


def require_field(name: str, value: str | None) -> None:
    if not value:
        raise InvalidInputError(f"'{name}' is required", field=name)


def require_fields(**fields: str | None) -> None:
    """Check several required string fields; the first empty one is reported."""
    for name, value in fields.items():
        require_field(name, value)


def validate_range(name: str, value: int, min_value: int, max_value: int) -> None:
    if value < min_value or value > max_value:
        raise InvalidInputError(f"{name} must be {min_value}-{max_value}", field=name)


def validate_positive(name: str, value: int) -> None:
    if value <= 0:
        raise InvalidInputError(f"'{name}' is required and must be > 0", field=name)


def validate_enum(name: str, value: str | None, *allowed: str) -> None:
    if not value or value in allowed:
        return
    raise InvalidInputError(
        f"invalid {name} {json.dumps(value)} (want: {', '.join(allowed)})", field=name
    )


def validate_http_url(name: str, value: str | None) -> None:
    """Syntactic check for an absolute http(s) URL. Does NOT guard against SSRF."""
    if not value:
        return
    try:
        parts = urlsplit(value)
    except ValueError as exc:
        raise InvalidInputError(f"invalid {name}: {exc}", field=name) from exc
    if parts.scheme not in ("http", "https"):
        raise InvalidInputError(f"invalid {name}: scheme must be http or https", field=name)
    if not parts.netloc:
        raise InvalidInputError(f"invalid {name}: missing host", field=name)


def validate_max_length(name: str, value: str | None, max_bytes: int) -> None:
    """Length is measured in UTF-8 bytes."""
    if value and len(value.encode("utf-8")) > max_bytes:
        raise InvalidInputError(f"{name} exceeds maximum length of {max_bytes}", field=name)


def validate_json(name: str, value: str | None) -> None:
    if not value:
        return
    try:
        from_json(value)
    except ValueError as exc:
        raise InvalidInputError(f"invalid {name}: not valid JSON", field=name) from exc


__all__ = [
    "require_field",
    "require_fields",
    "validate_range",
    "validate_positive",
    "validate_enum",
    "validate_http_url",
    "validate_max_length",
    "validate_json",
]
