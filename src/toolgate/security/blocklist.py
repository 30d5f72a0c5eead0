"""
Content and expression blocklists.

Static deny-lists applied before model-supplied text reaches a script
evaluator or is persisted for later rendering. Matching is
case-insensitive. Substrings match anywhere; tokens only match at a word
boundary (start of text, or preceded by a character that is not ASCII
alphanumeric or ``_``), so ``prefs.theme`` does not trip the ``fs.`` token.
"""

from __future__ import annotations

import json
from dataclasses import dataclass

from toolgate.exceptions import ERR_CONTENT_BLOCKED, DomainError


def _is_word_char(ch: str) -> bool:
    return ch == "_" or ("a" <= ch <= "z") or ("A" <= ch <= "Z") or ("0" <= ch <= "9")


def contains_word(text: str, token: str) -> bool:
    """True if ``token`` occurs in ``text`` not preceded by a word character."""
    if not token:
        return False
    start = 0
    while True:
        pos = text.find(token, start)
        if pos < 0:
            return False
        if pos == 0 or not _is_word_char(text[pos - 1]):
            return True
        start = pos + 1


def contains_crlf(value: str) -> bool:
    """True if ``value`` could split an HTTP header line."""
    return "\r" in value or "\n" in value


@dataclass(frozen=True)
class Blocklist:
    """Ordered, immutable set of prohibited substrings and tokens."""

    kind: str
    substrings: tuple[str, ...]
    tokens: tuple[str, ...] = ()

    def find(self, text: str) -> str | None:
        """Return the first prohibited pattern found in ``text``, or None."""
        lower = text.lower()
        for pattern in self.substrings:
            if pattern.lower() in lower:
                return pattern
        for token in self.tokens:
            if contains_word(lower, token.lower()):
                return token
        return None

    def check(self, text: str, op: str = "blocklist", subsystem: str | None = None) -> None:
        """
        Raise if ``text`` contains a prohibited pattern.

        Raises:
            DomainError: wrapping ERR_CONTENT_BLOCKED, naming the pattern
        """
        pattern = self.find(text)
        if pattern is not None:
            raise DomainError(
                op,
                ERR_CONTENT_BLOCKED,
                f"{self.kind} blocked: contains prohibited pattern {json.dumps(pattern)}",
                subsystem=subsystem,
            )


# Runtime-escape primitives for JavaScript evaluation contexts.
JS_EXPRESSION_BLOCKLIST = Blocklist(
    kind="expression",
    substrings=(
        "require(",
        "process.exit",
        "child_process",
        "__proto__",
        "constructor.constructor",
    ),
    tokens=("fs.",),
)

# Script-injection, storage and network primitives for HTML canvas content.
CANVAS_CONTENT_BLOCKLIST = Blocklist(
    kind="content",
    substrings=(
        "<script src=",
        "fetch(",
        "XMLHttpRequest",
        "navigator.sendBeacon",
        "window.open(",
        "document.cookie",
        "localStorage",
        "sessionStorage",
        "indexedDB",
        "importScripts",
        "eval(",
        "Function(",
    ),
)


__all__ = [
    "Blocklist",
    "CANVAS_CONTENT_BLOCKLIST",
    "JS_EXPRESSION_BLOCKLIST",
    "contains_crlf",
    "contains_word",
]
