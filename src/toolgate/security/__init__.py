"""
Toolgate Security - Policy primitives for risky tools

Applied before any model-supplied value reaches a network address, a
filesystem path or a script evaluator. All violations are permanent
errors (see toolgate.core.error_classifier).
"""

from toolgate.security.blocklist import (
    CANVAS_CONTENT_BLOCKLIST,
    JS_EXPRESSION_BLOCKLIST,
    Blocklist,
    contains_crlf,
    contains_word,
)
from toolgate.security.sandbox import Sandbox
from toolgate.security.ssrf import is_private_ip, validate_url, validate_url_async

__all__ = [
    "Blocklist",
    "CANVAS_CONTENT_BLOCKLIST",
    "JS_EXPRESSION_BLOCKLIST",
    "Sandbox",
    "contains_crlf",
    "contains_word",
    "is_private_ip",
    "validate_url",
    "validate_url_async",
]
