"""
Toolgate Core - Invocation boundary components

Components (leaves first):
- rate_limiter: fixed-window admission control
- ttl_cache: expiring store for read-mostly tools
- request_scope: deadline and session carried to handlers
- error_classifier: retryable vs. permanent taxonomy
- tool_executor: decode, span, handle, classify, format
- action_dispatch: action discriminator -> handler
- field_validation: domain-rule checks on decoded params
- schema_validator: JSON Schema gate around a tool
- tool_registry: concurrent name -> tool map
"""
