"""
Toolgate - invocation boundary for LLM tool calling.

Every capability an agent can invoke is reached through one pipeline:
decode -> schema validate -> dispatch -> handler -> classify -> uniform result.
"""

__version__ = "0.1.0"
