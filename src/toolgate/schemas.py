"""
Toolgate - Common Schemas.

Shared Pydantic models for the tool invocation boundary.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator


# =============================================================================
# Tool Contract
# =============================================================================


class ToolSchema(BaseModel):
    """Describes a tool for the LLM function-calling protocol."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., min_length=1, description="Unique, stable tool name")
    description: str = Field(..., description="Human/LLM-facing description")
    parameters: dict[str, Any] | str | None = Field(
        default=None,
        description="JSON Schema for the tool's parameters (document or raw JSON text)",
    )

    def to_openai_function(self) -> dict[str, Any]:
        """OpenAI-compatible function descriptor for chat APIs."""
        params = self.parameters if isinstance(self.parameters, dict) else {}
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": {
                    "type": "object",
                    "properties": params.get("properties", {}),
                    "required": params.get("required", []),
                },
            },
        }


# =============================================================================
# Tool Result
# =============================================================================


class ToolResult(BaseModel):
    """Uniform outcome of every tool invocation.

    ``is_retryable`` is only meaningful for errors; a successful result
    that claims to be retryable is rejected at construction.
    """

    model_config = ConfigDict(frozen=True)

    content: str = ""
    is_error: bool = False
    is_retryable: bool = False

    @model_validator(mode="after")
    def _success_is_never_retryable(self) -> "ToolResult":
        if not self.is_error and self.is_retryable:
            raise ValueError("is_retryable requires is_error")
        return self
