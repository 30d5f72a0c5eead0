"""
Toolgate Configuration Module.

Handles tool limits, security policy knobs, and environment configuration.
Uses pydantic-settings for validation and type safety.
"""

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class BrowserSettings(BaseSettings):
    """Browser tool configuration."""

    model_config = SettingsConfigDict(env_prefix="TOOLGATE_BROWSER_")

    timeout_seconds: float = Field(default=30.0, description="Sub-timeout for each browser backend call")


class CameraSettings(BaseSettings):
    """Camera tool configuration."""

    model_config = SettingsConfigDict(env_prefix="TOOLGATE_CAMERA_")

    timeout_seconds: float = Field(default=30.0, description="Sub-timeout for each node capture")
    max_clip_seconds: float = Field(default=60.0, description="Longest clip or screen recording")
    max_payload_bytes: int = Field(default=5 * 1024 * 1024, description="Largest base64 media payload accepted")
    allowed_nodes: list[str] = Field(
        default_factory=list,
        description="Node ids the camera may target; empty allows any registered node",
    )


class CanvasSettings(BaseSettings):
    """Canvas tool configuration."""

    model_config = SettingsConfigDict(env_prefix="TOOLGATE_CANVAS_")

    max_content_bytes: int = Field(default=512 * 1024, description="Maximum canvas content size")


class EmailSettings(BaseSettings):
    """Email tool configuration."""

    model_config = SettingsConfigDict(env_prefix="TOOLGATE_EMAIL_")

    timeout_seconds: float = Field(default=15.0, description="Sub-timeout for each mailbox call")
    max_sends_per_hour: int = Field(default=20, description="Send/reply budget; <= 0 disables")
    allowed_domains: list[str] = Field(
        default_factory=list,
        description="Recipient domains allowed for draft/send; empty allows any",
    )


class GitHubSettings(BaseSettings):
    """GitHub tool configuration."""

    model_config = SettingsConfigDict(env_prefix="TOOLGATE_GITHUB_")

    timeout_seconds: float = Field(default=15.0, description="Sub-timeout for each GitHub API call")
    max_requests_per_minute: int = Field(default=30, description="Admission limit; <= 0 disables")
    cache_ttl_seconds: float = Field(default=300.0, description="TTL for cached list_repos results")


class SmartHomeSettings(BaseSettings):
    """Smart home tool configuration."""

    model_config = SettingsConfigDict(env_prefix="TOOLGATE_SMART_HOME_")

    timeout_seconds: float = Field(default=10.0, description="Sub-timeout for each smart home API call")
    max_calls_per_minute: int = Field(default=60, description="Admission limit; <= 0 disables")
    cache_ttl_seconds: float = Field(default=60.0, description="TTL for cached list_entities results")


class WebFetchSettings(BaseSettings):
    """Web fetch tool configuration."""

    model_config = SettingsConfigDict(env_prefix="TOOLGATE_WEB_FETCH_")

    timeout_seconds: float = Field(default=30.0, description="Total request timeout")
    max_body_bytes: int = Field(default=1024 * 1024, description="Response bytes returned to the model")
    max_redirects: int = Field(default=5, description="Redirect hops followed (each one re-validated)")


class ShellSettings(BaseSettings):
    """Shell tool configuration."""

    model_config = SettingsConfigDict(env_prefix="TOOLGATE_SHELL_")

    timeout_seconds: float = Field(default=60.0, description="Sub-timeout for each command")
    allowed_commands: list[str] = Field(
        default_factory=lambda: ["ls", "cat", "echo", "grep", "head", "tail", "wc", "pwd"],
        description="Base command names the shell tool may run",
    )


class Settings(BaseSettings):
    """Main toolgate settings."""

    model_config = SettingsConfigDict(
        env_prefix="TOOLGATE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Registry
    schema_validation_enabled: bool = Field(
        default=True,
        description="Wrap every registered tool with JSON Schema validation.",
    )
    schema_compile_policy: Literal["fail_open", "fail_closed"] = Field(
        default="fail_open",
        description=(
            "fail_open: a tool whose schema does not compile is registered "
            "unvalidated with a warning. fail_closed: registration is refused."
        ),
    )

    # Filesystem / shell sandbox
    sandbox_root: str = Field(default="./workspace", description="Root directory for file and shell tools")

    # Nested settings
    browser: BrowserSettings = Field(default_factory=BrowserSettings)
    camera: CameraSettings = Field(default_factory=CameraSettings)
    canvas: CanvasSettings = Field(default_factory=CanvasSettings)
    email: EmailSettings = Field(default_factory=EmailSettings)
    github: GitHubSettings = Field(default_factory=GitHubSettings)
    smart_home: SmartHomeSettings = Field(default_factory=SmartHomeSettings)
    web_fetch: WebFetchSettings = Field(default_factory=WebFetchSettings)
    shell: ShellSettings = Field(default_factory=ShellSettings)


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
