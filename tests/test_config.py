"""
Tests for configuration module.
"""

import pytest


class TestSettings:
    """Root settings tests."""

    def test_defaults(self, monkeypatch):
        """Test registry and sandbox defaults."""
        from toolgate.config import Settings

        monkeypatch.delenv("TOOLGATE_SCHEMA_COMPILE_POLICY", raising=False)
        settings = Settings(_env_file=None)

        assert settings.schema_validation_enabled is True
        assert settings.schema_compile_policy == "fail_open"
        assert settings.sandbox_root == "./workspace"

    def test_env_override(self, monkeypatch):
        """Test environment variables override defaults."""
        from toolgate.config import Settings

        monkeypatch.setenv("TOOLGATE_SCHEMA_COMPILE_POLICY", "fail_closed")
        monkeypatch.setenv("TOOLGATE_SCHEMA_VALIDATION_ENABLED", "false")

        settings = Settings(_env_file=None)
        assert settings.schema_compile_policy == "fail_closed"
        assert settings.schema_validation_enabled is False

    def test_root_keys(self):
        """Test the root model holds only registry and sandbox keys."""
        from toolgate.config import Settings

        assert set(Settings.model_fields) == {
            "schema_validation_enabled",
            "schema_compile_policy",
            "sandbox_root",
            "browser",
            "camera",
            "canvas",
            "email",
            "github",
            "smart_home",
            "web_fetch",
            "shell",
        }

    def test_invalid_policy_rejected(self, monkeypatch):
        """Test unknown compile policy is a validation error."""
        from pydantic import ValidationError
        from toolgate.config import Settings

        monkeypatch.setenv("TOOLGATE_SCHEMA_COMPILE_POLICY", "maybe")
        with pytest.raises(ValidationError):
            Settings(_env_file=None)

    def test_get_settings_cached(self):
        """Test settings accessor returns one instance."""
        from toolgate.config import get_settings

        assert get_settings() is get_settings()


class TestToolSettings:
    """Per-tool settings tests."""

    def test_tool_defaults(self):
        """Test per-tool limits."""
        from toolgate.config import Settings

        settings = Settings(_env_file=None)

        assert settings.github.max_requests_per_minute == 30
        assert settings.github.cache_ttl_seconds == 300.0
        assert settings.smart_home.max_calls_per_minute == 60
        assert settings.web_fetch.max_redirects == 5
        assert settings.web_fetch.max_body_bytes == 1024 * 1024
        assert settings.canvas.max_content_bytes == 512 * 1024
        assert "ls" in settings.shell.allowed_commands
        assert "rm" not in settings.shell.allowed_commands
        assert settings.email.max_sends_per_hour == 20
        assert settings.email.allowed_domains == []
        assert settings.camera.max_clip_seconds == 60.0
        assert settings.camera.max_payload_bytes == 5 * 1024 * 1024

    def test_nested_env_prefix(self, monkeypatch):
        """Test each tool reads its own prefix."""
        from toolgate.config import GitHubSettings, ShellSettings

        monkeypatch.setenv("TOOLGATE_GITHUB_MAX_REQUESTS_PER_MINUTE", "5")
        monkeypatch.setenv("TOOLGATE_SHELL_ALLOWED_COMMANDS", '["ls", "git"]')

        assert GitHubSettings().max_requests_per_minute == 5
        assert ShellSettings().allowed_commands == ["ls", "git"]
