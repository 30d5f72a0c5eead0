"""
Toolgate - Dependency wiring.

Builds the process-wide tool registry from settings. Backends without a
real implementation in this package default to their in-memory mocks;
callers supply real ones through keyword arguments.
"""

from __future__ import annotations

import logging
from functools import lru_cache

from toolgate.config import Settings, get_settings
from toolgate.core.tool_registry import ToolRegistry
from toolgate.security.sandbox import Sandbox
from toolgate.tools.browser import BrowserTool
from toolgate.tools.browser.backend import BrowserBackend
from toolgate.tools.camera import CameraTool
from toolgate.tools.camera.backend import CameraBackend, NodeCameraBackend
from toolgate.tools.camera.nodes import NodeInvoker
from toolgate.tools.canvas import CanvasTool
from toolgate.tools.canvas.backend import CanvasBackend
from toolgate.tools.delegate import DelegateTool
from toolgate.tools.delegate.backend import DelegationBroker
from toolgate.tools.email import EmailTool
from toolgate.tools.email.backend import EmailBackend
from toolgate.tools.filesystem import FilesystemTool
from toolgate.tools.filesystem.backend import FilesystemBackend, LocalFilesystemBackend
from toolgate.tools.github import GitHubTool
from toolgate.tools.github.backend import GitHubBackend
from toolgate.tools.shell import ShellTool
from toolgate.tools.shell.backend import ShellBackend, SubprocessShellBackend
from toolgate.tools.smart_home import SmartHomeTool
from toolgate.tools.smart_home.backend import SmartHomeBackend
from toolgate.tools.web_fetch import WebFetchTool

logger = logging.getLogger(__name__)


def build_registry(
    settings: Settings | None = None,
    *,
    browser: BrowserBackend | None = None,
    camera: CameraBackend | None = None,
    nodes: NodeInvoker | None = None,
    canvas: CanvasBackend | None = None,
    email: EmailBackend | None = None,
    filesystem: FilesystemBackend | None = None,
    github: GitHubBackend | None = None,
    shell: ShellBackend | None = None,
    smart_home: SmartHomeBackend | None = None,
    broker: DelegationBroker | None = None,
) -> ToolRegistry:
    """Construct and register every tool according to ``settings``.

    ``nodes`` feeds the default node-backed camera and is ignored when
    ``camera`` is given.
    """
    settings = settings or get_settings()
    sandbox = Sandbox(settings.sandbox_root, create=True)

    registry = ToolRegistry(
        validate_schemas=settings.schema_validation_enabled,
        compile_policy=settings.schema_compile_policy,
    )

    tools = [
        BrowserTool(backend=browser, timeout=settings.browser.timeout_seconds),
        CameraTool(
            backend=camera or NodeCameraBackend(nodes, max_payload_bytes=settings.camera.max_payload_bytes),
            timeout=settings.camera.timeout_seconds,
            max_clip_seconds=settings.camera.max_clip_seconds,
            allowed_nodes=settings.camera.allowed_nodes,
        ),
        CanvasTool(backend=canvas, max_content_bytes=settings.canvas.max_content_bytes),
        DelegateTool(broker=broker),
        EmailTool(
            backend=email,
            timeout=settings.email.timeout_seconds,
            max_sends_per_hour=settings.email.max_sends_per_hour,
            allowed_domains=settings.email.allowed_domains,
        ),
        FilesystemTool(sandbox, backend=filesystem or LocalFilesystemBackend(sandbox)),
        GitHubTool(
            backend=github,
            timeout=settings.github.timeout_seconds,
            max_requests_per_minute=settings.github.max_requests_per_minute,
            cache_ttl=settings.github.cache_ttl_seconds,
        ),
        ShellTool(
            sandbox,
            settings.shell.allowed_commands,
            backend=shell or SubprocessShellBackend(),
            timeout=settings.shell.timeout_seconds,
        ),
        SmartHomeTool(
            backend=smart_home,
            timeout=settings.smart_home.timeout_seconds,
            max_calls_per_minute=settings.smart_home.max_calls_per_minute,
            cache_ttl=settings.smart_home.cache_ttl_seconds,
        ),
        WebFetchTool(
            timeout=settings.web_fetch.timeout_seconds,
            max_body_bytes=settings.web_fetch.max_body_bytes,
            max_redirects=settings.web_fetch.max_redirects,
        ),
    ]
    for tool in tools:
        registry.register(tool)

    logger.info("Registered %d tools: %s", len(registry), ", ".join(registry.names()))
    return registry


@lru_cache
def get_tool_registry() -> ToolRegistry:
    """Get the cached process-wide registry."""
    return build_registry()


__all__ = ["build_registry", "get_tool_registry"]
