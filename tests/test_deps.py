"""Tests for registry wiring."""

import json

import pytest

from toolgate.config import CameraSettings, Settings
from toolgate.core.schema_validator import SchemaValidatingTool
from toolgate.deps import build_registry
from toolgate.tools.browser.backend import MockBrowserBackend
from toolgate.tools.camera.backend import NodeCameraBackend
from toolgate.tools.camera.nodes import MockNodeManager, Node
from toolgate.tools.canvas.backend import InMemoryCanvasBackend
from toolgate.tools.delegate.backend import MockDelegationBroker
from toolgate.tools.email.backend import MockEmailBackend
from toolgate.tools.filesystem.backend import MemoryFilesystemBackend
from toolgate.tools.github.backend import MockGitHubBackend
from toolgate.tools.shell.backend import MockShellBackend
from toolgate.tools.smart_home.backend import MockSmartHomeBackend

TOOL_NAMES = [
    "browser",
    "camera",
    "canvas",
    "delegate",
    "email",
    "filesystem",
    "github",
    "shell",
    "smart_home",
    "web_fetch",
]

UNDECODABLE = [
    b"{not json",
    b"\xff\xfe",
    b'{"action": "list", "x": ' + b"[" * 100_000 + b"]" * 100_000 + b"}",
]


class Recorder:
    """Wraps a backend and logs the name of every method called on it."""

    def __init__(self, inner):
        self._inner = inner
        self.calls = []

    def __getattr__(self, name):
        attr = getattr(self._inner, name)
        if not callable(attr):
            return attr

        def record(*args, **kwargs):
            self.calls.append(name)
            return attr(*args, **kwargs)

        return record


@pytest.fixture
def settings(tmp_path):
    return Settings(_env_file=None, sandbox_root=str(tmp_path / "ws"))


@pytest.fixture
def backends():
    return {
        "browser": Recorder(MockBrowserBackend()),
        "camera": Recorder(NodeCameraBackend(MockNodeManager([Node("phone")]))),
        "canvas": Recorder(InMemoryCanvasBackend()),
        "broker": Recorder(MockDelegationBroker()),
        "email": Recorder(MockEmailBackend()),
        "filesystem": Recorder(MemoryFilesystemBackend()),
        "github": Recorder(MockGitHubBackend()),
        "shell": Recorder(MockShellBackend()),
        "smart_home": Recorder(MockSmartHomeBackend()),
    }


def test_registers_every_tool(settings, tmp_path):
    registry = build_registry(settings)

    assert registry.names() == TOOL_NAMES
    assert all(isinstance(tool, SchemaValidatingTool) for tool in registry.list_tools())
    assert (tmp_path / "ws").is_dir()


def test_validation_can_be_disabled(tmp_path):
    settings = Settings(_env_file=None, sandbox_root=str(tmp_path / "ws"), schema_validation_enabled=False)
    registry = build_registry(settings)
    assert not any(isinstance(tool, SchemaValidatingTool) for tool in registry.list_tools())


def test_openai_descriptors(settings):
    descriptors = build_registry(settings).openai_tools()
    assert [d["function"]["name"] for d in descriptors] == TOOL_NAMES


@pytest.mark.asyncio
async def test_schema_rejects_before_tool_runs(settings):
    registry = build_registry(settings)
    result = await registry.invoke("filesystem", json.dumps({"action": "delete", "path": "x"}))

    assert result.is_error is True
    assert result.content.startswith("schema validation failed")


@pytest.mark.asyncio
async def test_filesystem_uses_sandbox_root(settings, tmp_path):
    registry = build_registry(settings)

    written = await registry.invoke(
        "filesystem", json.dumps({"action": "write", "path": "notes.txt", "content": "hi"})
    )

    assert written.is_error is False
    assert (tmp_path / "ws" / "notes.txt").read_text(encoding="utf-8") == "hi"


@pytest.mark.asyncio
async def test_backends_can_be_injected(settings):
    shell = MockShellBackend()
    registry = build_registry(settings, shell=shell)

    result = await registry.invoke("shell", json.dumps({"command": "echo", "args": ["ok"]}))

    assert result.content == "echo ok\n"
    assert len(shell.calls) == 1


@pytest.mark.asyncio
async def test_camera_reaches_injected_nodes(tmp_path):
    settings = Settings(
        _env_file=None, sandbox_root=str(tmp_path / "ws"), camera=CameraSettings(allowed_nodes=["phone"])
    )
    nodes = MockNodeManager([Node("phone", {"camera_list": lambda params: []}), Node("tv")])
    registry = build_registry(settings, nodes=nodes)

    listed = await registry.invoke("camera", json.dumps({"action": "list_devices", "node_id": "phone"}))
    refused = await registry.invoke("camera", json.dumps({"action": "list_devices", "node_id": "tv"}))

    assert json.loads(listed.content)["count"] == 0
    assert refused.content == "list_devices: tv: node not in allowlist"
    assert [call[0] for call in nodes.calls] == ["phone"]


@pytest.mark.asyncio
async def test_unknown_tool(settings):
    result = await build_registry(settings).invoke("teleport", "{}")
    assert result.is_error is True
    assert "tool 'teleport'" in result.content


@pytest.mark.asyncio
@pytest.mark.parametrize("validate", [True, False])
@pytest.mark.parametrize("payload", UNDECODABLE, ids=["malformed", "not-utf8", "deeply-nested"])
async def test_undecodable_payload_never_reaches_a_backend(tmp_path, backends, payload, validate):
    settings = Settings(_env_file=None, sandbox_root=str(tmp_path / "ws"), schema_validation_enabled=validate)
    registry = build_registry(settings, **backends)
    before = {key: list(b.calls) for key, b in backends.items()}

    for name in registry.names():
        result = await registry.invoke(name, payload)
        assert result.is_error is True, name
        assert result.is_retryable is False, name

    assert registry.names() == TOOL_NAMES
    assert {key: b.calls for key, b in backends.items()} == before
