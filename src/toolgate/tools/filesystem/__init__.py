"""
filesystem - Read, write and list files inside the workspace sandbox

Responsibilities:
- Resolve every path against the sandbox root before the backend sees it
- NO access outside the root (``..``, absolute paths, symlinks)

An empty path or ``"."`` means the workspace root.
"""

from __future__ import annotations

import logging
from enum import Enum

from pydantic import BaseModel

from toolgate.core.action_dispatch import ActionMap, dispatch
from toolgate.core.request_scope import RequestScope
from toolgate.core.tool_executor import HandlerOutput, PlainText, execute
from toolgate.schemas import ToolResult, ToolSchema
from toolgate.security.sandbox import Sandbox
from toolgate.tools.base import BaseTool, call_backend, load_parameters
from toolgate.tools.filesystem.backend import FilesystemBackend, MemoryFilesystemBackend

logger = logging.getLogger(__name__)


class FilesystemAction(str, Enum):
    READ = "read"
    WRITE = "write"
    LIST = "list"


class FilesystemParams(BaseModel):
    action: str
    path: str = ""
    content: str = ""


class FilesystemTool(BaseTool):
    """File access confined to one sandbox root."""

    def __init__(
        self,
        sandbox: Sandbox,
        backend: FilesystemBackend | None = None,
        timeout: float | None = None,
    ):
        self._sandbox = sandbox
        self._backend = backend or MemoryFilesystemBackend()
        self._timeout = timeout
        self._schema = ToolSchema(
            name="filesystem",
            description="Read, write, and list files within the workspace",
            parameters=load_parameters(__file__),
        )
        self._handler = dispatch(
            lambda p: p.action,
            ActionMap.for_enum(
                FilesystemAction,
                {
                    FilesystemAction.READ: self._read,
                    FilesystemAction.WRITE: self._write,
                    FilesystemAction.LIST: self._list,
                },
            ),
        )

    @property
    def schema(self) -> ToolSchema:
        return self._schema

    async def execute(self, params: bytes | str, scope: RequestScope | None = None) -> ToolResult:
        return await execute(scope or RequestScope(), "tool.filesystem", params, FilesystemParams, self._handler, logger)

    async def _read(self, scope: RequestScope, p: FilesystemParams) -> HandlerOutput:
        resolved = self._sandbox.resolve(p.path)
        data = await call_backend(scope, self._backend.read_file(resolved), "read file", self._timeout)
        logger.debug("filesystem read %s (%d bytes)", p.path, len(data))
        return PlainText(data.decode("utf-8", errors="replace"))

    async def _write(self, scope: RequestScope, p: FilesystemParams) -> HandlerOutput:
        resolved = self._sandbox.resolve(p.path)
        data = p.content.encode("utf-8")
        await call_backend(scope, self._backend.write_file(resolved, data), "write file", self._timeout)
        logger.info("filesystem wrote %d bytes to %s", len(data), p.path)
        return PlainText(f"wrote {len(data)} bytes to {p.path}")

    async def _list(self, scope: RequestScope, p: FilesystemParams) -> HandlerOutput:
        resolved = self._sandbox.resolve(p.path)
        entries = await call_backend(scope, self._backend.read_dir(resolved), "list dir", self._timeout)
        return PlainText("".join(f"{e.name}/\n" if e.is_dir else f"{e.name}\n" for e in entries))


__all__ = ["FilesystemAction", "FilesystemParams", "FilesystemTool"]
