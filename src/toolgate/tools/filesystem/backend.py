"""
Filesystem backend interface, local implementation and in-memory mock.

Paths handed to a backend are already resolved by the tool. The local
backend validates them against the sandbox AGAIN right before the I/O, so
a symlink swapped in between check and use cannot escape the root.
"""

from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path, PurePosixPath

from toolgate.exceptions import ERR_NOT_FOUND, ERR_PERMISSION_DENIED, ERR_TOOL_FAILURE, DomainError
from toolgate.security.sandbox import Sandbox


@dataclass(frozen=True)
class DirEntry:
    name: str
    is_dir: bool


class FilesystemBackend(ABC):
    """File operations on already-resolved paths."""

    @abstractmethod
    async def read_file(self, path: Path) -> bytes: ...

    @abstractmethod
    async def write_file(self, path: Path, data: bytes) -> None: ...

    @abstractmethod
    async def read_dir(self, path: Path) -> list[DirEntry]:
        """Entries sorted by name."""


class LocalFilesystemBackend(FilesystemBackend):
    """Real disk I/O, confined to ``sandbox``. Blocking calls run in a worker thread."""

    def __init__(self, sandbox: Sandbox):
        self._sandbox = sandbox

    def _os_error(self, op: str, path: Path, exc: OSError) -> DomainError:
        # Report the workspace-relative path only, never the absolute one.
        if isinstance(exc, FileNotFoundError):
            sentinel = ERR_NOT_FOUND
        elif isinstance(exc, PermissionError):
            sentinel = ERR_PERMISSION_DENIED
        else:
            sentinel = ERR_TOOL_FAILURE
        reason = exc.strerror or type(exc).__name__
        return DomainError(op, sentinel, f"{self._sandbox.relative(path)}: {reason}")

    def _read(self, path: Path) -> bytes:
        checked = self._sandbox.validate_path(path)
        try:
            return checked.read_bytes()
        except OSError as exc:
            raise self._os_error("read file", checked, exc) from None

    def _write(self, path: Path, data: bytes) -> None:
        checked = self._sandbox.validate_path(path)
        try:
            checked.write_bytes(data)
        except OSError as exc:
            raise self._os_error("write file", checked, exc) from None

    def _list(self, path: Path) -> list[DirEntry]:
        checked = self._sandbox.validate_path(path)
        try:
            children = list(checked.iterdir())
        except OSError as exc:
            raise self._os_error("list dir", checked, exc) from None
        return sorted(
            (DirEntry(name=child.name, is_dir=child.is_dir()) for child in children),
            key=lambda e: e.name,
        )

    async def read_file(self, path: Path) -> bytes:
        return await asyncio.to_thread(self._read, path)

    async def write_file(self, path: Path, data: bytes) -> None:
        await asyncio.to_thread(self._write, path, data)

    async def read_dir(self, path: Path) -> list[DirEntry]:
        return await asyncio.to_thread(self._list, path)


class MemoryFilesystemBackend(FilesystemBackend):
    """Deterministic in-memory tree keyed by absolute path. Directories are implied."""

    def __init__(self, files: dict[str, bytes] | None = None):
        self.files: dict[PurePosixPath, bytes] = {
            PurePosixPath(path): data for path, data in (files or {}).items()
        }

    async def read_file(self, path: Path) -> bytes:
        key = PurePosixPath(path.as_posix())
        if key not in self.files:
            raise DomainError("read file", ERR_NOT_FOUND, path.name)
        return self.files[key]

    async def write_file(self, path: Path, data: bytes) -> None:
        self.files[PurePosixPath(path.as_posix())] = data

    async def read_dir(self, path: Path) -> list[DirEntry]:
        base = PurePosixPath(path.as_posix())
        entries: dict[str, bool] = {}
        for key in self.files:
            if base not in key.parents:
                continue
            rel = key.relative_to(base)
            entries[rel.parts[0]] = entries.get(rel.parts[0], False) or len(rel.parts) > 1
        return [DirEntry(name=name, is_dir=is_dir) for name, is_dir in sorted(entries.items())]


__all__ = ["DirEntry", "FilesystemBackend", "LocalFilesystemBackend", "MemoryFilesystemBackend"]
