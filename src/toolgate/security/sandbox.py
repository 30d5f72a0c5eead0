"""
Filesystem sandbox.

Resolves caller-supplied paths against a fixed root and rejects any result
that escapes it, whether through ``..``, an absolute path or a symlink.
Backends call ``validate_path`` again right before the actual I/O.
"""

from __future__ import annotations

import os
from pathlib import Path

from toolgate.exceptions import ERR_PATH_OUTSIDE_SANDBOX, DomainError

_OP = "sandbox.validate_path"


class Sandbox:
    """Path constraints rooted at an existing directory."""

    def __init__(self, root: str | os.PathLike[str], create: bool = False):
        path = Path(root).expanduser()
        if create:
            path.mkdir(parents=True, exist_ok=True)
        resolved = path.resolve(strict=True)
        if not resolved.is_dir():
            raise NotADirectoryError(f"sandbox root {str(root)!r} is not a directory")
        self._root = resolved

    @property
    def root(self) -> Path:
        return self._root

    def validate_path(self, requested: str | os.PathLike[str]) -> Path:
        """
        Resolve ``requested`` (absolute, or relative to the root) inside the sandbox.

        Symlinks are followed; components that do not exist yet are allowed.

        Returns:
            The resolved absolute path

        Raises:
            DomainError: wrapping ERR_PATH_OUTSIDE_SANDBOX
        """
        shown = os.fspath(requested)
        try:
            candidate = Path(requested)
            if not candidate.is_absolute():
                candidate = self._root / candidate
            resolved = candidate.resolve(strict=False)
        except (OSError, ValueError, RuntimeError) as exc:
            raise DomainError(_OP, ERR_PATH_OUTSIDE_SANDBOX, f"invalid path {shown!r}") from exc

        if resolved != self._root and not resolved.is_relative_to(self._root):
            raise DomainError(_OP, ERR_PATH_OUTSIDE_SANDBOX, f"path {shown!r} escapes the sandbox")
        return resolved

    def resolve(self, requested: str | None) -> Path:
        """Like ``validate_path``, with an empty path or ``"."`` meaning the root."""
        if not requested or requested == ".":
            return self._root
        return self.validate_path(requested)

    def relative(self, path: Path) -> str:
        """Display form of a resolved path, relative to the root."""
        rel = path.relative_to(self._root)
        return "." if rel == Path(".") else rel.as_posix()

    def __repr__(self) -> str:
        return f"Sandbox({str(self._root)!r})"


__all__ = ["Sandbox"]
