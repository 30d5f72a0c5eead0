"""
Shell backend interface, subprocess implementation and mock.

Commands run without a shell (argv only), so arguments are never
re-interpreted.
"""

from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path


@dataclass(frozen=True)
class CommandResult:
    stdout: str = ""
    stderr: str = ""
    exit_code: int = 0


class ShellBackend(ABC):
    @abstractmethod
    async def run(self, command: str, args: list[str], workdir: Path) -> CommandResult: ...


class SubprocessShellBackend(ShellBackend):
    """Runs commands as child processes. A cancelled call kills its process."""

    async def run(self, command: str, args: list[str], workdir: Path) -> CommandResult:
        proc = await asyncio.create_subprocess_exec(
            command,
            *args,
            cwd=str(workdir),
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
        try:
            stdout, stderr = await proc.communicate()
        except asyncio.CancelledError:
            proc.kill()
            await proc.wait()
            raise
        return CommandResult(
            stdout=stdout.decode("utf-8", errors="replace"),
            stderr=stderr.decode("utf-8", errors="replace"),
            exit_code=proc.returncode if proc.returncode is not None else -1,
        )


class MockShellBackend(ShellBackend):
    """Canned results keyed by command name. Unknown commands echo their argv."""

    def __init__(self, results: dict[str, CommandResult] | None = None):
        self.results = dict(results or {})
        self.calls: list[tuple[str, tuple[str, ...], Path]] = []

    async def run(self, command: str, args: list[str], workdir: Path) -> CommandResult:
        self.calls.append((command, tuple(args), workdir))
        if command in self.results:
            return self.results[command]
        return CommandResult(stdout=" ".join([command, *args]) + "\n")


__all__ = ["CommandResult", "MockShellBackend", "ShellBackend", "SubprocessShellBackend"]
