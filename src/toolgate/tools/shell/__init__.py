"""
shell - Run allowlisted commands inside the workspace

Responsibilities:
- Allow only commands whose base name is on the allowlist
- Run the bare base name, so a path prefix cannot pick another binary
- Confine the working directory to the sandbox
- Bound every command with the configured sub-timeout
- NO OS-level isolation: the allowlist and sandbox are the only guards
"""

from __future__ import annotations

import logging
import posixpath

from pydantic import BaseModel, Field

from toolgate.core.field_validation import require_field
from toolgate.core.request_scope import RequestScope
from toolgate.core.tool_executor import HandlerOutput, PlainText, execute
from toolgate.exceptions import (
    ERR_COMMAND_NOT_ALLOWED,
    ERR_TOOL_FAILURE,
    DomainError,
    ToolgateException,
)
from toolgate.observability.tracing import Span
from toolgate.schemas import ToolResult, ToolSchema
from toolgate.security.sandbox import Sandbox
from toolgate.tools.base import BaseTool, call_backend, load_parameters
from toolgate.tools.shell.backend import MockShellBackend, ShellBackend

logger = logging.getLogger(__name__)

_SUBSYSTEM = "shell"


class CommandFailedError(ToolgateException):
    """A command ran but exited non-zero."""

    def __init__(self, exit_code: int, output: str):
        self.err = ERR_TOOL_FAILURE
        self.exit_code = exit_code
        super().__init__(
            code="COMMAND_FAILED",
            message=f"command failed: exit status {exit_code}\n{output}",
            details={"exit_code": exit_code},
        )


class ShellParams(BaseModel):
    command: str
    args: list[str] = Field(default_factory=list)
    workdir: str = ""


class ShellTool(BaseTool):
    """Allowlisted command execution."""

    def __init__(
        self,
        sandbox: Sandbox,
        allowed_commands: list[str] | tuple[str, ...],
        backend: ShellBackend | None = None,
        timeout: float = 60.0,
    ):
        self._sandbox = sandbox
        self._allowed = frozenset(allowed_commands)
        self._backend = backend or MockShellBackend()
        self._timeout = timeout
        self._schema = ToolSchema(
            name="shell",
            description="Execute allowed shell commands within the workspace",
            parameters=load_parameters(__file__),
        )

    @property
    def schema(self) -> ToolSchema:
        return self._schema

    @property
    def allowed_commands(self) -> list[str]:
        return sorted(self._allowed)

    async def execute(self, params: bytes | str, scope: RequestScope | None = None) -> ToolResult:
        return await execute(scope or RequestScope(), "tool.shell", params, ShellParams, self._run, logger)

    def _validate_command(self, command: str) -> str:
        base = posixpath.basename(command.strip())
        if base not in self._allowed:
            raise DomainError(
                "shell.validate_command",
                ERR_COMMAND_NOT_ALLOWED,
                f"command {command!r} (base: {base!r}) not in allowlist",
            )
        return base

    async def _run(self, scope: RequestScope, span: Span, p: ShellParams) -> HandlerOutput:
        require_field("command", p.command.strip())
        command = self._validate_command(p.command)
        span.set_attribute("shell.command", command)
        workdir = self._sandbox.resolve(p.workdir)

        result = await call_backend(
            scope,
            self._backend.run(command, list(p.args), workdir),
            op="command",
            timeout=self._timeout,
            subsystem=_SUBSYSTEM,
        )

        output = result.stdout
        if result.stderr:
            output += "\nSTDERR:\n" + result.stderr
        if result.exit_code != 0:
            logger.debug("shell command %s exited %d", command, result.exit_code)
            raise CommandFailedError(result.exit_code, output)

        logger.debug("shell command %s completed", command)
        return PlainText(output)


__all__ = ["CommandFailedError", "ShellParams", "ShellTool"]
