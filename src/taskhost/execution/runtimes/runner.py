"""Command runner boundary — invoke external commands and capture output.

Every interaction with the container runtime (``docker``) and the
checkpoint tool (``criu``) goes through a ``CommandRunner``.  The rest of
the agent only sees ``CommandResult`` values, so tests substitute a
scripted runner and never need a real container runtime.

Architecture:

    .. code-block:: text

        CommandRunner (Protocol)
              │   run(argv) -> CommandResult
              │
        ┌─────┴────────────────────────┐
        │                              │
        ▼                              ▼
    SubprocessCommandRunner      ScriptedCommandRunner
    (asyncio.subprocess)         (mock_runners.py, tests)

    Failure contract:
        - command ran, any exit code  → CommandResult (caller inspects .ok)
        - command could not be spawned → LaunchInfraError

Example:
    >>> runner = SubprocessCommandRunner()
    >>> result = await runner.run(["docker", "unpause", "task-run-run_9"])
    >>> result.ok, result.exit_code
    (True, 0)

Tags:
    taskhost, execution, runtimes, subprocess, command-runner

Doc-Types:
    api-reference
"""

from __future__ import annotations

import asyncio
import shlex
from dataclasses import dataclass, field
from typing import Any, Protocol, runtime_checkable

from taskhost.core.errors import LaunchInfraError
from taskhost.framework.logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class CommandResult:
    """Outcome of one external command.

    Attributes:
        argv: The command and its arguments as executed.
        exit_code: Process exit status (-1 if killed on timeout).
        stdout: Captured standard output (decoded, errors replaced).
        stderr: Captured standard error (decoded, errors replaced).
    """

    argv: tuple[str, ...]
    exit_code: int
    stdout: str = ""
    stderr: str = ""

    @property
    def ok(self) -> bool:
        return self.exit_code == 0

    @property
    def escaped_command(self) -> str:
        """Shell-quoted command line, suitable for copy/paste from logs."""
        return shlex.join(self.argv)

    def to_dict(self) -> dict[str, Any]:
        """Diagnostics for structured logs."""
        return {
            "exit_code": self.exit_code,
            "escaped_command": self.escaped_command,
            "stdout": self.stdout,
            "stderr": self.stderr,
        }


@runtime_checkable
class CommandRunner(Protocol):
    """Narrow capability: run a command, capture exit code and output."""

    async def run(self, argv: list[str]) -> CommandResult:
        """Run ``argv`` to completion.

        Raises:
            LaunchInfraError: If the command could not be started.
        """
        ...


@dataclass
class SubprocessCommandRunner:
    """Runs commands as local subprocesses via ``asyncio.create_subprocess_exec``.

    No shell is involved: arguments are passed verbatim, so values such as
    API keys never need quoting.

    Attributes:
        timeout_seconds: Optional bound on a single command. On expiry the
            process is killed and a result with exit code -1 is returned.
        env: Optional environment for the child (None = inherit).
    """

    timeout_seconds: float | None = None
    env: dict[str, str] | None = field(default=None, repr=False)

    async def run(self, argv: list[str]) -> CommandResult:
        if not argv:
            raise LaunchInfraError("Empty command", argv=argv)

        logger.debug("command.exec", command=shlex.join(argv))
        try:
            process = await asyncio.create_subprocess_exec(
                *argv,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                env=self.env,
            )
        except FileNotFoundError as exc:
            raise LaunchInfraError(
                f"Command not found: {argv[0]}", argv=argv, cause=exc,
            ) from exc
        except OSError as exc:
            raise LaunchInfraError(
                f"Failed to start {argv[0]}: {exc}", argv=argv, cause=exc,
            ) from exc

        try:
            stdout, stderr = await asyncio.wait_for(
                process.communicate(), timeout=self.timeout_seconds,
            )
        except TimeoutError:
            logger.warning(
                "command.timeout",
                command=shlex.join(argv),
                timeout_seconds=self.timeout_seconds,
            )
            try:
                process.kill()
            except ProcessLookupError:
                pass
            await process.wait()
            return CommandResult(
                argv=tuple(argv),
                exit_code=-1,
                stderr=f"Process killed: exceeded timeout of {self.timeout_seconds}s",
            )

        return CommandResult(
            argv=tuple(argv),
            exit_code=process.returncode if process.returncode is not None else -1,
            stdout=stdout.decode(errors="replace"),
            stderr=stderr.decode(errors="replace"),
        )
