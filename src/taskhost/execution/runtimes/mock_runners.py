"""Mock command runners — test doubles for the command runner boundary.

Lets the capability probe, indexer, hook dispatcher and lifecycle
manager be exercised without docker or criu installed.

Architecture::

    CommandRunner (Protocol)
    ├── SubprocessCommandRunner  (runner.py — real processes)
    └── ScriptedCommandRunner    (this module — scripted replies + call log)

Example::

    from taskhost.execution.runtimes.mock_runners import Reply, ScriptedCommandRunner

    runner = ScriptedCommandRunner()
    runner.script(["criu", "--version"], Reply(exit_code=1))
    runner.script(
        ["docker", "logs"],
        Reply(stdout="http server listening on port 4000\\n"),
    )
    # wget fails twice, then succeeds (last reply repeats)
    runner.script(["docker", "exec"], Reply(exit_code=1), Reply(exit_code=1), Reply())

    result = await runner.run(["docker", "logs", "task-run-run_9"])
    assert runner.count(["docker", "logs"]) == 1
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field

from taskhost.execution.runtimes.runner import CommandResult


@dataclass(frozen=True)
class Reply:
    """One scripted response.

    Attributes:
        exit_code: Exit status to report.
        stdout: Standard output to report.
        stderr: Standard error to report.
        raises: Exception to raise instead of returning a result
            (e.g. ``LaunchInfraError`` for a missing binary).
        delay: Seconds to await before replying (for concurrency tests).
    """

    exit_code: int = 0
    stdout: str = ""
    stderr: str = ""
    raises: Exception | None = None
    delay: float = 0.0


@dataclass
class _Rule:
    prefix: tuple[str, ...]
    replies: list[Reply]
    served: int = 0

    def next_reply(self) -> Reply:
        index = min(self.served, len(self.replies) - 1)
        self.served += 1
        return self.replies[index]


@dataclass
class ScriptedCommandRunner:
    """Runner that replays scripted replies and records every call.

    Rules are matched by argv prefix; the most recently scripted matching
    rule wins.  Each rule serves its replies in order and then keeps
    repeating the last one.  Unmatched commands get ``default``.
    """

    default: Reply = field(default_factory=Reply)
    calls: list[tuple[str, ...]] = field(default_factory=list)
    _rules: list[_Rule] = field(default_factory=list, repr=False)

    def script(self, prefix: list[str], *replies: Reply) -> ScriptedCommandRunner:
        """Register replies for commands starting with ``prefix``."""
        if not replies:
            raise ValueError("script() needs at least one reply")
        self._rules.append(_Rule(prefix=tuple(prefix), replies=list(replies)))
        return self

    async def run(self, argv: list[str]) -> CommandResult:
        call = tuple(argv)
        self.calls.append(call)
        reply = self._match(call)

        if reply.delay:
            await asyncio.sleep(reply.delay)
        if reply.raises is not None:
            raise reply.raises

        return CommandResult(
            argv=call,
            exit_code=reply.exit_code,
            stdout=reply.stdout,
            stderr=reply.stderr,
        )

    def _match(self, call: tuple[str, ...]) -> Reply:
        for rule in reversed(self._rules):
            if call[: len(rule.prefix)] == rule.prefix:
                return rule.next_reply()
        return self.default

    # ------------------------------------------------------------------
    # Inspection helpers
    # ------------------------------------------------------------------

    def matching(self, prefix: list[str]) -> list[tuple[str, ...]]:
        """Recorded calls starting with ``prefix``, in call order."""
        wanted = tuple(prefix)
        return [c for c in self.calls if c[: len(wanted)] == wanted]

    def count(self, prefix: list[str]) -> int:
        return len(self.matching(prefix))

    def index_of(self, prefix: list[str]) -> int:
        """Position of the first call starting with ``prefix`` (-1 if none)."""
        wanted = tuple(prefix)
        for i, c in enumerate(self.calls):
            if c[: len(wanted)] == wanted:
                return i
        return -1
