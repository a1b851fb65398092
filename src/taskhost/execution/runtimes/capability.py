"""Checkpoint capability probe — one-time, single-flight detection.

Decides whether ``restore`` can use real checkpoint/restore (CRIU +
docker experimental ``checkpoint``) or must simulate it with
pause/unpause.

Architecture:

    .. code-block:: text

        initialize()
          ├── initialized? ── yes ──► cached CapabilityReport
          └── no: acquire lock (single flight), re-check, then
                ├── criu --version      ✗ → can_checkpoint=False (log, stop)
                ├── docker checkpoint   ✗ → can_checkpoint=False (log, stop)
                └── both ✓              → can_checkpoint=True

        will_simulate = not can_checkpoint or force_simulate

Manifesto:
    Checkpoint support is an optimization, not a correctness
    requirement.  Detection is fail-closed: any doubt about the
    environment degrades to simulation instead of raising.

Tags:
    taskhost, execution, runtimes, checkpoint, criu, capability-probe

Doc-Types:
    api-reference
"""

from __future__ import annotations

import asyncio

from taskhost.execution.runtimes._types import CapabilityReport
from taskhost.execution.runtimes.runner import CommandRunner
from taskhost.framework.logging import get_logger

logger = get_logger(__name__)


class CapabilityProbe:
    """Memoized detection of checkpoint/restore support.

    Concurrent first callers share one probing sequence: the first caller
    probes while holding the lock, the others wait on it and then read
    the cached result.

    Example:
        >>> probe = CapabilityProbe(runner, force_simulate=False)
        >>> report = await probe.initialize()
        >>> report.will_simulate
        False
    """

    def __init__(
        self,
        runner: CommandRunner,
        *,
        force_simulate: bool = False,
        docker_binary: str = "docker",
        criu_binary: str = "criu",
    ) -> None:
        self._runner = runner
        self._force_simulate = force_simulate
        self._docker = docker_binary
        self._criu = criu_binary
        self._initialized = False
        self._can_checkpoint = False
        self._lock = asyncio.Lock()
        self.probe_count = 0

    @property
    def initialized(self) -> bool:
        return self._initialized

    @property
    def force_simulate(self) -> bool:
        return self._force_simulate

    def report(self) -> CapabilityReport:
        """Current report (``can_checkpoint`` is False until initialized)."""
        return CapabilityReport(
            can_checkpoint=self._can_checkpoint,
            will_simulate=not self._can_checkpoint or self._force_simulate,
        )

    async def initialize(self) -> CapabilityReport:
        """Probe once and return the (cached) capability report."""
        if self._initialized:
            return self.report()

        async with self._lock:
            if not self._initialized:
                self._can_checkpoint = await self._detect()
                self._initialized = True

        return self.report()

    def reset(self) -> None:
        """Forget the cached result so the next ``initialize()`` re-probes."""
        self._initialized = False
        self._can_checkpoint = False

    async def _detect(self) -> bool:
        self.probe_count += 1
        logger.info("Initializing task operations")

        if self._force_simulate:
            logger.info("Forced simulation enabled. Will simulate regardless of checkpoint support.")

        if not await self._succeeds([self._criu, "--version"]):
            logger.error("No checkpoint support: Missing CRIU binary. Will simulate instead.")
            return False

        if not await self._succeeds([self._docker, "checkpoint"]):
            logger.error(
                "No checkpoint support: Docker needs to have experimental features enabled. "
                "Will simulate instead."
            )
            return False

        logger.info("Full checkpoint support!")
        return True

    async def _succeeds(self, argv: list[str]) -> bool:
        try:
            result = await self._runner.run(argv)
        except Exception as exc:
            logger.debug("capability.command_unavailable", command=argv[0], error=str(exc))
            return False
        return result.ok
