"""Docker task operations — the task lifecycle manager.

Implements the five operations the coordinator invokes on this machine
(``index``, ``create``, ``restore``, ``delete``, ``get``) against named
docker containers.  Every operation first makes sure the capability probe
has run.

Architecture:

    .. code-block:: text

        DockerTaskOperations
        ├── index(req)   → TaskIndexer (docker run --rm, waits for exit)
        ├── create(req)  → docker run --detach task-run-<runId>
        ├── restore(req)
        │     will_simulate ─► docker unpause task-run-<runId>
        │     otherwise    ─► docker start --checkpoint=<ref> task-run-<runId>
        │     then          ─► hooks.send_post_start (only after success)
        ├── delete(req)  → hooks.send_pre_stop, no removal (external reaper)
        └── get(req)     → placeholder TaskStatus

    .. mermaid::

        stateDiagram-v2
            [*] --> UNINDEXED
            UNINDEXED --> INDEXED: index
            INDEXED --> RUNNING: create
            RUNNING --> SUSPENDED: external checkpoint/pause
            SUSPENDED --> RUNNING: restore
            RUNNING --> SIGNALED: delete
            SIGNALED --> REMOVED: external reap

Failure policy:
    - index/create: non-zero exit is logged with full diagnostics and
      swallowed; only launch failures propagate.
    - restore: non-zero runtime exit raises ``RuntimeCommandError``; hook
      failure raises ``LifecycleHookError`` even though the container is
      already running again.
    - delete: preStop failure raises ``LifecycleHookError``.

Example:
    >>> ops = DockerTaskOperations(settings=ProviderSettings())
    >>> await ops.create(CreateRequest(image="myimg:1", env_id="env_1", run_id="run_9"))
    >>> await ops.restore(RestoreRequest(run_id="run_9", checkpoint_ref="cp_1"))

Tags:
    taskhost, execution, runtimes, docker, checkpoint, lifecycle

Doc-Types:
    api-reference
"""

from __future__ import annotations

from taskhost.core.config import ProviderSettings, get_settings
from taskhost.core.errors import RuntimeCommandError
from taskhost.execution.runtimes._types import (
    CapabilityReport,
    CreateRequest,
    DeleteRequest,
    GetRequest,
    IndexRequest,
    RestoreCause,
    RestoreRequest,
    TaskStatus,
    TerminateCause,
)
from taskhost.execution.runtimes.capability import CapabilityProbe
from taskhost.execution.runtimes.hooks import LifecycleHookDispatcher
from taskhost.execution.runtimes.indexer import TaskIndexer
from taskhost.execution.runtimes.runner import CommandRunner, SubprocessCommandRunner
from taskhost.framework.logging import get_logger

logger = get_logger(__name__)


class DockerTaskOperations:
    """Task lifecycle operations backed by the ``docker`` CLI.

    All collaborators are injectable; anything omitted is built from
    ``settings``.  The capability probe is owned by the instance, so two
    managers never share hidden state.

    Args:
        settings: Agent configuration (default: ``get_settings()``).
        runner: Command runner (default: ``SubprocessCommandRunner``).
        probe: Capability probe (default: built from settings).
        hooks: Lifecycle hook dispatcher (default: built from settings).
        indexer: Task indexer (default: built from settings).
    """

    runtime_name = "docker"

    def __init__(
        self,
        settings: ProviderSettings | None = None,
        *,
        runner: CommandRunner | None = None,
        probe: CapabilityProbe | None = None,
        hooks: LifecycleHookDispatcher | None = None,
        indexer: TaskIndexer | None = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._runner = runner or SubprocessCommandRunner(
            timeout_seconds=self._settings.command_timeout_seconds,
        )
        self._docker = self._settings.docker_binary
        self._probe = probe or CapabilityProbe(
            self._runner,
            force_simulate=self._settings.force_checkpoint_simulation,
            docker_binary=self._settings.docker_binary,
            criu_binary=self._settings.criu_binary,
        )
        self._hooks = hooks or LifecycleHookDispatcher(
            self._runner, docker_binary=self._settings.docker_binary,
        )
        self._indexer = indexer or TaskIndexer(self._runner, self._settings)

    @property
    def settings(self) -> ProviderSettings:
        return self._settings

    async def capabilities(self) -> CapabilityReport:
        """Capability report, probing on first use."""
        return await self._probe.initialize()

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    async def index(self, request: IndexRequest) -> None:
        """Enumerate a task version's metadata in an ephemeral container."""
        await self._probe.initialize()
        await self._indexer.index(request)

    async def create(self, request: CreateRequest) -> None:
        """Launch the detached run container for ``request.run_id``."""
        await self._probe.initialize()

        s = self._settings
        name = request.container_name
        result = await self._runner.run([
            self._docker,
            "run",
            "--network=host",
            "--detach",
            f"--env=TRIGGER_ENV_ID={request.env_id}",
            f"--env=TRIGGER_RUN_ID={request.run_id}",
            f"--env=OTEL_EXPORTER_OTLP_ENDPOINT={s.otel_exporter_otlp_endpoint}",
            f"--env=POD_NAME={name}",
            f"--env=COORDINATOR_HOST={s.coordinator_host}",
            f"--env=COORDINATOR_PORT={s.coordinator_port}",
            f"--name={name}",
            request.image,
        ])

        if result.ok:
            logger.debug("create.completed", container=name, stdout=result.stdout)
        else:
            logger.error("Create failed:", opts=request.model_dump(), **result.to_dict())

    async def restore(self, request: RestoreRequest) -> None:
        """Resume a suspended run, then send it postStart(cause=restore).

        Raises:
            RuntimeCommandError: If unpause / checkpoint start exits non-zero.
            LifecycleHookError: If postStart cannot be delivered.
        """
        report = await self._probe.initialize()
        name = request.container_name

        if report.will_simulate:
            logger.info("Simulating restore", container=name)
            result = await self._runner.run([self._docker, "unpause", name])
            logger.debug("restore.unpause", **result.to_dict())
            if not result.ok:
                raise RuntimeCommandError(
                    "docker unpause command failed", result=result,
                ).with_context(operation="restore", run_id=request.run_id, container_name=name)
        else:
            result = await self._runner.run([
                self._docker,
                "start",
                f"--checkpoint={request.checkpoint_ref}",
                name,
            ])
            logger.debug("restore.start", **result.to_dict())
            if not result.ok:
                raise RuntimeCommandError(
                    "docker start command failed", result=result,
                ).with_context(operation="restore", run_id=request.run_id, container_name=name)

        await self._hooks.send_post_start(name, RestoreCause.RESTORE)

    async def delete(self, request: DeleteRequest) -> None:
        """Send preStop(cause=terminate); the container itself is left in place.

        Raises:
            LifecycleHookError: If preStop cannot be delivered.
        """
        await self._probe.initialize()
        await self._hooks.send_pre_stop(request.container_name, TerminateCause.TERMINATE)
        logger.info("noop: delete", container=request.container_name)

    async def get(self, request: GetRequest) -> TaskStatus:
        """Placeholder status; the runtime is not inspected."""
        await self._probe.initialize()
        logger.info("noop: get", container=request.container_name)
        return TaskStatus(run_id=request.run_id, container_name=request.container_name)
