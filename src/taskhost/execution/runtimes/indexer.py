"""Task indexer — run a task image once to enumerate its task metadata.

The image is started in "index mode" (``INDEX_TASKS=true``); the process
inside reports its tasks to the platform API using the injected key and
URL, then exits.  The container is removed on exit (``--rm``).

Failure policy:

    .. code-block:: text

        docker could not be spawned   → LaunchInfraError propagates
        container exited non-zero     → "Index failed" logged with exit code,
                                        escaped command, stdout, stderr; returns

    One bad image must not stop the agent from serving other operations,
    so workload failures are diagnostics, not errors.

Tags:
    taskhost, execution, runtimes, indexing, docker

Doc-Types:
    api-reference
"""

from __future__ import annotations

import dataclasses

from taskhost.core.config import ProviderSettings
from taskhost.execution.runtimes._types import IndexRequest
from taskhost.execution.runtimes.runner import CommandResult, CommandRunner
from taskhost.framework.logging import get_logger

logger = get_logger(__name__)

SECRET_KEY_ARG = "--env=TRIGGER_SECRET_KEY="


class TaskIndexer:
    """Launches the ephemeral indexing container for a task version."""

    def __init__(self, runner: CommandRunner, settings: ProviderSettings) -> None:
        self._runner = runner
        self._settings = settings

    def build_command(self, request: IndexRequest) -> list[str]:
        """``docker run`` argv for indexing ``request.image_ref``."""
        s = self._settings
        name = request.container_name
        return [
            s.docker_binary,
            "run",
            "--network=host",
            "--rm",
            "--env=INDEX_TASKS=true",
            f"{SECRET_KEY_ARG}{request.api_key}",
            f"--env=TRIGGER_API_URL={request.api_url}",
            f"--env=TRIGGER_ENV_ID={request.env_id}",
            f"--env=OTEL_EXPORTER_OTLP_ENDPOINT={s.otel_exporter_otlp_endpoint}",
            f"--env=POD_NAME={name}",
            f"--env=MACHINE_NAME={s.machine_name}",
            f"--env=COORDINATOR_HOST={s.coordinator_host}",
            f"--env=COORDINATOR_PORT={s.coordinator_port}",
            f"--name={name}",
            request.image_ref,
        ]

    async def index(self, request: IndexRequest) -> CommandResult:
        """Run the indexing container and wait for it to exit.

        Returns the command result so callers can inspect it; a non-zero
        exit is logged, never raised.

        Raises:
            LaunchInfraError: If the container runtime cannot be invoked.
        """
        logger.info(
            f"Indexing task {request.image_ref}",
            container=request.container_name,
            host=self._settings.coordinator_host,
            port=self._settings.coordinator_port,
        )

        result = await self._runner.run(self.build_command(request))

        if result.ok:
            logger.debug("index.completed", stdout=result.stdout, stderr=result.stderr)
        else:
            logger.error("Index failed:", opts=request.redacted(), **redact_secret_key(result).to_dict())

        return result


def redact_secret_key(result: CommandResult) -> CommandResult:
    """Copy of ``result`` with the API key argument masked.

    Masks the argv element itself, before shell quoting, so keys containing
    quotes or spaces are hidden too.
    """
    argv = tuple(
        f"{SECRET_KEY_ARG}***" if arg.startswith(SECRET_KEY_ARG) else arg
        for arg in result.argv
    )
    return dataclasses.replace(result, argv=argv)
