"""Provider shell — hosts task operations for the coordinator transport.

The transport (out of scope here) hands the shell an operation name and a
payload; the shell validates the payload into the operation's request
model and runs the operation on its own asyncio task, so a slow restore
or a long postStart backoff never stalls unrelated operations.

Architecture:

    .. code-block:: text

        transport ──► ProviderShell.handle("restore", {"runId": ..., ...})
                        ├── RestoreRequest.model_validate(payload)
                        ├── asyncio.create_task(tasks.restore(request))
                        │     log context: machine, operation, run_id
                        └── await task → result / error returned verbatim

Example:
    >>> shell = ProviderShell(DockerTaskOperations(settings))
    >>> await shell.start()
    >>> await shell.handle("delete", {"runId": "run_9"})

Tags:
    taskhost, execution, runtimes, provider, concurrency, dispatch

Doc-Types:
    api-reference
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable, Mapping
from typing import Any, Protocol

from pydantic import BaseModel

from taskhost.core.errors import UnknownOperationError
from taskhost.execution.runtimes._types import (
    CapabilityReport,
    CreateRequest,
    DeleteRequest,
    GetRequest,
    IndexRequest,
    RestoreRequest,
    TaskStatus,
)
from taskhost.framework.logging import bind_context, get_logger

logger = get_logger(__name__)


class TaskOperations(Protocol):
    """Operations a provider exposes to the coordinator."""

    async def capabilities(self) -> CapabilityReport: ...

    async def index(self, request: IndexRequest) -> None: ...

    async def create(self, request: CreateRequest) -> None: ...

    async def restore(self, request: RestoreRequest) -> None: ...

    async def delete(self, request: DeleteRequest) -> None: ...

    async def get(self, request: GetRequest) -> TaskStatus: ...


OPERATIONS: dict[str, type[BaseModel]] = {
    "index": IndexRequest,
    "create": CreateRequest,
    "restore": RestoreRequest,
    "delete": DeleteRequest,
    "get": GetRequest,
}


class ProviderShell:
    """Dispatches named operations to a ``TaskOperations`` implementation.

    Args:
        tasks: The task operations to host.
        provider_type: Label reported in logs (e.g. ``"docker"``).
        machine_name: Machine label bound into every operation's log context.
    """

    def __init__(
        self,
        tasks: TaskOperations,
        *,
        provider_type: str = "docker",
        machine_name: str | None = None,
    ) -> None:
        self._tasks = tasks
        self.provider_type = provider_type
        self._machine = machine_name
        self._in_flight: set[asyncio.Task[Any]] = set()

    @property
    def in_flight(self) -> int:
        """Number of operations currently running."""
        return len(self._in_flight)

    async def start(self) -> CapabilityReport:
        """Warm the capability probe once at startup."""
        report = await self._tasks.capabilities()
        logger.info(
            "provider.started",
            provider=self.provider_type,
            machine=self._machine,
            **report.to_dict(),
        )
        return report

    def parse(self, operation: str, payload: Mapping[str, Any] | BaseModel) -> BaseModel:
        """Validate ``payload`` into the request model for ``operation``.

        Raises:
            UnknownOperationError: If ``operation`` is not one of the five.
            pydantic.ValidationError: If the payload is malformed.
        """
        model = OPERATIONS.get(operation)
        if model is None:
            raise UnknownOperationError(operation)
        if isinstance(payload, model):
            return payload
        if isinstance(payload, BaseModel):
            payload = payload.model_dump()
        return model.model_validate(payload)

    async def handle(self, operation: str, payload: Mapping[str, Any] | BaseModel) -> Any:
        """Run one operation on its own task and return its result."""
        request = self.parse(operation, payload)
        handler: Callable[[Any], Awaitable[Any]] = getattr(self._tasks, operation)

        task = asyncio.create_task(
            self._run(operation, handler, request),
            name=f"{operation}:{getattr(request, 'run_id', None) or getattr(request, 'short_code', '')}",
        )
        self._in_flight.add(task)
        task.add_done_callback(self._in_flight.discard)
        # Caller cancellation does not reach the running operation
        return await asyncio.shield(task)

    async def _run(self, operation: str, handler: Callable[[Any], Awaitable[Any]], request: BaseModel) -> Any:
        # Runs inside the new task, so the bound context stays task-local
        bind_context(
            machine=self._machine,
            operation=operation,
            run_id=getattr(request, "run_id", None),
        )
        logger.debug("operation.start")
        try:
            result = await handler(request)
        except Exception as exc:
            logger.error("operation.failed", error=str(exc), error_type=type(exc).__name__)
            raise
        logger.debug("operation.done")
        return result
