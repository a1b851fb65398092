"""Types for the task lifecycle layer.

Defines the operation requests the coordinator sends, the capability
report produced by the probe, the lifecycle signal tagged union and the
container naming functions.

Architecture:

    .. code-block:: text

        Coordinator request      Request model      Container name
        ─────────────────────    ───────────────    ─────────────────────
        index                    IndexRequest       task-index-<shortCode>
        create                   CreateRequest      task-run-<runId>
        restore                  RestoreRequest     task-run-<runId>
        delete                   DeleteRequest      task-run-<runId>
        get                      GetRequest         task-run-<runId>

        LifecycleSignal = PostStart(cause: RestoreCause)
                        | PreStop(cause: TerminateCause)

Manifesto:
    Container names are pure functions of the request identifier.  The
    agent keeps no registry of containers: the container runtime is the
    source of truth for existence and state.

Tags:
    taskhost, execution, runtimes, types, requests, lifecycle-hooks

Doc-Types:
    api-reference
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

INDEX_CONTAINER_PREFIX = "task-index-"
RUN_CONTAINER_PREFIX = "task-run-"


# ---------------------------------------------------------------------------
# Container naming
# ---------------------------------------------------------------------------

def index_container_name(short_code: str) -> str:
    """Name of the ephemeral container that indexes a task version.

    Example:
        >>> index_container_name("abc123")
        'task-index-abc123'
    """
    return f"{INDEX_CONTAINER_PREFIX}{short_code}"


def run_container_name(run_id: str) -> str:
    """Name of the long-running container for a run.

    Example:
        >>> run_container_name("run_9")
        'task-run-run_9'
    """
    return f"{RUN_CONTAINER_PREFIX}{run_id}"


# ---------------------------------------------------------------------------
# Operation requests
# ---------------------------------------------------------------------------

class _Request(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore", populate_by_name=True)


class IndexRequest(_Request):
    """Image to introspect for its task metadata."""

    image_ref: str = Field(min_length=1, alias="imageRef")
    short_code: str = Field(min_length=1, alias="shortCode")
    api_key: str = Field(min_length=1, alias="apiKey")
    api_url: str = Field(min_length=1, alias="apiUrl")
    env_id: str = Field(min_length=1, alias="envId")

    @property
    def container_name(self) -> str:
        return index_container_name(self.short_code)

    def redacted(self) -> dict[str, Any]:
        """Request fields safe to log (the API key is masked)."""
        data = self.model_dump()
        data["api_key"] = "***"
        return data


class CreateRequest(_Request):
    """Run container to launch."""

    image: str = Field(min_length=1)
    env_id: str = Field(min_length=1, alias="envId")
    run_id: str = Field(min_length=1, alias="runId")

    @property
    def container_name(self) -> str:
        return run_container_name(self.run_id)


class RestoreRequest(_Request):
    """Suspended run to resume."""

    run_id: str = Field(min_length=1, alias="runId")
    checkpoint_ref: str = Field(min_length=1, alias="checkpointRef")

    @property
    def container_name(self) -> str:
        return run_container_name(self.run_id)


class DeleteRequest(_Request):
    """Run whose task should be signalled to stop."""

    run_id: str = Field(min_length=1, alias="runId")

    @property
    def container_name(self) -> str:
        return run_container_name(self.run_id)


class GetRequest(_Request):
    """Run whose status is requested."""

    run_id: str = Field(min_length=1, alias="runId")

    @property
    def container_name(self) -> str:
        return run_container_name(self.run_id)


# ---------------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class CapabilityReport:
    """Outcome of checkpoint capability detection.

    ``will_simulate`` is true whenever real checkpointing is unavailable,
    and always when simulation is forced by configuration.
    """

    can_checkpoint: bool
    will_simulate: bool

    def to_dict(self) -> dict[str, bool]:
        return {"can_checkpoint": self.can_checkpoint, "will_simulate": self.will_simulate}


@dataclass(frozen=True)
class TaskStatus:
    """Placeholder status returned by ``get``.

    The agent does not inspect the runtime yet, so ``state`` is always
    ``"unknown"``.
    """

    run_id: str
    container_name: str
    state: str = "unknown"

    def to_dict(self) -> dict[str, str]:
        return {"run_id": self.run_id, "container_name": self.container_name, "state": self.state}


# ---------------------------------------------------------------------------
# Lifecycle signals
# ---------------------------------------------------------------------------

class HookKind(str, Enum):
    """Lifecycle hook endpoint names inside the task container."""

    POST_START = "postStart"
    PRE_STOP = "preStop"


class RestoreCause(str, Enum):
    """Why a task is (re)starting."""

    RESTORE = "restore"


class TerminateCause(str, Enum):
    """Why a task is stopping."""

    TERMINATE = "terminate"


@dataclass(frozen=True)
class PostStart:
    """Sent after a suspended run has been resumed."""

    cause: RestoreCause = RestoreCause.RESTORE
    kind: HookKind = HookKind.POST_START


@dataclass(frozen=True)
class PreStop:
    """Sent before a run is torn down."""

    cause: TerminateCause = TerminateCause.TERMINATE
    kind: HookKind = HookKind.PRE_STOP


LifecycleSignal = PostStart | PreStop


def hook_path(signal: LifecycleSignal) -> str:
    """HTTP path and query for a signal, e.g. ``/postStart?cause=restore``."""
    return f"/{signal.kind.value}?cause={signal.cause.value}"
