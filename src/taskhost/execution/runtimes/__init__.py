"""Task lifecycle runtime for the per-machine agent.

This package contains the command runner boundary, checkpoint capability
probe, task indexer, lifecycle hook dispatcher, the docker-backed task
lifecycle manager and the provider shell that hosts it.

Architecture:

    .. code-block:: text

        taskhost.execution.runtimes
        ├── __init__.py      ← Public API (this file)
        ├── _types.py        ← Requests, CapabilityReport, LifecycleSignal, naming
        ├── runner.py        ← CommandRunner protocol + SubprocessCommandRunner
        ├── mock_runners.py  ← ScriptedCommandRunner (testing)
        ├── capability.py    ← CapabilityProbe (single-flight, memoized)
        ├── indexer.py       ← TaskIndexer
        ├── hooks.py         ← LifecycleHookDispatcher (port discovery + retry)
        ├── docker.py        ← DockerTaskOperations (index/create/restore/delete/get)
        └── shell.py         ← ProviderShell (one asyncio task per operation)

    .. mermaid::

        graph TB
            SHELL["shell.py<br/>ProviderShell"] --> OPS["docker.py<br/>DockerTaskOperations"]
            OPS --> PROBE["capability.py<br/>CapabilityProbe"]
            OPS --> IDX["indexer.py<br/>TaskIndexer"]
            OPS --> HOOKS["hooks.py<br/>LifecycleHookDispatcher"]
            PROBE & IDX & HOOKS & OPS --> RUNNER["runner.py<br/>CommandRunner"]

Manifesto:
    The container runtime is the source of truth.  The agent only
    detects capabilities, issues commands and delivers lifecycle
    signals; it stores no task state of its own.

Tags:
    taskhost, execution, runtimes, docker, checkpoint, lifecycle-hooks

Doc-Types:
    api-reference
"""

from taskhost.execution.runtimes._types import (
    CapabilityReport,
    CreateRequest,
    DeleteRequest,
    GetRequest,
    HookKind,
    IndexRequest,
    LifecycleSignal,
    PostStart,
    PreStop,
    RestoreCause,
    RestoreRequest,
    TaskStatus,
    TerminateCause,
    hook_path,
    index_container_name,
    run_container_name,
)
from taskhost.execution.runtimes.capability import CapabilityProbe
from taskhost.execution.runtimes.docker import DockerTaskOperations
from taskhost.execution.runtimes.hooks import LifecycleHookDispatcher, parse_port, post_start_backoff
from taskhost.execution.runtimes.indexer import TaskIndexer
from taskhost.execution.runtimes.mock_runners import Reply, ScriptedCommandRunner
from taskhost.execution.runtimes.runner import CommandResult, CommandRunner, SubprocessCommandRunner
from taskhost.execution.runtimes.shell import ProviderShell, TaskOperations

__all__ = [
    # Types
    "CapabilityReport",
    "CreateRequest",
    "DeleteRequest",
    "GetRequest",
    "HookKind",
    "IndexRequest",
    "LifecycleSignal",
    "PostStart",
    "PreStop",
    "RestoreCause",
    "RestoreRequest",
    "TaskStatus",
    "TerminateCause",
    # Naming
    "hook_path",
    "index_container_name",
    "run_container_name",
    # Command runners
    "CommandResult",
    "CommandRunner",
    "SubprocessCommandRunner",
    "Reply",
    "ScriptedCommandRunner",
    # Components
    "CapabilityProbe",
    "TaskIndexer",
    "LifecycleHookDispatcher",
    "parse_port",
    "post_start_backoff",
    "DockerTaskOperations",
    "ProviderShell",
    "TaskOperations",
]
