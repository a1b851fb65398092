"""
Structured error types for the task host agent.

Every fatal failure the agent reports back to the coordinator is a
``TaskHostError`` subclass carrying:
- **Category:** which layer failed (infrastructure, runtime, hook, config)
- **Retryable:** whether the coordinator may reasonably retry the operation
- **Context:** run id, container name, operation and free-form metadata
- **Cause:** the chained underlying exception

Architecture:
    ::

        ┌──────────────────────────────────────────────────────────────┐
        │                        TaskHostError                          │
        │        (category, retryable, context, cause)                  │
        ├──────────────────────────────────────────────────────────────┤
        │                                                               │
        │  LaunchInfraError      RuntimeCommandError    ConfigError     │
        │  (INFRASTRUCTURE)      (RUNTIME)              (CONFIG)        │
        │                                                               │
        │  PortDiscoveryError    LifecycleHookError     UnknownOperation│
        │  (HOOK)                (HOOK, kind+attempts)  (VALIDATION)    │
        └──────────────────────────────────────────────────────────────┘

    Capability detection failures and non-zero exits of index/create
    containers are *not* errors: they are logged and swallowed.

Manifesto:
    - **Typed Error Hierarchy:** one type per failure mode in the taxonomy
    - **Explicit Retry Semantics:** each error knows if it's retryable
    - **Error Chaining:** wrap, never swallow, the original exception

Tags:
    error-handling, exception-hierarchy, taskhost, lifecycle-hooks

Usage:
    from taskhost.core.errors import RuntimeCommandError

    result = await runner.run(["docker", "unpause", name])
    if not result.ok:
        raise RuntimeCommandError("docker unpause command failed", result=result)
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from taskhost.execution.runtimes.runner import CommandResult


class ErrorCategory(str, Enum):
    """
    Error categories for classification and routing.

    Attributes:
        INFRASTRUCTURE: A command could not be spawned at all
        RUNTIME: The container runtime rejected a command
        HOOK: Lifecycle hook discovery or delivery failed
        CONFIG: Missing or invalid settings
        VALIDATION: Malformed operation request
        INTERNAL: Bugs, unexpected state
    """

    INFRASTRUCTURE = "INFRASTRUCTURE"
    RUNTIME = "RUNTIME"
    HOOK = "HOOK"
    CONFIG = "CONFIG"
    VALIDATION = "VALIDATION"
    INTERNAL = "INTERNAL"


@dataclass
class ErrorContext:
    """
    Structured metadata attached to an error for logging.

    Attributes:
        operation: Lifecycle operation (index, create, restore, delete, get)
        run_id: Run identifier
        container_name: Container the failure relates to
        command: Escaped external command, when one was involved
        metadata: Additional key-value pairs
    """

    operation: str | None = None
    run_id: str | None = None
    container_name: str | None = None
    command: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging."""
        result = {}
        for key in ["operation", "run_id", "container_name", "command"]:
            value = getattr(self, key)
            if value is not None:
                result[key] = value
        if self.metadata:
            result.update(self.metadata)
        return result


class TaskHostError(Exception):
    """
    Base exception for all task host errors.

    Subclasses set ``default_category`` and ``default_retryable`` so callers
    rarely pass them explicitly.

    Examples:
        >>> error = TaskHostError("Something went wrong")
        >>> error.category
        <ErrorCategory.INTERNAL: 'INTERNAL'>
        >>> error.with_context(run_id="run_9").context.run_id
        'run_9'
    """

    default_category: ErrorCategory = ErrorCategory.INTERNAL
    default_retryable: bool = False

    def __init__(
        self,
        message: str,
        *,
        category: ErrorCategory | None = None,
        retryable: bool | None = None,
        context: ErrorContext | None = None,
        cause: Exception | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.category = category or self.default_category
        self.retryable = retryable if retryable is not None else self.default_retryable
        self.context = context or ErrorContext()
        self.cause = cause

        if cause is not None:
            self.__cause__ = cause

    def with_context(self, **kwargs: Any) -> TaskHostError:
        """
        Add context to this error (fluent API).

        Usage:
            raise PortDiscoveryError("no port").with_context(
                container_name="task-run-run_9",
            )
        """
        for key, value in kwargs.items():
            if hasattr(self.context, key) and key != "metadata":
                setattr(self.context, key, value)
            else:
                self.context.metadata[key] = value
        return self

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for logging/serialization."""
        result = {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "category": self.category.value,
            "retryable": self.retryable,
        }
        context_dict = self.context.to_dict()
        if context_dict:
            result["context"] = context_dict
        if self.cause is not None:
            result["cause"] = str(self.cause)
        return result

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r}, category={self.category.value})"


# =============================================================================
# COMMAND ERRORS
# =============================================================================


class LaunchInfraError(TaskHostError):
    """
    The command-issuing mechanism itself could not start.

    Raised by the command runner when the binary is missing or the OS
    refuses to spawn it. Always propagated: it is an infrastructure fault,
    not a workload fault.
    """

    default_category = ErrorCategory.INFRASTRUCTURE
    default_retryable = True

    def __init__(self, message: str, *, argv: list[str] | None = None, **kwargs: Any):
        super().__init__(message, **kwargs)
        self.argv = list(argv or [])


class RuntimeCommandError(TaskHostError):
    """A container runtime command on the restore path exited non-zero."""

    default_category = ErrorCategory.RUNTIME
    default_retryable = False

    def __init__(self, message: str, *, result: CommandResult | None = None, **kwargs: Any):
        super().__init__(message, **kwargs)
        self.result = result
        if result is not None:
            self.context.command = result.escaped_command
            self.context.metadata.setdefault("exit_code", result.exit_code)

    @property
    def exit_code(self) -> int | None:
        return self.result.exit_code if self.result is not None else None


# =============================================================================
# LIFECYCLE HOOK ERRORS
# =============================================================================


class PortDiscoveryError(TaskHostError):
    """The control port could not be read from the container's output."""

    default_category = ErrorCategory.HOOK
    default_retryable = False


class LifecycleHookError(TaskHostError):
    """
    A lifecycle hook (postStart / preStop) could not be delivered.

    ``kind`` is the hook name and ``attempts`` the number of delivery
    attempts made before giving up (0 when the port was never found).
    """

    default_category = ErrorCategory.HOOK
    default_retryable = False

    def __init__(self, message: str, *, kind: str, attempts: int = 0, **kwargs: Any):
        super().__init__(message, **kwargs)
        self.kind = kind
        self.attempts = attempts

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        result["kind"] = self.kind
        result["attempts"] = self.attempts
        return result


# =============================================================================
# CONFIGURATION / REQUEST ERRORS
# =============================================================================


class ConfigError(TaskHostError):
    """
    Configuration error.

    Never retryable - configuration must be fixed.
    """

    default_category = ErrorCategory.CONFIG
    default_retryable = False


class UnknownOperationError(TaskHostError):
    """The provider shell was asked to run an operation it does not know."""

    default_category = ErrorCategory.VALIDATION
    default_retryable = False

    def __init__(self, operation: str):
        self.operation = operation
        super().__init__(f"Unknown task operation: {operation}")


__all__ = [
    "ErrorCategory",
    "ErrorContext",
    "TaskHostError",
    "LaunchInfraError",
    "RuntimeCommandError",
    "PortDiscoveryError",
    "LifecycleHookError",
    "ConfigError",
    "UnknownOperationError",
]
