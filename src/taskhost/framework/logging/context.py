"""
Logging context management using contextvars.

Every lifecycle operation runs on its own asyncio task, and each task gets
its own copy of the context. Binding ``operation`` / ``run_id`` /
``container`` once at the top of an operation makes them appear on every
log line the operation emits, including lines from the hook dispatcher and
command runner it calls into.

Design choice: contextvars
- asyncio-compatible (each Task copies the context on creation)
- No need to pass context through every function
- Clean integration with structlog processors
"""

from contextvars import ContextVar, Token
from dataclasses import asdict, dataclass
from typing import Any

import structlog


@dataclass
class LogContext:
    """
    Context attached to all log entries.

    Identity:
        machine: Machine name of this agent

    Operation context:
        operation: Lifecycle operation (index, create, restore, delete, get)
        run_id: Run identifier
        container: Container name the operation targets

    Dispatch:
        hook: Lifecycle hook being delivered (postStart, preStop)
        attempt: Delivery attempt number (default 1)
    """

    machine: str | None = None
    operation: str | None = None
    run_id: str | None = None
    container: str | None = None
    hook: str | None = None
    attempt: int = 1

    def to_dict(self) -> dict[str, Any]:
        """Return non-None fields as dict (excludes attempt=1 default)."""
        result = {}
        for k, v in asdict(self).items():
            if v is None:
                continue
            if k == "attempt" and v == 1:
                continue
            result[k] = v
        return result

    def merge(self, **kwargs) -> "LogContext":
        """Create new context with merged values."""
        current = asdict(self)
        current.update({k: v for k, v in kwargs.items() if v is not None and k in current})
        return LogContext(**current)


_log_context: ContextVar[LogContext] = ContextVar("taskhost_log_context")  # noqa: B039


def get_context() -> LogContext:
    """Get the current log context."""
    return _log_context.get(LogContext())


def set_context(
    machine: str | None = None,
    operation: str | None = None,
    run_id: str | None = None,
    container: str | None = None,
    hook: str | None = None,
    attempt: int = 1,
) -> LogContext:
    """
    Set the current log context.

    This replaces the current context. Use bind_context() to add to existing.
    """
    ctx = LogContext(
        machine=machine,
        operation=operation,
        run_id=run_id,
        container=container,
        hook=hook,
        attempt=attempt,
    )
    _log_context.set(ctx)
    return ctx


def bind_context(**kwargs) -> LogContext:
    """Merge values into the current context and return it."""
    updated = get_context().merge(**kwargs)
    _log_context.set(updated)
    return updated


def clear_context() -> None:
    """Clear the current context (reset to empty)."""
    _log_context.set(LogContext())


class _ContextToken:
    """Token for restoring context after a scoped operation."""

    def __init__(self, token: Token):
        self._token = token

    def restore(self) -> None:
        """Restore the previous context."""
        _log_context.reset(self._token)


def push_context(**kwargs) -> _ContextToken:
    """
    Push new context values, returning a token to restore later.

    Usage:
        token = push_context(hook="postStart")
        try:
            await deliver()
        finally:
            token.restore()
    """
    updated = get_context().merge(**kwargs)
    return _ContextToken(_log_context.set(updated))


def add_context_processor(
    logger: Any,
    method_name: str,
    event_dict: dict[str, Any],
) -> dict[str, Any]:
    """
    Structlog processor that adds the log context to every log entry.

    Explicit keys on the log call win over context values.
    """
    for key, value in get_context().to_dict().items():
        if key not in event_dict:
            event_dict[key] = value
    return event_dict


def get_logger(name: str | None = None) -> Any:
    """
    Get a structured logger.

    Args:
        name: Logger name (typically __name__)
    """
    return structlog.get_logger(name)
