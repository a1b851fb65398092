"""
Task host logging - structured, operation-aware logging.

This module provides:
- Structured logging with structlog
- Operation context propagation via contextvars
- Environment-based configuration

Usage:
    from taskhost.framework.logging import get_logger, configure_logging, bind_context

    # Configure once at startup
    configure_logging()

    # Get a logger
    log = get_logger(__name__)

    # Bind operation context (automatically attached to all logs)
    bind_context(operation="restore", run_id="run_9")
    log.info("Simulating restore")
"""

from taskhost.framework.logging.config import (
    configure_logging,
    is_configured,
    is_debug_enabled,
    reset_logging,
)
from taskhost.framework.logging.context import (
    LogContext,
    add_context_processor,
    bind_context,
    clear_context,
    get_context,
    get_logger,
    push_context,
    set_context,
)

__all__ = [
    # Configuration
    "configure_logging",
    "is_configured",
    "is_debug_enabled",
    "reset_logging",
    # Context
    "get_logger",
    "set_context",
    "clear_context",
    "get_context",
    "bind_context",
    "push_context",
    "LogContext",
    "add_context_processor",
]
