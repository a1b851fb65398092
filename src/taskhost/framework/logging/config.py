"""
Logging configuration.

Provides a single entry point for configuring structured logging.
Supports environment-based configuration for:
- Log level (DEBUG, INFO, WARNING, ERROR)
- Output format (json, console)
- Run-specific debug filtering

Configuration is read from environment variables when not passed explicitly:
- TASKHOST_LOG_LEVEL: DEBUG | INFO | WARNING | ERROR (default: INFO)
- TASKHOST_LOG_FORMAT: json | console (default: console)
- TASKHOST_LOG_DEBUG_RUNS: comma-separated run ids that always log at DEBUG

Usage:
    # Configure at agent startup
    from taskhost.framework.logging import configure_logging
    configure_logging()

    # Or with explicit settings
    configure_logging(level="DEBUG", format="json")
"""

import logging
import os
import sys
from typing import Any, Literal

import structlog
from structlog.types import Processor

from taskhost.framework.logging.context import add_context_processor

_configured = False


def configure_logging(
    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] | None = None,
    format: Literal["json", "console"] | None = None,
    debug_runs: list[str] | None = None,
    force: bool = False,
    cache_loggers: bool = True,
) -> None:
    """
    Configure structured logging for the agent.

    Should be called once at startup (CLI entry, provider start).
    Subsequent calls are no-ops unless force=True.

    Args:
        level: Log level (overrides TASKHOST_LOG_LEVEL env var)
        format: Output format (overrides TASKHOST_LOG_FORMAT env var)
        debug_runs: Run ids for verbose debug logging
        force: Reconfigure even if already configured
        cache_loggers: Freeze loggers on first use (disable in tests that
            reconfigure or capture logs)
    """
    global _configured

    if _configured and not force:
        return

    log_level = (level or os.environ.get("TASKHOST_LOG_LEVEL", "INFO")).upper()
    log_format = (format or os.environ.get("TASKHOST_LOG_FORMAT", "console")).lower()

    runs = debug_runs
    if runs is None:
        env_runs = os.environ.get("TASKHOST_LOG_DEBUG_RUNS", "")
        runs = [r.strip() for r in env_runs.split(",") if r.strip()]

    processors: list[Processor] = [
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        add_context_processor,
        structlog.processors.format_exc_info,
        structlog.processors.StackInfoRenderer(),
    ]

    if runs:
        # Level filtering moves after the context processor so run_id is visible
        processors.insert(4, _make_run_filter(runs, log_level))
    else:
        processors.insert(0, structlog.stdlib.filter_by_level)

    if log_format == "json":
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(
            structlog.dev.ConsoleRenderer(
                colors=sys.stderr.isatty(),
                exception_formatter=structlog.dev.plain_traceback,
            )
        )

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=cache_loggers,
    )

    # With a run filter active, stdlib must let DEBUG through to structlog
    root_level = logging.DEBUG if runs else getattr(logging, log_level)
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stderr,
        level=root_level,
        force=True,
    )
    logging.getLogger("taskhost").setLevel(root_level)

    _configured = True


def _make_run_filter(debug_runs: list[str], default_level: str):
    """
    Create a processor that enables DEBUG for specific runs.

    For listed run ids, always allow DEBUG.
    For others, use the default level.
    """
    default_level_num = getattr(logging, default_level)

    def run_debug_filter(
        logger: Any,
        method_name: str,
        event_dict: dict,
    ) -> dict:
        run_id = event_dict.get("run_id")
        level = event_dict.get("level", method_name)
        level_num = getattr(logging, str(level).upper(), logging.DEBUG)

        if run_id and run_id in debug_runs:
            return event_dict

        if level_num < default_level_num:
            raise structlog.DropEvent

        return event_dict

    return run_debug_filter


def is_debug_enabled() -> bool:
    """Check if DEBUG level logging is enabled."""
    return logging.getLogger("taskhost").isEnabledFor(logging.DEBUG)


def is_configured() -> bool:
    """Check if logging has been configured."""
    return _configured


def reset_logging() -> None:
    """Forget previous configuration (primarily for testing)."""
    global _configured
    structlog.reset_defaults()
    _configured = False
