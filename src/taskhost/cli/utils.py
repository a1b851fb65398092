"""
CLI utility helpers — output formatting and operation plumbing.
"""

from __future__ import annotations

import asyncio
import json
from collections.abc import Coroutine
from dataclasses import asdict
from typing import Any, TypeVar

import typer
from pydantic import ValidationError
from rich.console import Console

from taskhost.core.config import ProviderSettings, get_settings
from taskhost.core.errors import ErrorCategory, TaskHostError
from taskhost.execution.runtimes import DockerTaskOperations, ProviderShell
from taskhost.framework.logging import configure_logging

T = TypeVar("T")

console = Console()
err_console = Console(stderr=True)


# ── Operation plumbing ───────────────────────────────────────────────────


def load_settings() -> ProviderSettings:
    """Settings for this invocation; invalid config exits with code 1."""
    try:
        return get_settings()
    except TaskHostError as exc:
        err_console.print(f"[bold red]Error[/bold red] ({exc.category.value}): {exc.message}")
        raise typer.Exit(code=1) from exc


def setup_logging(settings: ProviderSettings) -> None:
    configure_logging(level=settings.log_level, format=settings.log_format)  # type: ignore[arg-type]


def build_shell(settings: ProviderSettings) -> ProviderShell:
    """Provider shell over docker-backed task operations."""
    return ProviderShell(
        DockerTaskOperations(settings),
        provider_type="docker",
        machine_name=settings.machine_name,
    )


def run_async(coro: Coroutine[Any, Any, T]) -> T:
    """Run an operation coroutine, rendering agent errors as CLI failures."""
    try:
        return asyncio.run(coro)
    except TaskHostError as exc:
        err_console.print(f"[bold red]Error[/bold red] ({exc.category.value}): {exc.message}")
        if exc.cause is not None:
            err_console.print(f"  [dim]caused by: {exc.cause}[/dim]")
        raise typer.Exit(code=1) from exc
    except ValidationError as exc:
        details = "; ".join(
            f"{'.'.join(map(str, e['loc'])) or 'request'}: {e['msg']}" for e in exc.errors()
        )
        err_console.print(f"[bold red]Error[/bold red] ({ErrorCategory.VALIDATION.value}): {details}")
        raise typer.Exit(code=1) from exc


# ── Output helpers ───────────────────────────────────────────────────────


def _to_dict(obj: Any) -> dict[str, Any]:
    """Convert dataclass / pydantic model / dict to plain dict."""
    if hasattr(obj, "model_dump"):
        return obj.model_dump()
    if hasattr(obj, "__dataclass_fields__"):
        return asdict(obj)
    if isinstance(obj, dict):
        return obj
    return {"value": str(obj)}


def output(data: Any, *, as_json: bool = False, title: str = "") -> None:
    """Render a result object as JSON or key-value pairs."""
    payload = _to_dict(data)
    if as_json:
        console.print_json(json.dumps(payload, default=str))
        return
    if title:
        console.print(f"[bold]{title}[/bold]")
    for k, v in payload.items():
        console.print(f"  [cyan]{k}[/cyan]: {v}")
