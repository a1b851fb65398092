"""
CLI: task lifecycle operations — ``probe``, ``index``, ``create``,
``restore``, ``delete`` and ``get`` — run by hand against the local
container runtime.

Each command goes through the same ``ProviderShell`` the coordinator
transport uses, so behaviour (logging, error propagation) is identical.
"""

from __future__ import annotations

import typer

from taskhost.cli.utils import build_shell, console, load_settings, output, run_async, setup_logging


def _shell():
    settings = load_settings()
    setup_logging(settings)
    return build_shell(settings)


def probe(
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
) -> None:
    """Detect checkpoint/restore support on this machine."""
    report = run_async(_shell().start())
    output(report, as_json=json_output, title="Checkpoint capability")


def index(
    image_ref: str = typer.Argument(..., help="Image to index, e.g. myimg:1"),
    short_code: str = typer.Option(..., "--short-code", help="Task version short code"),
    api_key: str = typer.Option(..., "--api-key", envvar="TRIGGER_SECRET_KEY", help="Platform API key"),
    api_url: str = typer.Option(..., "--api-url", envvar="TRIGGER_API_URL", help="Platform API base URL"),
    env_id: str = typer.Option(..., "--env-id", help="Environment id"),
) -> None:
    """Run the indexing container for a task image."""
    run_async(_shell().handle("index", {
        "image_ref": image_ref,
        "short_code": short_code,
        "api_key": api_key,
        "api_url": api_url,
        "env_id": env_id,
    }))
    console.print(f"[green]Indexed[/green] {image_ref} (task-index-{short_code})")


def create(
    image: str = typer.Argument(..., help="Task image to run"),
    env_id: str = typer.Option(..., "--env-id", help="Environment id"),
    run_id: str = typer.Option(..., "--run-id", help="Run id"),
) -> None:
    """Launch a detached run container."""
    run_async(_shell().handle("create", {"image": image, "env_id": env_id, "run_id": run_id}))
    console.print(f"[green]Created[/green] task-run-{run_id}")


def restore(
    run_id: str = typer.Argument(..., help="Run id"),
    checkpoint_ref: str = typer.Option(..., "--checkpoint-ref", help="Checkpoint to restore from"),
) -> None:
    """Resume a suspended run and send it postStart."""
    run_async(_shell().handle("restore", {"run_id": run_id, "checkpoint_ref": checkpoint_ref}))
    console.print(f"[green]Restored[/green] task-run-{run_id}")


def delete(
    run_id: str = typer.Argument(..., help="Run id"),
) -> None:
    """Send preStop to a run (the container is not removed)."""
    run_async(_shell().handle("delete", {"run_id": run_id}))
    console.print(f"[green]Signalled[/green] task-run-{run_id}")


def get(
    run_id: str = typer.Argument(..., help="Run id"),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
) -> None:
    """Show the (placeholder) status of a run."""
    status = run_async(_shell().handle("get", {"run_id": run_id}))
    output(status, as_json=json_output, title=f"Run {run_id}")
