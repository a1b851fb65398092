"""
CLI: ``taskhost config`` — configuration inspection.
"""

from __future__ import annotations

import typer

from taskhost.cli.utils import console, load_settings

app = typer.Typer(no_args_is_help=True)


@app.command("show")
def show_config(
    format: str = typer.Option("table", "--format", "-f", help="Output format: table, json"),
) -> None:
    """Show current configuration."""
    settings = load_settings()

    if format == "json":
        console.print_json(settings.model_dump_json())
        return

    from rich.table import Table

    table = Table(title="taskhost settings")
    table.add_column("Setting")
    table.add_column("Value")
    for key, value in settings.model_dump().items():
        table.add_row(key, str(value))
    console.print(table)
    console.print(f"\n[bold]Coordinator:[/bold] {settings.coordinator_address}")
