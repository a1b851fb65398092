"""
Root Typer application for the taskhost CLI.
"""

from __future__ import annotations

import typer
from typer import Typer

from taskhost.cli import tasks
from taskhost.cli.config import app as config_app

app = Typer(
    name="taskhost",
    help="taskhost — per-machine agent for checkpointable task containers.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)


# ── Version callback ─────────────────────────────────────────────────────


def _version_callback(value: bool) -> None:
    if value:
        from importlib.metadata import PackageNotFoundError
        from importlib.metadata import version as pkg_version

        from taskhost import __version__

        try:
            v = pkg_version("taskhost")
        except PackageNotFoundError:
            v = __version__
        typer.echo(f"taskhost {v}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool | None = typer.Option(  # noqa: UP007
        None,
        "--version",
        "-V",
        help="Show version and exit.",
        callback=_version_callback,
        is_eager=True,
    ),
) -> None:
    """taskhost CLI — run task lifecycle operations and inspect the agent."""


# ── Sub-command registration ─────────────────────────────────────────────

app.command("probe")(tasks.probe)
app.command("index")(tasks.index)
app.command("create")(tasks.create)
app.command("restore")(tasks.restore)
app.command("delete")(tasks.delete)
app.command("get")(tasks.get)

app.add_typer(config_app, name="config", help="Configuration management.")
