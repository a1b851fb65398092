"""
taskhost CLI — Typer-based command-line interface.

Usage::

    taskhost --help
    taskhost probe
    taskhost restore run_9 --checkpoint-ref cp_1
    taskhost config show
"""

from taskhost.cli.app import app

__all__ = ["app"]
