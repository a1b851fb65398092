"""Allow ``python -m taskhost``."""

from taskhost.cli.app import app

app()
