"""Centralized configuration for the task host agent.

Quick start::

    from taskhost.core.config import get_settings

    settings = get_settings()
    print(settings.machine_name)                  # "local"
    print(settings.force_checkpoint_simulation)   # True

Guardrails:
    ❌ Reading ``os.environ`` ad-hoc in each module
    ✅ ``get_settings().coordinator_host`` from the cached singleton
    ❌ Module-level constants computed at import time
    ✅ Pass a ``ProviderSettings`` into the components that need it

Tags:
    taskhost, configuration, settings, pydantic, env-files

Doc-Types:
    package-overview
"""

from .settings import (
    ProviderSettings,
    clear_settings_cache,
    get_settings,
)

__all__ = [
    "ProviderSettings",
    "get_settings",
    "clear_settings_cache",
]
