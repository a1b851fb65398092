"""
Centralized settings for the task host agent.

Manifesto:
    One validated, cached settings object replaces scattered
    ``os.environ`` lookups.  The coordinator-facing variables keep the
    plain names the container images already expect (``MACHINE_NAME``,
    ``COORDINATOR_HOST`` ...); agent-only knobs use the ``TASKHOST_``
    prefix.

Tags:
    taskhost, configuration, settings, pydantic, caching, validation

Doc-Types:
    api-reference
"""

from __future__ import annotations

from typing import Any

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

_TRUTHY = ("1", "true")


class ProviderSettings(BaseSettings):
    """Task host configuration.

    Fields are read from the environment (and an optional ``.env`` file).
    Explicit keyword arguments win over the environment, which makes the
    class easy to build in tests::

        settings = ProviderSettings(machine_name="m-1", force_checkpoint_simulation=False)
    """

    model_config = SettingsConfigDict(
        env_prefix="TASKHOST_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    # ── Identity / coordinator ───────────────────────────────────
    machine_name: str = Field(default="local", validation_alias="MACHINE_NAME")
    coordinator_host: str = Field(default="127.0.0.1", validation_alias="COORDINATOR_HOST")
    coordinator_port: int = Field(default=8020, validation_alias="COORDINATOR_PORT")

    # ── Telemetry ────────────────────────────────────────────────
    otel_exporter_otlp_endpoint: str = Field(
        default="http://0.0.0.0:4318",
        validation_alias="OTEL_EXPORTER_OTLP_ENDPOINT",
    )

    # ── Checkpointing ────────────────────────────────────────────
    force_checkpoint_simulation: bool = Field(
        default=True,
        validation_alias="FORCE_CHECKPOINT_SIMULATION",
        description="Simulate restore with pause/unpause even if CRIU is available",
    )

    # ── External binaries ────────────────────────────────────────
    docker_binary: str = Field(default="docker")
    criu_binary: str = Field(default="criu")
    command_timeout_seconds: float | None = Field(
        default=None,
        description="Upper bound for a single external command (unset = no bound)",
    )

    # ── Logging ──────────────────────────────────────────────────
    log_level: str = Field(default="INFO")
    log_format: str = Field(default="console")

    @field_validator("force_checkpoint_simulation", mode="before")
    @classmethod
    def _parse_force_flag(cls, value: Any) -> Any:
        # Only "1" and "true" enable the flag; any other string disables it.
        if isinstance(value, str):
            return value.strip().lower() in _TRUTHY
        return value

    @field_validator("coordinator_port")
    @classmethod
    def _check_port(cls, value: int) -> int:
        if not 0 < value < 65536:
            raise ValueError(f"coordinator_port out of range: {value}")
        return value

    @field_validator("command_timeout_seconds")
    @classmethod
    def _check_timeout(cls, value: float | None) -> float | None:
        if value is not None and value <= 0:
            raise ValueError("command_timeout_seconds must be positive")
        return value

    @field_validator("log_level")
    @classmethod
    def _normalize_level(cls, value: str) -> str:
        level = value.upper()
        if level not in ("DEBUG", "INFO", "WARNING", "ERROR"):
            raise ValueError(f"Unsupported log level: {value}")
        return level

    @field_validator("log_format")
    @classmethod
    def _normalize_format(cls, value: str) -> str:
        fmt = value.lower()
        if fmt not in ("json", "console"):
            raise ValueError(f"Unsupported log format: {value}")
        return fmt

    # ── Derived properties ───────────────────────────────────────

    @property
    def coordinator_address(self) -> str:
        return f"{self.coordinator_host}:{self.coordinator_port}"


# ── Settings factory with caching ────────────────────────────────────────

_settings_cache: dict[str, ProviderSettings] = {}


def get_settings(*, _force_reload: bool = False) -> ProviderSettings:
    """Load, validate, and cache a :class:`ProviderSettings` instance.

    Raises:
        ConfigError: If the environment holds an invalid value.
    """
    if not _force_reload and "default" in _settings_cache:
        return _settings_cache["default"]

    from pydantic import ValidationError

    from taskhost.core.errors import ConfigError

    try:
        settings = ProviderSettings()
    except ValidationError as exc:
        raise ConfigError(f"Invalid task host configuration: {exc}", cause=exc) from exc

    _settings_cache["default"] = settings
    return settings


def clear_settings_cache() -> None:
    """Clear the settings cache (primarily for testing)."""
    _settings_cache.clear()
