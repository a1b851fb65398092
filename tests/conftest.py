"""
Shared pytest fixtures and configuration for taskhost tests.

This module provides:
- Settings/log-context isolation between tests
- A scripted command runner standing in for docker and criu
- A recording sleep so backoff schedules are observable without waiting
- A factory for fully wired ``DockerTaskOperations``

Usage:
    Fixtures are auto-discovered by pytest::

        @pytest.mark.asyncio
        async def test_restore(make_ops, runner):
            ops = make_ops(force_simulate=True)
            ...
"""

import sys
from collections.abc import Callable, Generator
from pathlib import Path

import pytest

# Ensure taskhost package is importable
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from taskhost.core.config import ProviderSettings, clear_settings_cache
from taskhost.execution.runtimes import (
    DockerTaskOperations,
    LifecycleHookDispatcher,
    Reply,
    ScriptedCommandRunner,
)
from taskhost.framework.logging import clear_context

PORT_LOG = "Starting worker\nhttp server listening on port 4000\nready\n"


# =============================================================================
# Test Markers Configuration
# =============================================================================


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    """Mark all tests without explicit markers as unit tests."""
    for item in items:
        markers = {mark.name for mark in item.iter_markers()}
        if not markers.intersection({"unit", "integration", "slow"}):
            item.add_marker(pytest.mark.unit)


# =============================================================================
# Isolation Fixtures
# =============================================================================


@pytest.fixture(autouse=True)
def isolate_state() -> Generator[None, None, None]:
    """Reset cached settings and log context around every test."""
    clear_settings_cache()
    clear_context()
    yield
    clear_settings_cache()
    clear_context()


# =============================================================================
# Runtime Fixtures
# =============================================================================


@pytest.fixture
def settings() -> ProviderSettings:
    """Deterministic settings (simulation forced, like the default)."""
    return ProviderSettings(
        machine_name="test-machine",
        coordinator_host="10.0.0.5",
        coordinator_port=8020,
        otel_exporter_otlp_endpoint="http://otel:4318",
        force_checkpoint_simulation=True,
    )


@pytest.fixture
def runner() -> ScriptedCommandRunner:
    """Scripted runner: every command succeeds unless scripted otherwise."""
    return ScriptedCommandRunner()


@pytest.fixture
def port_logs(runner: ScriptedCommandRunner) -> ScriptedCommandRunner:
    """Runner whose ``docker logs`` announces control port 4000."""
    runner.script(["docker", "logs"], Reply(stdout=PORT_LOG))
    return runner


@pytest.fixture
def sleeps() -> list[float]:
    """Delays passed to the recording sleep, in seconds."""
    return []


@pytest.fixture
def fake_sleep(sleeps: list[float]) -> Callable:
    async def _sleep(delay: float) -> None:
        sleeps.append(delay)

    return _sleep


@pytest.fixture
def make_ops(
    settings: ProviderSettings,
    runner: ScriptedCommandRunner,
    fake_sleep: Callable,
) -> Callable[..., DockerTaskOperations]:
    """Factory for ``DockerTaskOperations`` wired to the scripted runner."""

    def _make(*, force_simulate: bool = True) -> DockerTaskOperations:
        s = settings.model_copy(update={"force_checkpoint_simulation": force_simulate})
        hooks = LifecycleHookDispatcher(runner, sleep=fake_sleep)
        return DockerTaskOperations(s, runner=runner, hooks=hooks)

    return _make
