"""Lifecycle hook dispatcher — deliver postStart / preStop into a task container.

The task process inside the container runs a small HTTP control server on
a port it picks at startup and announces on stdout.  To signal it, the
agent reads the container log, extracts the port, and issues a GET from
inside the container.

Architecture:

    .. code-block:: text

        send(container, signal)
          ├── discover_port(container)
          │     docker logs <container>            (single snapshot, no polling)
          │     /http server listening on port N/   → N  (else PortDiscoveryError)
          │
          └── deliver with retry policy chosen by signal kind
                docker exec <container> busybox wget -q -O- 127.0.0.1:N/<hook>?cause=<cause>

                PostStart → ExponentialBackoff(6 retries, 50ms → 1150ms cap, +0..50ms jitter)
                PreStop   → NoRetry

        Any failure → LifecycleHookError(kind, attempts)

Manifesto:
    A restoring task must reliably receive its resume signal even under
    readiness races, so postStart is retried.  A terminating task's
    shutdown signal is best-effort and must not delay teardown, so
    preStop is attempted exactly once.

Tags:
    taskhost, execution, runtimes, lifecycle-hooks, retry, backoff

Doc-Types:
    api-reference
"""

from __future__ import annotations

import asyncio
import re
from collections.abc import Awaitable, Callable
from typing import Any

from taskhost.core.errors import LifecycleHookError, PortDiscoveryError, TaskHostError
from taskhost.execution.retry import ExponentialBackoff, NoRetry, RetryContext, RetryStrategy
from taskhost.execution.runtimes._types import (
    LifecycleSignal,
    PostStart,
    PreStop,
    RestoreCause,
    TerminateCause,
    hook_path,
)
from taskhost.execution.runtimes.runner import CommandResult, CommandRunner
from taskhost.framework.logging import get_logger, push_context

logger = get_logger(__name__)

PORT_PATTERN = re.compile(r"http server listening on port (?P<port>[0-9]+)")

POST_START_MAX_RETRIES = 6
POST_START_BASE_DELAY = 0.050
POST_START_MAX_DELAY = 1.150
POST_START_JITTER = 0.050


class HookDeliveryFailed(TaskHostError):
    """One delivery attempt exited non-zero (internal, retried or wrapped)."""

    def __init__(self, result: CommandResult):
        super().__init__(f"hook request exited with {result.exit_code}")
        self.result = result


def post_start_backoff() -> ExponentialBackoff:
    """Retry schedule for postStart: ~50, 100, 200, 400, 800, 1150 ms (+ jitter)."""
    return ExponentialBackoff(
        max_retries=POST_START_MAX_RETRIES,
        base_delay=POST_START_BASE_DELAY,
        max_delay=POST_START_MAX_DELAY,
        multiplier=2.0,
        jitter=POST_START_JITTER,
    )


def parse_port(output: str) -> int:
    """Extract the control port from container output.

    The first announcement wins.

    Raises:
        PortDiscoveryError: If no announcement is present or the port is 0.
    """
    match = PORT_PATTERN.search(output)
    if match is None:
        raise PortDiscoveryError("failed to extract port from logs")

    port = int(match.group("port"))
    if port <= 0 or port > 65535:
        raise PortDiscoveryError(f"invalid port in logs: {match.group('port')}")
    return port


class LifecycleHookDispatcher:
    """Discovers the in-container control port and delivers lifecycle hooks.

    Args:
        runner: Command runner used for ``docker logs`` / ``docker exec``.
        docker_binary: Container runtime CLI.
        backoff: Retry strategy for postStart (default: ``post_start_backoff()``).
        sleep: Awaitable sleep used between retries (injectable for tests).
    """

    def __init__(
        self,
        runner: CommandRunner,
        *,
        docker_binary: str = "docker",
        backoff: RetryStrategy | None = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        self._runner = runner
        self._docker = docker_binary
        self._backoff = backoff or post_start_backoff()
        self._sleep = sleep

    async def send_post_start(
        self, container_name: str, cause: RestoreCause = RestoreCause.RESTORE,
    ) -> None:
        await self.send(container_name, PostStart(cause=cause))

    async def send_pre_stop(
        self, container_name: str, cause: TerminateCause = TerminateCause.TERMINATE,
    ) -> None:
        await self.send(container_name, PreStop(cause=cause))

    async def send(self, container_name: str, signal: LifecycleSignal) -> None:
        """Discover the port and deliver ``signal``.

        Raises:
            LifecycleHookError: On any discovery or delivery failure.
        """
        kind = signal.kind.value
        token = push_context(container=container_name, hook=kind)
        attempts = 0
        delays: list[float] = []
        try:
            port = await self.discover_port(container_name)
            ctx = RetryContext(
                strategy=self._strategy_for(signal),
                on_retry=self._log_retry(kind),
                sleep=self._sleep,
            )
            try:
                result = await ctx.run_async(
                    self._deliver, container_name, port, signal,
                )
            finally:
                attempts = ctx.attempts
                delays = ctx.delays
            logger.debug(
                "hook.delivered", hook=kind, port=port, attempts=attempts,
                retries=ctx.retries, stdout=result.stdout,
            )
        except Exception as exc:
            logger.error(
                f"{kind} error", error=str(exc), attempts=attempts,
                delays_ms=[round(d * 1000) for d in delays],
            )
            if attempts:
                message = f"{kind} command failed after {attempts} attempts"
            else:
                message = f"{kind} command failed"
            raise LifecycleHookError(
                message, kind=kind, attempts=attempts, cause=exc,
            ).with_context(container_name=container_name) from exc
        finally:
            token.restore()

    async def discover_port(self, container_name: str) -> int:
        """Read the container log once and return the announced control port.

        Raises:
            PortDiscoveryError: If the log cannot be read or has no port.
        """
        result = await self._runner.run([self._docker, "logs", container_name])
        logger.debug("hook.logs", **result.to_dict())
        if not result.ok:
            raise PortDiscoveryError(
                f"docker logs exited with {result.exit_code}",
            ).with_context(container_name=container_name, command=result.escaped_command)
        try:
            return parse_port(result.stdout)
        except PortDiscoveryError as exc:
            raise exc.with_context(container_name=container_name)

    def _strategy_for(self, signal: LifecycleSignal) -> RetryStrategy:
        match signal:
            case PostStart():
                return self._backoff
            case PreStop():
                return NoRetry()
        raise TypeError(f"Unsupported lifecycle signal: {signal!r}")

    async def _deliver(self, container_name: str, port: int, signal: LifecycleSignal) -> CommandResult:
        result = await self._runner.run([
            self._docker,
            "exec",
            container_name,
            "busybox",
            "wget",
            "-q",
            "-O-",
            f"127.0.0.1:{port}{hook_path(signal)}",
        ])
        if not result.ok:
            raise HookDeliveryFailed(result)
        return result

    @staticmethod
    def _log_retry(kind: str) -> Callable[[int, Exception, float], None]:
        def on_retry(attempt: int, error: Exception, delay: float) -> None:
            logger.debug(
                f"retriable {kind} error",
                retry_count=attempt - 1,
                attempt=attempt,
                delay_ms=round(delay * 1000, 1),
                message=str(error),
            )

        return on_retry
