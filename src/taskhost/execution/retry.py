"""Retry strategies with exponential backoff, jitter, and bounded attempts.

Used by the lifecycle hook dispatcher: ``postStart`` delivery retries with
exponential backoff, ``preStop`` delivery never retries.

Example:
    >>> from taskhost.execution.retry import ExponentialBackoff
    >>>
    >>> strategy = ExponentialBackoff(max_retries=6, base_delay=0.05, max_delay=1.15, jitter=0.05)
    >>> for retry in range(6):
    ...     delay = strategy.next_delay(retry)
    ...     print(f"Retry {retry}: wait {delay * 1000:.0f}ms")
"""

import asyncio
import random
from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any, TypeVar

T = TypeVar("T")


class RetryStrategy(ABC):
    """Abstract base for retry strategies."""

    @abstractmethod
    def next_delay(self, retry: int) -> float:
        """Calculate delay before the next attempt.

        Args:
            retry: Zero-based retry number (0 = first retry)

        Returns:
            Delay in seconds before next attempt
        """
        ...

    @abstractmethod
    def should_retry(self, retries_done: int) -> bool:
        """Determine if another attempt should be made.

        Args:
            retries_done: Number of retries already performed

        Returns:
            True if should retry, False otherwise
        """
        ...


@dataclass
class ExponentialBackoff(RetryStrategy):
    """Exponential backoff with additive jitter.

    Delay = min(base_delay * (multiplier ** retry), max_delay) + uniform(0, jitter)

    The jitter is added *after* the cap, so the largest possible delay is
    ``max_delay + jitter``.

    Attributes:
        max_retries: Maximum number of retries (attempts = max_retries + 1)
        base_delay: Delay before the first retry, in seconds
        max_delay: Cap applied before jitter, in seconds
        multiplier: Exponential multiplier (default: 2)
        jitter: Upper bound of the uniform random jitter, in seconds
        rng: Random source (seedable for reproducible tests)
    """

    max_retries: int = 3
    base_delay: float = 1.0
    max_delay: float = 60.0
    multiplier: float = 2.0
    jitter: float = 0.0
    rng: random.Random = field(default_factory=random.Random, repr=False, compare=False)

    def next_delay(self, retry: int) -> float:
        """Calculate exponential backoff delay."""
        delay = min(
            self.base_delay * (self.multiplier ** retry),
            self.max_delay,
        )
        if self.jitter > 0:
            delay += self.rng.uniform(0, self.jitter)
        return delay

    def should_retry(self, retries_done: int) -> bool:
        """Check if retry should be attempted."""
        return retries_done < self.max_retries


@dataclass
class NoRetry(RetryStrategy):
    """No retry - fail immediately."""

    def next_delay(self, retry: int) -> float:
        """No delay needed."""
        return 0.0

    def should_retry(self, retries_done: int) -> bool:
        """Never retry."""
        return False


@dataclass
class RetryContext:
    """Bounded retry loop that tracks attempts and the delays slept.

    The loop is explicit (no recursion) and the sleep function is
    injectable, so a test can record the backoff schedule without waiting.

    Example:
        >>> ctx = RetryContext(ExponentialBackoff(max_retries=3))
        >>> result = await ctx.run_async(call_hook)
        >>> ctx.attempts
        1
    """

    strategy: RetryStrategy
    on_retry: Callable[[int, Exception, float], None] | None = None
    sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep
    attempt: int = field(default=0, init=False)
    delays: list[float] = field(default_factory=list, init=False)

    @property
    def attempts(self) -> int:
        """Number of attempts made."""
        return self.attempt

    @property
    def retries(self) -> int:
        """Number of retries made (attempts after the first)."""
        return max(self.attempt - 1, 0)

    async def run_async(self, func: Callable[..., Awaitable[T]], *args: Any, **kwargs: Any) -> T:
        """Execute async function with retry logic.

        Args:
            func: Async function to execute
            *args: Positional arguments for func
            **kwargs: Keyword arguments for func

        Returns:
            Result from successful function call

        Raises:
            Last exception if all retries exhausted
        """
        while True:
            self.attempt += 1
            try:
                return await func(*args, **kwargs)
            except Exception as e:
                retry = self.attempt - 1
                if not self.strategy.should_retry(retry):
                    raise

                delay = self.strategy.next_delay(retry)
                self.delays.append(delay)

                if self.on_retry:
                    self.on_retry(self.attempt, e, delay)

                await self.sleep(delay)
