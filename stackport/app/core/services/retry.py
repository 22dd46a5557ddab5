"""Bounded retry of read-modify-write scopes on optimistic-concurrency conflicts.

Only ``ConflictError`` is retried; every other error propagates on the first
attempt. Each scope keeps its own attempt count and the delays it slept, so
callers and tests can inspect exactly what happened.
"""

from __future__ import annotations

import asyncio
import random
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field

from loguru import logger

from stackport.app.core.errors import ConflictError, RetryExhaustedError

Sleep = Callable[[float], Awaitable[None]]


@dataclass(frozen=True)
class RetryPolicy:
    """Attempt ceiling and backoff schedule.

    The delay before attempt ``n + 1`` is
    ``min(initial_delay * factor ** (n - 1), max_delay)`` stretched by up to
    ``jitter`` (a fraction of the delay).
    """

    attempts: int = 5
    initial_delay: float = 0.01
    factor: float = 2.0
    jitter: float = 0.1
    max_delay: float = 1.0

    def __post_init__(self) -> None:
        if self.attempts < 1:
            raise ValueError("attempts must be at least 1")
        if self.initial_delay < 0 or self.max_delay < 0:
            raise ValueError("delays must be non-negative")
        if self.factor < 1:
            raise ValueError("factor must be >= 1 so delays never shrink")

    def base_delay(self, attempt: int) -> float:
        """Un-jittered delay after the given (1-based) failed attempt."""
        return min(self.initial_delay * self.factor ** (attempt - 1), self.max_delay)

    def delay(self, attempt: int, rand: Callable[[], float] = random.random) -> float:
        base = self.base_delay(attempt)
        return base + base * self.jitter * rand()

    def schedule(self) -> list[float]:
        """Un-jittered delays between all attempts."""
        return [self.base_delay(n) for n in range(1, self.attempts)]


@dataclass
class RetryScope:
    """State of one conflict-retry scope."""

    label: str
    policy: RetryPolicy
    sleep: Sleep = asyncio.sleep
    rand: Callable[[], float] = random.random
    attempts: int = 0
    delays: list[float] = field(default_factory=list)
    conflicts: list[ConflictError] = field(default_factory=list)

    @property
    def retried(self) -> bool:
        return self.attempts > 1

    async def run[T](self, operation: Callable[[], Awaitable[T]]) -> T:
        """Run ``operation`` until it succeeds or the attempt ceiling is hit.

        Raises:
            RetryExhaustedError: Every attempt ended in a conflict
        """
        while True:
            self.attempts += 1
            try:
                return await operation()
            except ConflictError as e:
                self.conflicts.append(e)
                if self.attempts >= self.policy.attempts:
                    logger.warning(
                        f"{self.label}: giving up after {self.attempts} conflicting attempts"
                    )
                    raise RetryExhaustedError(self.attempts, e) from e

                delay = self.policy.delay(self.attempts, self.rand)
                self.delays.append(delay)
                logger.warning(
                    f"{self.label}: conflict on attempt {self.attempts}, retrying in {delay:.3f}s"
                )
                await self.sleep(delay)


class ConflictRetry:
    """Factory of retry scopes sharing one policy and sleep function."""

    def __init__(
        self,
        policy: RetryPolicy | None = None,
        *,
        sleep: Sleep = asyncio.sleep,
        rand: Callable[[], float] = random.random,
    ) -> None:
        self.policy = policy or RetryPolicy()
        self._sleep = sleep
        self._rand = rand

    def scope(self, label: str) -> RetryScope:
        return RetryScope(label=label, policy=self.policy, sleep=self._sleep, rand=self._rand)

    async def run[T](self, label: str, operation: Callable[[], Awaitable[T]]) -> T:
        return await self.scope(label).run(operation)
