# -*- coding: utf-8 -*-
"""
Retry with exponential backoff and jitter (tenacity).

Features:
- Only classified transient errors are retried (see errors.is_retryable)
- Exponential delay capped at a maximum, with +/- jitter
- The last error is re-raised unchanged once the budget is spent
"""
import asyncio
import logging
import random
from dataclasses import dataclass, field
from typing import Awaitable, Callable, TypeVar

from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception,
    stop_after_attempt,
)
from tenacity.wait import wait_base

from .errors import is_retryable

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class RetryPolicy:
    """Backoff parameters. Delays are in seconds."""

    max_retries: int = 3
    base_delay: float = 0.5
    max_delay: float = 30.0
    multiplier: float = 2.0
    jitter: float = 0.2
    rng: random.Random = field(default_factory=random.Random, compare=False, repr=False)

    def __post_init__(self):
        if self.max_retries < 0:
            raise ValueError("max_retries must be >= 0")
        if self.base_delay < 0 or self.max_delay < 0:
            raise ValueError("delays must be >= 0")
        if not 0 <= self.jitter < 1:
            raise ValueError("jitter must be in [0, 1)")

    def nominal_delay(self, attempt: int) -> float:
        """Un-jittered delay before retry number `attempt` (1-based)."""
        if attempt <= 0:
            return 0.0
        return min(self.base_delay * self.multiplier ** (attempt - 1), self.max_delay)

    def delay_for_attempt(self, attempt: int) -> float:
        """Jittered delay before retry number `attempt`, never above the cap."""
        nominal = self.nominal_delay(attempt)
        if nominal == 0 or self.jitter == 0:
            return nominal
        spread = nominal * self.jitter
        return max(0.0, min(nominal + self.rng.uniform(-spread, spread), self.max_delay))

    def retrying(self, sleep: Callable[[float], Awaitable[None]] | None = None) -> AsyncRetrying:
        """Build the tenacity controller for one logical operation."""
        return AsyncRetrying(
            retry=retry_if_exception(is_retryable),
            stop=stop_after_attempt(self.max_retries + 1),
            wait=wait_backoff(self),
            sleep=sleep or asyncio.sleep,
            before_sleep=_log_before_sleep,
            reraise=True,
        )

    async def run(
            self,
            operation: Callable[[], Awaitable[T]],
            sleep: Callable[[float], Awaitable[None]] | None = None,
    ) -> T:
        """
        Execute `operation` under this policy.

        Args:
            operation: Zero-argument coroutine function, re-invoked on each attempt
            sleep: Awaitable sleep used between attempts (defaults to asyncio.sleep)

        Returns:
            The first successful result

        Raises:
            The last error when it is not retryable or the budget is exhausted
        """
        return await self.retrying(sleep)(operation)


class wait_backoff(wait_base):
    """Tenacity wait strategy backed by a RetryPolicy."""

    def __init__(self, policy: RetryPolicy):
        self.policy = policy

    def __call__(self, retry_state: RetryCallState) -> float:
        return self.policy.delay_for_attempt(retry_state.attempt_number)


def _log_before_sleep(retry_state: RetryCallState) -> None:
    error = retry_state.outcome.exception() if retry_state.outcome else None
    delay = retry_state.next_action.sleep if retry_state.next_action else 0.0
    logger.warning(
        f"Retrying after {type(error).__name__} "
        f"(attempt {retry_state.attempt_number}), waiting {delay:.2f}s",
        extra={
            "attempt": retry_state.attempt_number,
            "elapsed": round(retry_state.seconds_since_start or 0.0, 3),
            "error_kind": type(error).__name__,
        },
    )
