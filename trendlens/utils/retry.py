"""Bounded retry with backoff, shared by the enrichment call and the DB bootstrap."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
import logging
import time
from typing import Awaitable, Callable, Optional, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _no_hint(_: BaseException) -> Optional[float]:
    return None


@dataclass(frozen=True)
class RetryPolicy:
    """How many times to try, how long to wait, and which errors are worth another attempt."""

    max_attempts: int
    base_delay: float
    is_retryable: Callable[[BaseException], bool]
    max_delay: Optional[float] = None
    delay_hint: Callable[[BaseException], Optional[float]] = field(default=_no_hint)
    """Provider-supplied wait (e.g. a retry-after header); wins over the computed backoff."""

    def delay_for(self, attempt: int, exc: BaseException) -> float:
        """Delay before attempt + 1. Exponential from base_delay, capped by max_delay."""
        hinted = self.delay_hint(exc)
        if hinted is not None:
            delay = max(float(hinted), 0.0)
        else:
            delay = self.base_delay * (2 ** max(attempt - 1, 0))
        if self.max_delay is not None:
            delay = min(delay, self.max_delay)
        return delay

    @classmethod
    def fixed(cls, *, max_attempts: int, delay: float, is_retryable: Callable[[BaseException], bool]) -> "RetryPolicy":
        return cls(max_attempts=max_attempts, base_delay=delay, max_delay=delay, is_retryable=is_retryable)


async def retry_async(
    operation: Callable[[], Awaitable[T]],
    policy: RetryPolicy,
    *,
    sleeper: Callable[[float], Awaitable[None]] = asyncio.sleep,
    label: str = "operation",
) -> T:
    """
    Await operation until it succeeds or the policy gives up

    Non-retryable errors and the error of the final attempt propagate unchanged.
    """
    attempts = max(policy.max_attempts, 1)
    for attempt in range(1, attempts + 1):
        try:
            return await operation()
        except Exception as exc:
            if attempt == attempts or not policy.is_retryable(exc):
                raise
            delay = policy.delay_for(attempt, exc)
            logger.warning(f"{label} failed (attempt {attempt}/{attempts}), retrying in {delay:.2f}s: {exc}")
            await sleeper(delay)
    raise AssertionError("unreachable")


def retry_sync(
    operation: Callable[[], T],
    policy: RetryPolicy,
    *,
    sleeper: Callable[[float], None] = time.sleep,
    label: str = "operation",
) -> T:
    """Blocking twin of retry_async."""
    attempts = max(policy.max_attempts, 1)
    for attempt in range(1, attempts + 1):
        try:
            return operation()
        except Exception as exc:
            if attempt == attempts or not policy.is_retryable(exc):
                raise
            delay = policy.delay_for(attempt, exc)
            logger.warning(f"{label} failed (attempt {attempt}/{attempts}), retrying in {delay:.2f}s: {exc}")
            sleeper(delay)
    raise AssertionError("unreachable")
