# src/llm/retry.py — v2
"""Bounded retry loop with exponential backoff.

One helper serves both failure kinds a completion call can hit: transport
errors and structured output that fails validation. Both draw from the
same budget, so ``retries=3`` always means at most four attempts.
"""

from __future__ import annotations

import asyncio
import logging
import random
from dataclasses import dataclass
from typing import Awaitable, Callable, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class RetryConfig:
    """Delay policy between attempts."""

    base_delay_s: float = 0.5
    backoff_factor: float = 2.0
    jitter: bool = True
    max_delay_s: float = 30.0


NO_DELAY = RetryConfig(base_delay_s=0.0, jitter=False)


def _compute_delay(config: RetryConfig, attempt: int) -> float:
    """Compute delay before retry number ``attempt`` (0-based)."""
    delay = config.base_delay_s * (config.backoff_factor ** attempt)
    if config.jitter:
        delay *= 0.5 + random.random()  # noqa: S311
    return min(delay, config.max_delay_s)


async def with_retry(
    fn: Callable[[], Awaitable[T]],
    *,
    retries: int,
    retry_on: tuple[type[BaseException], ...],
    config: RetryConfig | None = None,
    on_retry: Callable[[BaseException, int], None] | None = None,
) -> T:
    """Await ``fn()`` until it succeeds or the budget is spent.

    Args:
        fn: Zero-argument coroutine factory, called once per attempt.
        retries: Additional attempts after the first one.
        retry_on: Exception types that trigger another attempt. Anything
            else propagates immediately.
        config: Delay policy (defaults to RetryConfig()).
        on_retry: Called with (error, retries_left) before each retry.

    Raises:
        The last exception raised by ``fn`` once ``retries`` is exhausted.
    """
    cfg = config or RetryConfig()
    remaining = max(retries, 0)
    attempt = 0

    while True:
        try:
            return await fn()
        except retry_on as e:
            if remaining <= 0:
                raise
            remaining -= 1
            if on_retry is not None:
                on_retry(e, remaining)
            delay = _compute_delay(cfg, attempt)
            attempt += 1
            logger.debug(
                "%s (%d retries left), retrying in %.2fs",
                type(e).__name__, remaining, delay,
            )
            if delay > 0:
                await asyncio.sleep(delay)
