"""
Backoff retries for read-only node queries.

Only transport-level failures (connection resets, timeouts) are retried.
Node answers such as reverts are deterministic and surface immediately,
and state-changing calls never pass through here: resending a
transaction could spend a nonce twice.
"""

from __future__ import annotations

import asyncio
import random
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Optional, Tuple, Type, TypeVar

from monitorchain.utils.logging import get_logger

__all__ = ["RetryConfig", "calculate_delay", "retry_async"]

T = TypeVar("T")

_logger = get_logger(__name__)

TRANSPORT_ERRORS: Tuple[Type[BaseException], ...] = (
    ConnectionError,
    TimeoutError,
    asyncio.TimeoutError,
)


@dataclass
class RetryConfig:
    """
    Retry policy for node queries.

    Attributes:
        max_attempts: Total attempts including the first (1 disables retries)
        base_delay_ms: Delay before the first retry
        max_delay_ms: Upper bound for any single delay
        jitter: Draw each delay uniformly from ``[0, delay]``
        exponential_base: Growth factor between consecutive delays
        retryable_errors: Exception types worth another attempt
    """

    max_attempts: int = 3
    base_delay_ms: int = 500
    max_delay_ms: int = 10000
    jitter: bool = True
    exponential_base: float = 2.0
    retryable_errors: Tuple[Type[BaseException], ...] = field(default=TRANSPORT_ERRORS)


def calculate_delay(attempt: int, config: RetryConfig) -> float:
    """Seconds to wait before retry number ``attempt`` (0-based)."""
    ceiling = min(config.base_delay_ms * config.exponential_base ** attempt, config.max_delay_ms)
    if config.jitter:
        ceiling = random.uniform(0, ceiling)
    return ceiling / 1000


async def retry_async(
    fn: Callable[[], Awaitable[T]],
    config: Optional[RetryConfig] = None,
    operation: str = "operation",
) -> T:
    """
    Await ``fn()`` until it succeeds or the policy gives up.

    Raises:
        The last retryable error once attempts are exhausted; any other
        error on first occurrence.
    """
    config = config or RetryConfig()
    attempts = max(config.max_attempts, 1)
    attempt = 0
    while True:
        try:
            return await fn()
        except config.retryable_errors as e:
            attempt += 1
            if attempt >= attempts:
                raise
            delay = calculate_delay(attempt - 1, config)
            _logger.debug(
                "Retrying node query",
                extra={"operation": operation, "attempt": attempt, "delay": round(delay, 3), "error": str(e)},
            )
            await asyncio.sleep(delay)
