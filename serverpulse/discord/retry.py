"""Retry policy for Discord REST calls.

Exponential backoff with jitter; a rate limit's ``retry_after`` overrides
the computed delay.
"""

from __future__ import annotations

import asyncio
import logging
import random
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional, TypeVar

from .errors import DiscordApiError, is_recoverable_discord_error

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class RetryConfig:
    """Retry configuration."""

    attempts: int = 3
    min_delay_ms: int = 500
    max_delay_ms: int = 30000
    jitter: float = 0.1


DISCORD_RETRY_DEFAULTS = RetryConfig()


def retry_after_ms(err: Exception) -> Optional[int]:
    """Extract a rate limit's retry_after (ms) from a Discord error."""
    if isinstance(err, DiscordApiError) and err.retry_after is not None:
        return int(err.retry_after * 1000)
    return None


async def retry_async(
    fn: Callable[[], Awaitable[T]],
    config: Optional[RetryConfig] = None,
    should_retry: Callable[[Exception], bool] = is_recoverable_discord_error,
    label: Optional[str] = None,
    sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
) -> T:
    """Retry an async function with exponential backoff.

    Args:
        fn: Async function to retry
        config: Retry configuration
        should_retry: Decides whether an error is retryable
        label: Label for logging
        sleep: Sleep coroutine (injectable for tests)

    Returns:
        Result of fn()

    Raises:
        The last exception if all attempts fail or the error is final
    """
    config = config or DISCORD_RETRY_DEFAULTS

    for attempt in range(1, config.attempts + 1):
        try:
            return await fn()
        except Exception as e:
            if not should_retry(e) or attempt >= config.attempts:
                raise

            delay_ms = min(config.min_delay_ms * (2 ** (attempt - 1)), config.max_delay_ms)
            if config.jitter > 0:
                jitter_amount = delay_ms * config.jitter
                delay_ms += random.uniform(-jitter_amount, jitter_amount)

            custom_delay = retry_after_ms(e)
            if custom_delay is not None:
                delay_ms = custom_delay

            delay_ms = max(0, delay_ms)
            logger.info(
                f"discord {label or 'request'} retry {attempt}/{config.attempts} "
                f"in {delay_ms:.0f}ms: {e}"
            )
            await sleep(delay_ms / 1000)

    raise RuntimeError("retry_async called with attempts < 1")
