"""Retry strategy for provider calls.

Exponential backoff with jitter, applied to a single AI call. This is the
only automatic retry in the service: user-level actions (answering a field,
submitting the profile) are never retried behind the user's back.
"""

import asyncio
import logging
import random
from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING, TypeVar

from gigfolio.providers.errors import RateLimitError, TransientError

__all__ = ["with_retries"]

if TYPE_CHECKING:
    from gigfolio.providers.config import ProviderConfig

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _backoff_seconds(attempt: int, error: Exception, config: "ProviderConfig") -> float:
    if isinstance(error, RateLimitError) and error.retry_after_seconds:
        return error.retry_after_seconds
    base_delay = config.retry_base_delay_ms * (2**attempt)
    jitter = random.uniform(0, base_delay * 0.1)  # nosec B311
    return min(base_delay + jitter, config.retry_max_delay_ms) / 1000


async def with_retries(
    func: Callable[[], Awaitable[T]],
    config: "ProviderConfig",
    retryable_errors: tuple[type[Exception], ...] = (TransientError, RateLimitError),
) -> T:
    """Execute an async call with exponential backoff retry.

    Args:
        func: Async function to execute (no arguments).
        config: Provider configuration with retry settings.
        retryable_errors: Error types that should trigger a retry.

    Returns:
        Result from the first successful execution.

    Raises:
        The last retryable error once the budget is spent; any
        non-retryable error immediately.
    """
    attempts = config.max_retries + 1
    for attempt in range(attempts):
        try:
            return await func()
        except retryable_errors as e:
            if attempt == attempts - 1:
                raise
            delay = _backoff_seconds(attempt, e, config)
            logger.warning(
                "Provider error (attempt %d/%d): %s. Retrying in %.2fs",
                attempt + 1,
                attempts,
                e,
                delay,
            )
            await asyncio.sleep(delay)

    raise RuntimeError("Retry loop exited without error or result")
