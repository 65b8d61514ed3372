"""
Bounded retry with exponential backoff for store operations.

Only failures the caller classifies as retryable are retried; anything
else propagates on the first occurrence.
"""

import asyncio
import logging
from typing import Awaitable, Callable, TypeVar

from config import RETRY_BASE_DELAY, RETRY_MAX_ATTEMPTS

logger = logging.getLogger(__name__)

T = TypeVar("T")


def exponential_backoff(base_delay: float = RETRY_BASE_DELAY) -> Callable[[int], float]:
    """Delay for attempt n (0-based) is base_delay * 2**n seconds."""
    def backoff(attempt: int) -> float:
        return base_delay * (2 ** attempt)
    return backoff


async def with_retry(
    operation: Callable[[], Awaitable[T]],
    is_retryable: Callable[[BaseException], bool],
    max_attempts: int = RETRY_MAX_ATTEMPTS,
    backoff: Callable[[int], float] = None,
) -> T:
    """
    Await ``operation()`` until it succeeds or attempts run out.

    Args:
        operation: Zero-argument coroutine factory; called once per attempt
        is_retryable: Classifier for exceptions worth another attempt
        max_attempts: Total attempts including the first one
        backoff: Maps the failed attempt number to a sleep in seconds

    Returns:
        Whatever the successful attempt returned

    Raises:
        The last exception when it is not retryable or attempts are exhausted
    """
    if max_attempts < 1:
        raise ValueError("max_attempts must be at least 1")
    if backoff is None:
        backoff = exponential_backoff()

    for attempt in range(max_attempts):
        try:
            return await operation()
        except Exception as e:
            if not is_retryable(e):
                raise
            logger.warning(f"Retryable failure on attempt {attempt + 1}/{max_attempts}: {e}")
            if attempt == max_attempts - 1:
                raise
            await asyncio.sleep(backoff(attempt))

    raise RuntimeError("unreachable")
