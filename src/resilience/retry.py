"""Backoff-and-retry for store writes and unlock webhooks

Transient failures (network errors, 429/5xx responses, lost database
connections, snapshot version conflicts) are retried with exponentially
growing, jittered delays; anything else is raised on the first failure.
"""

import asyncio
import random
import logging
from typing import Callable, Any, Optional, TypeVar
from functools import wraps
import httpx

from src.exceptions import AchievementEngineError, NotificationError

logger = logging.getLogger(__name__)

T = TypeVar('T')

# Retry configuration
MAX_RETRIES = 3
BASE_DELAY = 1.0  # seconds
MAX_DELAY = 30.0  # seconds
JITTER = 0.1  # fraction of the delay

RETRYABLE_STATUS_CODES = (429, 500, 502, 503, 504)


def is_retryable_error(exc: Exception) -> bool:
    """
    True when exc is worth another attempt

    Webhook responses are judged by status code (429 and 5xx retry, other
    4xx do not). Engine errors carry their own retryable flag: persistence
    failures retry, malformed events and catalog or config errors do not.
    """
    if isinstance(exc, httpx.HTTPStatusError):
        return exc.response.status_code in RETRYABLE_STATUS_CODES

    if isinstance(exc, (httpx.TimeoutException, httpx.NetworkError)):
        return True

    if isinstance(exc, NotificationError) and exc.status_code is not None:
        return exc.status_code in RETRYABLE_STATUS_CODES

    if isinstance(exc, AchievementEngineError):
        return exc.retryable

    # Default: don't retry unknown errors
    return False


def calculate_backoff(attempt: int, base_delay: float = BASE_DELAY) -> float:
    """
    Seconds to wait before retry number attempt (0-indexed)

    base_delay doubles per attempt, capped at MAX_DELAY, then shifted by up
    to JITTER of itself in either direction.
    """
    delay = min(base_delay * (2 ** attempt), MAX_DELAY)

    jitter_amount = random.uniform(-JITTER * delay, JITTER * delay)
    final_delay = delay + jitter_amount

    return max(final_delay, 0.0)


async def retry_with_backoff(
    func: Callable[..., T],
    *args: Any,
    max_retries: int = MAX_RETRIES,
    base_delay: float = BASE_DELAY,
    should_retry: Optional[Callable[[Exception], bool]] = None,
    **kwargs: Any
) -> T:
    """
    Await func(*args, **kwargs), retrying failures that should_retry accepts

    Args:
        func: Coroutine function to call
        max_retries: Retries after the first attempt
        base_delay: Delay before the first retry, in seconds
        should_retry: Decides whether an error is transient
            (default: is_retryable_error)

    Returns:
        Whatever func returns

    Raises:
        The first non-retryable error, or the last error once retries run out

    Example:
        saved = await retry_with_backoff(store.save_snapshot, snapshot, base_delay=0.05)
    """
    should_retry = should_retry or is_retryable_error
    name = getattr(func, '__name__', repr(func))

    for attempt in range(max_retries + 1):
        try:
            return await func(*args, **kwargs)

        except Exception as e:
            if not should_retry(e):
                logger.warning(
                    f"[RETRY] Non-retryable error for {name}: "
                    f"{type(e).__name__}: {e}"
                )
                raise

            if attempt == max_retries:
                logger.error(
                    f"[RETRY] All {max_retries} retries exhausted for {name}"
                )
                raise

            backoff = calculate_backoff(attempt, base_delay)

            logger.info(
                f"[RETRY] Attempt {attempt + 1}/{max_retries} for {name} "
                f"after {backoff:.2f}s (error: {type(e).__name__})"
            )

            await asyncio.sleep(backoff)

    raise RuntimeError("Retry logic failed unexpectedly")


def with_retry(max_retries: int = MAX_RETRIES, base_delay: float = BASE_DELAY) -> Callable:
    """
    Wrap a coroutine function in retry_with_backoff with the default predicate

    Example:
        @with_retry(max_retries=3)
        async def deliver():
            ...
    """
    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        @wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> T:
            return await retry_with_backoff(
                func, *args, max_retries=max_retries, base_delay=base_delay, **kwargs
            )
        return wrapper
    return decorator
