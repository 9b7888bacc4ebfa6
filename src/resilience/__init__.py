"""Resilience patterns for persistence and notification calls

Retry with exponential backoff for transient failures: lost database
connections, snapshot version conflicts, webhook timeouts and 5xx replies.
"""

from src.resilience.retry import (
    calculate_backoff,
    is_retryable_error,
    retry_with_backoff,
    with_retry,
)

__all__ = [
    "calculate_backoff",
    "is_retryable_error",
    "retry_with_backoff",
    "with_retry",
]
