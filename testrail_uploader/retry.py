"""Retry logic with backoff for TestRail uploads.

The uploader never retries on its own; callers that want to can wrap an
upload with retry_with_backoff(). Since every reconciliation step is
idempotent, repeating a failed upload with the same results is safe.

Transient (Retryable):
- Rate limiting, maintenance windows, socket timeouts
- Other TestRail errors unless marked otherwise

Permanent (Not Retryable):
- Access denied (permissions, completed projects/suites)
- Missing credentials
- Anything that is not a TestRailError
"""

import logging
import time
from typing import Any, Callable, Optional, Sequence

from testrail_uploader.errors import TestRailError

logger = logging.getLogger(__name__)


class RetryExhausted(Exception):
    """Raised when all retry attempts have been exhausted."""

    def __init__(
        self,
        message: str,
        attempts: int,
        last_error: Optional[Exception] = None,
    ):
        super().__init__(message)
        self.attempts = attempts
        self.last_error = last_error


def is_retryable_error(error: Exception) -> bool:
    """Determine if an error is worth retrying.

    Args:
        error: The exception that was raised.

    Returns:
        True for TestRail errors flagged as retryable, False otherwise.
    """
    if isinstance(error, TestRailError):
        return error.retryable

    return False


def backoff_delay(error: TestRailError, attempt: int, delays: Sequence[float]) -> float:
    """Seconds to wait before the next attempt.

    Uses the configured delay for this attempt, stretched to whatever
    TestRail asked for through Retry-After on a rate-limited call.
    """
    delay = delays[min(attempt - 1, len(delays) - 1)]
    if error.retry_after is not None and error.retry_after > delay:
        return error.retry_after
    return delay


def retry_with_backoff(
    func: Callable[..., Any],
    max_attempts: int = 3,
    delays: Sequence[float] = (5.0, 15.0, 30.0),
    args: tuple = (),
    kwargs: Optional[dict] = None,
) -> Any:
    """Execute a function with retry logic and backoff.

    Args:
        func: The function to execute.
        max_attempts: Maximum number of attempts (including first try).
        delays: Sequence of delay times (seconds) between retries.
                delays[0] is used after first failure, etc. A longer
                Retry-After from a rate-limited call wins.
        args: Positional arguments to pass to func.
        kwargs: Keyword arguments to pass to func.

    Returns:
        The return value of func if successful.

    Raises:
        RetryExhausted: If all attempts fail with retryable errors.
        Exception: If a non-retryable error occurs, it's raised immediately.
        ValueError: If max_attempts is less than 1.

    Example:
        >>> invalid_ids = retry_with_backoff(
        ...     uploader.upload_results,
        ...     args=(results,),
        ... )
    """
    if max_attempts < 1:
        raise ValueError("max_attempts must be at least 1")
    if kwargs is None:
        kwargs = {}

    attempt = 1
    while True:
        try:
            return func(*args, **kwargs)
        except TestRailError as e:
            if not is_retryable_error(e):
                raise
            if attempt >= max_attempts:
                raise RetryExhausted(
                    f"Operation failed after {max_attempts} attempts",
                    attempts=max_attempts,
                    last_error=e,
                ) from e

            delay = backoff_delay(e, attempt, delays)
            logger.warning(
                "TestRail call failed on attempt %s/%s (%s), retrying in %ss",
                attempt,
                max_attempts,
                e.status.name,
                delay,
            )
            time.sleep(delay)
            attempt += 1
