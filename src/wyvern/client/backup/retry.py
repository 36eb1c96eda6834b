"""Retry logic with exponential backoff.

This module provides:
- is_retriable: Decide whether a failed call is worth another attempt
- retry_with_backoff: Exponential backoff retry honoring that decision

Classification favors retrying: an unrecognized failure is retried rather
than leaving a photo un-backed-up.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from typing import TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Default retry configuration
DEFAULT_MAX_RETRIES = 3
DEFAULT_BASE_DELAY = 2.0  # seconds

RETRIABLE_MESSAGE_PATTERNS = ("timeout", "network", "fetch failed")

# Called before each backoff sleep with (retry number, delay, error)
RetryCallback = Callable[[int, float, BaseException], None]


def error_code_of(error: BaseException) -> int | None:
    """Extract an HTTP-style status code carried by an error, if any."""
    for attr in ("error_code", "status_code", "code"):
        value = getattr(error, attr, None)
        if isinstance(value, int) and not isinstance(value, bool):
            return value
    return None


def is_retriable(error: BaseException) -> bool:
    """Check whether an error is transient.

    Args:
        error: The exception raised by the failed attempt.

    Returns:
        False only for 4xx client errors other than 429.
    """
    code = error_code_of(error)
    if code is not None:
        if 500 <= code < 600 or code == 429:
            return True
        if 400 <= code < 500:
            return False

    message = str(error).lower()
    if any(pattern in message for pattern in RETRIABLE_MESSAGE_PATTERNS):
        return True

    # Unknown failures are retried
    return True


def retry_with_backoff(
    func: Callable[[], T],
    max_retries: int = DEFAULT_MAX_RETRIES,
    base_delay: float = DEFAULT_BASE_DELAY,
    on_retry: RetryCallback | None = None,
    classify: Callable[[BaseException], bool] = is_retriable,
) -> T:
    """Execute a function, retrying transient failures with backoff.

    The delay before retry n (0-indexed) is base_delay * 2**n.

    Args:
        func: Function to execute.
        max_retries: Retries after the first attempt.
        base_delay: Delay before the first retry, in seconds.
        on_retry: Optional callback invoked before each backoff sleep.
        classify: Decides whether an error is retriable.

    Returns:
        Result of the function.

    Raises:
        The first non-retriable exception, or the last exception once
        retries are exhausted.
    """
    last_exception: Exception | None = None

    for attempt in range(max_retries + 1):
        try:
            return func()
        except Exception as e:
            last_exception = e
            if not classify(e):
                logger.info(f"Attempt {attempt + 1} failed with non-retriable error: {e}")
                raise

            if attempt == max_retries:
                logger.error(f"All {max_retries} retries failed: {e}")
                raise

            delay = base_delay * (2**attempt)
            logger.warning(
                f"Attempt {attempt + 1}/{max_retries + 1} failed: {e}. "
                f"Retrying in {delay:.1f}s..."
            )
            if on_retry:
                on_retry(attempt + 1, delay, e)
            time.sleep(delay)

    # Should not reach here, but satisfy type checker
    if last_exception:
        raise last_exception
    raise RuntimeError("Unexpected retry loop exit")

