"""
Bounded retry for fallible sync operations.
"""
import logging
import time
from typing import Callable, TypeVar

from mailsync.services.error_classifier import classify_error

logger = logging.getLogger(__name__)

T = TypeVar("T")


def retry_operation(
    operation: Callable[[], T],
    max_attempts: int = 3,
    base_delay: float = 1.0,
    sleep: Callable[[float], None] = time.sleep,
    description: str = "operation",
) -> T:
    """
    Run ``operation`` with linear backoff between attempts.

    The wait before retry ``n`` is ``n * base_delay`` seconds. Errors that
    classify as non-retryable are re-raised immediately; otherwise the last
    error is re-raised once ``max_attempts`` is exhausted.

    Args:
        operation: Zero-argument callable to run
        max_attempts: Total number of attempts (>= 1)
        base_delay: Backoff unit in seconds
        sleep: Sleep function, blocks only the calling thread
        description: Label used in log messages

    Returns:
        Whatever ``operation`` returns
    """
    if max_attempts < 1:
        raise ValueError(f"max_attempts must be >= 1, got {max_attempts}")

    for attempt in range(1, max_attempts + 1):
        try:
            return operation()
        except Exception as e:
            classified = classify_error(e)

            if not classified.retryable:
                logger.warning(
                    f"{description} failed with non-retryable {classified.type.value} error: {e}"
                )
                raise

            if attempt == max_attempts:
                logger.error(f"{description} failed after {max_attempts} attempts: {e}")
                raise

            delay = attempt * base_delay
            logger.info(
                f"{description} failed ({classified.type.value}), "
                f"retry {attempt}/{max_attempts} in {delay:.1f}s"
            )
            sleep(delay)
