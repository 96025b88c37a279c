"""
Fixed-interval polling with a deadline.
"""

import logging
import time
from typing import Callable, Optional

logger = logging.getLogger(__name__)


class PollTimeoutError(Exception):
    """Condition was not met before the deadline."""

    def __init__(
        self, timeout: float, attempts: int, last_error: Optional[BaseException] = None
    ):
        message = f"timed out after {timeout:.0f}s ({attempts} attempts)"
        if last_error is not None:
            message += f", last error: {last_error}"
        super().__init__(message)
        self.timeout = timeout
        self.attempts = attempts
        self.last_error = last_error


def poll_immediate(
    interval: float,
    timeout: float,
    condition: Callable[[], bool],
) -> int:
    """
    Check a condition now and then every interval until it holds.

    The condition returns True when done and False to keep polling. An
    exception raised by the condition counts as a failed attempt; the most
    recent one is attached to the PollTimeoutError raised at the deadline.

    Args:
        interval: Seconds between attempts
        timeout: Seconds after which polling stops
        condition: Zero-argument predicate

    Returns:
        Number of attempts it took

    Raises:
        PollTimeoutError: If the condition did not hold before the deadline
    """
    start = time.time()
    attempts = 0
    last_error: Optional[BaseException] = None

    while True:
        attempts += 1
        try:
            if condition():
                return attempts
        except Exception as e:
            last_error = e
            logger.debug(f"Poll attempt {attempts} failed: {e}")

        elapsed = time.time() - start
        if elapsed + interval > timeout:
            raise PollTimeoutError(timeout, attempts, last_error)
        time.sleep(interval)
