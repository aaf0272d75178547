"""Bounded retry with a fixed delay.

Only the last attempt's outcome is surfaced: earlier failures are logged and
dropped, the final attempt runs unwrapped so its exact exception reaches the
caller.  Operations receive the 1-based attempt number so they can reload
version-checked state before trying again.
"""

import time
from collections.abc import Callable
from typing import TypeVar

from pydantic import BaseModel, Field

from app.utils.logging import get_logger

T = TypeVar("T")

logger = get_logger("app.utils.retry")


def with_tries(n: int, operation: Callable[[int], T], *, interval: float = 0.2) -> T:
    """Run ``operation(attempt_no)`` up to *n* times.

    Args:
        n:          Total number of attempts; must be at least 1.
        operation:  Called with the attempt number (1..n).
        interval:   Seconds to wait after a failed non-final attempt.
                    ``0`` skips the wait entirely.

    Returns:
        The value of the first successful attempt.

    Raises:
        ValueError: If *n* < 1.
        Exception:  Whatever the n-th attempt raises, unchanged.
    """
    if n < 1:
        raise ValueError(f"attempts must be >= 1, got {n}")

    for attempt in range(1, n):
        try:
            return operation(attempt)
        except Exception as exc:  # noqa: BLE001 - the final attempt surfaces errors
            logger.debug("attempt_failed", attempt=attempt, attempts=n, error=repr(exc))
        if interval > 0:
            time.sleep(interval)
    return operation(n)


class RetryPolicy(BaseModel):
    attempts: int = Field(default=1, ge=1)
    interval_ms: int = Field(default=200, ge=0)

    def run(self, operation: Callable[[int], T]) -> T:
        return with_tries(self.attempts, operation, interval=self.interval_ms / 1000)
