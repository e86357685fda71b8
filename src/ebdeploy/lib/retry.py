"""Bounded retry with exponential backoff for remote platform calls.

Every mutating call against the platform goes through ``retry_with_backoff``.
The delay before retrying after attempt ``k`` (1-indexed) is
``base_delay * 2 ** (k - 1)`` seconds, with no jitter.
"""

from __future__ import annotations

import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import TypeVar

from ebdeploy.lib.errors import RetryExhaustedError
from ebdeploy.lib.logging_config import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class RetryPolicy:
    """Retry settings shared by every mutating call of one invocation.

    Attributes:
        max_attempts: Total number of attempts, including the first one.
        base_delay: Delay in seconds before the first retry.

    Example:
        With ``max_attempts=3`` and ``base_delay=5`` the delays are 5s, 10s.
    """

    max_attempts: int = 3
    base_delay: float = 5.0

    @classmethod
    def from_max_retries(cls, max_retries: int, retry_delay: float) -> RetryPolicy:
        """Build a policy from the configured retry count.

        A configured count of 0 still performs the call once.
        """
        return cls(max_attempts=max(max_retries, 1), base_delay=retry_delay)


def backoff_delay(base_delay: float, attempt: int) -> float:
    """Return ``base_delay * 2 ** (attempt - 1)``."""
    return base_delay * (2 ** (attempt - 1))


def retry_with_backoff(
    operation: Callable[[], T],
    max_attempts: int,
    base_delay: float,
    label: str,
    *,
    sleep: Callable[[float], None] = time.sleep,
) -> T:
    """Call ``operation`` until it succeeds or ``max_attempts`` is reached.

    Args:
        operation: Zero-argument callable performing one remote call.
        max_attempts: Maximum number of attempts. Callers must pass >= 1;
            with 0 the operation is never called.
        base_delay: Delay in seconds before the first retry.
        label: Human-readable operation name used in logs and errors.
        sleep: Blocking sleep function (injectable for tests).

    Returns:
        Whatever ``operation`` returns on its first successful attempt.

    Raises:
        RetryExhaustedError: If every attempt failed.
    """
    last_error: Exception | None = None

    for attempt in range(1, max_attempts + 1):
        try:
            return operation()
        except Exception as exc:
            last_error = exc
            if attempt < max_attempts:
                delay = backoff_delay(base_delay, attempt)
                logger.warning(
                    f"{label} failed (attempt {attempt}/{max_attempts}). "
                    f"Retrying in {delay:g}s..."
                )
                sleep(delay)

    error = RetryExhaustedError(
        operation=label, attempts=max_attempts, last_error=last_error
    )
    logger.error(error.message)
    raise error from last_error


def retry_with_policy(
    operation: Callable[[], T],
    policy: RetryPolicy,
    label: str,
    *,
    sleep: Callable[[float], None] = time.sleep,
) -> T:
    """Run ``retry_with_backoff`` with settings taken from a ``RetryPolicy``."""
    return retry_with_backoff(
        operation,
        policy.max_attempts,
        policy.base_delay,
        label,
        sleep=sleep,
    )
