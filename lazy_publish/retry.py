"""Retry with exponential backoff for registry calls."""

from __future__ import annotations

import random
import time
from collections.abc import Callable
from typing import TypeVar

from pydantic import BaseModel, ConfigDict, Field

from .errors import TransientRegistryError
from .logs import get_logger

logger = get_logger(__name__)

T = TypeVar("T")

# Timeouts are treated exactly like any other transient failure
RETRYABLE = (TransientRegistryError, TimeoutError)


class RetryPolicy(BaseModel):
    """How often and how patiently to retry transient registry failures.

    Attributes:
        max_attempts: Total attempts, including the first one.
        base_delay: Delay before the second attempt, in seconds. Doubles
                    after every further failure.
        max_delay: Upper bound for the exponential part of the delay.
        jitter: Random extra delay in [0, jitter] seconds.
    """

    model_config = ConfigDict(extra="forbid")

    max_attempts: int = Field(default=5, ge=1)
    base_delay: float = Field(default=1.0, ge=0)
    max_delay: float = Field(default=30.0, ge=0)
    jitter: float = Field(default=0.3, ge=0)

    def delay(self, attempt: int) -> float:
        """Seconds to wait after the given (1-based) failed attempt."""
        backoff = min(self.max_delay, self.base_delay * 2 ** (attempt - 1))
        return backoff + random.uniform(0.0, self.jitter)


def call_with_retry(
    fn: Callable[[], T],
    policy: RetryPolicy,
    *,
    describe: str,
    sleep: Callable[[float], None] = time.sleep,
) -> T:
    """Call fn, retrying transient failures with exponential backoff.

    Non-transient exceptions propagate immediately.

    Args:
        fn: Zero-argument callable performing one registry call.
        policy: Attempt count and delays.
        describe: Short label for log messages (e.g. "fetch pkg-a").
        sleep: Sleep function; injectable for tests.

    Raises:
        TransientRegistryError: When every attempt failed transiently.
    """
    last_exc: Exception | None = None
    for attempt in range(1, policy.max_attempts + 1):
        try:
            return fn()
        except RETRYABLE as exc:
            last_exc = exc
            logger.warning(
                "%s failed (%d/%d): %s", describe, attempt, policy.max_attempts, exc
            )
        if attempt < policy.max_attempts:
            delay = policy.delay(attempt)
            logger.debug("Retrying %s in %.2fs", describe, delay)
            sleep(delay)

    raise TransientRegistryError(
        f"{describe} failed after {policy.max_attempts} attempts: {last_exc}",
        details={"attempts": policy.max_attempts},
    ) from last_exc
