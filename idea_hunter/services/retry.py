"""
Retry with exponential backoff, decoupled from any upstream's error shapes

Usage:
    result = attempt(lambda: client.call(), RetryPolicy(), is_retryable, is_quota_error)
    if result.ok:
        use(result.value)
"""
import time
from dataclasses import dataclass
from typing import Callable, Generic, Optional, TypeVar

from loguru import logger

T = TypeVar("T")


@dataclass(frozen=True)
class RetryPolicy:
    max_attempts: int = 3
    initial_delay: float = 1.0
    max_delay: float = 30.0

    def __post_init__(self):
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")

    def delay_for(self, attempt_number: int) -> float:
        """Delay after the given zero-based attempt: initial * 2^n, capped"""
        return min(self.initial_delay * (2 ** attempt_number), self.max_delay)


@dataclass
class AttemptResult(Generic[T]):
    value: Optional[T] = None
    error: Optional[Exception] = None
    attempts: int = 0
    quota_exhausted: bool = False
    retries_exhausted: bool = False

    @property
    def ok(self) -> bool:
        return self.error is None


def attempt(
    fn: Callable[[], T],
    policy: RetryPolicy,
    is_retryable: Callable[[Exception], bool],
    is_quota_error: Callable[[Exception], bool] = lambda e: False,
    sleep: Callable[[float], None] = time.sleep,
    label: str = "call",
) -> AttemptResult[T]:
    """
    Call `fn` until it succeeds, fails permanently or attempts run out

    Quota errors are checked before retryability and end the loop at once.
    No sleep happens after the final attempt.

    Args:
        fn: Zero-argument callable performing one request
        policy: Attempt count and delays
        is_retryable: Classifies transient errors
        is_quota_error: Classifies budget exhaustion
        sleep: Sleep function (injectable for tests)
        label: Log context

    Returns:
        AttemptResult holding either the value or the last error
    """
    result: AttemptResult[T] = AttemptResult()

    for attempt_number in range(policy.max_attempts):
        result.attempts = attempt_number + 1
        try:
            result.value = fn()
            result.error = None
            return result
        except Exception as e:
            result.error = e

            if is_quota_error(e):
                result.quota_exhausted = True
                return result

            if not is_retryable(e):
                return result

            if attempt_number + 1 >= policy.max_attempts:
                break

            delay = policy.delay_for(attempt_number)
            logger.warning(
                f"[{label}] Retryable error (attempt {attempt_number + 1}/{policy.max_attempts}): {e}. "
                f"Retrying in {delay:.1f}s..."
            )
            sleep(delay)

    result.retries_exhausted = True
    return result
