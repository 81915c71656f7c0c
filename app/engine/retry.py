"""
Fixed-delay retry logic for payment provider calls.

Transient failures (timeouts, 429, 5xx, dropped connections) are retried
with a constant pause between attempts until ``max_attempts`` calls have
been made. Permanent failures (explicit declines, 4xx client errors) are
never retried. The policy is shared by every provider; which operations
may be retried at all is decided by the adapter.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional, TypeVar

logger = logging.getLogger("pos_payments.retry")

T = TypeVar("T")

RETRIABLE_STATUS_CODES = {408, 429, 500, 502, 503, 504}
MAX_RETRY_ATTEMPTS = 3
RETRY_DELAY = 2.0


class ProviderError(Exception):
    """Base exception for payment provider errors."""

    def __init__(self, message: str, status_code: int = 500, retriable: bool = True):
        super().__init__(message)
        self.status_code = status_code
        self.retriable = retriable


class ProviderTimeoutError(ProviderError):
    """No answer within the connect/read timeout. The outcome is unknown."""

    def __init__(self, message: str = "Provider timed out", status_code: int = 504):
        super().__init__(message, status_code=status_code, retriable=True)


class PermanentError(ProviderError):
    """Non-retriable error (e.g. invalid merchant, bad request, unsupported call)."""

    def __init__(self, message: str, status_code: int = 400):
        super().__init__(message, status_code=status_code, retriable=False)


@dataclass(frozen=True)
class RetryPolicy:
    max_attempts: int = MAX_RETRY_ATTEMPTS
    delay: float = RETRY_DELAY

    def __post_init__(self):
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if self.delay < 0:
            raise ValueError("delay must not be negative")

    @classmethod
    def from_settings(cls, settings) -> "RetryPolicy":
        return cls(max_attempts=settings.max_retry_attempts, delay=settings.retry_delay)

    @classmethod
    def single_attempt(cls) -> "RetryPolicy":
        return cls(max_attempts=1, delay=0.0)

    def should_retry(self, attempt: int) -> bool:
        """True while another attempt is allowed after ``attempt`` calls."""
        return attempt < self.max_attempts


@dataclass
class RetryState:
    """How many calls ``with_retry`` made, for recording on the transaction."""

    attempts: int = 0


async def with_retry(
    func: Callable[..., Awaitable[T]],
    *args: Any,
    policy: RetryPolicy = RetryPolicy(),
    state: Optional[RetryState] = None,
    **kwargs: Any,
) -> T:
    """
    Execute an async provider call, retrying retriable ProviderErrors.

    Args:
        func: Async callable to execute.
        policy: Attempt limit and fixed delay.
        state: Optional counter updated with the number of calls made.

    Raises:
        ProviderError: On permanent failure or exhausted retries.
    """
    state = state if state is not None else RetryState()
    attempt = 0

    while True:
        attempt += 1
        state.attempts = attempt
        try:
            return await func(*args, **kwargs)
        except ProviderError as e:
            if not e.retriable:
                raise

            if not policy.should_retry(attempt):
                logger.error(
                    "Giving up after %d/%d attempts for provider call: %s",
                    attempt,
                    policy.max_attempts,
                    e,
                )
                raise

            logger.warning(
                "Retriable error on attempt %d/%d: %s, sleeping %.1fs",
                attempt,
                policy.max_attempts,
                e,
                policy.delay,
            )
            await asyncio.sleep(policy.delay)


class UnsupportedOperationError(PermanentError):
    """The provider does not offer this capability at all."""

    def __init__(self, message: str):
        super().__init__(message, status_code=400)
