"""Retry policy for generation calls."""

import asyncio
from collections.abc import Awaitable, Callable
from typing import TypeVar

from pydantic import BaseModel

from meeting_pipeline.exceptions import (
    GenerationProviderError,
    ProviderConnectionError,
    ProviderTimeoutError,
    RetriesExhaustedError,
)
from meeting_pipeline.logging import setup_logging

from .models import FailureClass, RetryAttempt

logger = setup_logging()

T = TypeVar("T")

RETRYABLE_ERROR_CODES = frozenset({"gemini_error", "upstream_generation_failed"})
FATAL_ERROR_CODES = frozenset({"prompt_required"})

BASE_DELAY_SECONDS = 1.0
MAX_DELAY_SECONDS = 15.0
RATE_LIMIT_BASE_DELAY_SECONDS = 4.0
RATE_LIMIT_MAX_DELAY_SECONDS = 20.0


def classify_failure(error: BaseException) -> FailureClass:
    """
    Classifies a failed attempt as transient or fatal.

    Timeouts, transport failures, 5xx, 429 and the provider's own upstream
    error codes are transient. Auth failures, other 4xx, ``prompt_required``
    and anything that is not a provider error are fatal.
    """
    if isinstance(error, (ProviderTimeoutError, ProviderConnectionError, TimeoutError)):
        return FailureClass.TRANSIENT
    if not isinstance(error, GenerationProviderError):
        return FailureClass.FATAL

    if error.error_code in FATAL_ERROR_CODES:
        return FailureClass.FATAL
    if error.error_code in RETRYABLE_ERROR_CODES:
        return FailureClass.TRANSIENT

    status = error.status_code
    if status is None or status == 429 or status >= 500:
        return FailureClass.TRANSIENT
    return FailureClass.FATAL


def is_rate_limited(error: BaseException) -> bool:
    return isinstance(error, GenerationProviderError) and error.status_code == 429


def exponential_backoff(attempt: int, error: BaseException) -> float:
    """
    Delay before the attempt following failed attempt number ``attempt``.

    Doubles from 1 s up to 15 s, or from 4 s up to 20 s after a rate limit.
    """
    if is_rate_limited(error):
        base, cap = RATE_LIMIT_BASE_DELAY_SECONDS, RATE_LIMIT_MAX_DELAY_SECONDS
    else:
        base, cap = BASE_DELAY_SECONDS, MAX_DELAY_SECONDS
    return min(base * 2 ** (attempt - 1), cap)


def _is_transient(error: BaseException) -> bool:
    return classify_failure(error) is FailureClass.TRANSIENT


class RetryPolicy(BaseModel, frozen=True):
    """How many attempts a call gets and how long to wait between them."""

    max_attempts: int = 3
    delay: Callable[[int, BaseException], float] = exponential_backoff
    is_retryable: Callable[[BaseException], bool] = _is_transient


async def attempt_with_retry(
    operation: Callable[[], Awaitable[T]],
    policy: RetryPolicy,
    *,
    sleep: Callable[[float], Awaitable[object]] = asyncio.sleep,
    on_retry: Callable[[RetryAttempt], None] | None = None,
) -> T:
    """
    Runs ``operation`` until it succeeds or the policy gives up.

    Args:
        operation: Coroutine factory for one attempt.
        policy: Attempt budget, delay function and retryable predicate.
        sleep: Awaitable used for backoff delays.
        on_retry: Called with each failed attempt that will be retried.

    Returns:
        The result of the first successful attempt.

    Raises:
        RetriesExhaustedError: If every attempt failed transiently.
        Exception: The first non-retryable error, unchanged.
    """
    for attempt in range(1, policy.max_attempts + 1):
        try:
            return await operation()
        except Exception as e:
            if not policy.is_retryable(e):
                raise
            if attempt >= policy.max_attempts:
                logger.error(
                    "Retries exhausted",
                    extra={"attempts": attempt, "error": str(e)},
                )
                raise RetriesExhaustedError(attempt, cause=e) from e

            delay = policy.delay(attempt, e)
            logger.warning(
                "Attempt failed, retrying",
                extra={
                    "attempt": attempt,
                    "max_attempts": policy.max_attempts,
                    "delay_seconds": delay,
                    "error": str(e),
                },
            )
            if on_retry is not None:
                on_retry(
                    RetryAttempt(
                        attempt_number=attempt,
                        classified_cause=FailureClass.TRANSIENT,
                        delay_seconds=delay,
                    )
                )
            await sleep(delay)

    raise RetriesExhaustedError(policy.max_attempts)
