"""Retry wrapper for composing around crawler calls.

The crawler never retries internally; callers decide which failures are worth
another attempt.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Awaitable, Callable, TypeVar

from playwright.async_api import TimeoutError as PlaywrightTimeoutError
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
    wait_fixed,
    wait_incrementing,
    wait_random_exponential,
)
from tenacity.wait import wait_base

from .errors import CrawlTimeoutError, SearchError

logger = logging.getLogger(__name__)

T = TypeVar("T")


class BackoffStrategy(Enum):
    EXPONENTIAL = "exponential"
    LINEAR = "linear"
    FIXED = "fixed"
    RANDOM_JITTER = "random_jitter"


def build_wait(
    strategy: BackoffStrategy,
    initial_delay: float = 1.0,
    multiplier: float = 2.0,
    max_delay: float = 30.0,
) -> wait_base:
    """Delay before retry n (1-based), in seconds, capped at ``max_delay``.

    - exponential: initial * multiplier ** (n - 1)
    - linear: initial * n
    - fixed: initial
    - random jitter: uniform in [0, initial * multiplier ** (n - 1)]
    """
    if strategy is BackoffStrategy.EXPONENTIAL:
        return wait_exponential(multiplier=initial_delay, exp_base=multiplier, max=max_delay)
    if strategy is BackoffStrategy.LINEAR:
        return wait_incrementing(start=initial_delay, increment=initial_delay, max=max_delay)
    if strategy is BackoffStrategy.FIXED:
        return wait_fixed(min(initial_delay, max_delay))
    if strategy is BackoffStrategy.RANDOM_JITTER:
        return wait_random_exponential(multiplier=initial_delay, exp_base=multiplier, max=max_delay)
    raise ValueError(f"Unknown backoff strategy: {strategy!r}")


def is_retryable(exc: BaseException) -> bool:
    """Timeouts and generic scrape failures are retryable.

    Authentication-required and programmer errors are not: retrying them
    cannot succeed without outside action.
    """
    return isinstance(exc, (CrawlTimeoutError, PlaywrightTimeoutError, SearchError))


async def with_retry(
    fn: Callable[[], Awaitable[T]],
    *,
    max_attempts: int = 3,
    strategy: BackoffStrategy = BackoffStrategy.EXPONENTIAL,
    initial_delay: float = 1.0,
    multiplier: float = 2.0,
    max_delay: float = 30.0,
    should_retry: Callable[[BaseException], bool] = is_retryable,
    on_retry: Callable[[BaseException, int, float], None] | None = None,
) -> T:
    """Await ``fn()`` until it succeeds or attempts run out.

    Args:
        fn: Zero-argument coroutine function.
        max_attempts: Total attempts, including the first.
        should_retry: Predicate deciding whether an exception is retried.
        on_retry: Called with (exception, next attempt number, delay seconds)
            before sleeping.

    Returns:
        The result of the first successful attempt. The last exception is
        re-raised when every attempt fails.
    """
    if max_attempts < 1:
        raise ValueError("max_attempts must be >= 1")

    def before_sleep(state: RetryCallState) -> None:
        exc = state.outcome.exception() if state.outcome else None
        delay = state.next_action.sleep if state.next_action else 0.0
        logger.warning(
            f"Attempt {state.attempt_number}/{max_attempts} failed ({exc!r}); retrying in {delay:.2f}s"
        )
        if on_retry is not None and exc is not None:
            on_retry(exc, state.attempt_number + 1, delay)

    retrying = AsyncRetrying(
        stop=stop_after_attempt(max_attempts),
        wait=build_wait(strategy, initial_delay, multiplier, max_delay),
        retry=retry_if_exception(should_retry),
        before_sleep=before_sleep,
        reraise=True,
    )
    return await retrying(fn)
