"""Exponential backoff retry for remote calls."""

import asyncio
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

from .exceptions import RetriesExhaustedError, TransientRemoteError
from .logging_utils import get_logger

logger = get_logger(__name__)

T = TypeVar("T")

# Delay before attempt n+1 is BASE_RETRY_DELAY * 2**(n-1)
MAX_ATTEMPTS = 3
BASE_RETRY_DELAY = 1.0


def backoff_delay(attempt: int, base_delay: float = BASE_RETRY_DELAY) -> float:
    """Delay after failed attempt ``attempt`` (1-based): base * 2**(attempt-1)."""
    return base_delay * 2 ** (attempt - 1)


async def with_retry(
    fn: Callable[[], Awaitable[T]],
    max_attempts: int = MAX_ATTEMPTS,
    base_delay: float = BASE_RETRY_DELAY,
    sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    retry_on: tuple[type[BaseException], ...] = (TransientRemoteError,),
    label: str = "request",
) -> T:
    """
    Call ``fn`` until it succeeds or attempts run out.

    Args:
        fn: Zero-argument coroutine factory, called once per attempt
        max_attempts: Total attempts including the first
        base_delay: Delay in seconds after the first failure; doubles each time
        sleep: Awaitable delay function
        retry_on: Exception types that count as a failed attempt
        label: Name used in log messages

    Returns:
        The first successful result

    Raises:
        RetriesExhaustedError: If every attempt failed
    """
    if max_attempts < 1:
        raise ValueError("max_attempts must be at least 1")

    last_error: BaseException | None = None
    for attempt in range(1, max_attempts + 1):
        try:
            return await fn()
        except retry_on as e:
            last_error = e
            logger.warning(f"⚠️ {label} failed on attempt {attempt}/{max_attempts}: {e}")
            if attempt < max_attempts:
                delay = backoff_delay(attempt, base_delay)
                logger.debug(f"Retrying {label} in {delay:.1f}s")
                await sleep(delay)

    raise RetriesExhaustedError(max_attempts, last_error)
