"""Retry with exponential backoff for async source calls."""

import asyncio
import logging
import random
from typing import Awaitable, Callable, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


def default_jitter_ms() -> float:
    return random.uniform(0, 1000)


async def fetch_with_retry(
    operation: Callable[[], Awaitable[T]],
    max_retries: int = 3,
    base_delay_ms: float = 1000,
    retry_on: tuple[type[BaseException], ...] = (Exception,),
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    jitter_ms: Callable[[], float] = default_jitter_ms,
) -> T:
    """Run ``operation`` until it succeeds or retries run out.

    Attempt ``n`` (0-based) that fails waits ``base_delay_ms * 2**n + jitter``
    before the next one. Up to ``max_retries`` additional attempts are made;
    the last error is re-raised. Timeouts are ordinary retryable errors.

    Args:
        operation: Zero-argument coroutine factory
        max_retries: Additional attempts after the first
        base_delay_ms: Base delay, doubled every attempt
        retry_on: Exception types worth retrying; anything else propagates at once
        sleep: Awaitable sleep taking seconds; injectable for tests
        jitter_ms: Random extra delay in milliseconds; injectable for tests

    Returns:
        The operation's result
    """
    attempt = 0
    while True:
        try:
            return await operation()
        except retry_on as e:
            if attempt >= max_retries:
                logger.warning(f"Giving up after {attempt + 1} attempts: {e}")
                raise
            delay_ms = base_delay_ms * 2 ** attempt + jitter_ms()
            logger.debug(f"Attempt {attempt + 1} failed ({e}); retrying in {delay_ms:.0f} ms")
            await sleep(delay_ms / 1000)
            attempt += 1
