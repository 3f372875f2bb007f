"""
Exponential backoff for store quota errors.

Only google.api_core ResourceExhausted (HTTP 429 / gRPC RESOURCE_EXHAUSTED)
is retried. Every other exception propagates on the first occurrence.
"""
import asyncio
import logging
from typing import Awaitable, Callable, Optional, TypeVar

from google.api_core.exceptions import ResourceExhausted

from app.config import settings

logger = logging.getLogger(__name__)

T = TypeVar("T")


async def with_backoff(
    operation: Callable[[], Awaitable[T]],
    attempts: Optional[int] = None,
    base_delay: Optional[float] = None,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep
) -> T:
    """
    Run `operation`, retrying on ResourceExhausted.

    Args:
        operation: Zero-argument coroutine factory
        attempts: Total attempts (default: settings.store_retry_attempts)
        base_delay: First delay in seconds, doubled after each failure
            (default: settings.store_retry_base_delay)
        sleep: Sleep coroutine, injectable for tests

    Returns:
        Result of the first successful attempt

    Raises:
        ResourceExhausted: If every attempt hit the quota
    """
    attempts = attempts if attempts is not None else settings.store_retry_attempts
    base_delay = base_delay if base_delay is not None else settings.store_retry_base_delay
    if attempts < 1:
        raise ValueError("attempts must be at least 1")

    for attempt in range(1, attempts + 1):
        try:
            return await operation()
        except ResourceExhausted:
            if attempt == attempts:
                logger.error(f"Store quota exhausted after {attempts} attempts")
                raise
            delay = base_delay * (2 ** (attempt - 1))
            logger.warning(
                f"Store quota exhausted (attempt {attempt}/{attempts}), retrying in {delay:.1f}s"
            )
            await sleep(delay)

    raise AssertionError("unreachable")
