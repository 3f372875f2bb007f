"""
Decorator for tracking AI provider metrics.
Wraps provider coroutines with request/failure counters and latency.
"""
import functools
import logging
import time

from app.utils.logging import log_provider_failure, log_provider_request
from app.utils.metrics import (
    ai_provider_failures_total,
    ai_provider_latency_seconds,
    ai_provider_requests_total,
)

logger = logging.getLogger(__name__)


def track_ai_provider_metrics_async(provider_name: str, operation: str):
    """
    Async decorator to track AI provider metrics.

    Args:
        provider_name: Provider name (freepik)
        operation: Operation name (generate, test_connection)
    """
    def decorator(func):
        @functools.wraps(func)
        async def wrapper(*args, **kwargs):
            start_time = time.time()
            ai_provider_requests_total.labels(
                provider=provider_name,
                operation=operation
            ).inc()

            try:
                result = await func(*args, **kwargs)
            except Exception as e:
                duration = time.time() - start_time
                ai_provider_failures_total.labels(
                    provider=provider_name,
                    operation=operation
                ).inc()
                ai_provider_latency_seconds.labels(
                    provider=provider_name,
                    operation=operation
                ).observe(duration)
                log_provider_failure(
                    logger, provider_name, operation, str(e), duration_ms=duration * 1000
                )
                raise

            duration = time.time() - start_time
            ai_provider_latency_seconds.labels(
                provider=provider_name,
                operation=operation
            ).observe(duration)
            log_provider_request(logger, provider_name, operation, duration_ms=duration * 1000)
            return result

        return wrapper
    return decorator
