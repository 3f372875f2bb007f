"""
Production logging utility for structured JSON logging.

Provides event-specific logging functions with mandatory fields:
- timestamp (ISO8601)
- level
- service
- event

Optional fields (included when applicable):
- user_id
- generation_id
- order_id
- duration_ms

Usage:
    from app.utils.logging import configure_logging, log_generation_completed

    configure_logging('editaja-api', 'INFO')
    log_generation_completed(logger, generation_id='abc', user_id='uid', image_count=2)
"""
import logging
import sys
from typing import Optional, Dict, Any
from pythonjsonlogger import jsonlogger


class StructuredLogger:
    """Structured JSON logger with mandatory fields."""

    _service_name = None
    _configured = False

    @classmethod
    def configure(cls, service_name: str, log_level: str = "INFO"):
        """
        Configure structured JSON logging for the application.

        Args:
            service_name: Service identifier (e.g. editaja-api)
            log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
        """
        if cls._configured:
            return

        cls._service_name = service_name

        root_logger = logging.getLogger()
        root_logger.handlers = []

        formatter = jsonlogger.JsonFormatter(
            '%(timestamp)s %(level)s %(name)s %(message)s',
            timestamp=True,
            json_ensure_ascii=False
        )

        # stdout for container logs
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(formatter)

        root_logger.addHandler(handler)
        root_logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))

        class ServiceFilter(logging.Filter):
            def filter(self, record):
                record.service = cls._service_name
                return True

        handler.addFilter(ServiceFilter())
        cls._configured = True


def _build_log_extra(
    event: str,
    user_id: Optional[str] = None,
    generation_id: Optional[str] = None,
    order_id: Optional[str] = None,
    duration_ms: Optional[float] = None,
    **kwargs
) -> Dict[str, Any]:
    """
    Build extra fields for structured logging.

    Args:
        event: Event name (mandatory)
        user_id: Optional Firebase uid
        generation_id: Optional generation ID
        order_id: Optional top-up order ID
        duration_ms: Optional duration in milliseconds
        **kwargs: Additional fields

    Returns:
        Dictionary of extra fields
    """
    extra = {
        "event": event,
        **kwargs
    }

    if user_id:
        extra["user_id"] = user_id
    if generation_id:
        extra["generation_id"] = generation_id
    if order_id:
        extra["order_id"] = order_id
    if duration_ms is not None:
        extra["duration_ms"] = round(duration_ms, 2)

    return extra


# Generation event functions

def log_generation_started(
    logger: logging.Logger,
    style_id: str,
    user_id: Optional[str] = None,
    anonymous_id: Optional[str] = None,
    **kwargs
):
    """Log the start of a generation pipeline run."""
    extra = _build_log_extra(
        event="generation_started",
        user_id=user_id,
        style_id=style_id,
        **kwargs
    )
    if anonymous_id:
        extra["anonymous_id"] = anonymous_id

    logger.info(f"Generation started: style={style_id}", extra=extra)


def log_generation_completed(
    logger: logging.Logger,
    image_count: int,
    failed_count: int = 0,
    generation_id: Optional[str] = None,
    user_id: Optional[str] = None,
    duration_ms: Optional[float] = None,
    **kwargs
):
    """
    Log a successful generation.

    Args:
        logger: Logger instance
        image_count: Images saved to the image host (required)
        failed_count: Images dropped after the retry pass
        generation_id: Generation record ID (None if the record write failed)
        user_id: Optional Firebase uid
        duration_ms: Optional duration in milliseconds
        **kwargs: Additional fields
    """
    extra = _build_log_extra(
        event="generation_completed",
        user_id=user_id,
        generation_id=generation_id,
        duration_ms=duration_ms,
        image_count=image_count,
        failed_count=failed_count,
        **kwargs
    )

    logger.info(f"Generation completed: {image_count} saved, {failed_count} failed", extra=extra)


def log_generation_failed(
    logger: logging.Logger,
    phase: str,
    error: str,
    user_id: Optional[str] = None,
    duration_ms: Optional[float] = None,
    **kwargs
):
    """
    Log a generation that aborted. Balance and quota are untouched.

    Args:
        logger: Logger instance
        phase: Pipeline phase that failed (required)
        error: Error message (required)
        user_id: Optional Firebase uid
        duration_ms: Optional duration in milliseconds
        **kwargs: Additional fields
    """
    extra = _build_log_extra(
        event="generation_failed",
        user_id=user_id,
        duration_ms=duration_ms,
        phase=phase,
        error=str(error),
        **kwargs
    )

    logger.error(f"Generation failed in {phase}: {error}", extra=extra)


# Provider event functions

def log_provider_request(
    logger: logging.Logger,
    provider: str,
    operation: str,
    duration_ms: Optional[float] = None,
    **kwargs
):
    """
    Log AI provider request event.

    Args:
        logger: Logger instance
        provider: Provider name (freepik) (required)
        operation: Operation name (create, poll) (required)
        duration_ms: Optional duration in milliseconds
        **kwargs: Additional fields
    """
    extra = _build_log_extra(
        event="provider_request",
        duration_ms=duration_ms,
        provider=provider,
        operation=operation,
        **kwargs
    )

    logger.info(f"Provider request: {provider}.{operation}", extra=extra)


def log_provider_failure(
    logger: logging.Logger,
    provider: str,
    operation: str,
    error: str,
    duration_ms: Optional[float] = None,
    **kwargs
):
    """
    Log AI provider failure event.

    Args:
        logger: Logger instance
        provider: Provider name (required)
        operation: Operation name (required)
        error: Error message (required)
        duration_ms: Optional duration in milliseconds
        **kwargs: Additional fields
    """
    extra = _build_log_extra(
        event="provider_failure",
        duration_ms=duration_ms,
        provider=provider,
        operation=operation,
        error=str(error),
        **kwargs
    )

    logger.error(f"Provider failure: {provider}.{operation} - {error}", extra=extra)


# Top-up event functions

def log_topup_settled(
    logger: logging.Logger,
    order_id: str,
    user_id: str,
    diamonds: int,
    **kwargs
):
    """Log a top-up transaction credited to a user."""
    extra = _build_log_extra(
        event="topup_settled",
        user_id=user_id,
        order_id=order_id,
        diamonds=diamonds,
        **kwargs
    )

    logger.info(f"Top-up settled: {order_id} (+{diamonds} tokens)", extra=extra)


def configure_logging(service_name: str, log_level: str = "INFO"):
    """Configure logging (alias for StructuredLogger.configure)."""
    StructuredLogger.configure(service_name, log_level)
