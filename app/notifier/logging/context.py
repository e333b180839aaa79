"""Per-notification context binding for structured logging.

Binds request-scoped values through structlog's contextvars so that
concurrent orchestrations running as separate asyncio tasks each carry
their own log context.

Usage:
    from notifier.logging import bind_notification_context

    with bind_notification_context(request_id="req-123", channel="sms"):
        logger.info("processing_notification")
"""

import uuid
from contextlib import contextmanager
from typing import Any, Generator, Optional

import structlog


@contextmanager
def bind_notification_context(
    request_id: Optional[str] = None,
    channel: Optional[str] = None,
    correlation_id: Optional[str] = None,
    **extra_context: Any,
) -> Generator[None, None, None]:
    """Bind notification context to all logs within the block.

    Args:
        request_id: Notification request id.
        channel: Delivery channel name.
        correlation_id: Correlation id. Generated when not provided and not
            already bound by an enclosing block.
        **extra_context: Additional key-value pairs to include in logs.
    """
    context: dict[str, Any] = {}
    if correlation_id is not None:
        context["correlation_id"] = correlation_id
    elif get_correlation_id() is None:
        context["correlation_id"] = str(uuid.uuid4())

    if request_id is not None:
        context["request_id"] = request_id
    if channel is not None:
        context["channel"] = channel

    context.update(extra_context)

    structlog.contextvars.bind_contextvars(**context)
    try:
        yield
    finally:
        structlog.contextvars.unbind_contextvars(*context.keys())


def get_correlation_id() -> Optional[str]:
    """Get the current correlation ID from the logging context."""
    ctx = structlog.contextvars.get_contextvars()
    return ctx.get("correlation_id")


def set_correlation_id(correlation_id: str) -> None:
    """Set the correlation ID in the current logging context."""
    structlog.contextvars.bind_contextvars(correlation_id=correlation_id)


def clear_request_context() -> None:
    """Clear all bound context from the logging context."""
    structlog.contextvars.clear_contextvars()
