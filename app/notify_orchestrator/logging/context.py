"""Request context binding for structured logging.

Binds request-scoped context (correlation ID, request ID, recipient) so it
flows through every log entry emitted while a notification is processed,
including logs from channel senders.

Usage:
    from notify_orchestrator.logging import bind_request_context

    with bind_request_context(request_id="req-1", recipient_id="u1"):
        logger.info("processing_notification")
"""

import uuid
from contextlib import contextmanager
from typing import Any, Generator, Optional

import structlog


@contextmanager
def bind_request_context(
    correlation_id: Optional[str] = None,
    **extra_context: Any,
) -> Generator[None, None, None]:
    """Bind request-scoped context to all logs within the context manager.

    Args:
        correlation_id: Unique identifier. Auto-generated if not provided.
        **extra_context: Additional key-value pairs to include in logs.
            ``None`` values are skipped.

    Yields:
        None - context is bound to structlog's context vars.
    """
    context: dict[str, Any] = {"correlation_id": correlation_id or str(uuid.uuid4())}
    context.update({k: v for k, v in extra_context.items() if v is not None})

    # Nested bindings (a batch flush submitting from inside a submit) restore
    # the outer values on exit.
    previous = {
        k: v for k, v in structlog.contextvars.get_contextvars().items() if k in context
    }
    structlog.contextvars.bind_contextvars(**context)
    try:
        yield
    finally:
        structlog.contextvars.unbind_contextvars(*context.keys())
        if previous:
            structlog.contextvars.bind_contextvars(**previous)


def get_correlation_id() -> Optional[str]:
    """Get the current correlation ID from the logging context.

    Returns:
        The correlation ID if set, None otherwise.
    """
    ctx = structlog.contextvars.get_contextvars()
    return ctx.get("correlation_id")


def clear_request_context() -> None:
    """Clear all request-scoped context from the logging context."""
    structlog.contextvars.clear_contextvars()
