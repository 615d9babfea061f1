"""Structured logging infrastructure.

Public API:
    - configure_logging(): Initialize logging for the application
    - get_module_logger(): Get a logger for the calling module
    - bind_request_context(): Context manager for request-scoped logging
    - get_correlation_id(): Get current correlation ID from context
    - clear_request_context(): Clear all request context

Example:
    from notify_orchestrator.logging import configure_logging, get_module_logger

    configure_logging()
    logger = get_module_logger()
    logger.info("orchestrator_started")
"""

from notify_orchestrator.logging.context import (
    bind_request_context,
    clear_request_context,
    get_correlation_id,
)
from notify_orchestrator.logging.formatters import (
    SENSITIVE_PATTERNS,
    mask_contact_data,
    truncate_large_values,
)
from notify_orchestrator.logging.setup import configure_logging, get_module_logger

__all__ = [
    "configure_logging",
    "get_module_logger",
    "bind_request_context",
    "get_correlation_id",
    "clear_request_context",
    "mask_contact_data",
    "truncate_large_values",
    "SENSITIVE_PATTERNS",
]
