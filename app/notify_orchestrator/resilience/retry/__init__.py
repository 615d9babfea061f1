"""Retry with exponential backoff for channel transports."""

from notify_orchestrator.resilience.retry.backoff import compute_backoff_delay, retry_call
from notify_orchestrator.resilience.retry.config import RetryConfig

__all__ = ["RetryConfig", "compute_backoff_delay", "retry_call"]
