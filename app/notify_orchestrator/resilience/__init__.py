"""Resilience primitives: transport retry and per-channel circuit breakers."""

from notify_orchestrator.resilience.circuit_breaker import (
    CircuitBreaker,
    CircuitBreakerOpenError,
    CircuitState,
)
from notify_orchestrator.resilience.retry import (
    RetryConfig,
    compute_backoff_delay,
    retry_call,
)

__all__ = [
    "CircuitBreaker",
    "CircuitBreakerOpenError",
    "CircuitState",
    "RetryConfig",
    "compute_backoff_delay",
    "retry_call",
]
