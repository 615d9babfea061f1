"""Delivery routing settings."""

from typing import List

from pydantic import Field

from notify_orchestrator.configuration.base import InfrastructureSettings


class DeliverySettings(InfrastructureSettings):
    """Channel routing and priority classification.

    Environment Variables:
        DELIVERY_MAX_WORKERS: Thread pool size for "all" mode fan-out (default: 8)
        CRITICAL_EVENT_TYPES: JSON list of event types always treated as
            critical priority (bypass throttles and quiet hours)
        CIRCUIT_BREAKER_ENABLED: Wrap each channel sender in a circuit breaker
        CIRCUIT_BREAKER_FAILURE_THRESHOLD: Consecutive failures before opening
        CIRCUIT_BREAKER_TIMEOUT_SECONDS: Seconds before a recovery attempt
    """

    max_workers: int = Field(default=8, ge=1, alias="DELIVERY_MAX_WORKERS")
    critical_event_types: List[str] = Field(
        default_factory=lambda: ["otp", "password_reset", "security_alert"],
        alias="CRITICAL_EVENT_TYPES",
    )
    circuit_breaker_enabled: bool = Field(default=True, alias="CIRCUIT_BREAKER_ENABLED")
    circuit_breaker_failure_threshold: int = Field(
        default=5, ge=1, alias="CIRCUIT_BREAKER_FAILURE_THRESHOLD"
    )
    circuit_breaker_timeout_seconds: int = Field(
        default=60, ge=1, alias="CIRCUIT_BREAKER_TIMEOUT_SECONDS"
    )
