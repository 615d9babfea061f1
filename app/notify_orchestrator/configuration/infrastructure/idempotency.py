"""Idempotency ledger settings."""

from pydantic import Field

from notify_orchestrator.configuration.base import InfrastructureSettings


class IdempotencySettings(InfrastructureSettings):
    """Idempotency ledger configuration for preventing duplicate sends.

    Environment Variables:
        IDEMPOTENCY_TTL_SECONDS: Retention for completed entries (default: 86400s = 24h)
        IDEMPOTENCY_RESERVATION_TTL_SECONDS: Lease for in-flight reservations
            (default: 300s). A reservation left behind by a crashed worker
            expires after this lease.

    Example:
        ```python
        from notify_orchestrator.configuration import get_settings

        ttl = get_settings().idempotency.IDEMPOTENCY_TTL_SECONDS
        ```
    """

    IDEMPOTENCY_TTL_SECONDS: int = Field(default=86400, alias="IDEMPOTENCY_TTL_SECONDS")
    IDEMPOTENCY_RESERVATION_TTL_SECONDS: int = Field(
        default=300, alias="IDEMPOTENCY_RESERVATION_TTL_SECONDS"
    )
