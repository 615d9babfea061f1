"""Transport retry settings."""

from pydantic import Field

from notify_orchestrator.configuration.base import InfrastructureSettings


class RetrySettings(InfrastructureSettings):
    """Retry configuration for transient channel transport failures.

    Only transient failures (provider 5xx, network) are retried. Permanent
    failures (provider 4xx, invalid recipient) are recorded immediately.

    Environment Variables:
        RETRY_MAX_ATTEMPTS: Total send attempts per channel (default: 3)
        RETRY_BASE_DELAY_SECONDS: Base exponential backoff delay (default: 1.0s)
        RETRY_MAX_DELAY_SECONDS: Maximum backoff delay (default: 30.0s)
        RETRY_JITTER_RATIO: Random jitter as a fraction of the delay (default: 0.1)

    Exponential Backoff:
        Delay calculation: min(base_delay * (2 ^ attempt), max_delay) +/- jitter

        Example with defaults (base=1s, max=30s):
            Retry 1: ~1s
            Retry 2: ~2s
            Retry 3: ~4s
    """

    max_attempts: int = Field(
        default=3,
        alias="RETRY_MAX_ATTEMPTS",
        description="Total send attempts per channel, including the first",
    )
    base_delay_seconds: float = Field(
        default=1.0,
        alias="RETRY_BASE_DELAY_SECONDS",
        description="Base delay for exponential backoff (seconds)",
    )
    max_delay_seconds: float = Field(
        default=30.0,
        alias="RETRY_MAX_DELAY_SECONDS",
        description="Maximum delay for exponential backoff (seconds)",
    )
    jitter_ratio: float = Field(
        default=0.1,
        alias="RETRY_JITTER_RATIO",
        description="Random jitter applied to each delay, as a fraction of it",
    )
