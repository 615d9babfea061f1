"""Orchestrator configuration settings - main aggregator."""

from pydantic_settings import BaseSettings, SettingsConfigDict

from notify_orchestrator.configuration.infrastructure import (
    BatchingSettings,
    DeliverySettings,
    IdempotencySettings,
    QuietHoursSettings,
    RetrySettings,
    ThrottleSettings,
)


class Settings(BaseSettings):
    """Orchestrator configuration settings - main aggregator.

    Aggregates all settings sections into a single configuration object:

    - **idempotency**: ledger retention and reservation lease
    - **retry**: transport retry backoff
    - **throttle**: per-channel rate windows
    - **batching**: digest window and thresholds
    - **quiet_hours**: recipient-local deferral window
    - **delivery**: fan-out pool, critical event types, circuit breakers

    Environment Variables:
        PREFIX: Environment prefix (empty in production)
        LOG_LEVEL: Logging level (DEBUG, INFO, WARNING, ERROR)

    Example:
        ```python
        from notify_orchestrator.configuration import get_settings

        settings = get_settings()
        window = settings.batching.window_seconds
        if settings.quiet_hours.enabled:
            ...
        ```
    """

    PREFIX: str = ""
    LOG_LEVEL: str = "INFO"

    idempotency: IdempotencySettings
    retry: RetrySettings
    throttle: ThrottleSettings
    batching: BatchingSettings
    quiet_hours: QuietHoursSettings
    delivery: DeliverySettings

    @property
    def is_production(self) -> bool:
        """Check if running in production.

        Returns:
            True if PREFIX is empty (production), False otherwise.
        """
        return not bool(self.PREFIX)

    def __init__(self, **kwargs):
        """Initialize Settings with automatic subsettings instantiation.

        Args:
            **kwargs: Optional overrides for specific settings sections.
        """
        settings_map = {
            "idempotency": IdempotencySettings,
            "retry": RetrySettings,
            "throttle": ThrottleSettings,
            "batching": BatchingSettings,
            "quiet_hours": QuietHoursSettings,
            "delivery": DeliverySettings,
        }

        for setting_name, setting_class in settings_map.items():
            if setting_name not in kwargs:
                kwargs[setting_name] = setting_class()

        super().__init__(**kwargs)

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="ignore",
    )
