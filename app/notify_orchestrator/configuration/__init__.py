"""Configuration module - public API.

Centralized configuration management using Pydantic BaseSettings, organized
by concern (idempotency, retry, throttle, batching, quiet hours, delivery).

Exports:
    Settings: Main settings class (for testing/overrides)
    get_settings: Process-wide cached Settings instance

Example:
    ```python
    from notify_orchestrator.configuration import get_settings

    settings = get_settings()
    ttl = settings.idempotency.IDEMPOTENCY_TTL_SECONDS
    ```
"""

from functools import lru_cache

from notify_orchestrator.configuration.infrastructure import (
    BatchingSettings,
    ChannelLimit,
    DeliverySettings,
    IdempotencySettings,
    QuietHoursSettings,
    RetrySettings,
    ThrottleSettings,
)
from notify_orchestrator.configuration.settings import Settings


@lru_cache
def get_settings() -> Settings:
    """Get the process-wide settings singleton.

    The @lru_cache decorator ensures only one instance is created per
    process. Tests that change the environment call
    ``get_settings.cache_clear()``.

    Returns:
        Settings: Cached settings instance loaded from environment.
    """
    return Settings()


__all__ = [
    "BatchingSettings",
    "ChannelLimit",
    "DeliverySettings",
    "IdempotencySettings",
    "QuietHoursSettings",
    "RetrySettings",
    "Settings",
    "ThrottleSettings",
    "get_settings",
]
