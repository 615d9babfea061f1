"""Settings sections __init__ - exports all settings sections."""

from notify_orchestrator.configuration.infrastructure.batching import BatchingSettings
from notify_orchestrator.configuration.infrastructure.delivery import DeliverySettings
from notify_orchestrator.configuration.infrastructure.idempotency import (
    IdempotencySettings,
)
from notify_orchestrator.configuration.infrastructure.quiet_hours import (
    QuietHoursSettings,
)
from notify_orchestrator.configuration.infrastructure.retry import RetrySettings
from notify_orchestrator.configuration.infrastructure.throttle import (
    ChannelLimit,
    ThrottleSettings,
)

__all__ = [
    "BatchingSettings",
    "ChannelLimit",
    "DeliverySettings",
    "IdempotencySettings",
    "QuietHoursSettings",
    "RetrySettings",
    "ThrottleSettings",
]
