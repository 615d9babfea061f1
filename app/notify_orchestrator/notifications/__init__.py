"""Notification models, channel senders and the channel router.

Usage Example:
    from notify_orchestrator.notifications import (
        ChannelId,
        Category,
        NotificationRequest,
        Priority,
    )

    request = NotificationRequest(
        recipient_id="u1",
        category=Category.TRANSACTIONAL,
        channels=[ChannelId.SMS, ChannelId.EMAIL],
        idempotency_key="otp-u1-1700000000",
    )
"""

from notify_orchestrator.notifications.channels import (
    ChannelSender,
    FunctionChannelSender,
)
from notify_orchestrator.notifications.models import (
    Actor,
    Category,
    ChannelId,
    ConsentRecord,
    ConsentStatus,
    DeliveryOutcome,
    DeliveryStatus,
    NotificationRequest,
    Priority,
    RecipientProfile,
    RoutingMode,
)

__all__ = [
    "Actor",
    "Category",
    "ChannelId",
    "ChannelSender",
    "ConsentRecord",
    "ConsentStatus",
    "DeliveryOutcome",
    "DeliveryStatus",
    "FunctionChannelSender",
    "NotificationRequest",
    "Priority",
    "RecipientProfile",
    "RoutingMode",
]
