"""Notification dispatch orchestrator.

Decides, for a single logical notification, which channels to try and in
what order or fan-out, applying idempotency, consent, quiet hours,
throttles and batching, and records the outcome.

Usage:
    from notify_orchestrator import build_orchestrator, NotificationRequest

    orchestrator = build_orchestrator(senders=[sms_sender, email_sender])
    result = orchestrator.submit(request)
"""

from notify_orchestrator.exceptions import (
    BatchInvariantError,
    CallerError,
    InvariantViolation,
    LedgerCorruptionError,
    OrchestratorError,
)
from notify_orchestrator.notifications import (
    Actor,
    Category,
    ChannelId,
    ChannelSender,
    ConsentRecord,
    ConsentStatus,
    DeliveryOutcome,
    DeliveryStatus,
    FunctionChannelSender,
    NotificationRequest,
    Priority,
    RecipientProfile,
    RoutingMode,
)
from notify_orchestrator.orchestrator import (
    DeferralReason,
    DeliveryOrchestrator,
    OrchestrationResult,
    OrchestrationStatus,
    build_orchestrator,
)

__all__ = [
    "Actor",
    "BatchInvariantError",
    "CallerError",
    "Category",
    "ChannelId",
    "ChannelSender",
    "ConsentRecord",
    "ConsentStatus",
    "DeferralReason",
    "DeliveryOrchestrator",
    "DeliveryOutcome",
    "DeliveryStatus",
    "FunctionChannelSender",
    "InvariantViolation",
    "LedgerCorruptionError",
    "NotificationRequest",
    "OrchestrationResult",
    "OrchestrationStatus",
    "OrchestratorError",
    "Priority",
    "RecipientProfile",
    "RoutingMode",
    "build_orchestrator",
]
