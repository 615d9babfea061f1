"""Delivery orchestrator: composes consent, batching, idempotency and routing."""

from notify_orchestrator.orchestrator.factory import build_orchestrator
from notify_orchestrator.orchestrator.models import (
    DeferralReason,
    OrchestrationResult,
    OrchestrationStatus,
    Stage,
)
from notify_orchestrator.orchestrator.service import DeliveryOrchestrator, resolve_status

__all__ = [
    "DeferralReason",
    "DeliveryOrchestrator",
    "OrchestrationResult",
    "OrchestrationStatus",
    "Stage",
    "build_orchestrator",
    "resolve_status",
]
