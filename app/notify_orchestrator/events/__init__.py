"""Inbound events: consent changes, delivery receipts, bounces, engagement."""

from notify_orchestrator.events.handlers import InboundEventHandler
from notify_orchestrator.events.models import (
    DELIVERY_BOUNCED,
    DELIVERY_STATUS,
    ENGAGED,
    OPTED_IN,
    OPTED_OUT,
    InboundEvent,
)

__all__ = [
    "DELIVERY_BOUNCED",
    "DELIVERY_STATUS",
    "ENGAGED",
    "InboundEvent",
    "InboundEventHandler",
    "OPTED_IN",
    "OPTED_OUT",
]
