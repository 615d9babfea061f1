"""Applies inbound events to the Store and the batch aggregator."""

from datetime import datetime
from typing import Callable, Dict, Optional

from pydantic import ValidationError

from notify_orchestrator.batching.aggregator import BatchAggregator
from notify_orchestrator.events.models import (
    DELIVERY_BOUNCED,
    DELIVERY_STATUS,
    ENGAGED,
    OPTED_IN,
    OPTED_OUT,
    InboundEvent,
)
from notify_orchestrator.logging import get_module_logger
from notify_orchestrator.notifications.models import (
    ConsentRecord,
    ConsentStatus,
    DeliveryOutcome,
    DeliveryStatus,
)
from notify_orchestrator.operations import OperationResult, OperationStatus
from notify_orchestrator.persistence.store import Store

logger = get_module_logger()

Handler = Callable[[InboundEvent], OperationResult]


class InboundEventHandler:
    """Routes each inbound event type to its handler.

    Malformed events are rejected with a PERMANENT_ERROR result; resending
    them cannot help.
    """

    def __init__(self, store: Store, aggregator: Optional[BatchAggregator] = None):
        self.store = store
        self.aggregator = aggregator
        self._handlers: Dict[str, Handler] = {
            OPTED_OUT: self._on_consent,
            OPTED_IN: self._on_consent,
            DELIVERY_STATUS: self._on_delivery_status,
            DELIVERY_BOUNCED: self._on_bounce,
            ENGAGED: self._on_engaged,
        }

    def apply(self, event: InboundEvent) -> OperationResult:
        handler = self._handlers.get(event.event_type)
        if handler is None:
            logger.warning(
                "unknown_inbound_event",
                event_type=event.event_type,
                correlation_id=str(event.correlation_id),
            )
            return OperationResult.permanent_error(
                f"Unsupported event type: {event.event_type}",
                error_code="unsupported_event_type",
            )
        try:
            result = handler(event)
        except (KeyError, ValueError, ValidationError) as e:
            logger.warning(
                "invalid_inbound_event",
                event_type=event.event_type,
                error=str(e),
                correlation_id=str(event.correlation_id),
            )
            return OperationResult.permanent_error(
                f"Invalid {event.event_type} event: {e}",
                error_code="invalid_event",
            )
        logger.info(
            "inbound_event_applied",
            event_type=event.event_type,
            recipient_id=event.recipient_id,
            status=result.status.value,
            correlation_id=str(event.correlation_id),
        )
        return result

    def _on_consent(self, event: InboundEvent) -> OperationResult:
        status = (
            ConsentStatus.OPTED_OUT
            if event.event_type == OPTED_OUT
            else ConsentStatus.OPTED_IN
        )
        expires_at = event.data.get("expires_at")
        if isinstance(expires_at, str):
            expires_at = datetime.fromisoformat(expires_at)
        record = ConsentRecord(
            recipient_id=event.recipient_id,
            category=event.data["category"],
            channel=event.data["channel"],
            status=status,
            expires_at=expires_at,
            updated_at=event.timestamp,
        )
        self.store.save_consent(record)
        return OperationResult.success(data=record, message=f"consent {status.value}")

    def _on_delivery_status(self, event: InboundEvent) -> OperationResult:
        status = DeliveryStatus(event.data["status"])
        if status not in (DeliveryStatus.SENT, DeliveryStatus.FAILED):
            raise ValueError(f"receipt status must be sent or failed, got {status.value}")
        outcome = DeliveryOutcome(
            request_id=event.data["request_id"],
            recipient_id=event.recipient_id,
            channel=event.data["channel"],
            status=status,
            timestamp=event.timestamp,
            error=event.data.get("error"),
            error_code=event.data.get("error_code"),
            external_id=event.data.get("external_id"),
        )
        self.store.append_outcome(outcome)
        return OperationResult.success(data=outcome, message="receipt recorded")

    def _on_bounce(self, event: InboundEvent) -> OperationResult:
        outcome = DeliveryOutcome(
            request_id=event.data["request_id"],
            recipient_id=event.recipient_id,
            channel=event.data["channel"],
            status=DeliveryStatus.FAILED,
            timestamp=event.timestamp,
            error=event.data.get("error", "Message bounced"),
            error_code="bounced",
            external_id=event.data.get("external_id"),
        )
        self.store.append_outcome(outcome)
        return OperationResult.success(data=outcome, message="bounce recorded")

    def _on_engaged(self, event: InboundEvent) -> OperationResult:
        target_id = event.data["target_id"]
        if self.aggregator is None:
            return OperationResult.error(
                OperationStatus.NOT_FOUND,
                "Batching is not enabled",
                error_code="batching_disabled",
            )
        canceled = self.aggregator.cancel(
            event.recipient_id, target_id, event.data.get("event_type")
        )
        return OperationResult.success(
            data={"canceled_buckets": canceled},
            message=f"canceled {canceled} pending batch(es)",
        )
