"""Inbound event models.

Webhook-style inputs (opt-outs, delivery receipts, bounces, engagement)
that update consent records and outcome history after the fact.
"""

from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict
from uuid import UUID, uuid4

OPTED_OUT = "recipient.opted_out"
OPTED_IN = "recipient.opted_in"
DELIVERY_STATUS = "delivery.status"
DELIVERY_BOUNCED = "delivery.bounced"
ENGAGED = "recipient.engaged"


@dataclass
class InboundEvent:
    """An external event about a recipient or a past delivery.

    ``data`` keys by event type:

    - recipient.opted_out / recipient.opted_in: ``category``, ``channel``,
      optional ``expires_at``
    - delivery.status: ``request_id``, ``channel``, ``status``, optional
      ``error``, ``error_code``, ``external_id``
    - delivery.bounced: ``request_id``, ``channel``, optional ``error``
    - recipient.engaged: ``target_id``, optional ``event_type``
    """

    event_type: str
    """The type of event (e.g., 'recipient.opted_out')."""

    recipient_id: str
    """Recipient the event concerns."""

    data: Dict[str, Any] = field(default_factory=dict)
    """Event-type specific fields."""

    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    """When the event occurred at the source."""

    correlation_id: UUID = field(default_factory=uuid4)
    """Unique ID to track the event through logs."""

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["timestamp"] = self.timestamp.isoformat()
        data["correlation_id"] = str(self.correlation_id)
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "InboundEvent":
        """Deserialize an event from a webhook body.

        Raises:
            ValueError: If required fields are missing or invalid.
        """
        try:
            timestamp = data.get("timestamp")
            if isinstance(timestamp, str):
                timestamp = datetime.fromisoformat(timestamp)
            elif timestamp is None:
                timestamp = datetime.now(timezone.utc)

            correlation_id = data.get("correlation_id")
            if isinstance(correlation_id, str):
                correlation_id = UUID(correlation_id)
            elif correlation_id is None:
                correlation_id = uuid4()

            return cls(
                event_type=data["event_type"],
                recipient_id=data["recipient_id"],
                data=dict(data.get("data") or {}),
                timestamp=timestamp,
                correlation_id=correlation_id,
            )
        except (KeyError, ValueError) as e:
            raise ValueError(f"Invalid inbound event: {e}")
