"""Batch aggregator state and decisions."""

import threading
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Set, Tuple

from notify_orchestrator.notifications.models import Actor, NotificationRequest, utcnow

BucketKey = Tuple[str, str, str]


class BucketState(str, Enum):
    """Bucket lifecycle: OPEN -> FLUSHING -> FLUSHED, or OPEN -> CANCELED."""

    OPEN = "open"
    FLUSHING = "flushing"
    FLUSHED = "flushed"
    CANCELED = "canceled"


@dataclass(frozen=True)
class ActorEvent:
    """A batchable event: ``actor`` did ``event_type`` to ``target_id``.

    ``request`` is the notification that would have been sent on its own;
    the first event's request is the template for the summary.
    """

    recipient_id: str
    event_type: str
    target_id: str
    actor: Actor
    request: NotificationRequest
    action_text: Optional[str] = None
    occurred_at: datetime = field(default_factory=utcnow)

    @classmethod
    def from_request(cls, request: NotificationRequest) -> "ActorEvent":
        if request.event_type is None or request.actor is None:
            raise ValueError("Batchable requests need an event_type and an actor")
        return cls(
            recipient_id=request.recipient_id,
            event_type=request.event_type,
            target_id=request.target_id or "",
            actor=request.actor,
            request=request,
            action_text=request.action_text,
        )


@dataclass
class BatchBucket:
    """Events for one (recipient, event type, target) awaiting a summary.

    ``idempotency_keys`` holds the keys of appended events so a caller retry
    of the same request is not counted twice.

    All fields are mutated only while ``lock`` is held.
    """

    bucket_id: str
    recipient_id: str
    event_type: str
    target_id: str
    opened_at: datetime
    events: List[ActorEvent] = field(default_factory=list)
    idempotency_keys: Set[str] = field(default_factory=set, repr=False)
    state: BucketState = BucketState.OPEN
    timer: Any = field(default=None, repr=False)
    lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    @property
    def key(self) -> BucketKey:
        return (self.recipient_id, self.event_type, self.target_id)

    def snapshot(self) -> Dict[str, Any]:
        """Serializable view for the Store."""
        return {
            "bucket_id": self.bucket_id,
            "recipient_id": self.recipient_id,
            "event_type": self.event_type,
            "target_id": self.target_id,
            "opened_at": self.opened_at.isoformat(),
            "state": self.state.value,
            "events": [
                {
                    "actor_id": e.actor.actor_id,
                    "actor_name": e.actor.name,
                    "request_id": e.request.request_id,
                    "occurred_at": e.occurred_at.isoformat(),
                }
                for e in self.events
            ],
        }


class BatchAction(str, Enum):
    IMMEDIATE_SEND = "immediate_send"
    QUEUED = "queued"


@dataclass(frozen=True)
class BatchDecision:
    """ImmediateSend, or Queued into ``bucket_id``.

    ``flushed`` is True when this event filled the bucket and the summary
    was handed off right away.
    """

    action: BatchAction
    bucket_id: Optional[str] = None
    event_count: int = 0
    flushed: bool = False

    @property
    def is_queued(self) -> bool:
        return self.action == BatchAction.QUEUED
