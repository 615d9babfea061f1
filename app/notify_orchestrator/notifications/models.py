"""Notification orchestration core models.

Request, consent, profile and outcome models shared by every component.

Uses Pydantic BaseModel for:
- Runtime input validation of caller-supplied requests
- Immutable (frozen) outcome records
- JSON snapshots for the idempotency ledger
"""

import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ChannelId(str, Enum):
    """Delivery media a sender can be registered for."""

    EMAIL = "email"
    SMS = "sms"
    PUSH = "push"
    INBOX = "inbox"
    SLACK = "slack"
    MS_TEAMS = "ms_teams"
    WHATSAPP = "whatsapp"


class Category(str, Enum):
    """Notification category, supplied by the caller as policy input.

    Marketing needs an explicit opt-in. Transactional and growth are allowed
    unless the recipient opted out.
    """

    TRANSACTIONAL = "transactional"
    GROWTH = "growth"
    MARKETING = "marketing"


class Priority(str, Enum):
    """Priority levels.

    CRITICAL bypasses throttles and quiet hours and is never batched.
    """

    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class RoutingMode(str, Enum):
    """SINGLE tries channels in order until one sends; ALL fans out."""

    SINGLE = "single"
    ALL = "all"


class Actor(BaseModel):
    """Originator of a batchable event (the person who liked, commented...)."""

    model_config = ConfigDict(frozen=True)

    actor_id: str
    name: str


class NotificationRequest(BaseModel):
    """One logical notification for one recipient.

    Attributes:
        request_id: Unique id for this submission
        recipient_id: Recipient reference resolved through the Store
        category: TRANSACTIONAL, GROWTH or MARKETING
        priority: Requested priority (may be promoted by event type)
        channels: Ordered channel list, no duplicates
        routing_mode: SINGLE (ordered fallback) or ALL (fan-out)
        idempotency_key: Required for transactional requests
        payload: Opaque template data handed to senders
        created_at: Submission time (UTC)
        event_type: Event that triggered the notification (``like``, ``otp``)
        target_id: Object the event is about (post, order...)
        actor: Who caused the event, for batching
        action_text: Verb phrase used in summaries, e.g. ``liked your post``
        is_batch_summary: Set on summaries produced by a batch flush

    Example:
        request = NotificationRequest(
            recipient_id="u1",
            category=Category.TRANSACTIONAL,
            priority=Priority.HIGH,
            channels=[ChannelId.SMS, ChannelId.EMAIL],
            idempotency_key="otp-u1-1700000000",
            payload={"code": "123456"},
            event_type="otp",
        )
    """

    request_id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    recipient_id: str = Field(..., min_length=1)
    category: Category
    priority: Priority = Priority.MEDIUM
    channels: List[ChannelId] = Field(..., min_length=1)
    routing_mode: RoutingMode = RoutingMode.SINGLE
    idempotency_key: Optional[str] = None
    payload: Dict[str, Any] = Field(default_factory=dict)
    created_at: datetime = Field(default_factory=utcnow)

    event_type: Optional[str] = None
    target_id: Optional[str] = None
    actor: Optional[Actor] = None
    action_text: Optional[str] = None
    is_batch_summary: bool = False

    @field_validator("channels")
    @classmethod
    def validate_channels(cls, v: List[ChannelId]) -> List[ChannelId]:
        """Reject duplicate channels; order is meaningful for SINGLE mode."""
        if len(set(v)) != len(v):
            raise ValueError(f"Duplicate channels in request: {[c.value for c in v]}")
        return v

    @field_validator("idempotency_key")
    @classmethod
    def validate_idempotency_key(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and not v.strip():
            raise ValueError("idempotency_key cannot be blank")
        return v


class ConsentStatus(str, Enum):
    OPTED_IN = "opted_in"
    OPTED_OUT = "opted_out"
    DEFAULT = "default"


class ConsentRecord(BaseModel):
    """A recipient's consent for one category on one channel."""

    model_config = ConfigDict(frozen=True)

    recipient_id: str
    category: Category
    channel: ChannelId
    status: ConsentStatus
    expires_at: Optional[datetime] = None
    updated_at: datetime = Field(default_factory=utcnow)

    def effective_status(self, now: datetime) -> ConsentStatus:
        """Status at ``now``; an expired record counts as DEFAULT."""
        if self.expires_at is not None and self.expires_at <= now:
            return ConsentStatus.DEFAULT
        return self.status


class RecipientProfile(BaseModel):
    """Delivery details for a recipient.

    Attributes:
        recipient_id: Recipient reference
        timezone: IANA timezone name used for quiet hours
        contacts: Channel to address (email, E.164 number, push token...)
    """

    recipient_id: str
    timezone: Optional[str] = None
    contacts: Dict[ChannelId, str] = Field(default_factory=dict)

    def contact_for(self, channel: ChannelId) -> Optional[str]:
        value = self.contacts.get(channel)
        if value is None or not str(value).strip():
            return None
        return value


class DeliveryStatus(str, Enum):
    SENT = "sent"
    FAILED = "failed"
    SKIPPED_CONSENT = "skipped_consent"
    SKIPPED_THROTTLE = "skipped_throttle"
    SKIPPED_QUIET_HOURS = "skipped_quiet_hours"

    @property
    def is_deferrable(self) -> bool:
        """Skips that clear on their own once time passes."""
        return self in (
            DeliveryStatus.SKIPPED_THROTTLE,
            DeliveryStatus.SKIPPED_QUIET_HOURS,
        )


class DeliveryOutcome(BaseModel):
    """Result of one channel for one request. Immutable once created.

    Attributes:
        request_id: Request the outcome belongs to
        recipient_id: Recipient of the request
        channel: Channel attempted or skipped
        status: SENT, FAILED or one of the SKIPPED_* statuses
        timestamp: When the outcome was produced (UTC)
        error: Human-readable failure or skip reason
        error_code: Machine reason (``missing_contact_info``, ``opted_out``...)
        attempts: Sender invocations made (0 for skips)
        external_id: Provider message id for sent outcomes
        retry_not_before: Earliest re-submission time for deferrable skips
    """

    model_config = ConfigDict(frozen=True)

    request_id: str
    recipient_id: str
    channel: ChannelId
    status: DeliveryStatus
    timestamp: datetime = Field(default_factory=utcnow)
    error: Optional[str] = None
    error_code: Optional[str] = None
    attempts: int = 0
    external_id: Optional[str] = None
    retry_not_before: Optional[datetime] = None

    @property
    def is_sent(self) -> bool:
        return self.status == DeliveryStatus.SENT
