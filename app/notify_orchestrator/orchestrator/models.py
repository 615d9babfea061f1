"""Orchestration result models."""

from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field

from notify_orchestrator.notifications.models import ChannelId, DeliveryOutcome


class Stage(str, Enum):
    """Stages a request passes through, recorded in order."""

    RECEIVED = "received"
    CONSENT_CHECKED = "consent_checked"
    BATCH_QUEUED = "batch_queued"
    THROTTLE_CHECKED = "throttle_checked"
    ROUTED = "routed"
    RECORDED = "recorded"


class OrchestrationStatus(str, Enum):
    """Terminal status of a submission.

    PARTIALLY_SENT only happens in ALL mode: the recipient got the message on
    at least one channel but not on every channel.
    """

    SENT = "sent"
    PARTIALLY_SENT = "partially_sent"
    FAILED = "failed"
    DEFERRED = "deferred"


class DeferralReason(str, Enum):
    QUIET_HOURS = "quiet_hours"
    THROTTLE = "throttle"
    BATCH = "batch"
    IN_FLIGHT = "in_flight"


class OrchestrationResult(BaseModel):
    """What happened to one submitted request.

    Attributes:
        request_id: Submitted request (the original one for cached results)
        status: SENT, PARTIALLY_SENT, FAILED or DEFERRED
        deferral_reason: Why a DEFERRED request was held back
        retry_not_before: Earliest sensible re-submission time when deferred
        outcomes: Per-channel outcomes, in channel order
        stages: Stages visited
        from_cache: True when served from the idempotency ledger
        batch_bucket_id: Bucket holding the event when deferred for batching
        error: Failure summary
    """

    request_id: str
    status: OrchestrationStatus
    deferral_reason: Optional[DeferralReason] = None
    retry_not_before: Optional[datetime] = None
    outcomes: List[DeliveryOutcome] = Field(default_factory=list)
    stages: List[Stage] = Field(default_factory=list)
    from_cache: bool = False
    batch_bucket_id: Optional[str] = None
    error: Optional[str] = None

    @property
    def sent_channels(self) -> List[ChannelId]:
        return [o.channel for o in self.outcomes if o.is_sent]

    @property
    def is_deferred(self) -> bool:
        return self.status == OrchestrationStatus.DEFERRED
