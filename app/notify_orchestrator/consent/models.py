"""Consent gate decisions."""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional

from notify_orchestrator.notifications.models import DeliveryStatus


class DenyReason(str, Enum):
    """Why a channel was denied.

    QUIET_HOURS is deferrable; the other reasons are terminal for the channel.
    """

    OPTED_OUT = "opted_out"
    CONSENT_REQUIRED = "consent_required"
    QUIET_HOURS = "quiet_hours"


@dataclass(frozen=True)
class ConsentDecision:
    """Allow, or Deny with a reason.

    Attributes:
        allowed: True when the channel may be used
        reason: Set when denied
        retry_not_before: For QUIET_HOURS, the UTC instant the window ends
    """

    allowed: bool
    reason: Optional[DenyReason] = None
    retry_not_before: Optional[datetime] = None

    @classmethod
    def allow(cls) -> "ConsentDecision":
        return cls(allowed=True)

    @classmethod
    def deny(
        cls, reason: DenyReason, retry_not_before: Optional[datetime] = None
    ) -> "ConsentDecision":
        return cls(allowed=False, reason=reason, retry_not_before=retry_not_before)

    @property
    def is_deferrable(self) -> bool:
        return self.reason == DenyReason.QUIET_HOURS

    @property
    def skip_status(self) -> DeliveryStatus:
        """DeliveryOutcome status recorded for this denial."""
        if self.reason == DenyReason.QUIET_HOURS:
            return DeliveryStatus.SKIPPED_QUIET_HOURS
        return DeliveryStatus.SKIPPED_CONSENT
