"""Consent gate: opt-in/opt-out rules and recipient-local quiet hours."""

from datetime import datetime, timedelta, timezone
from typing import Callable, Optional, Tuple

import pytz

from notify_orchestrator.configuration import QuietHoursSettings
from notify_orchestrator.consent.models import ConsentDecision, DenyReason
from notify_orchestrator.logging import get_module_logger
from notify_orchestrator.notifications.models import (
    Category,
    ChannelId,
    ConsentStatus,
    Priority,
)
from notify_orchestrator.persistence.store import PreferenceSource

logger = get_module_logger()


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def in_quiet_window(hour: int, start_hour: int, end_hour: int) -> bool:
    """True if ``hour`` falls in [start_hour, end_hour), wrapping midnight.

    A window with equal start and end is empty.
    """
    if start_hour == end_hour:
        return False
    if start_hour < end_hour:
        return start_hour <= hour < end_hour
    return hour >= start_hour or hour < end_hour


class ConsentGate:
    """Decides whether a recipient may be contacted on a channel right now.

    Rules, in order:

    1. Critical priority is always allowed.
    2. Marketing needs a live ``opted_in`` record for the exact channel.
    3. Transactional and growth are allowed unless explicitly opted out.
    4. Quiet hours in the recipient's timezone defer everything non-critical.

    Opt-out is checked before quiet hours so a terminal denial wins over a
    deferrable one. The gate never writes.
    """

    def __init__(
        self,
        preferences: PreferenceSource,
        quiet_hours: Optional[QuietHoursSettings] = None,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.preferences = preferences
        self.quiet_hours = quiet_hours or QuietHoursSettings()
        self._clock = clock

    def check(
        self,
        recipient_id: str,
        category: Category,
        channel: ChannelId,
        priority: Priority,
    ) -> ConsentDecision:
        if priority == Priority.CRITICAL:
            return ConsentDecision.allow()

        now = self._clock()
        record = self.preferences.get_consent(recipient_id, category, channel)
        status = record.effective_status(now) if record else ConsentStatus.DEFAULT

        if status == ConsentStatus.OPTED_OUT:
            logger.info(
                "consent_denied",
                recipient_id=recipient_id,
                category=category.value,
                channel=channel.value,
                reason=DenyReason.OPTED_OUT.value,
            )
            return ConsentDecision.deny(DenyReason.OPTED_OUT)

        if category == Category.MARKETING and status != ConsentStatus.OPTED_IN:
            logger.info(
                "consent_denied",
                recipient_id=recipient_id,
                category=category.value,
                channel=channel.value,
                reason=DenyReason.CONSENT_REQUIRED.value,
            )
            return ConsentDecision.deny(DenyReason.CONSENT_REQUIRED)

        if self.quiet_hours.enabled:
            quiet, window_end = self.quiet_window_state(recipient_id, now)
            if quiet:
                logger.info(
                    "quiet_hours_deferral",
                    recipient_id=recipient_id,
                    channel=channel.value,
                    retry_not_before=window_end.isoformat(),
                )
                return ConsentDecision.deny(DenyReason.QUIET_HOURS, window_end)

        return ConsentDecision.allow()

    def recipient_timezone(self, recipient_id: str) -> pytz.BaseTzInfo:
        """Profile timezone, or the configured default when missing or unknown."""
        profile = self.preferences.get_profile(recipient_id)
        tz_name = profile.timezone if profile and profile.timezone else None
        if tz_name:
            try:
                return pytz.timezone(tz_name)
            except pytz.UnknownTimeZoneError:
                logger.warning(
                    "unknown_recipient_timezone",
                    recipient_id=recipient_id,
                    timezone=tz_name,
                )
        return pytz.timezone(self.quiet_hours.default_timezone)

    def quiet_window_state(
        self, recipient_id: str, now: datetime
    ) -> Tuple[bool, Optional[datetime]]:
        """Whether ``now`` is inside the recipient's quiet window.

        Returns:
            (in_window, window_end_utc). window_end_utc is None outside.
        """
        tz = self.recipient_timezone(recipient_id)
        local_now = now.astimezone(tz)
        start = self.quiet_hours.start_hour
        end = self.quiet_hours.end_hour
        if not in_quiet_window(local_now.hour, start, end):
            return False, None

        end_date = local_now.date()
        if start > end and local_now.hour >= start:
            end_date = end_date + timedelta(days=1)
        naive_end = datetime(end_date.year, end_date.month, end_date.day, end)
        window_end = tz.normalize(tz.localize(naive_end)).astimezone(timezone.utc)
        return True, window_end
