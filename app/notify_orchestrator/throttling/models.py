"""Throttle guard state and decisions."""

import threading
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Optional, Tuple

from notify_orchestrator.notifications.models import ChannelId, Priority

ThrottleKey = Tuple[str, ChannelId, Priority]


@dataclass
class ThrottleWindow:
    """Fixed window counter for one (recipient, channel, priority) key.

    Mutated only while ``lock`` is held.
    """

    recipient_id: str
    channel: ChannelId
    priority_bucket: Priority
    window_start: datetime
    window_seconds: int
    count: int = 0
    lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    @property
    def window_end(self) -> datetime:
        return self.window_start + timedelta(seconds=self.window_seconds)

    def roll_over_if_expired(self, now: datetime) -> None:
        if now >= self.window_end:
            self.window_start = now
            self.count = 0


@dataclass(frozen=True)
class ThrottleDecision:
    """Allowed, or Throttled until ``retry_not_before``.

    Attributes:
        allowed: True if the send may proceed
        limit: Effective limit for the key, None when unlimited
        remaining: Budget left after this decision, None when unlimited
        retry_not_before: End of the current window when throttled
    """

    allowed: bool
    limit: Optional[int] = None
    remaining: Optional[int] = None
    retry_not_before: Optional[datetime] = None

    @classmethod
    def unlimited(cls) -> "ThrottleDecision":
        return cls(allowed=True)
