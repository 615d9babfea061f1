"""Per-recipient, per-channel, per-priority rate limiting."""

import math
import threading
from datetime import datetime, timezone
from typing import Callable, Dict, Optional

from notify_orchestrator.configuration import ChannelLimit, ThrottleSettings
from notify_orchestrator.logging import get_module_logger
from notify_orchestrator.notifications.models import ChannelId, Priority
from notify_orchestrator.throttling.models import (
    ThrottleDecision,
    ThrottleKey,
    ThrottleWindow,
)

logger = get_module_logger()


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ThrottleGuard:
    """Fixed window rate limiter keyed by (recipient, channel, priority).

    Each key has its own lock. The registry lock only covers the dict
    lookup, so recipients never contend with each other. Critical priority
    is always allowed and consumes nothing. Channels with no configured
    limit are unlimited.

    Example:
        guard = ThrottleGuard(settings.throttle)
        decision = guard.try_acquire("u1", ChannelId.PUSH, Priority.MEDIUM)
        if not decision.allowed:
            defer_until(decision.retry_not_before)
    """

    def __init__(
        self,
        settings: Optional[ThrottleSettings] = None,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.settings = settings or ThrottleSettings()
        self._clock = clock
        self._windows: Dict[ThrottleKey, ThrottleWindow] = {}
        self._registry_lock = threading.Lock()

    def effective_limit(self, channel: ChannelId, priority: Priority) -> Optional[int]:
        """Channel limit scaled by the priority multiplier, floored, minimum 1."""
        channel_limit = self._channel_limit(channel)
        if channel_limit is None:
            return None
        multiplier = self.settings.priority_multipliers.get(priority.value, 1.0)
        return max(1, math.floor(channel_limit.max_count * multiplier))

    def _channel_limit(self, channel: ChannelId) -> Optional[ChannelLimit]:
        return self.settings.channel_limits.get(channel.value)

    def _window(
        self, recipient_id: str, channel: ChannelId, priority: Priority, now: datetime
    ) -> Optional[ThrottleWindow]:
        channel_limit = self._channel_limit(channel)
        if channel_limit is None:
            return None
        key = (recipient_id, channel, priority)
        with self._registry_lock:
            window = self._windows.get(key)
            if window is None:
                window = ThrottleWindow(
                    recipient_id=recipient_id,
                    channel=channel,
                    priority_bucket=priority,
                    window_start=now,
                    window_seconds=channel_limit.window_seconds,
                )
                self._windows[key] = window
        return window

    def try_acquire(
        self, recipient_id: str, channel: ChannelId, priority: Priority
    ) -> ThrottleDecision:
        """Consume one unit of budget, or report when the window ends."""
        if not self.settings.enabled or priority == Priority.CRITICAL:
            return ThrottleDecision.unlimited()

        limit = self.effective_limit(channel, priority)
        now = self._clock()
        window = self._window(recipient_id, channel, priority, now)
        if window is None or limit is None:
            return ThrottleDecision.unlimited()

        with window.lock:
            window.roll_over_if_expired(now)
            if window.count >= limit:
                retry_not_before = window.window_end
                logger.info(
                    "channel_throttled",
                    recipient_id=recipient_id,
                    channel=channel.value,
                    priority=priority.value,
                    limit=limit,
                    retry_not_before=retry_not_before.isoformat(),
                )
                return ThrottleDecision(
                    allowed=False,
                    limit=limit,
                    remaining=0,
                    retry_not_before=retry_not_before,
                )
            window.count += 1
            remaining = limit - window.count

        return ThrottleDecision(allowed=True, limit=limit, remaining=remaining)

    def peek(
        self, recipient_id: str, channel: ChannelId, priority: Priority
    ) -> Optional[int]:
        """Remaining budget without consuming it. None means unlimited."""
        if not self.settings.enabled or priority == Priority.CRITICAL:
            return None
        limit = self.effective_limit(channel, priority)
        if limit is None:
            return None
        now = self._clock()
        with self._registry_lock:
            window = self._windows.get((recipient_id, channel, priority))
        if window is None:
            return limit
        with window.lock:
            if now >= window.window_end:
                return limit
            return max(0, limit - window.count)

    def reset(
        self,
        recipient_id: str,
        channel: Optional[ChannelId] = None,
        priority: Optional[Priority] = None,
    ) -> int:
        """Drop counters for a recipient, optionally narrowed by channel/priority.

        Returns:
            Number of windows removed.
        """
        with self._registry_lock:
            keys = [
                key
                for key in self._windows
                if key[0] == recipient_id
                and (channel is None or key[1] == channel)
                and (priority is None or key[2] == priority)
            ]
            for key in keys:
                del self._windows[key]
        if keys:
            logger.info("throttle_reset", recipient_id=recipient_id, windows=len(keys))
        return len(keys)

    def sweep(self) -> int:
        """Remove windows that have ended; they would roll over anyway."""
        now = self._clock()
        with self._registry_lock:
            expired = [k for k, w in self._windows.items() if now >= w.window_end]
            for key in expired:
                del self._windows[key]
        return len(expired)
