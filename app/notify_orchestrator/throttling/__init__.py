"""Throttle guard: fixed window rate limits per recipient and channel."""

from notify_orchestrator.throttling.guard import ThrottleGuard
from notify_orchestrator.throttling.models import ThrottleDecision, ThrottleWindow

__all__ = ["ThrottleDecision", "ThrottleGuard", "ThrottleWindow"]
