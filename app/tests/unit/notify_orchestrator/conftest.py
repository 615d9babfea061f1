"""Shared fixtures for notify_orchestrator unit tests."""

import threading
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, List, Optional, Union

import pytest

from notify_orchestrator.configuration import (
    QuietHoursSettings,
    RetrySettings,
    Settings,
)
from notify_orchestrator.notifications.channels.base import ChannelSender
from notify_orchestrator.notifications.models import (
    Actor,
    Category,
    ChannelId,
    NotificationRequest,
    Priority,
    RecipientProfile,
    RoutingMode,
)
from notify_orchestrator.operations import OperationResult
from notify_orchestrator.persistence.memory import InMemoryStore

NOON_UTC = datetime(2024, 3, 12, 12, 0, tzinfo=timezone.utc)


class FakeClock:
    """Callable clock that only moves when told to."""

    def __init__(self, now: datetime = NOON_UTC):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


class ScheduledCall:
    def __init__(self, delay: float, callback: Callable[[], None]):
        self.delay = delay
        self.callback = callback
        self.canceled = False
        self.fired = False

    def cancel(self) -> None:
        self.canceled = True


class ManualScheduler:
    """Scheduler whose timers fire only when the test says so."""

    def __init__(self):
        self.calls: List[ScheduledCall] = []

    def schedule(self, delay_seconds: float, callback: Callable[[], None]) -> ScheduledCall:
        call = ScheduledCall(delay_seconds, callback)
        self.calls.append(call)
        return call

    @property
    def pending(self) -> List[ScheduledCall]:
        return [c for c in self.calls if not c.canceled and not c.fired]

    def fire_all(self) -> int:
        fired = 0
        for call in self.pending:
            call.fired = True
            call.callback()
            fired += 1
        return fired


class FakeSender(ChannelSender):
    """ChannelSender that replays scripted results and records every call."""

    def __init__(
        self,
        channel: ChannelId,
        responses: Optional[List[Union[OperationResult, Exception]]] = None,
    ):
        self._channel = channel
        self.responses = list(responses or [])
        self.calls: List[Dict[str, Any]] = []
        self._lock = threading.Lock()

    @property
    def channel(self) -> ChannelId:
        return self._channel

    def send(self, contact: str, payload: Dict[str, Any]) -> OperationResult:
        with self._lock:
            self.calls.append({"contact": contact, "payload": payload})
            response = (
                self.responses.pop(0)
                if self.responses
                else OperationResult.success(external_id=f"{self._channel.value}-msg")
            )
        if isinstance(response, Exception):
            raise response
        return response


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def manual_scheduler():
    return ManualScheduler()


@pytest.fixture
def store():
    return InMemoryStore()


@pytest.fixture
def sender_factory():
    """Factory for FakeSender instances.

    Example:
        sms = sender_factory(ChannelId.SMS, [OperationResult.transient_error("503")])
    """

    def _factory(channel: ChannelId, responses=None) -> FakeSender:
        return FakeSender(channel, responses)

    return _factory


@pytest.fixture
def profile_factory(store):
    """Factory that saves a RecipientProfile with every channel reachable by default."""

    def _factory(
        recipient_id: str = "u1",
        timezone_name: Optional[str] = None,
        contacts: Optional[Dict[ChannelId, str]] = None,
    ) -> RecipientProfile:
        if contacts is None:
            contacts = {
                ChannelId.EMAIL: f"{recipient_id}@example.com",
                ChannelId.SMS: "+15555550100",
                ChannelId.PUSH: f"push-token-{recipient_id}",
                ChannelId.INBOX: recipient_id,
                ChannelId.SLACK: f"U-{recipient_id}",
                ChannelId.MS_TEAMS: f"teams-{recipient_id}",
                ChannelId.WHATSAPP: "+15555550100",
            }
        profile = RecipientProfile(
            recipient_id=recipient_id, timezone=timezone_name, contacts=contacts
        )
        store.save_profile(profile)
        return profile

    return _factory


@pytest.fixture
def request_factory():
    """Factory for NotificationRequest instances.

    Example:
        request = request_factory(channels=[ChannelId.SMS, ChannelId.EMAIL])
        like = request_factory(event_type="like", actor=Actor(actor_id="a1", name="Jane"))
    """

    def _factory(
        recipient_id: str = "u1",
        category: Category = Category.TRANSACTIONAL,
        priority: Priority = Priority.MEDIUM,
        channels: Optional[List[ChannelId]] = None,
        routing_mode: RoutingMode = RoutingMode.SINGLE,
        idempotency_key: Optional[str] = "welcome-u1",
        payload: Optional[Dict[str, Any]] = None,
        **extra: Any,
    ) -> NotificationRequest:
        return NotificationRequest(
            recipient_id=recipient_id,
            category=category,
            priority=priority,
            channels=channels or [ChannelId.EMAIL],
            routing_mode=routing_mode,
            idempotency_key=idempotency_key,
            payload=payload if payload is not None else {"body": "Hello"},
            **extra,
        )

    return _factory


@pytest.fixture
def like_factory(request_factory):
    """Factory for batchable ``like`` requests from a named actor."""

    def _factory(
        actor_name: str,
        actor_id: Optional[str] = None,
        target_id: str = "post-1",
        recipient_id: str = "u1",
        event_type: str = "like",
    ) -> NotificationRequest:
        return request_factory(
            recipient_id=recipient_id,
            category=Category.GROWTH,
            priority=Priority.LOW,
            channels=[ChannelId.PUSH],
            idempotency_key=None,
            event_type=event_type,
            target_id=target_id,
            actor=Actor(actor_id=actor_id or actor_name.lower(), name=actor_name),
            action_text="liked your post",
        )

    return _factory


@pytest.fixture
def orchestrator_settings():
    """Settings with instant retries; quiet hours stay on (tests run at noon UTC)."""
    return Settings(
        retry=RetrySettings(max_attempts=3, base_delay_seconds=0.0, jitter_ratio=0.0),
        quiet_hours=QuietHoursSettings(),
    )
