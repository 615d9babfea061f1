"""Fixtures for orchestrator tests."""

from unittest.mock import MagicMock

import pytest

from notify_orchestrator.notifications.models import ChannelId
from notify_orchestrator.orchestrator import build_orchestrator


@pytest.fixture
def senders(sender_factory):
    """One FakeSender per commonly used channel, keyed by channel."""
    return {
        channel: sender_factory(channel)
        for channel in (ChannelId.SMS, ChannelId.EMAIL, ChannelId.PUSH, ChannelId.INBOX)
    }


@pytest.fixture
def orchestrator_factory(
    orchestrator_settings, store, manual_scheduler, clock, senders
):
    """Build orchestrators over the shared store, clock and manual scheduler."""
    built = []

    def _factory(sender_list=None, settings=None):
        orchestrator = build_orchestrator(
            senders=sender_list if sender_list is not None else list(senders.values()),
            settings=settings or orchestrator_settings,
            store=store,
            scheduler=manual_scheduler,
            clock=clock,
            sleep=MagicMock(),
        )
        built.append(orchestrator)
        return orchestrator

    yield _factory

    for orchestrator in built:
        orchestrator.router.close()


@pytest.fixture
def orchestrator(orchestrator_factory):
    return orchestrator_factory()
