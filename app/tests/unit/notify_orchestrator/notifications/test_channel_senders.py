"""Unit tests for channel sender adapters."""

from unittest.mock import MagicMock

import pytest

from notify_orchestrator.notifications.channels import FunctionChannelSender
from notify_orchestrator.notifications.models import ChannelId, RecipientProfile
from notify_orchestrator.operations import OperationResult

pytestmark = pytest.mark.unit


def test_function_sender_delegates_send():
    send_fn = MagicMock(return_value=OperationResult.success(external_id="m-1"))
    sender = FunctionChannelSender(ChannelId.INBOX, send_fn)

    result = sender.send("u1", {"body": "Hi"})

    assert sender.channel == ChannelId.INBOX
    assert result.external_id == "m-1"
    send_fn.assert_called_once_with("u1", {"body": "Hi"})


def test_function_sender_default_health_check():
    sender = FunctionChannelSender(ChannelId.SLACK, MagicMock())

    result = sender.health_check()

    assert result.is_success
    assert result.message == "slack sender ready"


def test_function_sender_custom_health_check():
    health_fn = MagicMock(return_value=OperationResult.transient_error("no creds"))
    sender = FunctionChannelSender(ChannelId.SLACK, MagicMock(), health_fn=health_fn)

    assert not sender.health_check().is_success


def test_resolve_contact_uses_profile():
    sender = FunctionChannelSender(ChannelId.SMS, MagicMock())
    profile = RecipientProfile(recipient_id="u1", contacts={ChannelId.SMS: "+15555550100"})

    assert sender.resolve_contact(profile) == "+15555550100"
    assert sender.resolve_contact(None) is None
