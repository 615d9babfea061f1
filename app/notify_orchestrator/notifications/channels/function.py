"""Adapter turning plain callables into channel senders."""

from typing import Any, Callable, Dict, Optional

from notify_orchestrator.notifications.channels.base import ChannelSender
from notify_orchestrator.notifications.models import ChannelId
from notify_orchestrator.operations import OperationResult

SendFunction = Callable[[str, Dict[str, Any]], OperationResult]


class FunctionChannelSender(ChannelSender):
    """Wrap a ``send(contact, payload)`` function as a ChannelSender.

    Example:
        sender = FunctionChannelSender(ChannelId.INBOX, inbox_client.post)
    """

    def __init__(
        self,
        channel: ChannelId,
        send_fn: SendFunction,
        health_fn: Optional[Callable[[], OperationResult]] = None,
    ):
        self._channel = channel
        self._send_fn = send_fn
        self._health_fn = health_fn

    @property
    def channel(self) -> ChannelId:
        return self._channel

    def send(self, contact: str, payload: Dict[str, Any]) -> OperationResult:
        return self._send_fn(contact, payload)

    def health_check(self) -> OperationResult:
        if self._health_fn is None:
            return super().health_check()
        return self._health_fn()
