"""Channel sender interface and adapters."""

from notify_orchestrator.notifications.channels.base import ChannelSender
from notify_orchestrator.notifications.channels.function import FunctionChannelSender

__all__ = ["ChannelSender", "FunctionChannelSender"]
