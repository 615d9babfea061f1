"""Channel sender abstract base class.

One implementation per delivery medium wraps the provider transport
(SMTP/SendGrid, Twilio, APNs/FCM, Slack or Teams webhooks, WhatsApp).
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

from notify_orchestrator.notifications.models import ChannelId, RecipientProfile
from notify_orchestrator.operations import OperationResult


class ChannelSender(ABC):
    """Abstract base class for channel transports.

    Implementations should report provider failures as ``OperationResult``
    values rather than raising: TRANSIENT_ERROR for 5xx/network problems
    (the router retries these), PERMANENT_ERROR for 4xx-class problems such
    as ``invalid_recipient`` (never retried). Exceptions are still caught by
    the router and recorded as failed outcomes.

    Example Implementation:
        class TwilioSmsSender(ChannelSender):

            @property
            def channel(self) -> ChannelId:
                return ChannelId.SMS

            def send(self, contact, payload):
                response = self._client.messages.create(to=contact, body=payload["body"])
                return OperationResult.success(external_id=response.sid)
    """

    @property
    @abstractmethod
    def channel(self) -> ChannelId:
        """Channel this sender delivers on."""
        pass

    def resolve_contact(self, profile: Optional[RecipientProfile]) -> Optional[str]:
        """Address for this channel from the recipient profile.

        Override when the address needs a lookup (e.g. email to Slack user
        id). Returning None records ``missing_contact_info``.
        """
        if profile is None:
            return None
        return profile.contact_for(self.channel)

    @abstractmethod
    def send(self, contact: str, payload: Dict[str, Any]) -> OperationResult:
        """Deliver the rendered payload to ``contact``.

        Returns:
            OperationResult; ``external_id`` carries the provider message id
            on success.
        """
        pass

    def health_check(self) -> OperationResult:
        """Check provider connectivity and credentials."""
        return OperationResult.success(message=f"{self.channel.value} sender ready")
