"""Outcome classification for channel sends and inbound event handling."""

from enum import Enum


class OperationStatus(Enum):
    """Status codes for operation results.

    Attributes:
        SUCCESS: The provider accepted the message or the event was applied
        TRANSIENT_ERROR: Retryable failure (network, timeout, provider 5xx)
        PERMANENT_ERROR: Non-retryable failure (provider 4xx, invalid recipient)
        UNAUTHORIZED: Provider credentials rejected
        NOT_FOUND: Recipient or resource unknown to the provider
    """

    SUCCESS = "success"
    TRANSIENT_ERROR = "transient_error"
    PERMANENT_ERROR = "permanent_error"
    UNAUTHORIZED = "unauthorized"
    NOT_FOUND = "not_found"
