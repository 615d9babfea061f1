"""Uniform result type returned by channel senders and event handlers."""

from dataclasses import dataclass
from typing import Any, Optional

from notify_orchestrator.operations.status import OperationStatus


@dataclass
class OperationResult:
    """Result of a single provider call or inbound event application.

    Attributes:
        status: OperationStatus -- high-level outcome
        message: str -- human-friendly message for logs/troubleshooting
        data: Optional[Any] -- optional payload
        error_code: Optional[str] -- machine error code, e.g. ``invalid_recipient``
        retry_after: Optional[int] -- seconds the provider asked us to wait
        external_id: Optional[str] -- provider message id for accepted sends
    """

    status: OperationStatus
    message: str
    data: Optional[Any] = None
    error_code: Optional[str] = None
    retry_after: Optional[int] = None
    external_id: Optional[str] = None

    @property
    def is_success(self) -> bool:
        return self.status == OperationStatus.SUCCESS

    @property
    def is_retryable(self) -> bool:
        """True only for transient failures; 4xx-class outcomes are final."""
        return self.status == OperationStatus.TRANSIENT_ERROR

    @classmethod
    def success(
        cls,
        data: Optional[Any] = None,
        message: str = "ok",
        external_id: Optional[str] = None,
    ) -> "OperationResult":
        """Create a SUCCESS result, optionally carrying the provider message id."""
        return cls(
            status=OperationStatus.SUCCESS,
            message=message,
            data=data,
            external_id=external_id,
        )

    @classmethod
    def error(
        cls,
        status: OperationStatus,
        message: str,
        error_code: Optional[str] = None,
        retry_after: Optional[int] = None,
        data: Optional[Any] = None,
    ) -> "OperationResult":
        return cls(
            status=status,
            message=message,
            error_code=error_code,
            retry_after=retry_after,
            data=data,
        )

    @classmethod
    def transient_error(
        cls,
        message: str,
        error_code: Optional[str] = "provider_error",
        retry_after: Optional[int] = None,
    ) -> "OperationResult":
        """Create a transient (retryable) error result.

        Use for provider 5xx responses, timeouts and rate limiting.
        """
        return cls.error(
            OperationStatus.TRANSIENT_ERROR, message, error_code, retry_after
        )

    @classmethod
    def permanent_error(
        cls, message: str, error_code: Optional[str] = "provider_error"
    ) -> "OperationResult":
        """Create a permanent (non-retryable) error result.

        Use for provider 4xx responses, invalid recipients and malformed
        inbound events.
        """
        return cls.error(OperationStatus.PERMANENT_ERROR, message, error_code)
