"""Exceptions raised by the notification orchestrator.

Expected branches (consent denials, throttling, batching, duplicate keys) are
returned as typed decisions, not raised. Exceptions cover the two cases that
must stop a request outright: a caller mistake, and broken internal state.
"""


class OrchestratorError(Exception):
    """Base exception for all orchestrator errors.

    Example:
        try:
            orchestrator.submit(request)
        except OrchestratorError as e:
            logger.error("orchestrator_error", error=str(e))
    """

    pass


class CallerError(OrchestratorError, ValueError):
    """Raised synchronously for a request that can never be valid.

    Examples are a transactional request without an idempotency key, or a
    channel with no registered sender. Never retried.
    """

    pass


class InvariantViolation(OrchestratorError):
    """Internal state is inconsistent.

    The orchestrator logs these and fails closed: no send is attempted.
    """

    pass


class LedgerCorruptionError(InvariantViolation):
    """An idempotency ledger entry is malformed or in an unknown state."""

    def __init__(self, key: str, reason: str):
        self.key = key
        self.reason = reason
        super().__init__(f"Idempotency entry '{key}' is corrupt: {reason}")


class BatchInvariantError(InvariantViolation):
    """A batch bucket was flushed twice or changed state out of order."""

    def __init__(self, bucket_id: str, reason: str):
        self.bucket_id = bucket_id
        self.reason = reason
        super().__init__(f"Batch bucket '{bucket_id}': {reason}")
