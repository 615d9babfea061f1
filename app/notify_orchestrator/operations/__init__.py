"""Operation result types shared by channel senders and event handlers."""

from notify_orchestrator.operations.result import OperationResult
from notify_orchestrator.operations.status import OperationStatus

__all__ = ["OperationResult", "OperationStatus"]
