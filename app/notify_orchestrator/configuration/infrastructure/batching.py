"""Batch aggregator settings."""

from typing import List

from pydantic import Field, model_validator

from notify_orchestrator.configuration.base import InfrastructureSettings


class BatchingSettings(InfrastructureSettings):
    """Batching configuration for low-priority social/activity events.

    Environment Variables:
        BATCH_WINDOW_SECONDS: Flush timer started by the first event (default: 300s)
        BATCH_MAX_EVENTS: Count threshold that flushes immediately (default: 20)
        BATCH_BATCHABLE_EVENT_TYPES: JSON list of event types eligible for batching
        BATCH_BYPASS_EVENT_TYPES: JSON list of event types always sent immediately
    """

    window_seconds: float = Field(default=300.0, gt=0, alias="BATCH_WINDOW_SECONDS")
    max_events: int = Field(default=20, ge=1, alias="BATCH_MAX_EVENTS")
    batchable_event_types: List[str] = Field(
        default_factory=lambda: [
            "like",
            "comment",
            "follow",
            "mention",
            "low_priority_alert",
        ],
        alias="BATCH_BATCHABLE_EVENT_TYPES",
    )
    bypass_event_types: List[str] = Field(
        default_factory=lambda: [
            "otp",
            "password_reset",
            "security_alert",
            "order_confirmation",
        ],
        alias="BATCH_BYPASS_EVENT_TYPES",
    )

    @model_validator(mode="after")
    def validate_disjoint(self) -> "BatchingSettings":
        """An event type cannot be both batchable and bypassed."""
        overlap = set(self.batchable_event_types) & set(self.bypass_event_types)
        if overlap:
            raise ValueError(
                f"Event types cannot be batchable and bypassed: {sorted(overlap)}"
            )
        return self
