"""Batch aggregator for low-priority, high-volume events."""

from notify_orchestrator.batching.aggregation import distinct_actors, summarize_actors
from notify_orchestrator.batching.aggregator import BatchAggregator, summary_idempotency_key
from notify_orchestrator.batching.models import (
    ActorEvent,
    BatchAction,
    BatchBucket,
    BatchDecision,
    BucketState,
)
from notify_orchestrator.batching.scheduler import Scheduler, ThreadingTimerScheduler

__all__ = [
    "ActorEvent",
    "BatchAction",
    "BatchAggregator",
    "BatchBucket",
    "BatchDecision",
    "BucketState",
    "Scheduler",
    "ThreadingTimerScheduler",
    "distinct_actors",
    "summarize_actors",
    "summary_idempotency_key",
]
