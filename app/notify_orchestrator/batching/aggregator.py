"""Batch aggregator: groups low-priority events into summarized notifications."""

import threading
import uuid
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, List, Optional, Protocol

from notify_orchestrator.batching.aggregation import (
    action_text_for,
    distinct_actors,
    summarize_actors,
)
from notify_orchestrator.batching.models import (
    ActorEvent,
    BatchAction,
    BatchBucket,
    BatchDecision,
    BucketKey,
    BucketState,
)
from notify_orchestrator.batching.scheduler import Scheduler, ThreadingTimerScheduler
from notify_orchestrator.configuration import BatchingSettings
from notify_orchestrator.exceptions import BatchInvariantError
from notify_orchestrator.logging import get_module_logger
from notify_orchestrator.notifications.models import NotificationRequest
from notify_orchestrator.persistence.store import Store

logger = get_module_logger()


class FlushResult(Protocol):
    """What ``on_flush`` reports back about a summary it was handed."""

    @property
    def is_deferred(self) -> bool: ...

    retry_not_before: Optional[datetime]


FlushCallback = Callable[[NotificationRequest], Optional[FlushResult]]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def summary_idempotency_key(bucket: BatchBucket) -> str:
    return (
        f"batch-{bucket.recipient_id}-{bucket.event_type}-"
        f"{bucket.target_id}-{bucket.bucket_id}"
    )


class BatchAggregator:
    """Collects batchable events per (recipient, event type, target).

    The first event of a bucket schedules a flush after
    ``settings.window_seconds``; reaching ``settings.max_events`` flushes at
    once. A flush builds one summary NotificationRequest and hands it to
    ``on_flush``. When ``on_flush`` reports the summary as deferred (quiet
    hours, throttle), the same summary is handed over again at its
    ``retry_not_before``, or after another window when no time is given.

    Locking: each bucket has its own lock, and the registry lock only guards
    the dict. When both are needed the bucket lock is taken first. No lock is
    held while a timer is pending or while ``on_flush`` runs.
    """

    def __init__(
        self,
        settings: Optional[BatchingSettings] = None,
        scheduler: Optional[Scheduler] = None,
        on_flush: Optional[FlushCallback] = None,
        store: Optional[Store] = None,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.settings = settings or BatchingSettings()
        self.scheduler = scheduler or ThreadingTimerScheduler()
        self.on_flush = on_flush
        self.store = store
        self._clock = clock
        self._buckets: Dict[BucketKey, BatchBucket] = {}
        self._by_id: Dict[str, BatchBucket] = {}
        self._redeliveries: Dict[str, datetime] = {}
        self._registry_lock = threading.Lock()

    def is_batchable(self, event_type: Optional[str]) -> bool:
        if event_type is None or event_type in self.settings.bypass_event_types:
            return False
        return event_type in self.settings.batchable_event_types

    def submit(self, event: ActorEvent) -> BatchDecision:
        """Queue ``event`` into its bucket, or return ImmediateSend.

        Raises:
            BatchInvariantError: If a count-triggered flush finds the bucket
                already flushed.
        """
        if not self.is_batchable(event.event_type):
            return BatchDecision(action=BatchAction.IMMEDIATE_SEND)

        while True:
            bucket = self._find_or_open(event)
            with bucket.lock:
                # Lost a race with a flush or cancel; open a fresh bucket.
                if bucket.state != BucketState.OPEN:
                    continue
                count = len(bucket.events)
                key = event.request.idempotency_key
                if key is not None and key in bucket.idempotency_keys:
                    duplicate, flush_now = True, False
                    break
                duplicate = False
                bucket.events.append(event)
                if key is not None:
                    bucket.idempotency_keys.add(key)
                count += 1
                flush_now = count >= self.settings.max_events
                if flush_now:
                    self._begin_flush(bucket)
                elif bucket.timer is None:
                    bucket_id = bucket.bucket_id
                    bucket.timer = self.scheduler.schedule(
                        self.settings.window_seconds,
                        lambda: self._on_timer(bucket_id),
                    )
            break

        if duplicate:
            logger.info(
                "batch_event_duplicate_ignored",
                bucket_id=bucket.bucket_id,
                idempotency_key=event.request.idempotency_key,
                event_count=count,
            )
            return BatchDecision(
                action=BatchAction.QUEUED,
                bucket_id=bucket.bucket_id,
                event_count=count,
            )

        logger.info(
            "batch_event_queued",
            bucket_id=bucket.bucket_id,
            recipient_id=event.recipient_id,
            event_type=event.event_type,
            target_id=event.target_id,
            event_count=count,
        )
        if flush_now:
            logger.info(
                "batch_count_threshold_reached",
                bucket_id=bucket.bucket_id,
                max_events=self.settings.max_events,
            )
            self._flush(bucket)

        return BatchDecision(
            action=BatchAction.QUEUED,
            bucket_id=bucket.bucket_id,
            event_count=count,
            flushed=flush_now,
        )

    def _find_or_open(self, event: ActorEvent) -> BatchBucket:
        key = (event.recipient_id, event.event_type, event.target_id)
        with self._registry_lock:
            bucket = self._buckets.get(key)
            if bucket is not None and bucket.state == BucketState.OPEN:
                return bucket
            bucket = BatchBucket(
                bucket_id=uuid.uuid4().hex,
                recipient_id=event.recipient_id,
                event_type=event.event_type,
                target_id=event.target_id,
                opened_at=self._clock(),
            )
            self._buckets[key] = bucket
            self._by_id[bucket.bucket_id] = bucket
        logger.debug("batch_bucket_opened", bucket_id=bucket.bucket_id)
        return bucket

    def _unregister(self, bucket: BatchBucket) -> None:
        with self._registry_lock:
            if self._buckets.get(bucket.key) is bucket:
                del self._buckets[bucket.key]
            self._by_id.pop(bucket.bucket_id, None)

    def _begin_flush(self, bucket: BatchBucket) -> None:
        """OPEN -> FLUSHING. Caller holds ``bucket.lock``."""
        bucket.state = BucketState.FLUSHING
        if bucket.timer is not None:
            bucket.timer.cancel()
        self._unregister(bucket)

    def _on_timer(self, bucket_id: str) -> None:
        with self._registry_lock:
            bucket = self._by_id.get(bucket_id)
        if bucket is None:
            logger.debug("batch_timer_stale", bucket_id=bucket_id)
            return
        with bucket.lock:
            if bucket.state != BucketState.OPEN:
                logger.debug(
                    "batch_timer_stale", bucket_id=bucket_id, state=bucket.state.value
                )
                return
            self._begin_flush(bucket)
        try:
            self._flush(bucket)
        except BatchInvariantError as e:
            logger.error("batch_flush_refused", bucket_id=bucket_id, error=str(e))
        except Exception as e:
            logger.exception(
                "batch_flush_delivery_failed", bucket_id=bucket_id, error=str(e)
            )

    def _flush(self, bucket: BatchBucket) -> Optional[NotificationRequest]:
        """FLUSHING -> FLUSHED and hand the summary to ``on_flush``.

        Raises:
            BatchInvariantError: If the bucket is not in FLUSHING state.
        """
        with bucket.lock:
            if bucket.state != BucketState.FLUSHING:
                logger.error(
                    "batch_double_flush_detected",
                    bucket_id=bucket.bucket_id,
                    state=bucket.state.value,
                )
                raise BatchInvariantError(
                    bucket.bucket_id, f"flush attempted in state {bucket.state.value}"
                )
            events = list(bucket.events)
            if not events:
                bucket.state = BucketState.CANCELED
                summary = None
            else:
                summary = self.build_summary(bucket, events)
                bucket.state = BucketState.FLUSHED
            snapshot = bucket.snapshot()

        self._persist(bucket.bucket_id, snapshot)
        if summary is None:
            logger.info("empty_batch_discarded", bucket_id=bucket.bucket_id)
            return None

        logger.info(
            "batch_flushed",
            bucket_id=bucket.bucket_id,
            recipient_id=bucket.recipient_id,
            event_count=len(events),
            actor_count=summary.payload["actor_count"],
        )
        if self.on_flush is not None:
            self._deliver(summary)
        return summary

    def _deliver(self, summary: NotificationRequest) -> None:
        result = self.on_flush(summary)
        if result is None or not result.is_deferred:
            return

        if result.retry_not_before is None:
            delay = self.settings.window_seconds
        else:
            delay = max(0.0, (result.retry_not_before - self._clock()).total_seconds())
        # Registered before scheduling so an immediate timer finds it.
        with self._registry_lock:
            self._redeliveries[summary.request_id] = self._clock() + timedelta(
                seconds=delay
            )
        self.scheduler.schedule(delay, lambda: self._on_redelivery_timer(summary))
        logger.info(
            "batch_summary_redelivery_scheduled",
            idempotency_key=summary.idempotency_key,
            recipient_id=summary.recipient_id,
            delay_seconds=round(delay, 3),
        )

    def _on_redelivery_timer(self, summary: NotificationRequest) -> None:
        with self._registry_lock:
            if self._redeliveries.pop(summary.request_id, None) is None:
                return
        try:
            self._deliver(summary)
        except Exception as e:
            logger.exception(
                "batch_summary_redelivery_failed",
                idempotency_key=summary.idempotency_key,
                error=str(e),
            )

    def build_summary(
        self, bucket: BatchBucket, events: List[ActorEvent]
    ) -> NotificationRequest:
        actors = distinct_actors(events)
        body = summarize_actors([a.name for a in actors], action_text_for(events))
        template = events[0].request
        payload = dict(template.payload)
        payload.update(
            {
                "body": body,
                "actors": [a.model_dump() for a in actors],
                "actor_count": len(actors),
                "event_count": len(events),
                "batch_bucket_id": bucket.bucket_id,
            }
        )
        return template.model_copy(
            update={
                "request_id": str(uuid.uuid4()),
                "idempotency_key": summary_idempotency_key(bucket),
                "payload": payload,
                "actor": None,
                "is_batch_summary": True,
                "created_at": self._clock(),
            }
        )

    def cancel(
        self, recipient_id: str, target_id: str, event_type: Optional[str] = None
    ) -> int:
        """Cancel open buckets for a target the recipient engaged with.

        Best effort: a bucket whose flush already started is left alone.

        Returns:
            Number of buckets canceled.
        """
        with self._registry_lock:
            candidates = [
                b
                for b in self._buckets.values()
                if b.recipient_id == recipient_id
                and b.target_id == target_id
                and (event_type is None or b.event_type == event_type)
            ]

        canceled = 0
        for bucket in candidates:
            with bucket.lock:
                if bucket.state != BucketState.OPEN:
                    continue
                bucket.state = BucketState.CANCELED
                if bucket.timer is not None:
                    bucket.timer.cancel()
                self._unregister(bucket)
                snapshot = bucket.snapshot()
            self._persist(bucket.bucket_id, snapshot)
            canceled += 1
            logger.info(
                "batch_canceled_on_engagement",
                bucket_id=bucket.bucket_id,
                recipient_id=recipient_id,
                target_id=target_id,
                discarded_events=len(snapshot["events"]),
            )
        return canceled

    def flush_all(self) -> int:
        """Flush every open bucket now, e.g. at shutdown.

        Returns:
            Number of summaries handed to ``on_flush``.
        """
        with self._registry_lock:
            buckets = list(self._buckets.values())

        flushed = 0
        for bucket in buckets:
            with bucket.lock:
                if bucket.state != BucketState.OPEN:
                    continue
                self._begin_flush(bucket)
            if self._flush(bucket) is not None:
                flushed += 1
        return flushed

    def pending_count(self) -> int:
        with self._registry_lock:
            return sum(1 for b in self._buckets.values() if b.state == BucketState.OPEN)

    def pending_redelivery_count(self) -> int:
        """Deferred summaries waiting for their retry time."""
        with self._registry_lock:
            return len(self._redeliveries)

    def _persist(self, bucket_id: str, snapshot: dict) -> None:
        if self.store is not None:
            self.store.save_batch(bucket_id, snapshot)
