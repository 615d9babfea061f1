"""Unit tests for the batch aggregator.

Tests cover:
- Bypass and non-batchable event types
- Bucket keying, timer scheduling and flush by window
- Count-threshold flush
- Summary request contents
- Cancellation on engagement (best effort)
- Re-delivery of summaries that come back deferred
- Replayed events with a known idempotency key
- Empty buckets and double-flush refusal
- Concurrent appends
"""

import threading
from datetime import timedelta
from unittest.mock import MagicMock

import pytest

from notify_orchestrator.batching import (
    ActorEvent,
    BatchAction,
    BatchAggregator,
    BatchBucket,
    BucketState,
)
from notify_orchestrator.configuration import BatchingSettings
from notify_orchestrator.exceptions import BatchInvariantError
from notify_orchestrator.orchestrator import (
    DeferralReason,
    OrchestrationResult,
    OrchestrationStatus,
)

pytestmark = pytest.mark.unit


@pytest.fixture
def on_flush():
    return MagicMock(return_value=None)


@pytest.fixture
def aggregator(manual_scheduler, on_flush, store, clock):
    return BatchAggregator(
        BatchingSettings(window_seconds=300, max_events=5),
        scheduler=manual_scheduler,
        on_flush=on_flush,
        store=store,
        clock=clock,
    )


def _submit(aggregator, like_factory, name, **kwargs):
    return aggregator.submit(ActorEvent.from_request(like_factory(name, **kwargs)))


class TestRouting:
    def test_bypass_event_is_immediate(self, aggregator, like_factory):
        decision = _submit(aggregator, like_factory, "Jane", event_type="otp")

        assert decision.action == BatchAction.IMMEDIATE_SEND
        assert aggregator.pending_count() == 0

    def test_unknown_event_type_is_immediate(self, aggregator, like_factory):
        decision = _submit(aggregator, like_factory, "Jane", event_type="invoice")

        assert decision.action == BatchAction.IMMEDIATE_SEND

    def test_batchable_event_is_queued(self, aggregator, like_factory):
        decision = _submit(aggregator, like_factory, "Jane")

        assert decision.is_queued
        assert decision.event_count == 1
        assert aggregator.pending_count() == 1

    def test_same_key_shares_bucket(self, aggregator, like_factory):
        first = _submit(aggregator, like_factory, "Jane")
        second = _submit(aggregator, like_factory, "Bob")

        assert first.bucket_id == second.bucket_id
        assert second.event_count == 2

    def test_different_targets_get_different_buckets(self, aggregator, like_factory):
        first = _submit(aggregator, like_factory, "Jane", target_id="post-1")
        second = _submit(aggregator, like_factory, "Jane", target_id="post-2")

        assert first.bucket_id != second.bucket_id
        assert aggregator.pending_count() == 2

    def test_only_first_event_schedules_timer(
        self, aggregator, like_factory, manual_scheduler
    ):
        for name in ["Jane", "Bob", "Ann"]:
            _submit(aggregator, like_factory, name)

        assert len(manual_scheduler.calls) == 1
        assert manual_scheduler.calls[0].delay == 300


class TestFlush:
    def test_timer_flush_sends_one_summary(
        self, aggregator, like_factory, manual_scheduler, on_flush
    ):
        for name in ["Jane", "Bob", "Ann", "Li"]:
            _submit(aggregator, like_factory, name)

        manual_scheduler.fire_all()

        on_flush.assert_called_once()
        summary = on_flush.call_args.args[0]
        assert summary.payload["body"] == "Jane, Bob, and 2 others liked your post"
        assert summary.payload["event_count"] == 4
        assert aggregator.pending_count() == 0

    @pytest.mark.parametrize(
        "names,body",
        [
            (["Jane"], "Jane liked your post"),
            (["Jane", "Bob"], "Jane and Bob liked your post"),
            (["Jane", "Bob", "Jane"], "Jane and Bob liked your post"),
        ],
    )
    def test_summary_body(
        self, aggregator, like_factory, manual_scheduler, on_flush, names, body
    ):
        for name in names:
            _submit(aggregator, like_factory, name)

        manual_scheduler.fire_all()

        assert on_flush.call_args.args[0].payload["body"] == body

    def test_summary_request_fields(
        self, aggregator, like_factory, manual_scheduler, on_flush
    ):
        decision = _submit(aggregator, like_factory, "Jane")

        manual_scheduler.fire_all()

        summary = on_flush.call_args.args[0]
        assert summary.is_batch_summary is True
        assert summary.actor is None
        assert summary.recipient_id == "u1"
        assert summary.event_type == "like"
        assert summary.idempotency_key == f"batch-u1-like-post-1-{decision.bucket_id}"
        assert summary.payload["actors"] == [{"actor_id": "jane", "name": "Jane"}]

    def test_count_threshold_flushes_immediately(
        self, aggregator, like_factory, manual_scheduler, on_flush
    ):
        decisions = [
            _submit(aggregator, like_factory, name)
            for name in ["A", "B", "C", "D", "E"]
        ]

        assert decisions[-1].flushed is True
        on_flush.assert_called_once()
        assert manual_scheduler.calls[0].canceled is True
        assert manual_scheduler.fire_all() == 0

    def test_event_after_flush_opens_new_bucket(
        self, aggregator, like_factory, manual_scheduler
    ):
        first = _submit(aggregator, like_factory, "Jane")
        manual_scheduler.fire_all()

        second = _submit(aggregator, like_factory, "Bob")

        assert second.bucket_id != first.bucket_id
        assert second.event_count == 1

    def test_flush_persists_snapshot(
        self, aggregator, like_factory, manual_scheduler, store
    ):
        decision = _submit(aggregator, like_factory, "Jane")
        manual_scheduler.fire_all()

        snapshot = store.get_batch(decision.bucket_id)

        assert snapshot["state"] == BucketState.FLUSHED.value
        assert snapshot["events"][0]["actor_name"] == "Jane"

    def test_flush_all(self, aggregator, like_factory, on_flush):
        _submit(aggregator, like_factory, "Jane", target_id="post-1")
        _submit(aggregator, like_factory, "Bob", target_id="post-2")

        assert aggregator.flush_all() == 2
        assert on_flush.call_count == 2
        assert aggregator.pending_count() == 0

    def test_on_flush_failure_in_timer_is_logged_not_raised(
        self, aggregator, like_factory, manual_scheduler, on_flush
    ):
        on_flush.side_effect = RuntimeError("downstream")
        _submit(aggregator, like_factory, "Jane")

        manual_scheduler.fire_all()

        on_flush.assert_called_once()


def _deferred(retry_not_before=None, reason=DeferralReason.QUIET_HOURS):
    return OrchestrationResult(
        request_id="summary-1",
        status=OrchestrationStatus.DEFERRED,
        deferral_reason=reason,
        retry_not_before=retry_not_before,
    )


class TestDuplicateEvents:
    def test_replayed_event_is_counted_once(self, aggregator, like_factory):
        request = like_factory("Jane").model_copy(
            update={"idempotency_key": "like-jane-post-1"}
        )

        first = aggregator.submit(ActorEvent.from_request(request))
        replay = aggregator.submit(ActorEvent.from_request(request))

        assert replay.is_queued
        assert replay.bucket_id == first.bucket_id
        assert replay.event_count == 1
        assert replay.flushed is False

    def test_distinct_keys_are_both_counted(self, aggregator, like_factory):
        for key in ["like-jane-post-1", "like-bob-post-1"]:
            request = like_factory("Jane").model_copy(update={"idempotency_key": key})
            decision = aggregator.submit(ActorEvent.from_request(request))

        assert decision.event_count == 2

    def test_events_without_key_are_not_deduplicated(self, aggregator, like_factory):
        _submit(aggregator, like_factory, "Jane")
        decision = _submit(aggregator, like_factory, "Jane")

        assert decision.event_count == 2

    def test_replay_does_not_reach_count_threshold(
        self, aggregator, like_factory, on_flush
    ):
        request = like_factory("Jane").model_copy(
            update={"idempotency_key": "like-jane-post-1"}
        )

        for _ in range(5):
            aggregator.submit(ActorEvent.from_request(request))

        on_flush.assert_not_called()
        assert aggregator.pending_count() == 1

    def test_replay_summary_counts_event_once(
        self, aggregator, like_factory, manual_scheduler, on_flush
    ):
        request = like_factory("Jane").model_copy(
            update={"idempotency_key": "like-jane-post-1"}
        )
        aggregator.submit(ActorEvent.from_request(request))
        aggregator.submit(ActorEvent.from_request(request))

        manual_scheduler.fire_all()

        assert on_flush.call_args.args[0].payload["event_count"] == 1


class TestRedelivery:
    def test_deferred_summary_is_redelivered_at_retry_time(
        self, aggregator, like_factory, manual_scheduler, on_flush, clock
    ):
        retry_at = clock() + timedelta(hours=2)
        on_flush.side_effect = [_deferred(retry_not_before=retry_at), None]
        _submit(aggregator, like_factory, "Jane")

        manual_scheduler.fire_all()

        assert aggregator.pending_redelivery_count() == 1
        redelivery = manual_scheduler.pending[0]
        assert redelivery.delay == 7200

        clock.now = retry_at
        manual_scheduler.fire_all()

        assert on_flush.call_count == 2
        first, second = (c.args[0] for c in on_flush.call_args_list)
        assert second is first
        assert second.idempotency_key == first.idempotency_key
        assert aggregator.pending_redelivery_count() == 0

    def test_delay_is_measured_from_flush_time(
        self, aggregator, like_factory, manual_scheduler, on_flush, clock
    ):
        retry_at = clock() + timedelta(minutes=30)
        on_flush.side_effect = [_deferred(retry_not_before=retry_at), None]
        _submit(aggregator, like_factory, "Jane")
        clock.advance(minutes=5)

        manual_scheduler.fire_all()

        assert manual_scheduler.pending[0].delay == 25 * 60

    def test_deferral_without_retry_time_waits_one_window(
        self, aggregator, like_factory, manual_scheduler, on_flush
    ):
        on_flush.side_effect = [
            _deferred(reason=DeferralReason.IN_FLIGHT),
            None,
        ]
        _submit(aggregator, like_factory, "Jane")

        manual_scheduler.fire_all()

        assert manual_scheduler.pending[0].delay == 300

    def test_retry_time_in_the_past_redelivers_without_delay(
        self, aggregator, like_factory, manual_scheduler, on_flush, clock
    ):
        on_flush.side_effect = [
            _deferred(retry_not_before=clock() - timedelta(minutes=1)),
            None,
        ]
        _submit(aggregator, like_factory, "Jane")

        manual_scheduler.fire_all()

        assert manual_scheduler.pending[0].delay == 0

    def test_repeated_deferral_keeps_rescheduling(
        self, aggregator, like_factory, manual_scheduler, on_flush, clock
    ):
        on_flush.side_effect = [
            _deferred(retry_not_before=clock() + timedelta(minutes=10)),
            _deferred(retry_not_before=clock() + timedelta(minutes=20)),
            None,
        ]
        _submit(aggregator, like_factory, "Jane")

        manual_scheduler.fire_all()
        manual_scheduler.fire_all()
        manual_scheduler.fire_all()

        assert on_flush.call_count == 3
        assert aggregator.pending_redelivery_count() == 0
        assert manual_scheduler.pending == []

    def test_sent_summary_is_not_redelivered(
        self, aggregator, like_factory, manual_scheduler, on_flush
    ):
        on_flush.return_value = OrchestrationResult(
            request_id="s1", status=OrchestrationStatus.SENT
        )
        _submit(aggregator, like_factory, "Jane")

        manual_scheduler.fire_all()

        assert manual_scheduler.pending == []
        assert aggregator.pending_redelivery_count() == 0

    def test_redelivery_failure_is_logged_not_raised(
        self, aggregator, like_factory, manual_scheduler, on_flush, clock
    ):
        on_flush.side_effect = [
            _deferred(retry_not_before=clock() + timedelta(minutes=10)),
            RuntimeError("downstream"),
        ]
        _submit(aggregator, like_factory, "Jane")
        manual_scheduler.fire_all()

        manual_scheduler.fire_all()

        assert on_flush.call_count == 2
        assert aggregator.pending_redelivery_count() == 0

    def test_redelivery_timer_firing_twice_delivers_once(
        self, aggregator, like_factory, manual_scheduler, on_flush, clock
    ):
        on_flush.side_effect = [
            _deferred(retry_not_before=clock() + timedelta(minutes=10)),
            None,
        ]
        _submit(aggregator, like_factory, "Jane")
        manual_scheduler.fire_all()
        redelivery = manual_scheduler.pending[0]

        redelivery.callback()
        redelivery.callback()

        assert on_flush.call_count == 2


class TestEmptyAndDoubleFlush:
    def test_empty_bucket_never_sends(self, aggregator, on_flush, clock):
        bucket = BatchBucket(
            bucket_id="b-empty",
            recipient_id="u1",
            event_type="like",
            target_id="post-1",
            opened_at=clock(),
            state=BucketState.FLUSHING,
        )

        assert aggregator._flush(bucket) is None
        on_flush.assert_not_called()
        assert bucket.state == BucketState.CANCELED

    def test_double_flush_refused(
        self, aggregator, like_factory, manual_scheduler, on_flush
    ):
        decision = _submit(aggregator, like_factory, "Jane")
        manual_scheduler.fire_all()
        bucket = BatchBucket(
            bucket_id=decision.bucket_id,
            recipient_id="u1",
            event_type="like",
            target_id="post-1",
            opened_at=aggregator._clock(),
            state=BucketState.FLUSHED,
        )

        with pytest.raises(BatchInvariantError):
            aggregator._flush(bucket)
        on_flush.assert_called_once()

    def test_timer_firing_twice_sends_once(
        self, aggregator, like_factory, manual_scheduler, on_flush
    ):
        _submit(aggregator, like_factory, "Jane")
        call = manual_scheduler.calls[0]

        call.callback()
        call.callback()

        on_flush.assert_called_once()


class TestCancel:
    def test_engagement_cancels_open_bucket(
        self, aggregator, like_factory, manual_scheduler, on_flush, store
    ):
        decision = _submit(aggregator, like_factory, "Jane")

        canceled = aggregator.cancel("u1", "post-1")
        manual_scheduler.fire_all()

        assert canceled == 1
        on_flush.assert_not_called()
        assert store.get_batch(decision.bucket_id)["state"] == BucketState.CANCELED.value

    def test_cancel_filters_by_event_type(self, aggregator, like_factory):
        _submit(aggregator, like_factory, "Jane")
        _submit(aggregator, like_factory, "Bob", event_type="comment")

        assert aggregator.cancel("u1", "post-1", event_type="comment") == 1
        assert aggregator.pending_count() == 1

    def test_cancel_other_target_is_noop(self, aggregator, like_factory):
        _submit(aggregator, like_factory, "Jane", target_id="post-1")

        assert aggregator.cancel("u1", "post-9") == 0
        assert aggregator.pending_count() == 1

    def test_cancel_after_flush_is_noop(
        self, aggregator, like_factory, manual_scheduler, on_flush
    ):
        _submit(aggregator, like_factory, "Jane")
        manual_scheduler.fire_all()

        assert aggregator.cancel("u1", "post-1") == 0
        on_flush.assert_called_once()


class TestConcurrency:
    def test_concurrent_events_land_in_one_summary(
        self, manual_scheduler, on_flush, like_factory, clock
    ):
        aggregator = BatchAggregator(
            BatchingSettings(window_seconds=300, max_events=1000),
            scheduler=manual_scheduler,
            on_flush=on_flush,
            clock=clock,
        )
        events = [
            ActorEvent.from_request(like_factory(f"Actor{i}")) for i in range(50)
        ]
        barrier = threading.Barrier(10)

        def worker(chunk):
            barrier.wait()
            for event in chunk:
                aggregator.submit(event)

        threads = [
            threading.Thread(target=worker, args=(events[i::10],)) for i in range(10)
        ]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert len(manual_scheduler.calls) == 1
        manual_scheduler.fire_all()
        on_flush.assert_called_once()
        assert on_flush.call_args.args[0].payload["event_count"] == 50
