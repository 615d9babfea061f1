"""Delivery orchestrator: the top-level state machine.

Received -> ConsentChecked -> (BatchQueued | ThrottleChecked) -> Routed -> Recorded

One engine applies consent, batching, idempotency and throttling in the
same order for every notification.
"""

from typing import Any, Dict, List, Optional

from notify_orchestrator.batching.aggregator import BatchAggregator
from notify_orchestrator.batching.models import ActorEvent
from notify_orchestrator.consent.gate import ConsentGate
from notify_orchestrator.consent.models import ConsentDecision, DenyReason
from notify_orchestrator.events.handlers import InboundEventHandler
from notify_orchestrator.events.models import InboundEvent
from notify_orchestrator.exceptions import CallerError, InvariantViolation
from notify_orchestrator.idempotency.ledger import IdempotencyLedger, LookupState
from notify_orchestrator.logging import (
    bind_request_context,
    get_correlation_id,
    get_module_logger,
)
from notify_orchestrator.notifications.models import (
    Category,
    ChannelId,
    DeliveryOutcome,
    DeliveryStatus,
    NotificationRequest,
    Priority,
    RoutingMode,
)
from notify_orchestrator.notifications.router import ChannelRouter
from notify_orchestrator.operations import OperationResult
from notify_orchestrator.orchestrator.models import (
    DeferralReason,
    OrchestrationResult,
    OrchestrationStatus,
    Stage,
)
from notify_orchestrator.persistence.store import Store

logger = get_module_logger()

BATCHABLE_PRIORITIES = (Priority.LOW, Priority.MEDIUM)


def resolve_status(
    mode: RoutingMode, outcomes: List[DeliveryOutcome]
) -> Dict[str, Any]:
    """Overall status fields for a routed request.

    Returns:
        Keyword arguments for OrchestrationResult: status, and for deferred
        requests deferral_reason and retry_not_before.
    """
    sent = sum(1 for o in outcomes if o.is_sent)
    if sent:
        if mode == RoutingMode.ALL and sent < len(outcomes):
            return {"status": OrchestrationStatus.PARTIALLY_SENT}
        return {"status": OrchestrationStatus.SENT}

    deferrable = [o for o in outcomes if o.status.is_deferrable]
    if deferrable:
        earliest = min(
            deferrable,
            key=lambda o: (o.retry_not_before is None, o.retry_not_before or o.timestamp),
        )
        reason = (
            DeferralReason.THROTTLE
            if earliest.status == DeliveryStatus.SKIPPED_THROTTLE
            else DeferralReason.QUIET_HOURS
        )
        return {
            "status": OrchestrationStatus.DEFERRED,
            "deferral_reason": reason,
            "retry_not_before": earliest.retry_not_before,
        }
    return {"status": OrchestrationStatus.FAILED}


def _failure_summary(outcomes: List[DeliveryOutcome]) -> str:
    return "; ".join(
        f"{o.channel.value}: {o.error_code or o.status.value}" for o in outcomes
    ) or "no channel attempted"


class DeliveryOrchestrator:
    """Composes the gates, the aggregator, the ledger and the router.

    Args:
        router: Delivers over channels (and re-checks consent/throttle per channel)
        consent_gate: Used for the up-front all-channels check
        ledger: Idempotency ledger
        store: Outcome history and consent/profile storage
        aggregator: Optional batch aggregator; its flushes re-enter ``submit``
        critical_event_types: Event types promoted to critical priority

    Example:
        orchestrator = build_orchestrator(senders=[sms, email])
        result = orchestrator.submit(request)
        if result.is_deferred:
            scheduler.enqueue(request, not_before=result.retry_not_before)
    """

    def __init__(
        self,
        router: ChannelRouter,
        consent_gate: ConsentGate,
        ledger: IdempotencyLedger,
        store: Store,
        aggregator: Optional[BatchAggregator] = None,
        critical_event_types: Optional[List[str]] = None,
    ):
        self.router = router
        self.consent_gate = consent_gate
        self.ledger = ledger
        self.store = store
        self.aggregator = aggregator
        self.critical_event_types = frozenset(critical_event_types or [])
        self.inbound = InboundEventHandler(store, aggregator)
        if aggregator is not None and aggregator.on_flush is None:
            aggregator.on_flush = self.submit

    def effective_priority(self, request: NotificationRequest) -> Priority:
        if request.event_type in self.critical_event_types:
            return Priority.CRITICAL
        return request.priority

    def validate(self, request: NotificationRequest) -> None:
        """Reject requests that can never be valid.

        Raises:
            CallerError: Transactional without an idempotency key, or a
                channel with no registered sender.
        """
        if request.category == Category.TRANSACTIONAL and not request.idempotency_key:
            raise CallerError(
                f"Transactional request {request.request_id} requires an idempotency_key"
            )
        unknown = [c.value for c in request.channels if not self.router.has_sender(c)]
        if unknown:
            raise CallerError(f"No sender registered for channel(s): {unknown}")

    def submit(self, request: NotificationRequest) -> OrchestrationResult:
        """Run one request through the pipeline.

        Raises:
            CallerError: Before any channel is touched, for invalid requests.
        """
        with bind_request_context(
            correlation_id=get_correlation_id(),
            request_id=request.request_id,
            recipient_id=request.recipient_id,
        ):
            stages = [Stage.RECEIVED]
            self.validate(request)
            try:
                return self._process(request, stages)
            except InvariantViolation as e:
                logger.error(
                    "invariant_violation_fail_closed",
                    error=str(e),
                    error_type=type(e).__name__,
                    stages=[s.value for s in stages],
                )
                return OrchestrationResult(
                    request_id=request.request_id,
                    status=OrchestrationStatus.FAILED,
                    stages=stages,
                    error=str(e),
                )

    def _process(
        self, request: NotificationRequest, stages: List[Stage]
    ) -> OrchestrationResult:
        priority = self.effective_priority(request)
        if priority != request.priority:
            logger.info(
                "priority_promoted",
                event_type=request.event_type,
                requested=request.priority.value,
                effective=priority.value,
            )

        denied = self._check_consent(request, priority)
        stages.append(Stage.CONSENT_CHECKED)
        if len(denied) == len(request.channels):
            return self._all_denied(request, denied, stages)

        if self._should_batch(request, priority):
            decision = self.aggregator.submit(ActorEvent.from_request(request))
            if decision.is_queued:
                stages.append(Stage.BATCH_QUEUED)
                logger.info(
                    "notification_batched",
                    bucket_id=decision.bucket_id,
                    event_count=decision.event_count,
                    flushed=decision.flushed,
                )
                return OrchestrationResult(
                    request_id=request.request_id,
                    status=OrchestrationStatus.DEFERRED,
                    deferral_reason=DeferralReason.BATCH,
                    stages=stages,
                    batch_bucket_id=decision.bucket_id,
                )

        key = request.idempotency_key
        if key:
            lookup = self.ledger.get_or_reserve(key)
            if lookup.state == LookupState.CACHED:
                cached = OrchestrationResult.model_validate(lookup.result)
                return cached.model_copy(update={"from_cache": True})
            if lookup.state == LookupState.IN_PROGRESS:
                return OrchestrationResult(
                    request_id=request.request_id,
                    status=OrchestrationStatus.DEFERRED,
                    deferral_reason=DeferralReason.IN_FLIGHT,
                    stages=stages,
                )

        try:
            stages.append(Stage.THROTTLE_CHECKED)
            outcomes = self.router.dispatch(request, priority=priority)
            stages.append(Stage.ROUTED)
            result = self._record(request, outcomes, stages)
        except BaseException:
            if key:
                self.ledger.release(key)
            raise

        if key:
            if result.is_deferred:
                self.ledger.release(key)
            else:
                self.ledger.complete(key, result.model_dump(mode="json"))
        return result

    def _check_consent(
        self, request: NotificationRequest, priority: Priority
    ) -> Dict[ChannelId, ConsentDecision]:
        denied = {}
        for channel in request.channels:
            decision = self.consent_gate.check(
                request.recipient_id, request.category, channel, priority
            )
            if not decision.allowed:
                denied[channel] = decision
        return denied

    def _all_denied(
        self,
        request: NotificationRequest,
        denied: Dict[ChannelId, ConsentDecision],
        stages: List[Stage],
    ) -> OrchestrationResult:
        outcomes = [
            DeliveryOutcome(
                request_id=request.request_id,
                recipient_id=request.recipient_id,
                channel=channel,
                status=decision.skip_status,
                error=f"Denied by consent gate: {decision.reason.value}",
                error_code=decision.reason.value,
                retry_not_before=decision.retry_not_before,
            )
            for channel, decision in denied.items()
        ]
        for outcome in outcomes:
            self.store.append_outcome(outcome)
        stages.append(Stage.RECORDED)

        quiet = [d for d in denied.values() if d.reason == DenyReason.QUIET_HOURS]
        if quiet:
            retry_not_before = min(d.retry_not_before for d in quiet)
            logger.info(
                "notification_deferred",
                reason=DeferralReason.QUIET_HOURS.value,
                retry_not_before=retry_not_before.isoformat(),
            )
            return OrchestrationResult(
                request_id=request.request_id,
                status=OrchestrationStatus.DEFERRED,
                deferral_reason=DeferralReason.QUIET_HOURS,
                retry_not_before=retry_not_before,
                outcomes=outcomes,
                stages=stages,
            )

        logger.info("notification_consent_denied", channels=len(outcomes))
        return OrchestrationResult(
            request_id=request.request_id,
            status=OrchestrationStatus.FAILED,
            outcomes=outcomes,
            stages=stages,
            error=_failure_summary(outcomes),
        )

    def _should_batch(self, request: NotificationRequest, priority: Priority) -> bool:
        return (
            self.aggregator is not None
            and not request.is_batch_summary
            and priority in BATCHABLE_PRIORITIES
            and request.actor is not None
            and self.aggregator.is_batchable(request.event_type)
        )

    def _record(
        self,
        request: NotificationRequest,
        outcomes: List[DeliveryOutcome],
        stages: List[Stage],
    ) -> OrchestrationResult:
        for outcome in outcomes:
            self.store.append_outcome(outcome)
        stages.append(Stage.RECORDED)

        fields = resolve_status(request.routing_mode, outcomes)
        if fields["status"] == OrchestrationStatus.FAILED:
            fields["error"] = _failure_summary(outcomes)
        result = OrchestrationResult(
            request_id=request.request_id,
            outcomes=outcomes,
            stages=list(stages),
            **fields,
        )
        logger.info(
            "notification_recorded",
            status=result.status.value,
            deferral_reason=result.deferral_reason.value if result.deferral_reason else None,
            sent_channels=[c.value for c in result.sent_channels],
            outcome_count=len(outcomes),
        )
        return result

    def apply_inbound_event(self, event: InboundEvent) -> OperationResult:
        """Apply an opt-out/opt-in, delivery receipt, bounce or engagement."""
        with bind_request_context(
            correlation_id=str(event.correlation_id), recipient_id=event.recipient_id
        ):
            return self.inbound.apply(event)

    def health_check(self) -> Dict[str, Any]:
        """Sender health per channel, circuit states, pending batches and summaries
        waiting on a deferral."""
        channels = {}
        for channel, result in self.router.health_check().items():
            breaker = self.router.breakers.get(channel)
            channels[channel.value] = {
                "healthy": result.is_success,
                "message": result.message,
                "circuit": breaker.state.value if breaker else None,
            }
        return {
            "healthy": all(c["healthy"] for c in channels.values()),
            "channels": channels,
            "pending_batches": self.aggregator.pending_count() if self.aggregator else 0,
            "deferred_summaries": (
                self.aggregator.pending_redelivery_count() if self.aggregator else 0
            ),
        }

    def shutdown(self) -> None:
        """Flush pending batches and stop the fan-out pool."""
        if self.aggregator is not None:
            flushed = self.aggregator.flush_all()
            logger.info(
                "orchestrator_shutdown",
                flushed_batches=flushed,
                deferred_summaries=self.aggregator.pending_redelivery_count(),
            )
        self.router.close()
