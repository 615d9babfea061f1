"""Channel router with ordered fallback and parallel fan-out.

Per channel, in order:
- ConsentGate (opt-outs, quiet hours) and ThrottleGuard; a denial is a
  ``skipped_*`` outcome and the sender is never invoked
- Contact resolution from the recipient profile
- Circuit breaker admission
- Send, retrying transient failures with exponential backoff

Adapter exceptions are caught per channel and become ``failed`` outcomes, so
one channel's fault never aborts its siblings.
"""

import contextvars
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, Dict, List, Optional, Sequence

from notify_orchestrator.consent.gate import ConsentGate
from notify_orchestrator.logging import get_module_logger
from notify_orchestrator.notifications.channels.base import ChannelSender
from notify_orchestrator.notifications.models import (
    ChannelId,
    DeliveryOutcome,
    DeliveryStatus,
    NotificationRequest,
    Priority,
    RecipientProfile,
    RoutingMode,
)
from notify_orchestrator.operations import OperationResult, OperationStatus
from notify_orchestrator.persistence.store import PreferenceSource
from notify_orchestrator.resilience import (
    CircuitBreaker,
    CircuitBreakerOpenError,
    RetryConfig,
    retry_call,
)
from notify_orchestrator.throttling.guard import ThrottleGuard

logger = get_module_logger()

MISSING_CONTACT_INFO = "missing_contact_info"
CHANNEL_UNAVAILABLE = "channel_unavailable"
CIRCUIT_OPEN = "circuit_open"
ADAPTER_EXCEPTION = "adapter_exception"
THROTTLED = "throttled"


class ChannelRouter:
    """Delivers a request over its channels.

    Attributes:
        senders: ChannelSender per channel
        consent_gate: Per-channel consent and quiet hours check
        throttle_guard: Per-channel rate limit
        preferences: Profile lookup for contact resolution
        retry_config: Backoff for transient failures
        breakers: Optional circuit breaker per channel
        max_workers: Thread pool size for ALL mode

    Example:
        router = ChannelRouter(senders, gate, guard, store)
        outcomes = router.dispatch(request)
    """

    def __init__(
        self,
        senders: Dict[ChannelId, ChannelSender],
        consent_gate: ConsentGate,
        throttle_guard: ThrottleGuard,
        preferences: PreferenceSource,
        retry_config: Optional[RetryConfig] = None,
        breakers: Optional[Dict[ChannelId, CircuitBreaker]] = None,
        max_workers: int = 8,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.senders = dict(senders)
        self.consent_gate = consent_gate
        self.throttle_guard = throttle_guard
        self.preferences = preferences
        self.retry_config = retry_config or RetryConfig()
        self.breakers = breakers or {}
        self.max_workers = max_workers
        self._sleep = sleep
        self._executor: Optional[ThreadPoolExecutor] = None
        self._executor_lock = threading.Lock()

        logger.info(
            "initialized_channel_router",
            channels=[c.value for c in self.senders],
            circuit_breakers=[c.value for c in self.breakers],
            max_workers=max_workers,
        )

    def has_sender(self, channel: ChannelId) -> bool:
        return channel in self.senders

    def dispatch(
        self,
        request: NotificationRequest,
        channels: Optional[Sequence[ChannelId]] = None,
        mode: Optional[RoutingMode] = None,
        priority: Optional[Priority] = None,
    ) -> List[DeliveryOutcome]:
        """Deliver ``request`` and return one outcome per channel considered.

        SINGLE stops at the first sent channel, so later channels get no
        outcome. ALL returns an outcome for every channel, in input order.
        """
        channels = list(channels if channels is not None else request.channels)
        mode = mode or request.routing_mode
        priority = priority or request.priority
        profile = self.preferences.get_profile(request.recipient_id)

        if mode == RoutingMode.ALL:
            outcomes = self._fan_out(request, channels, priority, profile)
        else:
            outcomes = []
            for channel in channels:
                outcome = self.attempt(request, channel, priority, profile)
                outcomes.append(outcome)
                if outcome.is_sent:
                    break

        logger.info(
            "notification_routed",
            request_id=request.request_id,
            mode=mode.value,
            channels=[c.value for c in channels],
            statuses=[o.status.value for o in outcomes],
        )
        return outcomes

    def _get_executor(self) -> ThreadPoolExecutor:
        with self._executor_lock:
            if self._executor is None:
                self._executor = ThreadPoolExecutor(
                    max_workers=self.max_workers, thread_name_prefix="channel-send"
                )
            return self._executor

    def _fan_out(
        self,
        request: NotificationRequest,
        channels: List[ChannelId],
        priority: Priority,
        profile: Optional[RecipientProfile],
    ) -> List[DeliveryOutcome]:
        executor = self._get_executor()
        futures = []
        for channel in channels:
            # Each worker runs in a copy of the caller's context so request
            # logging context follows the send.
            ctx = contextvars.copy_context()
            futures.append(
                (
                    channel,
                    executor.submit(
                        ctx.run, self.attempt, request, channel, priority, profile
                    ),
                )
            )

        outcomes = []
        for channel, future in futures:
            try:
                outcomes.append(future.result())
            except Exception as e:
                logger.exception(
                    "channel_attempt_crashed",
                    request_id=request.request_id,
                    channel=channel.value,
                )
                outcomes.append(
                    self._outcome(
                        request,
                        channel,
                        DeliveryStatus.FAILED,
                        error=str(e),
                        error_code=ADAPTER_EXCEPTION,
                    )
                )
        return outcomes

    def attempt(
        self,
        request: NotificationRequest,
        channel: ChannelId,
        priority: Priority,
        profile: Optional[RecipientProfile],
    ) -> DeliveryOutcome:
        """Gate, resolve and send on one channel. Never raises for adapter faults."""
        consent = self.consent_gate.check(
            request.recipient_id, request.category, channel, priority
        )
        if not consent.allowed:
            return self._outcome(
                request,
                channel,
                consent.skip_status,
                error=f"Denied by consent gate: {consent.reason.value}",
                error_code=consent.reason.value,
                retry_not_before=consent.retry_not_before,
            )

        sender = self.senders.get(channel)
        if sender is None:
            logger.warning(
                "channel_not_found",
                channel=channel.value,
                available_channels=[c.value for c in self.senders],
            )
            return self._outcome(
                request,
                channel,
                DeliveryStatus.FAILED,
                error=f"No sender registered for {channel.value}",
                error_code=CHANNEL_UNAVAILABLE,
            )

        throttle = self.throttle_guard.try_acquire(
            request.recipient_id, channel, priority
        )
        if not throttle.allowed:
            return self._outcome(
                request,
                channel,
                DeliveryStatus.SKIPPED_THROTTLE,
                error=f"Rate limit of {throttle.limit} reached",
                error_code=THROTTLED,
                retry_not_before=throttle.retry_not_before,
            )

        try:
            contact = sender.resolve_contact(profile)
        except Exception as e:
            logger.error(
                "contact_resolution_failed",
                request_id=request.request_id,
                channel=channel.value,
                error=str(e),
                exc_info=True,
            )
            contact = None
        if not contact:
            logger.info(
                "missing_contact_info",
                request_id=request.request_id,
                recipient_id=request.recipient_id,
                channel=channel.value,
            )
            return self._outcome(
                request,
                channel,
                DeliveryStatus.FAILED,
                error=f"No {channel.value} contact for recipient",
                error_code=MISSING_CONTACT_INFO,
            )

        breaker = self.breakers.get(channel)
        if breaker is not None:
            try:
                breaker.before_call()
            except CircuitBreakerOpenError as e:
                return self._outcome(
                    request,
                    channel,
                    DeliveryStatus.FAILED,
                    error=str(e),
                    error_code=CIRCUIT_OPEN,
                )

        return self._send(request, channel, sender, contact, breaker)

    def _send(
        self,
        request: NotificationRequest,
        channel: ChannelId,
        sender: ChannelSender,
        contact: str,
        breaker: Optional[CircuitBreaker],
    ) -> DeliveryOutcome:
        calls = 0

        def send_once() -> OperationResult:
            nonlocal calls
            calls += 1
            return sender.send(contact, request.payload)

        try:
            result, attempts = retry_call(
                send_once, self.retry_config, sleep=self._sleep, label=channel.value
            )
        except Exception as e:
            if breaker is not None:
                breaker.record_failure(str(e))
            logger.error(
                "channel_send_failed",
                request_id=request.request_id,
                channel=channel.value,
                error=str(e),
                exc_info=True,
            )
            return self._outcome(
                request,
                channel,
                DeliveryStatus.FAILED,
                error=f"Channel exception: {e}",
                error_code=ADAPTER_EXCEPTION,
                attempts=calls,
            )

        if breaker is not None:
            # A permanent error means the provider answered; only transient
            # failures count against its health.
            if result.status == OperationStatus.TRANSIENT_ERROR:
                breaker.record_failure(result.message)
            else:
                breaker.record_success()

        if result.is_success:
            logger.info(
                "channel_send_succeeded",
                request_id=request.request_id,
                channel=channel.value,
                attempts=attempts,
                external_id=result.external_id,
            )
            return self._outcome(
                request,
                channel,
                DeliveryStatus.SENT,
                attempts=attempts,
                external_id=result.external_id,
            )

        logger.warning(
            "channel_send_rejected",
            request_id=request.request_id,
            channel=channel.value,
            status=result.status.value,
            error_code=result.error_code,
            attempts=attempts,
        )
        return self._outcome(
            request,
            channel,
            DeliveryStatus.FAILED,
            error=result.message,
            error_code=result.error_code or result.status.value,
            attempts=attempts,
        )

    @staticmethod
    def _outcome(
        request: NotificationRequest,
        channel: ChannelId,
        status: DeliveryStatus,
        **fields,
    ) -> DeliveryOutcome:
        return DeliveryOutcome(
            request_id=request.request_id,
            recipient_id=request.recipient_id,
            channel=channel,
            status=status,
            **fields,
        )

    def health_check(self) -> Dict[ChannelId, OperationResult]:
        """Health of every registered sender; exceptions become errors."""
        results = {}
        for channel, sender in self.senders.items():
            try:
                results[channel] = sender.health_check()
            except Exception as e:
                logger.error(
                    "channel_health_check_failed", channel=channel.value, error=str(e)
                )
                results[channel] = OperationResult.transient_error(
                    f"Health check raised: {e}", error_code="health_check_failed"
                )
        return results

    def close(self) -> None:
        """Shut down the fan-out pool, waiting for in-flight sends."""
        with self._executor_lock:
            executor, self._executor = self._executor, None
        if executor is not None:
            executor.shutdown(wait=True)
