"""Wires an orchestrator from settings."""

import time
from datetime import datetime
from typing import Callable, Dict, Iterable, Optional, Union

from notify_orchestrator.batching.aggregator import BatchAggregator
from notify_orchestrator.batching.scheduler import Scheduler
from notify_orchestrator.configuration import Settings, get_settings
from notify_orchestrator.consent.gate import ConsentGate
from notify_orchestrator.idempotency.cache import IdempotencyCache
from notify_orchestrator.idempotency.ledger import IdempotencyLedger
from notify_orchestrator.idempotency.memory import InMemoryIdempotencyCache
from notify_orchestrator.logging import get_module_logger
from notify_orchestrator.notifications.channels.base import ChannelSender
from notify_orchestrator.notifications.models import ChannelId
from notify_orchestrator.notifications.router import ChannelRouter
from notify_orchestrator.orchestrator.service import DeliveryOrchestrator
from notify_orchestrator.persistence.memory import InMemoryStore
from notify_orchestrator.persistence.store import Store
from notify_orchestrator.resilience import CircuitBreaker, RetryConfig
from notify_orchestrator.throttling.guard import ThrottleGuard

logger = get_module_logger()

Senders = Union[Dict[ChannelId, ChannelSender], Iterable[ChannelSender]]


def _index_senders(senders: Senders) -> Dict[ChannelId, ChannelSender]:
    if isinstance(senders, dict):
        return dict(senders)
    indexed: Dict[ChannelId, ChannelSender] = {}
    for sender in senders:
        if sender.channel in indexed:
            raise ValueError(f"Duplicate sender for channel {sender.channel.value}")
        indexed[sender.channel] = sender
    return indexed


def build_orchestrator(
    senders: Senders,
    settings: Optional[Settings] = None,
    store: Optional[Store] = None,
    cache: Optional[IdempotencyCache] = None,
    scheduler: Optional[Scheduler] = None,
    clock: Optional[Callable[[], datetime]] = None,
    sleep: Callable[[float], None] = time.sleep,
) -> DeliveryOrchestrator:
    """Build a DeliveryOrchestrator with every component configured.

    Args:
        senders: ChannelSender per channel, as a dict or an iterable
        settings: Defaults to ``get_settings()``
        store: Defaults to an InMemoryStore
        cache: Idempotency backend, defaults to InMemoryIdempotencyCache
        scheduler: Batch flush scheduler, defaults to threading timers
        clock: UTC clock shared by the gates and the aggregator
        sleep: Backoff sleep, injectable for tests

    Example:
        orchestrator = build_orchestrator(
            senders=[SesEmailSender(), TwilioSmsSender()],
            store=DynamoStore(),
        )
    """
    settings = settings or get_settings()
    store = store if store is not None else InMemoryStore()
    clock_kwargs = {"clock": clock} if clock is not None else {}

    gate = ConsentGate(store, settings.quiet_hours, **clock_kwargs)
    guard = ThrottleGuard(settings.throttle, **clock_kwargs)

    indexed = _index_senders(senders)
    breakers = {}
    if settings.delivery.circuit_breaker_enabled:
        breakers = {
            channel: CircuitBreaker(
                name=channel.value,
                failure_threshold=settings.delivery.circuit_breaker_failure_threshold,
                timeout_seconds=settings.delivery.circuit_breaker_timeout_seconds,
                **clock_kwargs,
            )
            for channel in indexed
        }

    router = ChannelRouter(
        senders=indexed,
        consent_gate=gate,
        throttle_guard=guard,
        preferences=store,
        retry_config=RetryConfig.from_settings(settings.retry),
        breakers=breakers,
        max_workers=settings.delivery.max_workers,
        sleep=sleep,
    )
    ledger = IdempotencyLedger(
        cache if cache is not None else InMemoryIdempotencyCache(**clock_kwargs),
        ttl_seconds=settings.idempotency.IDEMPOTENCY_TTL_SECONDS,
        reservation_ttl_seconds=settings.idempotency.IDEMPOTENCY_RESERVATION_TTL_SECONDS,
    )
    aggregator = BatchAggregator(
        settings.batching, scheduler=scheduler, store=store, **clock_kwargs
    )

    orchestrator = DeliveryOrchestrator(
        router=router,
        consent_gate=gate,
        ledger=ledger,
        store=store,
        aggregator=aggregator,
        critical_event_types=settings.delivery.critical_event_types,
    )
    logger.info(
        "orchestrator_built",
        channels=[c.value for c in indexed],
        throttle_enabled=settings.throttle.enabled,
        quiet_hours_enabled=settings.quiet_hours.enabled,
        circuit_breakers=bool(breakers),
    )
    return orchestrator
