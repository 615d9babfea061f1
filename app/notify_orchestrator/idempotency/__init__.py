"""Idempotency ledger and cache backends.

Usage:

    from notify_orchestrator.idempotency import (
        IdempotencyLedger,
        InMemoryIdempotencyCache,
    )

    ledger = IdempotencyLedger(InMemoryIdempotencyCache())
    lookup = ledger.get_or_reserve("welcome-u1")
    if lookup.is_reserved:
        result = send(...)
        ledger.complete("welcome-u1", result)
"""

from notify_orchestrator.idempotency.cache import IdempotencyCache
from notify_orchestrator.idempotency.key_builder import IdempotencyKeyBuilder
from notify_orchestrator.idempotency.ledger import (
    IdempotencyLedger,
    LedgerLookup,
    LookupState,
)
from notify_orchestrator.idempotency.memory import InMemoryIdempotencyCache

__all__ = [
    "IdempotencyCache",
    "IdempotencyKeyBuilder",
    "IdempotencyLedger",
    "InMemoryIdempotencyCache",
    "LedgerLookup",
    "LookupState",
]
