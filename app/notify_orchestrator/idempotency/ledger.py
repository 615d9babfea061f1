"""Idempotency ledger: at-most-once sends per key within the retention window."""

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional

from notify_orchestrator.exceptions import LedgerCorruptionError
from notify_orchestrator.idempotency.cache import IdempotencyCache
from notify_orchestrator.logging import get_module_logger

logger = get_module_logger()

STATE_RESERVED = "reserved"
STATE_COMPLETED = "completed"


class LookupState(str, Enum):
    RESERVED = "reserved"
    CACHED = "cached"
    IN_PROGRESS = "in_progress"


@dataclass(frozen=True)
class LedgerLookup:
    """Outcome of ``get_or_reserve``.

    ``RESERVED``: the caller owns the key and must ``complete`` or ``release``.
    ``CACHED``: a result exists; ``result`` holds the snapshot.
    ``IN_PROGRESS``: another worker holds the reservation.
    """

    state: LookupState
    key: str
    result: Optional[Dict[str, Any]] = None

    @property
    def is_reserved(self) -> bool:
        return self.state == LookupState.RESERVED


class IdempotencyLedger:
    """Deduplicates sends by idempotency key.

    Reservation is one conditional insert on the cache, so two workers racing
    on the same key cannot both proceed. Completed entries keep the result
    snapshot for ``ttl_seconds`` (24 h by default). Reservations expire after
    the shorter ``reservation_ttl_seconds`` so a crashed worker cannot block a
    key for a whole day.
    """

    def __init__(
        self,
        cache: IdempotencyCache,
        ttl_seconds: int = 86400,
        reservation_ttl_seconds: int = 300,
    ):
        self.cache = cache
        self.ttl_seconds = ttl_seconds
        self.reservation_ttl_seconds = reservation_ttl_seconds

    def get_or_reserve(self, key: str) -> LedgerLookup:
        """Reserve ``key`` or report why it cannot be reserved.

        Raises:
            LedgerCorruptionError: If the stored entry is malformed.
        """
        reservation = {
            "state": STATE_RESERVED,
            "reserved_at": datetime.now(timezone.utc).isoformat(),
        }
        # A second pass covers an entry expiring between the insert and the read.
        for _ in range(2):
            if self.cache.add_if_absent(key, reservation, self.reservation_ttl_seconds):
                logger.debug("idempotency_key_reserved", idempotency_key=key)
                return LedgerLookup(state=LookupState.RESERVED, key=key)

            entry = self.cache.get(key)
            if entry is None:
                continue
            return self._lookup_from_entry(key, entry)

        logger.warning("idempotency_reservation_contended", idempotency_key=key)
        return LedgerLookup(state=LookupState.IN_PROGRESS, key=key)

    def _lookup_from_entry(self, key: str, entry: Any) -> LedgerLookup:
        if not isinstance(entry, dict):
            raise LedgerCorruptionError(key, "entry is not a mapping")
        state = entry.get("state")
        if state == STATE_RESERVED:
            logger.info("idempotency_key_in_progress", idempotency_key=key)
            return LedgerLookup(state=LookupState.IN_PROGRESS, key=key)
        if state == STATE_COMPLETED:
            result = entry.get("result")
            if not isinstance(result, dict):
                raise LedgerCorruptionError(key, "completed entry has no result")
            logger.info("idempotency_cache_hit", idempotency_key=key)
            return LedgerLookup(state=LookupState.CACHED, key=key, result=result)
        raise LedgerCorruptionError(key, f"unknown state {state!r}")

    def complete(self, key: str, result: Dict[str, Any]) -> None:
        """Store the final result snapshot for ``key``."""
        self.cache.set(
            key,
            {
                "state": STATE_COMPLETED,
                "result": result,
                "completed_at": datetime.now(timezone.utc).isoformat(),
            },
            self.ttl_seconds,
        )
        logger.debug("idempotency_key_completed", idempotency_key=key)

    def release(self, key: str) -> None:
        """Drop a reservation so the key can be submitted again."""
        self.cache.delete(key)
        logger.debug("idempotency_key_released", idempotency_key=key)

    def sweep(self) -> int:
        return self.cache.sweep()
