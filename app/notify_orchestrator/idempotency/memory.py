"""In-process idempotency cache."""

import copy
import threading
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, Optional, Tuple

import structlog

from notify_orchestrator.idempotency.cache import IdempotencyCache

logger = structlog.get_logger()


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class InMemoryIdempotencyCache(IdempotencyCache):
    """Dict-backed cache guarded by a single lock.

    Suitable for a single process. Expired entries are dropped lazily on
    access and in bulk by ``sweep``. Values are deep-copied in and out so
    callers cannot mutate stored snapshots.
    """

    def __init__(self, clock: Callable[[], datetime] = _utcnow):
        self._entries: Dict[str, Tuple[Dict[str, Any], datetime]] = {}
        self._lock = threading.Lock()
        self._clock = clock
        self._hits = 0
        self._misses = 0

    def _live(self, key: str, now: datetime) -> Optional[Dict[str, Any]]:
        entry = self._entries.get(key)
        if entry is None:
            return None
        value, expires_at = entry
        if expires_at <= now:
            del self._entries[key]
            logger.debug("idempotency_entry_expired", key=key)
            return None
        return value

    def get(self, key: str) -> Optional[Dict[str, Any]]:
        with self._lock:
            value = self._live(key, self._clock())
            if value is None:
                self._misses += 1
                return None
            self._hits += 1
            return copy.deepcopy(value)

    def set(self, key: str, value: Dict[str, Any], ttl_seconds: int) -> None:
        expires_at = self._clock() + timedelta(seconds=ttl_seconds)
        with self._lock:
            self._entries[key] = (copy.deepcopy(value), expires_at)

    def add_if_absent(self, key: str, value: Dict[str, Any], ttl_seconds: int) -> bool:
        with self._lock:
            now = self._clock()
            if self._live(key, now) is not None:
                return False
            self._entries[key] = (
                copy.deepcopy(value),
                now + timedelta(seconds=ttl_seconds),
            )
            return True

    def delete(self, key: str) -> None:
        with self._lock:
            self._entries.pop(key, None)

    def sweep(self) -> int:
        with self._lock:
            now = self._clock()
            expired = [k for k, (_, exp) in self._entries.items() if exp <= now]
            for key in expired:
                del self._entries[key]
        if expired:
            logger.info("idempotency_cache_swept", removed=len(expired))
        return len(expired)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
            self._hits = 0
            self._misses = 0

    def get_stats(self) -> Dict[str, Any]:
        with self._lock:
            return {
                "backend": "memory",
                "entries": len(self._entries),
                "hits": self._hits,
                "misses": self._misses,
            }
