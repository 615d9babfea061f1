"""Idempotency cache abstract base class."""

from abc import ABC, abstractmethod
from typing import Any, Dict, Optional


class IdempotencyCache(ABC):
    """Abstract base class for idempotency cache backends.

    Backends shared across workers must make ``add_if_absent`` a single
    conditional write (e.g. a conditional put or ``SET NX``); the ledger's
    at-most-once guarantee rests on it.
    """

    @abstractmethod
    def get(self, key: str) -> Optional[Dict[str, Any]]:
        """Get the live entry for a key.

        Returns:
            Entry dict or None if not found/expired.
        """
        pass

    @abstractmethod
    def set(self, key: str, value: Dict[str, Any], ttl_seconds: int) -> None:
        """Store an entry unconditionally, replacing any previous value."""
        pass

    @abstractmethod
    def add_if_absent(self, key: str, value: Dict[str, Any], ttl_seconds: int) -> bool:
        """Store an entry only if no live entry exists.

        Returns:
            True if the entry was written, False if the key was taken.
        """
        pass

    @abstractmethod
    def delete(self, key: str) -> None:
        pass

    @abstractmethod
    def sweep(self) -> int:
        """Evict expired entries.

        Returns:
            Number of entries removed.
        """
        pass

    @abstractmethod
    def clear(self) -> None:
        """Clear all cached entries (for testing)."""
        pass

    @abstractmethod
    def get_stats(self) -> Dict[str, Any]:
        pass
