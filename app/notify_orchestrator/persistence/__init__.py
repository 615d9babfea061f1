"""Store and PreferenceSource interfaces plus the in-memory backend."""

from notify_orchestrator.persistence.memory import InMemoryStore
from notify_orchestrator.persistence.store import PreferenceSource, Store

__all__ = ["InMemoryStore", "PreferenceSource", "Store"]
