"""In-memory Store implementation.

Suitable for single-process deployments and tests.
"""

import copy
import threading
from typing import Any, Dict, List, Optional, Tuple

from notify_orchestrator.logging import get_module_logger
from notify_orchestrator.notifications.models import (
    Category,
    ChannelId,
    ConsentRecord,
    DeliveryOutcome,
    RecipientProfile,
)

logger = get_module_logger()

ConsentKey = Tuple[str, Category, ChannelId]


class InMemoryStore:
    """Thread-safe in-memory store.

    Outcomes are kept in arrival order and never modified; models are frozen
    so handing them out is safe.
    """

    def __init__(self) -> None:
        self._outcomes: List[DeliveryOutcome] = []
        self._consents: Dict[ConsentKey, ConsentRecord] = {}
        self._profiles: Dict[str, RecipientProfile] = {}
        self._batches: Dict[str, Dict[str, Any]] = {}
        self._lock = threading.Lock()

    def get_consent(
        self, recipient_id: str, category: Category, channel: ChannelId
    ) -> Optional[ConsentRecord]:
        with self._lock:
            return self._consents.get((recipient_id, category, channel))

    def get_profile(self, recipient_id: str) -> Optional[RecipientProfile]:
        with self._lock:
            return self._profiles.get(recipient_id)

    def append_outcome(self, outcome: DeliveryOutcome) -> None:
        with self._lock:
            self._outcomes.append(outcome)
        logger.debug(
            "delivery_outcome_appended",
            request_id=outcome.request_id,
            channel=outcome.channel.value,
            status=outcome.status.value,
        )

    def list_outcomes(
        self,
        request_id: Optional[str] = None,
        recipient_id: Optional[str] = None,
    ) -> List[DeliveryOutcome]:
        with self._lock:
            return [
                o
                for o in self._outcomes
                if (request_id is None or o.request_id == request_id)
                and (recipient_id is None or o.recipient_id == recipient_id)
            ]

    def save_consent(self, record: ConsentRecord) -> None:
        with self._lock:
            self._consents[(record.recipient_id, record.category, record.channel)] = record

    def save_profile(self, profile: RecipientProfile) -> None:
        with self._lock:
            self._profiles[profile.recipient_id] = profile

    def save_batch(self, bucket_id: str, snapshot: Dict[str, Any]) -> None:
        with self._lock:
            self._batches[bucket_id] = copy.deepcopy(snapshot)

    def get_batch(self, bucket_id: str) -> Optional[Dict[str, Any]]:
        with self._lock:
            snapshot = self._batches.get(bucket_id)
            return copy.deepcopy(snapshot) if snapshot is not None else None

    def get_stats(self) -> Dict[str, int]:
        with self._lock:
            return {
                "outcomes": len(self._outcomes),
                "consents": len(self._consents),
                "profiles": len(self._profiles),
                "batches": len(self._batches),
            }
