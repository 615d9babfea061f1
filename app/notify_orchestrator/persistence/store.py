"""Storage interfaces consumed by the orchestrator.

The protocol-based design allows any backend (in-memory, DynamoDB, SQL...)
as long as outcome history stays append-only.
"""

from typing import Any, Dict, List, Optional, Protocol

from notify_orchestrator.notifications.models import (
    Category,
    ChannelId,
    ConsentRecord,
    DeliveryOutcome,
    RecipientProfile,
)


class PreferenceSource(Protocol):
    """Read-only consent and profile lookup.

    Methods:
        get_consent: ConsentRecord for an exact (recipient, category, channel)
        get_profile: RecipientProfile with timezone and contacts
    """

    def get_consent(
        self, recipient_id: str, category: Category, channel: ChannelId
    ) -> Optional[ConsentRecord]: ...

    def get_profile(self, recipient_id: str) -> Optional[RecipientProfile]: ...


class Store(PreferenceSource, Protocol):
    """Read-write storage for outcomes, consent records and batch buckets.

    Methods:
        append_outcome: Append one DeliveryOutcome; never updates in place
        list_outcomes: Outcomes for a request, or for a recipient
        save_consent: Insert or replace a ConsentRecord
        save_profile: Insert or replace a RecipientProfile
        save_batch: Persist a batch bucket snapshot by bucket id
        get_batch: Read a batch bucket snapshot
    """

    def append_outcome(self, outcome: DeliveryOutcome) -> None: ...

    def list_outcomes(
        self,
        request_id: Optional[str] = None,
        recipient_id: Optional[str] = None,
    ) -> List[DeliveryOutcome]: ...

    def save_consent(self, record: ConsentRecord) -> None: ...

    def save_profile(self, profile: RecipientProfile) -> None: ...

    def save_batch(self, bucket_id: str, snapshot: Dict[str, Any]) -> None: ...

    def get_batch(self, bucket_id: str) -> Optional[Dict[str, Any]]: ...
