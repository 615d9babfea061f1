"""Idempotency key conventions for notification callers."""

import hashlib
import time
import uuid
from typing import Any, Optional, Union


class IdempotencyKeyBuilder:
    """Build idempotency keys in the shape callers are expected to use.

    One-shot notifications use ``{type}-{stable-id}`` (``welcome-u1``).
    Notifications that legitimately recur embed a timestamp or nonce,
    ``{type}-{stable-id}-{nonce}`` (``otp-u1-1700000000``), so a resend is not
    mistaken for a duplicate. ``build`` produces a hashed, namespaced key for
    composite identities.

    Example:
        >>> builder = IdempotencyKeyBuilder(namespace="notifications")
        >>> builder.one_shot("welcome", "u1")
        'welcome-u1'
        >>> builder.repeatable("otp", "u1", nonce=1700000000)
        'otp-u1-1700000000'
    """

    def __init__(self, namespace: str = "notifications"):
        self.namespace = namespace

    def one_shot(self, notification_type: str, stable_id: str) -> str:
        return f"{notification_type}-{stable_id}"

    def repeatable(
        self,
        notification_type: str,
        stable_id: str,
        nonce: Optional[Union[str, int]] = None,
    ) -> str:
        """Key for an intentionally repeatable notification.

        Args:
            notification_type: e.g. ``otp``
            stable_id: Usually the recipient id
            nonce: Timestamp or random token. Defaults to the current epoch
                second, which lets one resend per second through.
        """
        if nonce is None:
            nonce = int(time.time())
        return f"{notification_type}-{stable_id}-{nonce}"

    def random(self, notification_type: str, stable_id: str) -> str:
        return self.repeatable(notification_type, stable_id, uuid.uuid4().hex[:12])

    def build(self, operation: str, **components: Any) -> str:
        """Build a hashed key from arbitrary components.

        Components are sorted by name so argument order does not matter.

        Returns:
            ``{namespace}:{operation}:{16-hex-digest}``
        """
        key_parts = [self.namespace, operation]
        key_parts.extend(f"{k}={v}" for k, v in sorted(components.items()))
        key_string = "|".join(str(part) for part in key_parts)
        key_hash = hashlib.sha256(key_string.encode()).hexdigest()[:16]
        return f"{self.namespace}:{operation}:{key_hash}"
