"""Custom structlog processors for orchestrator logs.

Usage:
    from notify_orchestrator.logging.formatters import mask_contact_data
"""

from typing import Any

# Keys whose values carry recipient contact details or credentials
SENSITIVE_PATTERNS = frozenset(
    {
        "contact",
        "email_address",
        "phone",
        "push_token",
        "device_token",
        "whatsapp_number",
        "api_key",
        "token",
        "secret",
        "authorization",
    }
)


def mask_contact_data(
    mask_value: str = "***REDACTED***",
    additional_patterns: frozenset[str] | None = None,
):
    """Create a processor that masks recipient contact details in log entries.

    Matches keys case-insensitively against SENSITIVE_PATTERNS (substring
    match), so ``contact``, ``recipient_contact`` and ``phone_number`` are all
    masked.

    Args:
        mask_value: The string to replace sensitive values with.
        additional_patterns: Extra patterns to consider sensitive.

    Returns:
        A structlog processor function.
    """
    patterns = SENSITIVE_PATTERNS
    if additional_patterns:
        patterns = patterns | additional_patterns

    def processor(
        logger: Any, method_name: str, event_dict: dict[str, Any]
    ) -> dict[str, Any]:
        masked_dict = {}
        for key, value in event_dict.items():
            key_lower = key.lower()
            is_sensitive = any(pattern in key_lower for pattern in patterns)
            if is_sensitive and value is not None:
                masked_dict[key] = mask_value
            else:
                masked_dict[key] = value
        return masked_dict

    return processor


def truncate_large_values(max_length: int = 500):
    """Create a processor that truncates overly large string values.

    Payload snippets and provider error bodies can be arbitrarily long.

    Args:
        max_length: Maximum string length before truncation.

    Returns:
        A structlog processor function.
    """

    def processor(
        logger: Any, method_name: str, event_dict: dict[str, Any]
    ) -> dict[str, Any]:
        for key, value in event_dict.items():
            if isinstance(value, str) and len(value) > max_length:
                event_dict[key] = (
                    value[:max_length] + f"...[truncated, {len(value)} chars total]"
                )
        return event_dict

    return processor
