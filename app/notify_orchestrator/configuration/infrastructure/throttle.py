"""Throttle guard settings."""

from typing import Dict

from pydantic import BaseModel, Field, field_validator

from notify_orchestrator.configuration.base import InfrastructureSettings


class ChannelLimit(BaseModel):
    """Rate window for a single channel."""

    max_count: int = Field(..., ge=1)
    window_seconds: int = Field(..., ge=1)


def _default_channel_limits() -> Dict[str, ChannelLimit]:
    return {
        "push": ChannelLimit(max_count=10, window_seconds=3600),
        "email": ChannelLimit(max_count=5, window_seconds=86400),
        "sms": ChannelLimit(max_count=3, window_seconds=86400),
        "whatsapp": ChannelLimit(max_count=3, window_seconds=86400),
        "slack": ChannelLimit(max_count=20, window_seconds=3600),
        "ms_teams": ChannelLimit(max_count=20, window_seconds=3600),
        "inbox": ChannelLimit(max_count=50, window_seconds=3600),
    }


class ThrottleSettings(InfrastructureSettings):
    """Per-recipient rate limits per channel.

    Limits are the medium-priority baseline; the multiplier for each priority
    scales them (high gets more room, low gets less). Critical priority is
    never throttled.

    Environment Variables:
        THROTTLE_ENABLED: Enable throttling (default: True)
        THROTTLE_CHANNEL_LIMITS: JSON mapping of channel to
            {"max_count": int, "window_seconds": int}
        THROTTLE_PRIORITY_MULTIPLIERS: JSON mapping of priority to multiplier

    Example:
        THROTTLE_CHANNEL_LIMITS='{"push": {"max_count": 5, "window_seconds": 3600}}'
    """

    enabled: bool = Field(default=True, alias="THROTTLE_ENABLED")
    channel_limits: Dict[str, ChannelLimit] = Field(
        default_factory=_default_channel_limits,
        alias="THROTTLE_CHANNEL_LIMITS",
    )
    priority_multipliers: Dict[str, float] = Field(
        default_factory=lambda: {"high": 2.0, "medium": 1.0, "low": 0.5},
        alias="THROTTLE_PRIORITY_MULTIPLIERS",
    )

    @field_validator("priority_multipliers")
    @classmethod
    def validate_multipliers(cls, v: Dict[str, float]) -> Dict[str, float]:
        """Reject non-positive multipliers."""
        for priority, multiplier in v.items():
            if multiplier <= 0:
                raise ValueError(
                    f"Priority multiplier must be positive: {priority}={multiplier}"
                )
        return v
