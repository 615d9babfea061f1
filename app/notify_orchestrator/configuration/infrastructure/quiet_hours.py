"""Quiet hours settings."""

import pytz
from pydantic import Field, field_validator

from notify_orchestrator.configuration.base import InfrastructureSettings


class QuietHoursSettings(InfrastructureSettings):
    """Recipient-local quiet hours window.

    The window is [start, end) in the recipient's local hour and may wrap
    midnight (the default 22 -> 8 does).

    Environment Variables:
        QUIET_HOURS_ENABLED: Enable quiet hours deferral (default: True)
        QUIET_HOURS_START: First quiet hour, 0-23 (default: 22)
        QUIET_HOURS_END: First non-quiet hour, 0-23 (default: 8)
        QUIET_HOURS_DEFAULT_TIMEZONE: Timezone for recipients without one (default: UTC)
    """

    enabled: bool = Field(default=True, alias="QUIET_HOURS_ENABLED")
    start_hour: int = Field(default=22, ge=0, le=23, alias="QUIET_HOURS_START")
    end_hour: int = Field(default=8, ge=0, le=23, alias="QUIET_HOURS_END")
    default_timezone: str = Field(default="UTC", alias="QUIET_HOURS_DEFAULT_TIMEZONE")

    @field_validator("default_timezone")
    @classmethod
    def validate_timezone(cls, v: str) -> str:
        """Ensure the default timezone is a known IANA name."""
        if v not in pytz.all_timezones_set:
            raise ValueError(f"Unknown timezone: {v}")
        return v
