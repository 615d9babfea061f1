"""Transport retry configuration."""

from dataclasses import dataclass

from notify_orchestrator.configuration import RetrySettings


@dataclass
class RetryConfig:
    """Backoff parameters for retrying transient channel failures.

    Attributes:
        max_attempts: Total attempts per channel, including the first
        base_delay_seconds: Delay before the first retry
        max_delay_seconds: Cap for exponential backoff
        jitter_ratio: Random spread applied to each delay, as a fraction of it

    Example:
        config = RetryConfig.from_settings(settings.retry)
        config = RetryConfig(max_attempts=1)  # never retry
    """

    max_attempts: int = 3
    base_delay_seconds: float = 1.0
    max_delay_seconds: float = 30.0
    jitter_ratio: float = 0.1

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if self.base_delay_seconds < 0:
            raise ValueError("base_delay_seconds must not be negative")
        if self.max_delay_seconds < self.base_delay_seconds:
            raise ValueError("max_delay_seconds must be >= base_delay_seconds")
        if not 0 <= self.jitter_ratio <= 1:
            raise ValueError("jitter_ratio must be between 0 and 1")

    @classmethod
    def from_settings(cls, settings: RetrySettings) -> "RetryConfig":
        return cls(
            max_attempts=settings.max_attempts,
            base_delay_seconds=settings.base_delay_seconds,
            max_delay_seconds=settings.max_delay_seconds,
            jitter_ratio=settings.jitter_ratio,
        )
