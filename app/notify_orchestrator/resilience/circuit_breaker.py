"""Per-channel circuit breaker.

The circuit breaker stops hammering a provider that keeps failing:
1. CLOSED state: Normal operation, sends pass through
2. OPEN state: Fast-fail sends without calling the provider
3. HALF_OPEN state: Let a limited number of sends probe recovery

State transitions:
- CLOSED -> OPEN: After failure_threshold consecutive failures
- OPEN -> HALF_OPEN: After timeout period expires
- HALF_OPEN -> CLOSED: After a successful send
- HALF_OPEN -> OPEN: If the probe fails
"""

import threading
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, Callable, Dict, Optional

from notify_orchestrator.logging import get_module_logger

logger = get_module_logger()


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class CircuitState(Enum):
    """Circuit breaker states."""

    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


class CircuitBreakerOpenError(Exception):
    """Raised when the circuit is open and the send is rejected."""

    def __init__(self, name: str, retry_in_seconds: int = 0):
        self.name = name
        self.retry_in_seconds = retry_in_seconds
        super().__init__(
            f"Circuit breaker '{name}' is OPEN. Retry in {retry_in_seconds} seconds."
        )


class CircuitBreaker:
    """Circuit breaker guarding one channel sender.

    The router drives it explicitly with ``before_call`` / ``record_success``
    / ``record_failure`` because a provider can fail without raising (a
    transient ``OperationResult``). ``call`` wraps a plain callable for the
    exception-only case.

    Args:
        name: Name of the circuit (the channel id)
        failure_threshold: Consecutive failures before opening
        timeout_seconds: Seconds to wait before attempting recovery
        half_open_max_calls: Max concurrent probes in HALF_OPEN state
        clock: Returns the current UTC time
    """

    def __init__(
        self,
        name: str,
        failure_threshold: int = 5,
        timeout_seconds: int = 60,
        half_open_max_calls: int = 1,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.name = name
        self.failure_threshold = failure_threshold
        self.timeout_seconds = timeout_seconds
        self.half_open_max_calls = half_open_max_calls
        self._clock = clock

        self._state = CircuitState.CLOSED
        self._failure_count = 0
        self._success_count = 0
        self._last_failure_time: Optional[datetime] = None
        self._half_open_calls = 0

        self._lock = threading.Lock()

    @property
    def state(self) -> CircuitState:
        with self._lock:
            return self._state

    def before_call(self) -> None:
        """Admit or reject a send.

        Raises:
            CircuitBreakerOpenError: If the circuit is open, or half-open with
                all probe slots taken.
        """
        with self._lock:
            if self._state == CircuitState.OPEN:
                if self._should_attempt_reset():
                    self._transition_to_half_open()
                else:
                    remaining = int(self.timeout_seconds - self._elapsed_since_failure())
                    logger.warning(
                        "circuit_breaker_open",
                        name=self.name,
                        failure_count=self._failure_count,
                        retry_in_seconds=remaining,
                    )
                    raise CircuitBreakerOpenError(self.name, remaining)

            if self._state == CircuitState.HALF_OPEN:
                if self._half_open_calls >= self.half_open_max_calls:
                    raise CircuitBreakerOpenError(self.name)
                self._half_open_calls += 1

    def record_success(self) -> None:
        with self._lock:
            if self._state == CircuitState.HALF_OPEN:
                self._success_count += 1
                logger.info("circuit_breaker_recovered", name=self.name)
                self._transition_to_closed()
            elif self._failure_count > 0:
                self._failure_count = 0

    def record_failure(self, error: str = "") -> None:
        with self._lock:
            self._failure_count += 1
            self._last_failure_time = self._clock()

            if self._state == CircuitState.HALF_OPEN:
                logger.warning(
                    "circuit_breaker_recovery_failed", name=self.name, error=error
                )
                self._transition_to_open()
            elif self._state == CircuitState.CLOSED:
                if self._failure_count >= self.failure_threshold:
                    logger.error(
                        "circuit_breaker_threshold_exceeded",
                        name=self.name,
                        failure_count=self._failure_count,
                        threshold=self.failure_threshold,
                        error=error,
                    )
                    self._transition_to_open()

    def call(self, func: Callable, *args, **kwargs) -> Any:
        """Execute ``func`` through the breaker, counting exceptions as failures.

        Raises:
            CircuitBreakerOpenError: If the circuit is open
            Exception: Any exception raised by func
        """
        self.before_call()
        try:
            result = func(*args, **kwargs)
        except Exception as e:
            self.record_failure(str(e))
            raise
        self.record_success()
        return result

    def _elapsed_since_failure(self) -> float:
        if self._last_failure_time is None:
            return float(self.timeout_seconds)
        return (self._clock() - self._last_failure_time).total_seconds()

    def _should_attempt_reset(self) -> bool:
        if self._last_failure_time is None:
            return True
        elapsed = self._clock() - self._last_failure_time
        return elapsed >= timedelta(seconds=self.timeout_seconds)

    def _transition_to_closed(self) -> None:
        self._state = CircuitState.CLOSED
        self._failure_count = 0
        self._success_count = 0
        self._half_open_calls = 0

    def _transition_to_open(self) -> None:
        logger.error(
            "circuit_breaker_opened",
            name=self.name,
            timeout_seconds=self.timeout_seconds,
        )
        self._state = CircuitState.OPEN
        self._half_open_calls = 0

    def _transition_to_half_open(self) -> None:
        logger.info("circuit_breaker_half_open", name=self.name)
        self._state = CircuitState.HALF_OPEN
        self._failure_count = 0
        self._success_count = 0
        self._half_open_calls = 0

    def get_stats(self) -> Dict[str, Any]:
        """Get circuit breaker statistics."""
        with self._lock:
            return {
                "name": self.name,
                "state": self._state.value,
                "failure_count": self._failure_count,
                "last_failure_time": (
                    self._last_failure_time.isoformat()
                    if self._last_failure_time
                    else None
                ),
            }

    def reset(self) -> None:
        """Manually reset the circuit breaker."""
        with self._lock:
            logger.info("circuit_breaker_manual_reset", name=self.name)
            self._transition_to_closed()
