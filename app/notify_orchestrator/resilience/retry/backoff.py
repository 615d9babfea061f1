"""Exponential backoff with jitter for transient channel failures."""

import random
import time
from typing import Callable, Optional, Tuple

from notify_orchestrator.logging import get_module_logger
from notify_orchestrator.operations import OperationResult
from notify_orchestrator.resilience.retry.config import RetryConfig

logger = get_module_logger()


def compute_backoff_delay(
    attempt: int,
    config: RetryConfig,
    rand: Callable[[float, float], float] = random.uniform,
) -> float:
    """Delay before retry number ``attempt`` (0-based).

    ``min(base * 2**attempt, max)`` spread by +/- ``jitter_ratio`` of itself,
    never negative.
    """
    delay = min(config.base_delay_seconds * (2**attempt), config.max_delay_seconds)
    jitter = delay * config.jitter_ratio
    if jitter:
        delay += rand(-jitter, jitter)
    return max(0.0, delay)


def retry_call(
    func: Callable[[], OperationResult],
    config: RetryConfig,
    sleep: Callable[[float], None] = time.sleep,
    label: Optional[str] = None,
) -> Tuple[OperationResult, int]:
    """Call ``func`` until it succeeds, fails permanently, or attempts run out.

    Only ``TRANSIENT_ERROR`` results are retried. A provider ``retry_after``
    hint overrides the computed delay when it is longer, unless it exceeds
    ``max_delay_seconds``, in which case the transient result is returned at
    once. Exceptions raised by ``func`` propagate to the caller untouched.

    Returns:
        The last result and the number of attempts made.
    """
    attempt = 0
    while True:
        attempt += 1
        result = func()
        if not result.is_retryable or attempt >= config.max_attempts:
            return result, attempt

        delay = compute_backoff_delay(attempt - 1, config)
        if result.retry_after and result.retry_after > delay:
            # A hint past the cap ends retries; the caller falls through or
            # records the transient failure.
            if result.retry_after > config.max_delay_seconds:
                logger.warning(
                    "retry_after_exceeds_max_delay",
                    label=label,
                    attempt=attempt,
                    retry_after=result.retry_after,
                    max_delay_seconds=config.max_delay_seconds,
                    error_code=result.error_code,
                )
                return result, attempt
            delay = float(result.retry_after)
        logger.info(
            "transient_failure_retrying",
            label=label,
            attempt=attempt,
            max_attempts=config.max_attempts,
            delay_seconds=round(delay, 3),
            error_code=result.error_code,
        )
        sleep(delay)
