"""Unit tests for retry configuration and exponential backoff."""

from unittest.mock import MagicMock

import pytest

from notify_orchestrator.configuration import RetrySettings
from notify_orchestrator.operations import OperationResult
from notify_orchestrator.resilience import RetryConfig, compute_backoff_delay, retry_call

pytestmark = pytest.mark.unit


class TestRetryConfig:
    def test_from_settings(self):
        config = RetryConfig.from_settings(
            RetrySettings(max_attempts=4, base_delay_seconds=2.0, max_delay_seconds=10.0)
        )
        assert config.max_attempts == 4
        assert config.base_delay_seconds == 2.0
        assert config.max_delay_seconds == 10.0

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"max_attempts": 0},
            {"base_delay_seconds": -1},
            {"base_delay_seconds": 10, "max_delay_seconds": 5},
            {"jitter_ratio": 1.5},
        ],
    )
    def test_invalid_values_rejected(self, kwargs):
        with pytest.raises(ValueError):
            RetryConfig(**kwargs)


class TestComputeBackoffDelay:
    def test_exponential_growth_without_jitter(self):
        config = RetryConfig(base_delay_seconds=1.0, max_delay_seconds=30.0, jitter_ratio=0)

        delays = [compute_backoff_delay(n, config) for n in range(4)]

        assert delays == [1.0, 2.0, 4.0, 8.0]

    def test_capped_at_max_delay(self):
        config = RetryConfig(base_delay_seconds=1.0, max_delay_seconds=5.0, jitter_ratio=0)

        assert compute_backoff_delay(10, config) == 5.0

    def test_jitter_bounds_passed_to_random(self):
        config = RetryConfig(base_delay_seconds=4.0, max_delay_seconds=30.0, jitter_ratio=0.25)
        rand = MagicMock(return_value=0.5)

        delay = compute_backoff_delay(0, config, rand=rand)

        rand.assert_called_once_with(-1.0, 1.0)
        assert delay == 4.5

    def test_never_negative(self):
        config = RetryConfig(base_delay_seconds=1.0, max_delay_seconds=1.0, jitter_ratio=1.0)

        assert compute_backoff_delay(0, config, rand=lambda lo, hi: lo * 2) == 0.0


class TestRetryCall:
    def test_success_first_try(self):
        sleep = MagicMock()
        func = MagicMock(return_value=OperationResult.success())

        result, attempts = retry_call(func, RetryConfig(), sleep=sleep)

        assert result.is_success
        assert attempts == 1
        sleep.assert_not_called()

    def test_transient_then_success(self):
        sleep = MagicMock()
        func = MagicMock(
            side_effect=[
                OperationResult.transient_error("503"),
                OperationResult.success(),
            ]
        )

        result, attempts = retry_call(func, RetryConfig(jitter_ratio=0), sleep=sleep)

        assert result.is_success
        assert attempts == 2
        sleep.assert_called_once_with(1.0)

    def test_gives_up_after_max_attempts(self):
        sleep = MagicMock()
        func = MagicMock(return_value=OperationResult.transient_error("503"))

        result, attempts = retry_call(func, RetryConfig(max_attempts=3), sleep=sleep)

        assert not result.is_success
        assert attempts == 3
        assert func.call_count == 3
        assert sleep.call_count == 2

    def test_permanent_error_not_retried(self):
        sleep = MagicMock()
        func = MagicMock(
            return_value=OperationResult.permanent_error("bad number", "invalid_recipient")
        )

        result, attempts = retry_call(func, RetryConfig(), sleep=sleep)

        assert result.error_code == "invalid_recipient"
        assert attempts == 1
        sleep.assert_not_called()

    def test_retry_after_hint_extends_delay(self):
        sleep = MagicMock()
        func = MagicMock(
            side_effect=[
                OperationResult.transient_error("429", retry_after=7),
                OperationResult.success(),
            ]
        )

        retry_call(func, RetryConfig(jitter_ratio=0), sleep=sleep)

        sleep.assert_called_once_with(7.0)

    def test_retry_after_beyond_max_delay_stops_retrying(self):
        sleep = MagicMock()
        func = MagicMock(
            side_effect=[
                OperationResult.transient_error("429", retry_after=3600),
                OperationResult.success(),
            ]
        )

        result, attempts = retry_call(
            func, RetryConfig(max_delay_seconds=30.0, jitter_ratio=0), sleep=sleep
        )

        assert result.is_retryable
        assert result.retry_after == 3600
        assert attempts == 1
        sleep.assert_not_called()

    def test_exceptions_propagate(self):
        func = MagicMock(side_effect=TimeoutError("socket"))

        with pytest.raises(TimeoutError):
            retry_call(func, RetryConfig(), sleep=MagicMock())
