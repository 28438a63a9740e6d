"""Tests for retry module."""

from unittest.mock import MagicMock, call, patch

import pytest

from testrail_uploader.errors import TestRailError, TestRailErrorStatus
from testrail_uploader.retry import (
    RetryExhausted,
    backoff_delay,
    is_retryable_error,
    retry_with_backoff,
)


def rate_limited() -> TestRailError:
    return TestRailError(TestRailErrorStatus.HIT_RATE_LIMIT)


class TestIsRetryableError:
    """Tests for error classification."""

    @pytest.mark.parametrize(
        "status",
        [
            TestRailErrorStatus.HIT_RATE_LIMIT,
            TestRailErrorStatus.MAINTENANCE,
            TestRailErrorStatus.SOCKET_TIMEOUT,
            TestRailErrorStatus.UNKNOWN_ERROR,
        ],
    )
    def test_transient_errors_are_retryable(self, status):
        """Transient TestRail errors should trigger retry."""
        assert is_retryable_error(TestRailError(status)) is True

    def test_access_denied_is_not_retryable(self):
        """Access denied should NOT trigger retry."""
        assert is_retryable_error(TestRailError(TestRailErrorStatus.ACCESS_DENIED)) is False

    def test_missing_credentials_is_not_retryable(self):
        """Missing credentials should NOT trigger retry."""
        assert is_retryable_error(TestRailError(TestRailErrorStatus.NO_CREDENTIALS)) is False

    def test_explicit_non_retryable_flag(self):
        """An error marked non-retryable should NOT trigger retry."""
        error = TestRailError(TestRailErrorStatus.BAD_REQUEST, "empty plan entry", retryable=False)
        assert is_retryable_error(error) is False

    def test_generic_exception_is_not_retryable(self):
        """Generic exceptions should NOT trigger retry by default."""
        assert is_retryable_error(ValueError("Some error")) is False


class TestRetryWithBackoff:
    """Tests for retry_with_backoff function."""

    def test_success_on_first_attempt(self):
        """Succeed immediately without retrying."""
        mock_func = MagicMock(return_value={5})

        result = retry_with_backoff(mock_func, max_attempts=3, delays=[1, 2, 4])

        assert result == {5}
        assert mock_func.call_count == 1

    @patch("testrail_uploader.retry.time.sleep")
    def test_success_after_two_retries(self, mock_sleep: MagicMock):
        """Succeed after two retries, sleeping the configured delays."""
        mock_func = MagicMock(
            side_effect=[rate_limited(), TestRailError(TestRailErrorStatus.SOCKET_TIMEOUT), "success"]
        )

        result = retry_with_backoff(mock_func, max_attempts=3, delays=[5, 15, 30])

        assert result == "success"
        assert mock_func.call_count == 3
        assert mock_sleep.call_args_list == [call(5), call(15)]

    @patch("testrail_uploader.retry.time.sleep")
    def test_failure_after_max_retries_exceeded(self, mock_sleep: MagicMock):
        """Raise RetryExhausted after all attempts fail."""
        last_error = rate_limited()
        mock_func = MagicMock(side_effect=[rate_limited(), rate_limited(), last_error])

        with pytest.raises(RetryExhausted) as exc_info:
            retry_with_backoff(mock_func, max_attempts=3, delays=[0.01])

        assert mock_func.call_count == 3
        assert "3 attempts" in str(exc_info.value)
        assert exc_info.value.attempts == 3
        assert exc_info.value.last_error is last_error
        assert mock_sleep.call_args_list == [call(0.01), call(0.01)]

    def test_non_retryable_error_raises_immediately(self):
        """Non-retryable errors should raise without retry."""
        error = TestRailError(TestRailErrorStatus.ACCESS_DENIED, "Test Rail Project is Completed.")
        mock_func = MagicMock(side_effect=error)

        with pytest.raises(TestRailError) as exc_info:
            retry_with_backoff(mock_func, max_attempts=3, delays=[0.01])

        assert exc_info.value is error
        assert mock_func.call_count == 1

    def test_passes_args_and_kwargs_to_function(self):
        """Arguments and keyword arguments are passed through."""
        mock_func = MagicMock(return_value="success")

        retry_with_backoff(
            mock_func,
            max_attempts=3,
            delays=[0.01],
            args=("arg1", "arg2"),
            kwargs={"key1": "value1"},
        )

        mock_func.assert_called_with("arg1", "arg2", key1="value1")

    @patch("testrail_uploader.retry.time.sleep")
    def test_waits_for_retry_after_on_rate_limit(self, mock_sleep: MagicMock):
        """A rate-limited call waits as long as TestRail asked."""
        throttled = TestRailError(TestRailErrorStatus.HIT_RATE_LIMIT, retry_after=30.0)
        mock_func = MagicMock(side_effect=[throttled, "success"])

        result = retry_with_backoff(mock_func, max_attempts=3, delays=[5, 15])

        assert result == "success"
        assert mock_sleep.call_args_list == [call(30.0)]

    def test_other_exceptions_propagate_without_retry(self):
        """Exceptions outside the TestRail taxonomy are not retried."""
        mock_func = MagicMock(side_effect=ValueError("bad row"))

        with pytest.raises(ValueError):
            retry_with_backoff(mock_func, max_attempts=3, delays=[0.01])

        assert mock_func.call_count == 1

    def test_rejects_zero_attempts(self):
        """At least one attempt is required."""
        with pytest.raises(ValueError):
            retry_with_backoff(MagicMock(), max_attempts=0)


class TestBackoffDelay:
    """Tests for choosing the wait before the next attempt."""

    def test_uses_delay_for_attempt(self):
        """The delay is picked by attempt, repeating the last one."""
        assert backoff_delay(rate_limited(), 1, [5, 15]) == 5
        assert backoff_delay(rate_limited(), 4, [5, 15]) == 15

    def test_shorter_retry_after_keeps_configured_delay(self):
        """A Retry-After below the configured delay does not shorten it."""
        error = TestRailError(TestRailErrorStatus.HIT_RATE_LIMIT, retry_after=1.0)
        assert backoff_delay(error, 1, [5]) == 5
