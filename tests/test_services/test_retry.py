"""Tests for the retry wrapper."""
from unittest.mock import MagicMock

import pytest

from mailsync.services.retry import retry_operation


class TestRetryOperation:
    """Tests for retry_operation."""

    def test_returns_first_success(self):
        operation = MagicMock(return_value="ok")
        sleeps = []

        assert retry_operation(operation, sleep=sleeps.append) == "ok"
        assert operation.call_count == 1
        assert sleeps == []

    def test_linear_backoff_then_success(self):
        operation = MagicMock(
            side_effect=[ConnectionError("Connection refused"), ConnectionError("Connection refused"), "ok"]
        )
        sleeps = []

        result = retry_operation(operation, max_attempts=3, base_delay=1.0, sleep=sleeps.append)

        assert result == "ok"
        assert operation.call_count == 3
        assert sleeps == [1.0, 2.0]

    def test_reraises_last_error_after_max_attempts(self):
        errors = [ConnectionError(f"Connection refused #{i}") for i in range(3)]
        operation = MagicMock(side_effect=errors)
        sleeps = []

        with pytest.raises(ConnectionError) as exc_info:
            retry_operation(operation, max_attempts=3, base_delay=0.5, sleep=sleeps.append)

        assert exc_info.value is errors[-1]
        assert operation.call_count == 3
        assert sleeps == [0.5, 1.0]

    def test_non_retryable_fails_immediately(self):
        operation = MagicMock(side_effect=Exception("Invalid credentials"))
        sleeps = []

        with pytest.raises(Exception, match="Invalid credentials"):
            retry_operation(operation, max_attempts=5, sleep=sleeps.append)

        assert operation.call_count == 1
        assert sleeps == []

    def test_single_attempt(self):
        operation = MagicMock(side_effect=TimeoutError("timed out"))

        with pytest.raises(TimeoutError):
            retry_operation(operation, max_attempts=1, sleep=lambda s: None)

        assert operation.call_count == 1

    def test_rejects_zero_attempts(self):
        with pytest.raises(ValueError):
            retry_operation(lambda: None, max_attempts=0)
