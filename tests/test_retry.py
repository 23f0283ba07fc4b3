"""Tests for lazy_publish.retry."""

from __future__ import annotations

from unittest.mock import MagicMock, patch

import pytest

from lazy_publish.errors import FatalRegistryError, TransientRegistryError
from lazy_publish.retry import RetryPolicy, call_with_retry


class TestRetryPolicy:
    def test_exponential_backoff_capped(self) -> None:
        policy = RetryPolicy(base_delay=1.0, max_delay=5.0, jitter=0.0)
        assert [policy.delay(n) for n in range(1, 6)] == [1.0, 2.0, 4.0, 5.0, 5.0]

    @patch("lazy_publish.retry.random.uniform", return_value=0.25)
    def test_jitter_added(self, mock_uniform: MagicMock) -> None:
        policy = RetryPolicy(base_delay=1.0, jitter=0.5)
        assert policy.delay(1) == 1.25
        mock_uniform.assert_called_once_with(0.0, 0.5)

    def test_at_least_one_attempt(self) -> None:
        with pytest.raises(ValueError):
            RetryPolicy(max_attempts=0)

    def test_unknown_field_rejected(self) -> None:
        with pytest.raises(ValueError, match="max_attemps"):
            RetryPolicy(max_attemps=3)  # type: ignore[call-arg]


class TestCallWithRetry:
    def test_success_first_try(self) -> None:
        sleep = MagicMock()
        assert call_with_retry(lambda: 42, RetryPolicy(), describe="x", sleep=sleep) == 42
        sleep.assert_not_called()

    def test_recovers_from_transient_failures(self) -> None:
        fn = MagicMock(side_effect=[TransientRegistryError("503"), TimeoutError(), "ok"])
        sleep = MagicMock()
        policy = RetryPolicy(max_attempts=3, jitter=0.0)

        assert call_with_retry(fn, policy, describe="fetch a", sleep=sleep) == "ok"
        assert fn.call_count == 3
        assert [c.args[0] for c in sleep.call_args_list] == [1.0, 2.0]

    def test_exhaustion(self) -> None:
        fn = MagicMock(side_effect=TransientRegistryError("429 Too Many Requests"))
        sleep = MagicMock()
        policy = RetryPolicy(max_attempts=3, jitter=0.0)

        with pytest.raises(TransientRegistryError, match="failed after 3 attempts") as excinfo:
            call_with_retry(fn, policy, describe="publish a", sleep=sleep)

        assert fn.call_count == 3
        assert sleep.call_count == 2
        assert excinfo.value.details == {"attempts": 3}
        assert isinstance(excinfo.value.__cause__, TransientRegistryError)

    def test_fatal_errors_not_retried(self) -> None:
        fn = MagicMock(side_effect=FatalRegistryError("401 Unauthorized"))
        sleep = MagicMock()
        with pytest.raises(FatalRegistryError):
            call_with_retry(fn, RetryPolicy(), describe="publish a", sleep=sleep)
        assert fn.call_count == 1
        sleep.assert_not_called()

    def test_retries_logged(self, caplog: pytest.LogCaptureFixture) -> None:
        fn = MagicMock(side_effect=[TimeoutError("read timed out"), "ok"])
        call_with_retry(fn, RetryPolicy(), describe="fetch b", sleep=MagicMock())
        assert "fetch b failed (1/5): read timed out" in caplog.text
