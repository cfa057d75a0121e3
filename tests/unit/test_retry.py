"""
Ledger Retry Tests
Tests for core/ledger/retry.py
"""
import threading

import pytest

from core.config import LedgerConfig
from core.ledger import RetryPolicy, call_with_retry
from core.schemas import (
    LedgerException,
    LedgerTransientException,
    LedgerUnavailableException,
)


class _Flaky:
    """Callable failing transiently a fixed number of times."""

    def __init__(self, failures: int, result: str = "ok"):
        self.failures = failures
        self.result = result
        self.calls = 0

    def __call__(self, *args):
        self.calls += 1
        if self.calls <= self.failures:
            raise LedgerTransientException(f"outage #{self.calls}")
        return self.result


class TestRetryPolicy:
    """Tests for RetryPolicy."""

    def test_exponential_delays_capped(self):
        policy = RetryPolicy(max_retries=5, initial_delay=1.0, backoff_factor=2.0, max_delay=5.0)

        assert [policy.delay_for(n) for n in range(1, 6)] == [1.0, 2.0, 4.0, 5.0, 5.0]

    def test_max_attempts(self):
        assert RetryPolicy(max_retries=0).max_attempts == 1
        assert RetryPolicy(max_retries=3).max_attempts == 4

    def test_invalid_values(self):
        with pytest.raises(ValueError):
            RetryPolicy(max_retries=-1)
        with pytest.raises(ValueError):
            RetryPolicy(backoff_factor=0.5)

    def test_from_config(self):
        config = LedgerConfig(timeout=3.0, max_retries=4, retry_delay=0.25, backoff_factor=3.0, max_retry_delay=2.0)
        policy = RetryPolicy.from_config(config)

        assert policy.max_retries == 4
        assert policy.initial_delay == 0.25
        assert policy.backoff_factor == 3.0
        assert policy.max_delay == 2.0
        assert policy.attempt_timeout == 3.0


class TestCallWithRetry:
    """Tests for call_with_retry()."""

    def test_first_attempt_succeeds(self):
        fn = _Flaky(0)
        sleeps = []

        assert call_with_retry(fn, "b", policy=RetryPolicy(), sleep=sleeps.append) == "ok"
        assert fn.calls == 1
        assert sleeps == []

    def test_recovers_after_transient_failures(self):
        fn = _Flaky(2)
        sleeps = []
        policy = RetryPolicy(max_retries=3, initial_delay=0.1, backoff_factor=2.0)

        assert call_with_retry(fn, policy=policy, sleep=sleeps.append) == "ok"
        assert fn.calls == 3
        assert sleeps == [0.1, 0.2]

    def test_exhaustion_raises_unavailable_with_context(self):
        fn = _Flaky(10)
        sleeps = []
        policy = RetryPolicy(max_retries=2, initial_delay=0.0)

        with pytest.raises(LedgerUnavailableException) as exc_info:
            call_with_retry(fn, "B-9", policy=policy, context="B-9", sleep=sleeps.append)

        error = exc_info.value
        assert fn.calls == 3
        assert len(sleeps) == 2
        assert error.retryable
        assert error.details["batch_id"] == "B-9"
        assert error.details["attempts"] == 3
        assert error.details["last_error"] == "outage #3"

    def test_non_transient_error_not_retried(self):
        calls = []

        def fn():
            calls.append(1)
            raise LedgerException("reverted")

        with pytest.raises(LedgerException, match="reverted"):
            call_with_retry(fn, policy=RetryPolicy(max_retries=5), sleep=lambda s: None)
        assert len(calls) == 1

    def test_other_exceptions_propagate(self):
        def fn():
            raise KeyError("bug")

        with pytest.raises(KeyError):
            call_with_retry(fn, policy=RetryPolicy(max_retries=5), sleep=lambda s: None)

    def test_attempt_timeout_counts_as_transient(self):
        release = threading.Event()

        def hung():
            release.wait(5)
            return "late"

        policy = RetryPolicy(max_retries=1, initial_delay=0.0, attempt_timeout=0.05)
        try:
            with pytest.raises(LedgerUnavailableException) as exc_info:
                call_with_retry(hung, policy=policy, context="B-1", sleep=lambda s: None)
        finally:
            release.set()

        assert "timed out" in exc_info.value.details["last_error"]

    def test_attempt_timeout_passes_arguments(self):
        policy = RetryPolicy(max_retries=0, attempt_timeout=5.0)
        assert call_with_retry(lambda a, b: a + b, 2, 3, policy=policy) == 5

    @pytest.mark.parametrize("error", [
        ConnectionError("connection reset by peer"),
        TimeoutError("read timed out"),
        OSError("network is unreachable"),
    ])
    def test_transport_errors_count_as_transient(self, error):
        calls = []

        def fn():
            calls.append(1)
            raise error

        with pytest.raises(LedgerUnavailableException) as exc_info:
            call_with_retry(fn, policy=RetryPolicy(max_retries=2, initial_delay=0.0), context="B-3", sleep=lambda s: None)

        assert len(calls) == 3
        assert exc_info.value.details["batch_id"] == "B-3"
