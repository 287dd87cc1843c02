# -*- coding: utf-8 -*-
"""
Tests for the retry/backoff engine.
"""
import random

import pytest

from allscreenshots.errors import (
    ApiError,
    ErrorCode,
    NetworkError,
    RequestTimeoutError,
    ValidationError,
)
from allscreenshots.retry import RetryPolicy


class TestBackoffDelays:
    """Tests for delay computation."""

    def test_default_policy(self):
        policy = RetryPolicy()
        assert policy.max_retries == 3
        assert policy.base_delay == 0.5
        assert policy.max_delay == 30.0
        assert policy.jitter == 0.2

    def test_nominal_exponential(self):
        policy = RetryPolicy(base_delay=1.0, max_delay=60.0, jitter=0.0)
        assert policy.delay_for_attempt(0) == 0.0
        assert policy.delay_for_attempt(1) == 1.0
        assert policy.delay_for_attempt(2) == 2.0
        assert policy.delay_for_attempt(3) == 4.0

    def test_capped_at_max(self):
        policy = RetryPolicy(base_delay=10.0, max_delay=30.0, jitter=0.0)
        assert policy.delay_for_attempt(5) == 30.0

    def test_jitter_within_twenty_percent(self):
        """Each delay lies within +/-20% of the nominal value."""
        policy = RetryPolicy(rng=random.Random(42))
        for _ in range(200):
            for attempt in range(1, 10):
                nominal = policy.nominal_delay(attempt)
                delay = policy.delay_for_attempt(attempt)
                assert nominal * 0.8 <= delay <= nominal * 1.2
                assert delay <= policy.max_delay

    def test_monotonic_up_to_cap(self):
        """Jittered sequence never decreases while below the cap."""
        policy = RetryPolicy(rng=random.Random(7))
        for _ in range(100):
            delays = [policy.delay_for_attempt(attempt) for attempt in range(1, 7)]
            assert delays == sorted(delays)

    def test_invalid_policy(self):
        with pytest.raises(ValueError):
            RetryPolicy(max_retries=-1)
        with pytest.raises(ValueError):
            RetryPolicy(jitter=1.5)


@pytest.mark.asyncio
class TestRetryRun:
    """Tests for RetryPolicy.run()."""

    @staticmethod
    def _scripted(*outcomes):
        calls = []

        async def operation():
            calls.append(len(calls) + 1)
            outcome = outcomes[len(calls) - 1]
            if isinstance(outcome, Exception):
                raise outcome
            return outcome

        return operation, calls

    async def test_success_after_transient_errors(self):
        """Fewer failures than the budget are invisible to the caller."""
        sleeps = []

        async def fake_sleep(delay):
            sleeps.append(delay)

        operation, calls = self._scripted(
            NetworkError("reset"), RequestTimeoutError("slow"), "ok"
        )
        policy = RetryPolicy(max_retries=3, jitter=0.0)

        result = await policy.run(operation, sleep=fake_sleep)

        assert result == "ok"
        assert len(calls) == 3
        assert sleeps == [0.5, 1.0]

    async def test_exhausted_budget_raises_last_error(self):
        """The very last error object is surfaced, not an aggregate."""
        errors = [ApiError(ErrorCode.INTERNAL_ERROR, f"boom {i}", 503) for i in range(4)]

        async def fake_sleep(delay):
            pass

        operation, calls = self._scripted(*errors)
        policy = RetryPolicy(max_retries=3)

        with pytest.raises(ApiError) as exc_info:
            await policy.run(operation, sleep=fake_sleep)

        assert exc_info.value is errors[-1]
        assert len(calls) == 4

    async def test_non_retryable_stops_immediately(self):
        async def fake_sleep(delay):
            raise AssertionError("should not sleep")

        unauthorized = ApiError(ErrorCode.UNAUTHORIZED, "bad key", 401)
        operation, calls = self._scripted(unauthorized, "never")

        with pytest.raises(ApiError) as exc_info:
            await RetryPolicy(max_retries=5).run(operation, sleep=fake_sleep)

        assert exc_info.value is unauthorized
        assert len(calls) == 1

    async def test_validation_error_never_retried(self):
        operation, calls = self._scripted(ValidationError("url", "required"), "never")

        with pytest.raises(ValidationError):
            await RetryPolicy().run(operation)

        assert len(calls) == 1

    async def test_zero_retries(self):
        async def fake_sleep(delay):
            pass

        operation, calls = self._scripted(NetworkError("down"), "never")

        with pytest.raises(NetworkError):
            await RetryPolicy(max_retries=0).run(operation, sleep=fake_sleep)

        assert len(calls) == 1
