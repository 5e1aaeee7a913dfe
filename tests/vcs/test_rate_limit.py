"""Tests for the rate limit governor and retry policy."""

import asyncio
from datetime import datetime, timedelta, timezone

import httpx
import pytest

from contributor_trust_guard.errors import (
    PermanentError,
    RateLimitError,
    TransientError,
    UserNotFoundError,
)
from contributor_trust_guard.vcs.rate_limit import (
    RateLimitStatus,
    RetryPolicy,
    RetryState,
    calculate_wait_time,
    execute_with_retry,
    is_rate_limit_error,
    is_transient_error,
    parse_rate_limit,
    rate_limit_backoff,
    should_wait,
    transient_backoff,
    wait_with_logging,
)

NOW = datetime(2025, 6, 15, 12, 0, tzinfo=timezone.utc)


def _status(remaining: int, reset_in: float = 30) -> RateLimitStatus:
    return RateLimitStatus(
        remaining=remaining, reset_at=NOW + timedelta(seconds=reset_in), used=10
    )


class FakeSleep:
    """Records requested sleeps instead of sleeping."""

    def __init__(self):
        self.calls = []

    async def __call__(self, seconds):
        self.calls.append(seconds)


class TestGovernor:
    """Test the preemptive wait decision."""

    def test_should_wait(self):
        assert should_wait(None) is False
        assert should_wait(_status(99)) is True
        assert should_wait(_status(100)) is False
        assert should_wait(_status(4000)) is False

    def test_wait_time_zero_without_status(self):
        assert calculate_wait_time(None, now=NOW) == 0

    def test_wait_time_zero_with_plenty_of_quota(self):
        assert calculate_wait_time(_status(101), now=NOW) == 0

    def test_wait_time_until_reset(self):
        assert calculate_wait_time(_status(50, reset_in=30), now=NOW) == 30

    def test_wait_time_capped_at_sixty_seconds(self):
        assert calculate_wait_time(_status(0, reset_in=3600), now=NOW) == 60

    def test_wait_time_zero_after_reset(self):
        assert calculate_wait_time(_status(0, reset_in=-5), now=NOW) == 0

    def test_parse_rate_limit(self):
        status = parse_rate_limit(
            {"remaining": 4321, "resetAt": "2025-06-15T13:00:00Z", "used": 679}
        )
        assert status.remaining == 4321
        assert status.used == 679
        assert status.limit == 5000
        assert status.reset_at == datetime(2025, 6, 15, 13, 0, tzinfo=timezone.utc)
        assert parse_rate_limit(None) is None


class TestBackoff:
    def test_rate_limit_backoff_schedule(self):
        assert [rate_limit_backoff(a) for a in range(8)] == [1, 2, 4, 8, 16, 32, 60, 60]

    def test_transient_backoff_schedule(self):
        assert [transient_backoff(a) for a in range(8)] == [0.5, 1, 2, 4, 8, 16, 30, 30]


class TestErrorClassification:
    """Test rate-limit and transient error detection."""

    @pytest.mark.parametrize(
        "error",
        [
            RateLimitError("quota"),
            Exception("API rate limit exceeded for user"),
            Exception("You have exceeded a secondary rate limit"),
        ],
    )
    def test_rate_limit_errors(self, error):
        assert is_rate_limit_error(error) is True

    def test_permanent_error_is_never_rate_limited(self):
        assert is_rate_limit_error(PermanentError("rate limit in a query name")) is False

    @pytest.mark.parametrize(
        "error",
        [
            TransientError("flaky"),
            httpx.ConnectError("connection refused"),
            Exception("read ECONNRESET"),
            Exception("socket hang up"),
            Exception("Request failed with status 502"),
            Exception("Service Unavailable"),
        ],
    )
    def test_transient_errors(self, error):
        assert is_transient_error(error) is True

    def test_status_attribute_marks_transient(self):
        error = Exception("boom")
        error.status = 503
        assert is_transient_error(error) is True

    @pytest.mark.parametrize(
        "error",
        [
            ValueError("bad value"),
            Exception("status 5021 is not an HTTP code"),
            UserNotFoundError("ghost"),
        ],
    )
    def test_other_errors_are_not_transient(self, error):
        assert is_transient_error(error) is False


class TestRetryPolicy:
    """Test the bounded retry state machine."""

    def test_success_on_first_attempt(self):
        sleep = FakeSleep()
        policy = RetryPolicy(sleep=sleep)

        async def fn():
            return "ok"

        assert asyncio.run(policy.execute(fn)) == "ok"
        assert policy.attempts == 1
        assert policy.state is RetryState.SUCCEEDED
        assert sleep.calls == []

    def test_single_attempt_never_sleeps(self):
        """max_retries=1 calls the function once and rethrows."""
        sleep = FakeSleep()
        calls = []

        async def fn():
            calls.append(1)
            raise TransientError("still down")

        with pytest.raises(TransientError):
            asyncio.run(execute_with_retry(fn, max_retries=1, sleep=sleep))

        assert len(calls) == 1
        assert sleep.calls == []

    def test_transient_error_is_retried(self):
        sleep = FakeSleep()
        attempts = []

        async def fn():
            attempts.append(1)
            if len(attempts) < 3:
                raise TransientError("502 Bad Gateway")
            return {"data": 1}

        policy = RetryPolicy(sleep=sleep, verbose=False)
        assert asyncio.run(policy.execute(fn)) == {"data": 1}
        assert policy.attempts == 3
        assert sleep.calls == [0.5, 1.0]

    def test_rate_limit_uses_its_own_schedule(self):
        sleep = FakeSleep()
        attempts = []

        async def fn():
            attempts.append(1)
            if len(attempts) == 1:
                raise RateLimitError("API rate limit exceeded")
            return "ok"

        assert asyncio.run(execute_with_retry(fn, sleep=sleep)) == "ok"
        assert sleep.calls == [1.0]

    def test_exhaustion_propagates_last_error(self):
        sleep = FakeSleep()

        async def fn():
            raise TransientError("gateway timeout")

        policy = RetryPolicy(max_retries=3, sleep=sleep, verbose=False)
        with pytest.raises(TransientError, match="gateway timeout"):
            asyncio.run(policy.execute(fn))

        assert policy.attempts == 3
        assert policy.state is RetryState.EXHAUSTED
        assert sleep.calls == [0.5, 1.0]

    def test_permanent_error_is_not_retried(self):
        sleep = FakeSleep()
        calls = []

        async def fn():
            calls.append(1)
            raise UserNotFoundError("ghost")

        policy = RetryPolicy(sleep=sleep)
        with pytest.raises(UserNotFoundError):
            asyncio.run(policy.execute(fn))

        assert len(calls) == 1
        assert sleep.calls == []
        assert policy.state is RetryState.FAILED

    def test_unclassified_error_propagates_immediately(self):
        sleep = FakeSleep()

        async def fn():
            raise KeyError("data")

        policy = RetryPolicy(sleep=sleep)
        with pytest.raises(KeyError):
            asyncio.run(policy.execute(fn))
        assert sleep.calls == []
        assert policy.state is RetryState.FAILED

    def test_quiet_policy_does_not_announce_retries(self, capsys):
        attempts = []

        async def fn():
            attempts.append(1)
            if len(attempts) == 1:
                raise TransientError("502 Bad Gateway")
            return "ok"

        quiet = RetryPolicy(sleep=FakeSleep(), verbose=False)
        assert asyncio.run(quiet.execute(fn)) == "ok"
        assert "retrying" not in capsys.readouterr().err

    def test_invalid_max_retries(self):
        with pytest.raises(ValueError):
            RetryPolicy(max_retries=0)


def test_wait_with_logging_sleeps(capsys):
    sleep = FakeSleep()
    asyncio.run(wait_with_logging(12.2, sleep=sleep))

    assert sleep.calls == [12.2]
    assert "waiting 13 seconds" in capsys.readouterr().err


def test_wait_with_logging_skips_zero():
    sleep = FakeSleep()
    asyncio.run(wait_with_logging(0, sleep=sleep))
    assert sleep.calls == []
