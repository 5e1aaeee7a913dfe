"""
Rate limit governor and retry policy for GitHub API calls.

The governor functions are pure: they look at an immutable ``RateLimitStatus``
snapshot and decide how long to wait. ``RetryPolicy`` composes those decisions
with an async callable and owns the bound on attempts.
"""

import asyncio
import math
import re
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Awaitable, Callable, NamedTuple, TypeVar

import httpx
from rich.console import Console
from rich.markup import escape

from contributor_trust_guard.errors import PermanentError, RateLimitError, TransientError
from contributor_trust_guard.models import parse_datetime

console = Console(stderr=True)

T = TypeVar("T")

# --- Constants ---

# Minimum remaining requests before we start being cautious
RATE_LIMIT_THRESHOLD = 100
# Preemptive waits never exceed this many seconds
MAX_WAIT_SECONDS = 60.0
# GraphQL API default hourly quota, used when a response omits "limit"
DEFAULT_RATE_LIMIT = 5000

MAX_RETRIES = 3
BASE_RATE_LIMIT_WAIT = 1.0
MAX_RATE_LIMIT_WAIT = 60.0
BASE_TRANSIENT_WAIT = 0.5
MAX_TRANSIENT_WAIT = 30.0

_NETWORK_MARKERS = (
    "econnreset",
    "etimedout",
    "enotfound",
    "socket hang up",
    "network",
    "fetch failed",
)
_SERVER_ERROR_MARKERS = (
    "internal server error",
    "bad gateway",
    "service unavailable",
    "gateway timeout",
)
_SERVER_ERROR_CODE = re.compile(r"\b50[0234]\b")


class RateLimitStatus(NamedTuple):
    """Quota telemetry from the most recent successful call."""

    remaining: int
    reset_at: datetime
    used: int
    limit: int = DEFAULT_RATE_LIMIT


def parse_rate_limit(data: dict[str, Any] | None) -> RateLimitStatus | None:
    """Parse the ``rateLimit`` block of a GraphQL response."""
    if not data:
        return None
    reset_at = parse_datetime(data.get("resetAt")) or datetime.now(timezone.utc)
    return RateLimitStatus(
        remaining=int(data.get("remaining", 0)),
        reset_at=reset_at,
        used=int(data.get("used", 0)),
        limit=int(data.get("limit") or DEFAULT_RATE_LIMIT),
    )


def should_wait(status: RateLimitStatus | None) -> bool:
    """True if the remaining quota is below the low-water mark."""
    if status is None:
        return False
    return status.remaining < RATE_LIMIT_THRESHOLD


def calculate_wait_time(status: RateLimitStatus | None, now: datetime | None = None) -> float:
    """
    Seconds to wait before the next request.

    Zero when there is no status yet, when quota is above the low-water mark,
    or when the reset time has already passed; otherwise the time until reset
    capped at ``MAX_WAIT_SECONDS``.
    """
    if status is None or status.remaining > RATE_LIMIT_THRESHOLD:
        return 0.0

    now = now or datetime.now(timezone.utc)
    seconds_until_reset = (status.reset_at - now).total_seconds()
    if seconds_until_reset <= 0:
        return 0.0

    return min(seconds_until_reset, MAX_WAIT_SECONDS)


def rate_limit_backoff(attempt: int) -> float:
    """Backoff after a rate-limit error on zero-based ``attempt``."""
    return min(BASE_RATE_LIMIT_WAIT * 2**attempt, MAX_RATE_LIMIT_WAIT)


def transient_backoff(attempt: int) -> float:
    """Backoff after a transient error on zero-based ``attempt``."""
    return min(BASE_TRANSIENT_WAIT * 2**attempt, MAX_TRANSIENT_WAIT)


def is_rate_limit_error(error: BaseException) -> bool:
    """Check if an error signals quota exhaustion."""
    if isinstance(error, PermanentError):
        return False
    if isinstance(error, RateLimitError):
        return True
    return "rate limit" in str(error).lower()


def is_transient_error(error: BaseException) -> bool:
    """Check if an error is a network failure or a 5xx server error."""
    if isinstance(error, PermanentError):
        return False
    if isinstance(error, (TransientError, httpx.TransportError)):
        return True

    message = str(error).lower()
    if any(marker in message for marker in _NETWORK_MARKERS):
        return True
    if _SERVER_ERROR_CODE.search(message):
        return True
    if any(marker in message for marker in _SERVER_ERROR_MARKERS):
        return True

    status = getattr(error, "status_code", None) or getattr(error, "status", None)
    if isinstance(error, httpx.HTTPStatusError):
        status = error.response.status_code
    return isinstance(status, int) and 500 <= status < 600


class RetryState(str, Enum):
    ATTEMPTING = "attempting"
    BACKING_OFF = "backing_off"
    SUCCEEDED = "succeeded"
    EXHAUSTED = "exhausted"
    FAILED = "failed"


class RetryPolicy:
    """
    Bounded retry state machine.

    ATTEMPTING -> BACKING_OFF -> ... -> SUCCEEDED | EXHAUSTED | FAILED.

    Rate-limit errors and transient errors are retried with separate
    exponential schedules; anything else ends the run immediately in FAILED.
    EXHAUSTED means a retryable error was still raised on the final attempt.
    The worst case wall-clock time is the sum of ``max_retries - 1`` backoffs.
    """

    def __init__(
        self,
        max_retries: int = MAX_RETRIES,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        verbose: bool = True,
    ):
        if max_retries < 1:
            raise ValueError("max_retries must be at least 1")
        self.max_retries = max_retries
        self._sleep = sleep
        self.verbose = verbose
        self.state = RetryState.ATTEMPTING
        self.attempts = 0

    def backoff_for(self, error: BaseException, attempt: int) -> float | None:
        """Wait before the next attempt, or None if ``error`` must propagate."""
        if attempt >= self.max_retries - 1:
            return None
        if is_rate_limit_error(error):
            return rate_limit_backoff(attempt)
        if is_transient_error(error):
            return transient_backoff(attempt)
        return None

    async def execute(self, fn: Callable[[], Awaitable[T]]) -> T:
        """Run ``fn`` until it succeeds or the policy gives up."""
        self.state = RetryState.ATTEMPTING
        self.attempts = 0

        for attempt in range(self.max_retries):
            self.attempts = attempt + 1
            self.state = RetryState.ATTEMPTING
            try:
                result = await fn()
            except Exception as error:
                wait = self.backoff_for(error, attempt)
                if wait is None:
                    retryable = is_rate_limit_error(error) or is_transient_error(error)
                    self.state = RetryState.EXHAUSTED if retryable else RetryState.FAILED
                    raise
                self.state = RetryState.BACKING_OFF
                if self.verbose:
                    kind = "Rate limit" if is_rate_limit_error(error) else "Transient"
                    console.print(
                        f"[yellow]{kind} error (attempt {attempt + 1}), "
                        f"retrying in {wait:g}s: {escape(str(error))}[/yellow]"
                    )
                await self._sleep(wait)
                continue
            self.state = RetryState.SUCCEEDED
            return result

        # Unreachable: the final attempt either returns or raises.
        raise RuntimeError("retry loop exited without a result")


async def execute_with_retry(
    fn: Callable[[], Awaitable[T]],
    max_retries: int = MAX_RETRIES,
    sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
) -> T:
    """Execute ``fn`` with retry for rate-limit and transient errors."""
    return await RetryPolicy(max_retries=max_retries, sleep=sleep).execute(fn)


async def wait_with_logging(
    seconds: float,
    sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
) -> None:
    """Sleep for a preemptive rate-limit wait, announcing it first."""
    if seconds <= 0:
        return
    console.print(
        f"[yellow]Rate limit low, waiting {math.ceil(seconds)} seconds...[/yellow]"
    )
    await sleep(seconds)
