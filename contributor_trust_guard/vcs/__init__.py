"""
VCS access layer for Contributor Trust Guard.

This module fetches contributor activity from GitHub and governs API usage
(rate-limit waits and retries).
"""

from contributor_trust_guard.vcs.github import GitHubProvider
from contributor_trust_guard.vcs.rate_limit import (
    RateLimitStatus,
    RetryPolicy,
    calculate_wait_time,
    execute_with_retry,
    is_rate_limit_error,
    is_transient_error,
    should_wait,
)

__all__ = [
    "GitHubProvider",
    "RateLimitStatus",
    "RetryPolicy",
    "calculate_wait_time",
    "execute_with_retry",
    "is_rate_limit_error",
    "is_transient_error",
    "should_wait",
]
