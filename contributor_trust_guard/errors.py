"""
Exception types for Contributor Trust Guard.

Fetch errors are split by how the retry policy treats them: rate-limit and
transient errors are retried with their own backoff schedules, permanent errors
propagate immediately.
"""

from datetime import datetime


class TrustGuardError(Exception):
    """Base exception for all Contributor Trust Guard errors."""

    pass


class ConfigurationError(TrustGuardError):
    """Raised when configuration values are missing or invalid."""

    pass


class FetchError(TrustGuardError):
    """Raised when contributor data could not be fetched."""

    pass


class RateLimitError(FetchError):
    """Raised when the GitHub API reports quota exhaustion."""

    def __init__(self, message: str, reset_at: datetime | None = None):
        super().__init__(message)
        self.reset_at = reset_at


class TransientError(FetchError):
    """Raised for network failures and 5xx responses."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class PermanentError(FetchError):
    """Raised for failures that retrying cannot fix (bad query, 4xx)."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class AuthenticationError(PermanentError):
    """Raised when the GitHub token is missing or rejected."""

    pass


class UserNotFoundError(PermanentError):
    """Raised when the requested GitHub user does not exist."""

    def __init__(self, username: str):
        super().__init__(f"User not found: {username}")
        self.username = username
