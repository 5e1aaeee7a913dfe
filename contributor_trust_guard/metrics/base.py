"""
Shared metric types.
"""

from enum import Enum
from typing import NamedTuple


class MetricName(str, Enum):
    """Identity of every threshold check, in evaluation order."""

    PR_MERGE_RATE = "prMergeRate"
    REPO_QUALITY = "repoQuality"
    POSITIVE_REACTIONS = "positiveReactions"
    NEGATIVE_REACTIONS = "negativeReactions"
    ACCOUNT_AGE = "accountAge"
    ACTIVITY_CONSISTENCY = "activityConsistency"
    ISSUE_ENGAGEMENT = "issueEngagement"
    CODE_REVIEWS = "codeReviews"
    MERGER_DIVERSITY = "mergerDiversity"
    REPO_HISTORY_MERGE_RATE = "repoHistoryMergeRate"
    REPO_HISTORY_MIN_PRS = "repoHistoryMinPRs"
    PROFILE_COMPLETENESS = "profileCompleteness"
    SUSPICIOUS_PATTERNS = "suspiciousPatterns"

    def __str__(self) -> str:
        return self.value


# Metrics that carry a configurable numeric threshold
THRESHOLD_METRICS: tuple[MetricName, ...] = tuple(
    name for name in MetricName if name is not MetricName.SUSPICIOUS_PATTERNS
)


class MetricCheckResult(NamedTuple):
    """Outcome of comparing one metric against its threshold."""

    name: MetricName
    raw_value: float
    threshold: float
    passed: bool
    details: str
    data_points: int


def threshold_note(passed: bool, threshold: float) -> str:
    """Suffix describing a minimum threshold, empty when the threshold is 0."""
    if threshold <= 0:
        return ""
    if passed:
        return f" (meets threshold >= {_fmt(threshold)})"
    return f" (below threshold >= {_fmt(threshold)})"


def _fmt(value: float) -> str:
    if float(value).is_integer():
        return str(int(value))
    return f"{value:g}"


def limit_note(passed: bool, limit: float) -> str:
    """Suffix describing a maximum-allowed limit."""
    if passed:
        return f" (within limit <= {_fmt(limit)})"
    return f" (exceeds limit <= {_fmt(limit)})"
