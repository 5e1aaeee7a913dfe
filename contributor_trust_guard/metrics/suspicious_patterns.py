"""
Suspicious activity pattern detection.

Cross-metric rules that flag spam-like or automated contribution behaviour.
Rules are evaluated in a fixed order and every rule that matches adds one
pattern; CRITICAL patterns fail the evaluation outright.
"""

from enum import Enum
from typing import Any, NamedTuple

from contributor_trust_guard.metrics.account_age import AccountData
from contributor_trust_guard.metrics.base import MetricCheckResult, MetricName
from contributor_trust_guard.metrics.merger_diversity import MergerDiversityData
from contributor_trust_guard.metrics.pr_history import PRHistoryData
from contributor_trust_guard.metrics.repo_quality import RepoQualityData

# --- Detection thresholds ---

NEW_ACCOUNT_DAYS = 30
NEW_ACCOUNT_HIGH_PR_COUNT = 25
NEW_ACCOUNT_HIGH_REPO_COUNT = 10
HIGH_PR_RATE = 2.0  # PRs per day of account lifetime
SELF_MERGE_ABUSE_RATE = 0.5
LOW_QUALITY_REPO_STARS = 10
REPO_SPAM_COUNT = 10
REPO_SPAM_AVG_STARS = 10


class PatternSeverity(str, Enum):
    CRITICAL = "CRITICAL"
    WARNING = "WARNING"

    def __str__(self) -> str:
        return self.value


class PatternType(str, Enum):
    SPAM_PATTERN = "SPAM_PATTERN"
    HIGH_PR_RATE = "HIGH_PR_RATE"
    SELF_MERGE_ABUSE = "SELF_MERGE_ABUSE"
    REPO_SPAM = "REPO_SPAM"

    def __str__(self) -> str:
        return self.value


class SuspiciousPattern(NamedTuple):
    type: PatternType
    severity: PatternSeverity
    description: str
    evidence: dict[str, Any]


class SuspiciousPatternData(NamedTuple):
    detected_patterns: tuple[SuspiciousPattern, ...]
    pr_rate: float
    unique_repo_count: int
    self_merge_rate: float
    account_age_in_days: int


def calculate_pr_rate(total_prs: int, account_age_in_days: int) -> float:
    """
    PRs per day of account lifetime.

    For an account created today the PR count itself is returned, so the
    HIGH_PR_RATE rule compares a count against a per-day rate in that case.
    """
    if account_age_in_days > 0:
        return total_prs / account_age_in_days
    return float(total_prs)


def extract_suspicious_patterns(
    pr_history: PRHistoryData,
    repo_quality: RepoQualityData,
    account: AccountData,
    merger_diversity: MergerDiversityData,
) -> SuspiciousPatternData:
    """
    Run every detection rule over already-extracted metric data.

    Args:
        pr_history: PR totals in the analysis window.
        repo_quality: Repositories with merged PRs and their star counts.
        account: Account age.
        merger_diversity: Self-merge statistics.

    Returns:
        SuspiciousPatternData with patterns in rule order.
    """
    patterns: list[SuspiciousPattern] = []

    age = account.age_in_days
    total_prs = pr_history.total_prs
    unique_repo_count = len(repo_quality.contributed_repos)
    self_merge_rate = merger_diversity.self_merge_rate
    pr_rate = calculate_pr_rate(total_prs, age)

    # New account with a burst of PRs across many repositories
    if (
        age < NEW_ACCOUNT_DAYS
        and total_prs > NEW_ACCOUNT_HIGH_PR_COUNT
        and unique_repo_count > NEW_ACCOUNT_HIGH_REPO_COUNT
    ):
        patterns.append(
            SuspiciousPattern(
                type=PatternType.SPAM_PATTERN,
                severity=PatternSeverity.CRITICAL,
                description=(
                    f"New account ({age} days) with unusually high activity: "
                    f"{total_prs} PRs across {unique_repo_count} different repositories."
                ),
                evidence={
                    "accountAgeDays": age,
                    "totalPRs": total_prs,
                    "uniqueRepoCount": unique_repo_count,
                    "threshold_accountAge": NEW_ACCOUNT_DAYS,
                    "threshold_prCount": NEW_ACCOUNT_HIGH_PR_COUNT,
                    "threshold_repoCount": NEW_ACCOUNT_HIGH_REPO_COUNT,
                },
            )
        )

    if pr_rate > HIGH_PR_RATE:
        patterns.append(
            SuspiciousPattern(
                type=PatternType.HIGH_PR_RATE,
                severity=PatternSeverity.WARNING,
                description=(
                    f"High PR submission rate: {pr_rate:.2f} PRs/day over account lifetime. "
                    "This may indicate automated or low-quality submissions."
                ),
                evidence={
                    "prRate": round(pr_rate, 2),
                    "totalPRs": total_prs,
                    "accountAgeDays": age,
                    "threshold": HIGH_PR_RATE,
                },
            )
        )

    # Self-merges concentrated on repositories nobody else uses
    low_quality_repos = [
        repo for repo in repo_quality.contributed_repos if repo.stars < LOW_QUALITY_REPO_STARS
    ]
    low_quality_prs = sum(repo.merged_pr_count for repo in low_quality_repos)
    total_merged = merger_diversity.total_merged_prs

    if (
        total_merged > 0
        and self_merge_rate > SELF_MERGE_ABUSE_RATE
        and low_quality_prs / total_merged > SELF_MERGE_ABUSE_RATE
    ):
        patterns.append(
            SuspiciousPattern(
                type=PatternType.SELF_MERGE_ABUSE,
                severity=PatternSeverity.CRITICAL,
                description=(
                    "High rate of self-merges on low-quality repositories. "
                    f"{self_merge_rate * 100:.0f}% self-merge rate with "
                    f"{low_quality_prs}/{total_merged} PRs to repos with "
                    f"<{LOW_QUALITY_REPO_STARS} stars."
                ),
                evidence={
                    "selfMergeRate": round(self_merge_rate * 100, 1),
                    "lowQualityPRs": low_quality_prs,
                    "totalMergedPRs": total_merged,
                    "lowQualityRepoCount": len(low_quality_repos),
                    "threshold_selfMergeRate": SELF_MERGE_ABUSE_RATE * 100,
                    "threshold_stars": LOW_QUALITY_REPO_STARS,
                },
            )
        )

    if (
        unique_repo_count > REPO_SPAM_COUNT
        and repo_quality.average_repo_stars < REPO_SPAM_AVG_STARS
    ):
        patterns.append(
            SuspiciousPattern(
                type=PatternType.REPO_SPAM,
                severity=PatternSeverity.WARNING,
                description=(
                    f"Contributions spread across {unique_repo_count} repositories with an "
                    f"average of only {repo_quality.average_repo_stars:.0f} stars. "
                    "May indicate targeting of low-quality repos."
                ),
                evidence={
                    "uniqueRepoCount": unique_repo_count,
                    "averageStars": round(repo_quality.average_repo_stars, 1),
                    "threshold_repoCount": REPO_SPAM_COUNT,
                    "threshold_avgStars": REPO_SPAM_AVG_STARS,
                },
            )
        )

    return SuspiciousPatternData(
        detected_patterns=tuple(patterns),
        pr_rate=pr_rate,
        unique_repo_count=unique_repo_count,
        self_merge_rate=self_merge_rate,
        account_age_in_days=age,
    )


def has_critical_spam_patterns(data: SuspiciousPatternData | None) -> bool:
    if data is None:
        return False
    return any(p.severity is PatternSeverity.CRITICAL for p in data.detected_patterns)


def check_suspicious_patterns(data: SuspiciousPatternData) -> MetricCheckResult:
    """Fail on any CRITICAL pattern; warnings pass but are listed in details."""
    critical = [p for p in data.detected_patterns if p.severity is PatternSeverity.CRITICAL]
    warnings = [p for p in data.detected_patterns if p.severity is PatternSeverity.WARNING]

    if not data.detected_patterns:
        return MetricCheckResult(
            name=MetricName.SUSPICIOUS_PATTERNS,
            raw_value=0,
            threshold=0,
            passed=True,
            details="No suspicious activity patterns detected.",
            data_points=1,
        )

    if critical:
        types = ", ".join(str(p.type) for p in critical)
        descriptions = " ".join(p.description for p in critical)
        return MetricCheckResult(
            name=MetricName.SUSPICIOUS_PATTERNS,
            raw_value=len(critical),
            threshold=0,
            passed=False,
            details=(
                f"CRITICAL: {len(critical)} suspicious pattern(s) detected: {types}. "
                f"{descriptions}"
            ),
            data_points=1,
        )

    types = ", ".join(str(p.type) for p in warnings)
    descriptions = " ".join(p.description for p in warnings)
    return MetricCheckResult(
        name=MetricName.SUSPICIOUS_PATTERNS,
        raw_value=len(warnings),
        threshold=0,
        passed=True,
        details=f"{len(warnings)} warning pattern(s) noted: {types}. {descriptions}",
        data_points=1,
    )
