"""
Core evaluation logic for Contributor Trust Guard.
"""

from datetime import datetime, timezone
from typing import Any, Callable, NamedTuple

from rich.console import Console
from rich.markup import escape

from contributor_trust_guard.config import TrustConfig
from contributor_trust_guard.metrics.account_age import (
    AccountData,
    check_account_age,
    check_activity_consistency,
    extract_account_data,
    is_new_account,
)
from contributor_trust_guard.metrics.base import MetricCheckResult, MetricName
from contributor_trust_guard.metrics.code_reviews import (
    CodeReviewData,
    check_code_reviews,
    extract_code_review_data,
)
from contributor_trust_guard.metrics.issue_engagement import (
    IssueEngagementData,
    check_issue_engagement,
    extract_issue_engagement_data,
)
from contributor_trust_guard.metrics.merger_diversity import (
    MergerDiversityData,
    check_merger_diversity,
    extract_merger_diversity_data,
)
from contributor_trust_guard.metrics.pr_history import (
    PRHistoryData,
    check_pr_merge_rate,
    extract_pr_history_data,
)
from contributor_trust_guard.metrics.profile_completeness import (
    ProfileData,
    check_profile_completeness,
    extract_profile_data,
)
from contributor_trust_guard.metrics.reactions import (
    ReactionData,
    check_negative_reactions,
    check_positive_reactions,
    extract_reaction_data,
)
from contributor_trust_guard.metrics.repo_history import (
    RepoHistoryData,
    check_repo_history_merge_rate,
    check_repo_history_min_prs,
    extract_repo_history_data,
)
from contributor_trust_guard.metrics.repo_quality import (
    RepoQualityData,
    check_repo_quality,
    extract_repo_quality_data,
)
from contributor_trust_guard.metrics.suspicious_patterns import (
    SuspiciousPatternData,
    check_suspicious_patterns,
    extract_suspicious_patterns,
    has_critical_spam_patterns,
)
from contributor_trust_guard.models import (
    AnalysisWindow,
    ContributorActivitySnapshot,
    PRContext,
)

console = Console(stderr=True)

# --- Constants ---

# Fewer data points than this across all checks means limited data
MIN_CONTRIBUTIONS_FOR_DATA = 5
# Accounts younger than this are not nagged about activity consistency
CONSISTENCY_RECOMMENDATION_MIN_AGE_DAYS = 90

CRITICAL_PATTERN_RECOMMENDATION = (
    "CRITICAL: Suspicious activity patterns detected. This account exhibits "
    "characteristics commonly associated with spam or automated contributions."
)
GENERIC_RECOMMENDATION = (
    "Build your GitHub profile through meaningful contributions, code reviews, "
    "and community engagement."
)


class AllMetricsData(NamedTuple):
    """Output of every extractor for one contributor."""

    pr_history: PRHistoryData
    repo_quality: RepoQualityData
    reactions: ReactionData
    account: AccountData
    issue_engagement: IssueEngagementData
    code_reviews: CodeReviewData
    merger_diversity: MergerDiversityData
    repo_history: RepoHistoryData
    profile: ProfileData
    suspicious_patterns: SuspiciousPatternData | None = None


class AnalysisResult(NamedTuple):
    """The result of a contributor evaluation."""

    passed: bool
    passed_count: int
    total_metrics: int
    metrics: list[MetricCheckResult]
    failed_metrics: list[MetricName]
    recommendations: list[str]
    username: str
    analyzed_at: datetime
    data_window_start: datetime
    data_window_end: datetime
    is_new_account: bool = False
    has_limited_data: bool = False
    was_whitelisted: bool = False
    metrics_data: AllMetricsData | None = None

    def to_dict(self) -> dict[str, Any]:
        """JSON-friendly representation (metric data omitted)."""
        return {
            "username": self.username,
            "passed": self.passed,
            "passedCount": self.passed_count,
            "totalMetrics": self.total_metrics,
            "failedMetrics": [str(name) for name in self.failed_metrics],
            "metrics": [
                {
                    "name": str(m.name),
                    "rawValue": m.raw_value,
                    "threshold": m.threshold,
                    "passed": m.passed,
                    "details": m.details,
                    "dataPoints": m.data_points,
                }
                for m in self.metrics
            ],
            "recommendations": list(self.recommendations),
            "analyzedAt": self.analyzed_at.isoformat(),
            "dataWindowStart": self.data_window_start.isoformat(),
            "dataWindowEnd": self.data_window_end.isoformat(),
            "isNewAccount": self.is_new_account,
            "hasLimitedData": self.has_limited_data,
            "wasWhitelisted": self.was_whitelisted,
        }


# --- Extraction & Checks ---


def extract_all_metrics(
    snapshot: ContributorActivitySnapshot,
    config: TrustConfig,
    pr_context: PRContext,
) -> AllMetricsData:
    """Run every extractor, then the pattern detector when spam detection is enabled."""
    window = snapshot.window

    pr_history = extract_pr_history_data(snapshot, window)
    repo_quality = extract_repo_quality_data(snapshot, config.minimum_stars, window)
    account = extract_account_data(snapshot, window, config.analysis_window_months)
    merger_diversity = extract_merger_diversity_data(snapshot, snapshot.login, window)

    suspicious_patterns = None
    if config.enable_spam_detection:
        suspicious_patterns = extract_suspicious_patterns(
            pr_history, repo_quality, account, merger_diversity
        )

    return AllMetricsData(
        pr_history=pr_history,
        repo_quality=repo_quality,
        reactions=extract_reaction_data(snapshot),
        account=account,
        issue_engagement=extract_issue_engagement_data(snapshot),
        code_reviews=extract_code_review_data(snapshot),
        merger_diversity=merger_diversity,
        repo_history=extract_repo_history_data(snapshot, pr_context, window),
        profile=extract_profile_data(snapshot),
        suspicious_patterns=suspicious_patterns,
    )


_METRIC_CHECKS: dict[MetricName, Callable[[AllMetricsData, float], MetricCheckResult]] = {
    MetricName.PR_MERGE_RATE: lambda d, t: check_pr_merge_rate(d.pr_history, t),
    MetricName.REPO_QUALITY: lambda d, t: check_repo_quality(d.repo_quality, t),
    MetricName.POSITIVE_REACTIONS: lambda d, t: check_positive_reactions(d.reactions, t),
    MetricName.NEGATIVE_REACTIONS: lambda d, t: check_negative_reactions(d.reactions, t),
    MetricName.ACCOUNT_AGE: lambda d, t: check_account_age(d.account, t),
    MetricName.ACTIVITY_CONSISTENCY: lambda d, t: check_activity_consistency(d.account, t),
    MetricName.ISSUE_ENGAGEMENT: lambda d, t: check_issue_engagement(d.issue_engagement, t),
    MetricName.CODE_REVIEWS: lambda d, t: check_code_reviews(d.code_reviews, t),
    MetricName.MERGER_DIVERSITY: lambda d, t: check_merger_diversity(d.merger_diversity, t),
    MetricName.REPO_HISTORY_MERGE_RATE: lambda d, t: check_repo_history_merge_rate(
        d.repo_history, t
    ),
    MetricName.REPO_HISTORY_MIN_PRS: lambda d, t: check_repo_history_min_prs(d.repo_history, t),
    MetricName.PROFILE_COMPLETENESS: lambda d, t: check_profile_completeness(d.profile, t),
}


def check_all_metrics(metrics_data: AllMetricsData, config: TrustConfig) -> list[MetricCheckResult]:
    """
    Compare every metric with its configured threshold.

    Results follow ``MetricName`` order; the suspicious patterns check is
    appended last, and only when detection ran.
    """
    results = []
    for name in MetricName:
        if name is MetricName.SUSPICIOUS_PATTERNS:
            if metrics_data.suspicious_patterns is not None:
                results.append(check_suspicious_patterns(metrics_data.suspicious_patterns))
            continue
        results.append(_METRIC_CHECKS[name](metrics_data, config.thresholds.for_metric(name)))
    return results


def determine_pass_status(
    metrics: list[MetricCheckResult], required_metrics: list[str] | tuple[str, ...]
) -> bool:
    """
    Decide the overall verdict.

    With no required metrics every check must pass. Otherwise only the named
    metrics count, and a required metric that was not evaluated passes. A
    failed suspicious patterns check fails the verdict either way.
    """
    if any(
        m.name is MetricName.SUSPICIOUS_PATTERNS and not m.passed for m in metrics
    ):
        return False

    if not required_metrics:
        return all(m.passed for m in metrics)

    by_name = {m.name.value: m for m in metrics}
    for name in required_metrics:
        metric = by_name.get(str(name))
        if metric is not None and not metric.passed:
            return False
    return True


# --- Recommendations ---


def _recommend_merger_diversity(data: AllMetricsData) -> str | None:
    if data.merger_diversity.only_self_merges_on_own_repos:
        return (
            "Build trust by contributing to external projects where other "
            "maintainers can review and merge your work."
        )
    return (
        "Increase trust signals by contributing to more diverse projects and "
        "getting PRs merged by different maintainers."
    )


def _recommend_repo_history_merge_rate(data: AllMetricsData) -> str | None:
    if data.repo_history.is_first_time_contributor:
        return "Welcome! This is your first contribution to this repository."
    return (
        "Review previous rejected PRs in this repository to understand "
        "maintainer expectations."
    )


def _recommend_activity_consistency(data: AllMetricsData) -> str | None:
    # Young accounts cannot show consistency yet
    if data.account.age_in_days < CONSISTENCY_RECOMMENDATION_MIN_AGE_DAYS:
        return None
    return "Maintain consistent activity over time to build a stronger contribution profile."


def _recommend_profile_completeness(data: AllMetricsData) -> str | None:
    missing = []
    if not data.profile.has_bio:
        missing.append("bio")
    if not data.profile.has_company:
        missing.append("company/affiliation")
    if data.profile.followers_count == 0:
        missing.append("GitHub followers (engage with community)")
    if not missing:
        return None
    return (
        f"Complete your GitHub profile by adding: {', '.join(missing)}. "
        "A complete profile builds trust with maintainers."
    )


def _fixed(message: str) -> Callable[[AllMetricsData], str | None]:
    return lambda _data: message


_RECOMMENDERS: dict[MetricName, Callable[[AllMetricsData], str | None]] = {
    MetricName.PR_MERGE_RATE: _fixed(
        "Improve PR quality to increase merge rate. Focus on smaller, well-documented changes."
    ),
    MetricName.REPO_QUALITY: _fixed(
        "Consider contributing to established open source projects with "
        "significant community adoption."
    ),
    MetricName.POSITIVE_REACTIONS: _fixed(
        "Engage more with the community through helpful comments and discussions."
    ),
    MetricName.NEGATIVE_REACTIONS: _fixed(
        "Focus on constructive communication to improve community reception."
    ),
    MetricName.ACCOUNT_AGE: _fixed(
        "Continue building your contribution history. New accounts naturally have limited data."
    ),
    MetricName.ACTIVITY_CONSISTENCY: _recommend_activity_consistency,
    MetricName.ISSUE_ENGAGEMENT: _fixed(
        "Create issues to report bugs or suggest features, and engage with the community."
    ),
    MetricName.CODE_REVIEWS: _fixed(
        "Participate in code reviews to demonstrate engagement with the community."
    ),
    MetricName.MERGER_DIVERSITY: _recommend_merger_diversity,
    MetricName.REPO_HISTORY_MERGE_RATE: _recommend_repo_history_merge_rate,
    MetricName.REPO_HISTORY_MIN_PRS: _fixed(
        "Build trust by making consistent, quality contributions to this repository over time."
    ),
    MetricName.PROFILE_COMPLETENESS: _recommend_profile_completeness,
    # Critical patterns short-circuit before the per-metric pass
    MetricName.SUSPICIOUS_PATTERNS: lambda _data: None,
}


def generate_recommendations(
    metrics_data: AllMetricsData, metrics: list[MetricCheckResult]
) -> list[str]:
    """
    Produce actionable recommendations for failed metrics.

    A critical suspicious pattern yields a single warning and nothing else.
    """
    if has_critical_spam_patterns(metrics_data.suspicious_patterns):
        return [CRITICAL_PATTERN_RECOMMENDATION]

    failed = [m for m in metrics if not m.passed]
    recommendations = []
    for metric in failed:
        message = _RECOMMENDERS[metric.name](metrics_data)
        if message:
            recommendations.append(message)

    if not recommendations and failed:
        recommendations.append(GENERIC_RECOMMENDATION)

    return recommendations


# --- Evaluation ---


def evaluate_contributor(
    snapshot: ContributorActivitySnapshot,
    config: TrustConfig,
    pr_context: PRContext,
    now: datetime | None = None,
) -> AnalysisResult:
    """
    Evaluate a fetched snapshot against the configuration.

    Args:
        snapshot: Contributor activity assembled by the fetcher.
        config: Validated configuration.
        pr_context: The pull request being evaluated.
        now: Evaluation time; defaults to the current UTC time.

    Returns:
        A complete AnalysisResult.
    """
    now = now or datetime.now(timezone.utc)

    metrics_data = extract_all_metrics(snapshot, config, pr_context)
    metrics = check_all_metrics(metrics_data, config)
    passed = determine_pass_status(metrics, config.required_metrics)

    total_data_points = sum(m.data_points for m in metrics)

    return AnalysisResult(
        passed=passed,
        passed_count=sum(1 for m in metrics if m.passed),
        total_metrics=len(metrics),
        metrics=metrics,
        failed_metrics=[m.name for m in metrics if not m.passed],
        recommendations=generate_recommendations(metrics_data, metrics),
        username=snapshot.login,
        analyzed_at=now,
        data_window_start=snapshot.window.start,
        data_window_end=snapshot.window.end,
        is_new_account=is_new_account(metrics_data.account, config.new_account_threshold_days),
        has_limited_data=total_data_points < MIN_CONTRIBUTIONS_FOR_DATA,
        was_whitelisted=False,
        metrics_data=metrics_data,
    )


def whitelisted_result(username: str, window: AnalysisWindow) -> AnalysisResult:
    """Passing result for a trusted user or trusted organization member."""
    return AnalysisResult(
        passed=True,
        passed_count=0,
        total_metrics=0,
        metrics=[],
        failed_metrics=[],
        recommendations=[],
        username=username,
        analyzed_at=window.end,
        data_window_start=window.start,
        data_window_end=window.end,
        was_whitelisted=True,
    )


def is_trusted_user(username: str, trusted_users: tuple[str, ...] | list[str]) -> bool:
    """Case-insensitive membership test against the trusted users list."""
    login = username.lower()
    return any(login == user.lower() for user in trusted_users)


async def analyze_contributor(
    provider,
    pr_context: PRContext,
    config: TrustConfig,
    now: datetime | None = None,
) -> AnalysisResult:
    """
    Run a full evaluation for the author of ``pr_context``.

    Trusted users and members of trusted organizations are whitelisted without
    fetching activity. Otherwise the snapshot is fetched and evaluated.

    Args:
        provider: A GitHubProvider (or compatible object).
        pr_context: The pull request being evaluated.
        config: Validated configuration.
        now: Evaluation time; defaults to the current UTC time.

    Raises:
        FetchError: If contributor data could not be fetched.
    """
    now = now or datetime.now(timezone.utc)
    username = pr_context.author
    window = AnalysisWindow.from_months(config.analysis_window_months, now=now)

    if is_trusted_user(username, config.trusted_users):
        console.print(f"User {escape(username)} is in trusted users list, skipping analysis")
        return whitelisted_result(username, window)

    if config.trusted_orgs and await provider.check_org_membership(
        username, config.trusted_orgs
    ):
        console.print(
            f"User {escape(username)} is member of a trusted organization, skipping analysis"
        )
        return whitelisted_result(username, window)

    console.print(
        f"Analyzing [bold cyan]{escape(username)}[/bold cyan] for "
        f"{pr_context.full_name}#{pr_context.pr_number}..."
    )
    snapshot = await provider.fetch_contributor_snapshot(username, window)
    return evaluate_contributor(snapshot, config, pr_context, now=now)
