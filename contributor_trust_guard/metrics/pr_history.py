"""PR history metric: merge rate of the contributor's pull requests."""

from datetime import datetime
from typing import NamedTuple

from contributor_trust_guard.metrics.base import MetricCheckResult, MetricName
from contributor_trust_guard.models import AnalysisWindow, ContributorActivitySnapshot

# PRs smaller than this many changed lines count as "very short"
VERY_SHORT_PR_LINES = 10


class PRHistoryData(NamedTuple):
    total_prs: int
    merged_prs: int
    closed_without_merge: int
    open_prs: int
    merge_rate: float
    average_pr_size: float
    very_short_prs: int
    merged_pr_dates: tuple[datetime, ...]


def extract_pr_history_data(
    snapshot: ContributorActivitySnapshot, window: AnalysisWindow
) -> PRHistoryData:
    """
    Summarize pull requests created inside the analysis window.

    Merge rate is merged / (merged + closed-without-merge); open PRs are left
    out of the denominator, and the rate is 0 when nothing is resolved.
    """
    prs = [pr for pr in snapshot.pull_requests if window.contains(pr.created_at)]

    merged = [pr for pr in prs if pr.merged]
    closed_without_merge = sum(1 for pr in prs if pr.state == "CLOSED" and not pr.merged)
    open_prs = sum(1 for pr in prs if pr.state == "OPEN")

    resolved = len(merged) + closed_without_merge
    merge_rate = len(merged) / resolved if resolved > 0 else 0.0

    sizes = [pr.additions + pr.deletions for pr in prs]
    average_pr_size = sum(sizes) / len(sizes) if sizes else 0.0
    very_short_prs = sum(1 for size in sizes if size < VERY_SHORT_PR_LINES)

    return PRHistoryData(
        total_prs=len(prs),
        merged_prs=len(merged),
        closed_without_merge=closed_without_merge,
        open_prs=open_prs,
        merge_rate=merge_rate,
        average_pr_size=average_pr_size,
        very_short_prs=very_short_prs,
        merged_pr_dates=tuple(pr.merged_at for pr in merged if pr.merged_at is not None),
    )


def check_pr_merge_rate(data: PRHistoryData, threshold: float) -> MetricCheckResult:
    """Check the PR merge rate (0-1) against a minimum threshold."""
    resolved = data.merged_prs + data.closed_without_merge

    if resolved == 0:
        if data.open_prs > 0:
            details = f"No resolved PRs yet ({data.open_prs} still open)"
        else:
            details = "No PRs found in analysis window"
        return MetricCheckResult(
            name=MetricName.PR_MERGE_RATE,
            raw_value=0.0,
            threshold=threshold,
            passed=threshold == 0,
            details=details,
            data_points=data.total_prs,
        )

    passed = data.merge_rate >= threshold
    details = (
        f"{data.merge_rate * 100:.1f}% merge rate "
        f"({data.merged_prs}/{resolved} resolved PRs merged)"
    )
    if threshold > 0:
        comparison = "meets" if passed else "below"
        details += f" ({comparison} threshold >= {threshold * 100:.0f}%)"

    return MetricCheckResult(
        name=MetricName.PR_MERGE_RATE,
        raw_value=data.merge_rate,
        threshold=threshold,
        passed=passed,
        details=details,
        data_points=data.total_prs,
    )
