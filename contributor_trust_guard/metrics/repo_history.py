"""Repository history metrics: the contributor's track record in the target repository."""

from typing import NamedTuple

from contributor_trust_guard.metrics.base import MetricCheckResult, MetricName, threshold_note
from contributor_trust_guard.models import AnalysisWindow, ContributorActivitySnapshot, PRContext


class RepoHistoryData(NamedTuple):
    repo_name: str
    total_prs_in_repo: int
    merged_prs_in_repo: int
    closed_without_merge_in_repo: int
    repo_merge_rate: float
    is_first_time_contributor: bool


def extract_repo_history_data(
    snapshot: ContributorActivitySnapshot,
    pr_context: PRContext,
    window: AnalysisWindow,
) -> RepoHistoryData:
    """Merge-rate summary of PRs in ``pr_context``'s repository (case-insensitive match)."""
    target = pr_context.full_name.lower()
    prs = [
        pr
        for pr in snapshot.pull_requests
        if pr.repository is not None
        and pr.repository.full_name.lower() == target
        and window.contains(pr.created_at)
    ]

    merged = sum(1 for pr in prs if pr.merged)
    closed_without_merge = sum(1 for pr in prs if pr.state == "CLOSED" and not pr.merged)
    resolved = merged + closed_without_merge

    return RepoHistoryData(
        repo_name=pr_context.full_name,
        total_prs_in_repo=len(prs),
        merged_prs_in_repo=merged,
        closed_without_merge_in_repo=closed_without_merge,
        repo_merge_rate=merged / resolved if resolved > 0 else 0.0,
        is_first_time_contributor=merged == 0,
    )


def check_repo_history_merge_rate(data: RepoHistoryData, threshold: float) -> MetricCheckResult:
    """Check the merge rate (0-1) inside the target repository."""
    if data.total_prs_in_repo == 0:
        return MetricCheckResult(
            name=MetricName.REPO_HISTORY_MERGE_RATE,
            raw_value=0.0,
            threshold=threshold,
            passed=threshold == 0,
            details=f"First-time contributor to {data.repo_name}. No prior PR history.",
            data_points=0,
        )

    resolved = data.merged_prs_in_repo + data.closed_without_merge_in_repo
    if resolved == 0:
        return MetricCheckResult(
            name=MetricName.REPO_HISTORY_MERGE_RATE,
            raw_value=0.0,
            threshold=threshold,
            passed=threshold == 0,
            details=f"All {data.total_prs_in_repo} PRs in {data.repo_name} are still open.",
            data_points=data.total_prs_in_repo,
        )

    rate = data.repo_merge_rate
    passed = rate >= threshold
    comparison = "meets" if passed else "below"
    details = (
        f"Repo merge rate {rate * 100:.1f}% {comparison} threshold (>= {threshold * 100:.0f}%). "
        f"{data.merged_prs_in_repo}/{resolved} PRs merged in {data.repo_name}"
    )

    return MetricCheckResult(
        name=MetricName.REPO_HISTORY_MERGE_RATE,
        raw_value=rate,
        threshold=threshold,
        passed=passed,
        details=details,
        data_points=data.total_prs_in_repo,
    )


def check_repo_history_min_prs(data: RepoHistoryData, threshold: float) -> MetricCheckResult:
    """Check the number of earlier PRs in the target repository."""
    total = data.total_prs_in_repo
    passed = total >= threshold

    if data.is_first_time_contributor:
        details = f"First-time contributor to {data.repo_name}. No prior PR history."
    else:
        details = f"Has {total} PRs in {data.repo_name}" + threshold_note(passed, threshold)

    return MetricCheckResult(
        name=MetricName.REPO_HISTORY_MIN_PRS,
        raw_value=total,
        threshold=threshold,
        passed=passed,
        details=details,
        data_points=total,
    )
