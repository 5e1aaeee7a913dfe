"""
Merger diversity metric.

Looks at who merged the contributor's pull requests. Merges by many different
maintainers are a trust signal; a history made only of self-merges on the
contributor's own repositories demonstrates no external trust at all.
"""

from typing import NamedTuple

from contributor_trust_guard.metrics.base import MetricCheckResult, MetricName, threshold_note
from contributor_trust_guard.models import AnalysisWindow, ContributorActivitySnapshot


class MergerDiversityData(NamedTuple):
    total_merged_prs: int
    unique_mergers: int
    self_merge_count: int
    others_merge_count: int
    self_merges_on_own_repos: int
    self_merges_on_external_repos: int
    external_repos_with_merge_privilege: tuple[str, ...]
    only_self_merges_on_own_repos: bool
    self_merge_rate: float
    merger_logins: tuple[str, ...]


def extract_merger_diversity_data(
    snapshot: ContributorActivitySnapshot,
    username: str,
    window: AnalysisWindow,
) -> MergerDiversityData:
    """
    Classify merged PRs (``merged_at`` inside the window) by who merged them.

    Login comparisons are case-insensitive. PRs without a recorded merger are
    counted in the total but in neither the self nor the others bucket.
    """
    user = username.lower()
    merged = [
        pr
        for pr in snapshot.pull_requests
        if pr.merged and pr.merged_at is not None and window.contains(pr.merged_at)
    ]

    mergers: dict[str, None] = {}
    external_repos: dict[str, None] = {}
    self_merges = 0
    others = 0
    own_repo_self_merges = 0
    external_self_merges = 0

    for pr in merged:
        if not pr.merged_by:
            continue
        merger = pr.merged_by.lower()
        mergers[merger] = None

        if merger != user:
            others += 1
            continue

        self_merges += 1
        if pr.repository is not None and pr.repository.owner.lower() == user:
            own_repo_self_merges += 1
        elif pr.repository is not None:
            external_self_merges += 1
            external_repos[pr.repository.full_name] = None

    total = len(merged)

    return MergerDiversityData(
        total_merged_prs=total,
        unique_mergers=len(mergers),
        self_merge_count=self_merges,
        others_merge_count=others,
        self_merges_on_own_repos=own_repo_self_merges,
        self_merges_on_external_repos=external_self_merges,
        external_repos_with_merge_privilege=tuple(external_repos),
        only_self_merges_on_own_repos=(
            total > 0 and own_repo_self_merges == total and others == 0
        ),
        self_merge_rate=self_merges / total if total > 0 else 0.0,
        merger_logins=tuple(mergers),
    )


def check_merger_diversity(data: MergerDiversityData, threshold: float) -> MetricCheckResult:
    """Check the number of distinct mergers against a minimum threshold."""
    if data.total_merged_prs == 0:
        return MetricCheckResult(
            name=MetricName.MERGER_DIVERSITY,
            raw_value=0,
            threshold=threshold,
            passed=threshold == 0,
            details="No merged PRs found in analysis window",
            data_points=0,
        )

    if data.only_self_merges_on_own_repos and threshold > 0:
        return MetricCheckResult(
            name=MetricName.MERGER_DIVERSITY,
            raw_value=0,
            threshold=threshold,
            passed=False,
            details=(
                f"All {data.total_merged_prs} merged PRs are self-merges on own "
                "repositories. No external trust demonstrated."
            ),
            data_points=data.total_merged_prs,
        )

    unique = data.unique_mergers
    passed = unique >= threshold
    self_merge_percent = f"{data.self_merge_rate * 100:.0f}%"

    if data.external_repos_with_merge_privilege:
        details = (
            f"{unique} unique maintainers merged PRs. "
            f"Has merge rights on {len(data.external_repos_with_merge_privilege)} external repos. "
            f"Self-merge rate: {self_merge_percent}"
        )
    elif data.others_merge_count > 0:
        details = (
            f"{unique} unique maintainers merged PRs. "
            f"{data.others_merge_count}/{data.total_merged_prs} merged by others. "
            f"Self-merge rate: {self_merge_percent}"
        )
    else:
        details = (
            f"{unique} unique merger (self only). "
            f"All {data.total_merged_prs} PRs are self-merges."
        )
    details += threshold_note(passed, threshold)

    return MetricCheckResult(
        name=MetricName.MERGER_DIVERSITY,
        raw_value=unique,
        threshold=threshold,
        passed=passed,
        details=details,
        data_points=data.total_merged_prs,
    )
