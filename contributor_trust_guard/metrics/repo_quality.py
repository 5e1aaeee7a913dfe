"""Repository quality metric: merged contributions to established projects."""

from typing import NamedTuple

from contributor_trust_guard.metrics.base import MetricCheckResult, MetricName, threshold_note
from contributor_trust_guard.models import AnalysisWindow, ContributorActivitySnapshot

TOP_REPOS_LIMIT = 5


class RepoContribution(NamedTuple):
    owner: str
    repo: str
    stars: int
    merged_pr_count: int

    @property
    def full_name(self) -> str:
        return f"{self.owner}/{self.repo}"


class RepoQualityData(NamedTuple):
    contributed_repos: tuple[RepoContribution, ...]
    quality_repo_count: int
    average_repo_stars: float
    highest_star_repo: int


def extract_repo_quality_data(
    snapshot: ContributorActivitySnapshot,
    minimum_stars: int,
    window: AnalysisWindow,
) -> RepoQualityData:
    """
    Group merged PRs in the window by repository.

    Repositories keep the order in which they are first encountered. PRs whose
    repository was deleted or made private are skipped.
    """
    counts: dict[str, RepoContribution] = {}
    for pr in snapshot.pull_requests:
        if not pr.merged or pr.repository is None or not window.contains(pr.created_at):
            continue
        key = pr.repository.full_name.lower()
        existing = counts.get(key)
        if existing is None:
            counts[key] = RepoContribution(
                owner=pr.repository.owner,
                repo=pr.repository.name,
                stars=pr.repository.stars,
                merged_pr_count=1,
            )
        else:
            counts[key] = existing._replace(merged_pr_count=existing.merged_pr_count + 1)

    repos = tuple(counts.values())
    stars = [repo.stars for repo in repos]

    return RepoQualityData(
        contributed_repos=repos,
        quality_repo_count=sum(1 for repo in repos if repo.stars >= minimum_stars),
        average_repo_stars=sum(stars) / len(stars) if stars else 0.0,
        highest_star_repo=max(stars, default=0),
    )


def top_repositories(
    data: RepoQualityData, limit: int = TOP_REPOS_LIMIT
) -> list[RepoContribution]:
    """Most-starred contributed repositories; ties keep encounter order."""
    return sorted(data.contributed_repos, key=lambda repo: repo.stars, reverse=True)[:limit]


def check_repo_quality(data: RepoQualityData, threshold: float) -> MetricCheckResult:
    """Check the number of quality repositories against a minimum threshold."""
    count = data.quality_repo_count
    passed = count >= threshold

    if not data.contributed_repos:
        details = "No merged PRs to any repository in analysis window"
    elif count == 0:
        details = (
            f"Contributed to {len(data.contributed_repos)} repos, "
            "none meet the star threshold"
        )
    else:
        top = ", ".join(
            f"{repo.full_name} ({repo.stars} stars)" for repo in top_repositories(data)
        )
        details = f"Contributed to {count} quality repos: {top}"

    details += threshold_note(passed, threshold)

    return MetricCheckResult(
        name=MetricName.REPO_QUALITY,
        raw_value=count,
        threshold=threshold,
        passed=passed,
        details=details,
        data_points=len(data.contributed_repos),
    )
