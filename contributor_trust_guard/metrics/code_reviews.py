"""Code review metric."""

from typing import NamedTuple

from contributor_trust_guard.metrics.base import MetricCheckResult, MetricName, threshold_note
from contributor_trust_guard.models import ContributorActivitySnapshot


class CodeReviewData(NamedTuple):
    reviews_given: int
    reviewed_repos: tuple[str, ...]


def extract_code_review_data(snapshot: ContributorActivitySnapshot) -> CodeReviewData:
    return CodeReviewData(
        reviews_given=snapshot.review_contributions,
        reviewed_repos=snapshot.reviewed_repositories,
    )


def check_code_reviews(data: CodeReviewData, threshold: float) -> MetricCheckResult:
    """Check pull request reviews given against a minimum threshold."""
    reviews = data.reviews_given
    passed = reviews >= threshold

    if reviews == 0:
        details = "No code reviews given in analysis window"
    elif data.reviewed_repos:
        details = f"{reviews} code reviews given across {len(data.reviewed_repos)} repos"
    else:
        details = f"{reviews} code reviews given"
    details += threshold_note(passed, threshold)

    return MetricCheckResult(
        name=MetricName.CODE_REVIEWS,
        raw_value=reviews,
        threshold=threshold,
        passed=passed,
        details=details,
        data_points=reviews,
    )
