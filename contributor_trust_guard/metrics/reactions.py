"""Reactions metric: community reception of the contributor's comments and issues."""

from typing import Iterable, NamedTuple

from contributor_trust_guard.metrics.base import (
    MetricCheckResult,
    MetricName,
    limit_note,
    threshold_note,
)
from contributor_trust_guard.models import (
    NEGATIVE_REACTIONS,
    POSITIVE_REACTIONS,
    ContributorActivitySnapshot,
)

# Ratio reported when no reactions exist at all
NEUTRAL_POSITIVE_RATIO = 0.5


class ReactionData(NamedTuple):
    total_comments: int
    positive_reactions: int
    negative_reactions: int
    neutral_reactions: int
    positive_ratio: float


def classify_reaction(content: str) -> str:
    """Return "positive", "negative" or "neutral" for a ReactionContent value."""
    if content in POSITIVE_REACTIONS:
        return "positive"
    if content in NEGATIVE_REACTIONS:
        return "negative"
    return "neutral"


def extract_reaction_data(snapshot: ContributorActivitySnapshot) -> ReactionData:
    """Count reactions on issue comments and on issues the contributor opened."""
    issues = [issue for issue in snapshot.created_issues if issue.is_issue]

    reaction_sets: list[Iterable[str]] = [comment.reactions for comment in snapshot.issue_comments]
    reaction_sets.extend(issue.reactions for issue in issues)

    counts = {"positive": 0, "negative": 0, "neutral": 0}
    for reactions in reaction_sets:
        for content in reactions:
            counts[classify_reaction(content)] += 1

    total = sum(counts.values())
    positive_ratio = counts["positive"] / total if total > 0 else NEUTRAL_POSITIVE_RATIO

    return ReactionData(
        total_comments=len(snapshot.issue_comments) + len(issues),
        positive_reactions=counts["positive"],
        negative_reactions=counts["negative"],
        neutral_reactions=counts["neutral"],
        positive_ratio=positive_ratio,
    )


def check_positive_reactions(data: ReactionData, threshold: float) -> MetricCheckResult:
    """Check positive reactions received against a minimum threshold."""
    count = data.positive_reactions
    passed = count >= threshold

    if data.total_comments == 0:
        details = "No comments found in analysis window"
    elif count == 0:
        details = "No positive reactions received"
    else:
        details = f"{count} positive reactions received"
    details += threshold_note(passed, threshold)

    return MetricCheckResult(
        name=MetricName.POSITIVE_REACTIONS,
        raw_value=count,
        threshold=threshold,
        passed=passed,
        details=details,
        data_points=data.total_comments,
    )


def check_negative_reactions(data: ReactionData, threshold: float) -> MetricCheckResult:
    """Check negative reactions received against a maximum allowed count."""
    count = data.negative_reactions
    passed = count <= threshold

    if data.total_comments == 0:
        details = "No comments found in analysis window"
    elif count == 0:
        details = "No negative reactions received"
    else:
        details = f"{count} negative reactions received"
    details += limit_note(passed, threshold)

    return MetricCheckResult(
        name=MetricName.NEGATIVE_REACTIONS,
        raw_value=count,
        threshold=threshold,
        passed=passed,
        details=details,
        data_points=data.total_comments,
    )
