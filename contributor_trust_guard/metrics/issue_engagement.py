"""Issue engagement metric."""

from typing import NamedTuple

from contributor_trust_guard.metrics.base import MetricCheckResult, MetricName, threshold_note
from contributor_trust_guard.models import ContributorActivitySnapshot

# Average comment count above which it is called out in details
NOTABLE_AVERAGE_COMMENTS = 3


class IssueEngagementData(NamedTuple):
    issues_created: int
    issues_with_comments: int
    issues_with_reactions: int
    average_comments_per_issue: float


def extract_issue_engagement_data(snapshot: ContributorActivitySnapshot) -> IssueEngagementData:
    """
    Summarize issues opened by the contributor.

    Only ``Issue`` typed search results are counted; the search itself is
    already scoped to the analysis window.
    """
    issues = [issue for issue in snapshot.created_issues if issue.is_issue]
    total_comments = sum(issue.comment_count for issue in issues)

    return IssueEngagementData(
        issues_created=len(issues),
        issues_with_comments=sum(1 for issue in issues if issue.comment_count > 0),
        issues_with_reactions=sum(1 for issue in issues if issue.reactions),
        average_comments_per_issue=total_comments / len(issues) if issues else 0.0,
    )


def check_issue_engagement(data: IssueEngagementData, threshold: float) -> MetricCheckResult:
    """Check issues created against a minimum threshold."""
    created = data.issues_created
    passed = created >= threshold

    if created == 0:
        details = "No issues created in analysis window"
    else:
        engaged = max(data.issues_with_comments, data.issues_with_reactions)
        details = f"{created} issues created, {engaged} received engagement"
        if data.average_comments_per_issue >= NOTABLE_AVERAGE_COMMENTS:
            details += f". Avg {data.average_comments_per_issue:.1f} comments/issue"
    details += threshold_note(passed, threshold)

    return MetricCheckResult(
        name=MetricName.ISSUE_ENGAGEMENT,
        raw_value=created,
        threshold=threshold,
        passed=passed,
        details=details,
        data_points=created,
    )
