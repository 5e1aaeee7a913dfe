"""
Contributor activity records shared by the fetcher and the metric extractors.

Every record is an immutable NamedTuple; collection fields are tuples so that a
snapshot handed to the extractors cannot be modified by them.
"""

import calendar
from datetime import datetime, timezone
from typing import NamedTuple

# Reaction content values from the GitHub GraphQL ReactionContent enum
POSITIVE_REACTIONS = frozenset({"THUMBS_UP", "HEART", "ROCKET", "HOORAY"})
NEGATIVE_REACTIONS = frozenset({"THUMBS_DOWN", "CONFUSED"})


def parse_datetime(value: str | None) -> datetime | None:
    """Parse a GitHub ISO8601 timestamp into a timezone-aware datetime."""
    if not value:
        return None
    parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed


def subtract_months(moment: datetime, months: int) -> datetime:
    """Step back whole calendar months, clamping the day to the target month."""
    month_index = moment.year * 12 + (moment.month - 1) - months
    year, month = divmod(month_index, 12)
    month += 1
    day = min(moment.day, calendar.monthrange(year, month)[1])
    return moment.replace(year=year, month=month, day=day)


class AnalysisWindow(NamedTuple):
    """Historical time range every metric is scoped to."""

    start: datetime
    end: datetime

    @classmethod
    def from_months(cls, months: int, now: datetime | None = None) -> "AnalysisWindow":
        """Build the window ending ``now`` and starting ``months`` months earlier."""
        end = now or datetime.now(timezone.utc)
        return cls(start=subtract_months(end, months), end=end)

    def contains(self, moment: datetime | None) -> bool:
        """True if ``moment`` is not before the window start."""
        return moment is not None and moment >= self.start


class PRContext(NamedTuple):
    """The pull request that triggered the evaluation."""

    owner: str
    repo: str
    pr_number: int
    author: str

    @property
    def full_name(self) -> str:
        return f"{self.owner}/{self.repo}"


class RepositoryRef(NamedTuple):
    """Repository a pull request was opened against."""

    owner: str
    name: str
    stars: int

    @property
    def full_name(self) -> str:
        return f"{self.owner}/{self.name}"


class PullRequestNode(NamedTuple):
    """A pull request authored by the contributor."""

    state: str  # "OPEN", "CLOSED", "MERGED"
    merged: bool
    created_at: datetime
    merged_at: datetime | None = None
    closed_at: datetime | None = None
    additions: int = 0
    deletions: int = 0
    merged_by: str | None = None
    # None when the repository was deleted or made private
    repository: RepositoryRef | None = None
    review_count: int = 0


class IssueCommentNode(NamedTuple):
    """An issue comment written by the contributor."""

    created_at: datetime | None
    reactions: tuple[str, ...] = ()


class SearchIssueNode(NamedTuple):
    """A node returned by the issue search; only ``Issue`` typed nodes count."""

    typename: str
    created_at: datetime | None = None
    comment_count: int = 0
    reactions: tuple[str, ...] = ()

    @property
    def is_issue(self) -> bool:
        return self.typename == "Issue"


class ContributorProfile(NamedTuple):
    """Public profile fields of the contributor."""

    login: str
    created_at: datetime
    bio: str | None = None
    company: str | None = None
    location: str | None = None
    website_url: str | None = None
    followers: int = 0
    public_repos: int = 0


class ContributorActivitySnapshot(NamedTuple):
    """Everything the extractors need, assembled once by the fetcher."""

    profile: ContributorProfile
    window: AnalysisWindow
    pull_requests: tuple[PullRequestNode, ...] = ()
    issue_comments: tuple[IssueCommentNode, ...] = ()
    created_issues: tuple[SearchIssueNode, ...] = ()
    issue_count: int = 0
    review_contributions: int = 0
    # "owner/name" of repositories the contributor reviewed pull requests in
    reviewed_repositories: tuple[str, ...] = ()

    @property
    def login(self) -> str:
        return self.profile.login
