"""
Shared fixtures for building contributor snapshots in tests.
"""

from datetime import datetime, timedelta, timezone

import pytest

from contributor_trust_guard.models import (
    AnalysisWindow,
    ContributorActivitySnapshot,
    ContributorProfile,
    IssueCommentNode,
    PRContext,
    PullRequestNode,
    RepositoryRef,
    SearchIssueNode,
)

NOW = datetime(2025, 6, 15, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def window():
    """Twelve-month window ending at NOW (starts 2024-06-15)."""
    return AnalysisWindow.from_months(12, now=NOW)


@pytest.fixture
def pr_context():
    return PRContext(owner="acme", repo="widgets", pr_number=42, author="alice")


@pytest.fixture
def make_pr():
    """Factory for PullRequestNode records created inside the default window."""

    def _make_pr(
        state="MERGED",
        merged=None,
        created_at=None,
        merged_at=None,
        merged_by=None,
        owner="acme",
        repo="widgets",
        stars=500,
        additions=20,
        deletions=5,
        repository=True,
    ):
        if merged is None:
            merged = state == "MERGED"
        created_at = created_at or NOW - timedelta(days=30)
        if merged and merged_at is None:
            merged_at = created_at + timedelta(days=1)
        repo_ref = RepositoryRef(owner=owner, name=repo, stars=stars) if repository else None
        return PullRequestNode(
            state=state,
            merged=merged,
            created_at=created_at,
            merged_at=merged_at,
            closed_at=merged_at,
            additions=additions,
            deletions=deletions,
            merged_by=merged_by,
            repository=repo_ref,
        )

    return _make_pr


@pytest.fixture
def make_snapshot(window):
    """Factory for ContributorActivitySnapshot records."""

    def _make_snapshot(
        login="alice",
        created_at=None,
        pull_requests=(),
        issue_comments=(),
        created_issues=(),
        review_contributions=0,
        reviewed_repositories=(),
        followers=0,
        public_repos=0,
        bio=None,
        company=None,
        location=None,
        website_url=None,
        snapshot_window=None,
    ):
        profile = ContributorProfile(
            login=login,
            created_at=created_at or NOW - timedelta(days=3 * 365),
            bio=bio,
            company=company,
            location=location,
            website_url=website_url,
            followers=followers,
            public_repos=public_repos,
        )
        return ContributorActivitySnapshot(
            profile=profile,
            window=snapshot_window or window,
            pull_requests=tuple(pull_requests),
            issue_comments=tuple(issue_comments),
            created_issues=tuple(created_issues),
            issue_count=len(created_issues),
            review_contributions=review_contributions,
            reviewed_repositories=tuple(reviewed_repositories),
        )

    return _make_snapshot


@pytest.fixture
def make_comment():
    def _make_comment(*reactions, created_at=None):
        return IssueCommentNode(
            created_at=created_at or NOW - timedelta(days=10),
            reactions=tuple(reactions),
        )

    return _make_comment


@pytest.fixture
def make_issue():
    def _make_issue(comment_count=0, reactions=(), typename="Issue"):
        return SearchIssueNode(
            typename=typename,
            created_at=NOW - timedelta(days=20),
            comment_count=comment_count,
            reactions=tuple(reactions),
        )

    return _make_issue
