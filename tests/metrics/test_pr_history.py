"""Tests for the PR history metric."""

from datetime import timedelta

from contributor_trust_guard.metrics.base import MetricName
from contributor_trust_guard.metrics.pr_history import (
    check_pr_merge_rate,
    extract_pr_history_data,
)


class TestExtractPrHistoryData:
    """Test PR history extraction."""

    def test_merge_rate_excludes_open_prs(self, make_pr, make_snapshot, window):
        """8 merged and 2 closed without merge give a 0.8 merge rate."""
        prs = [make_pr("MERGED") for _ in range(8)]
        prs += [make_pr("CLOSED") for _ in range(2)]
        prs += [make_pr("OPEN") for _ in range(3)]
        data = extract_pr_history_data(make_snapshot(pull_requests=prs), window)

        assert data.total_prs == 13
        assert data.merged_prs == 8
        assert data.closed_without_merge == 2
        assert data.open_prs == 3
        assert data.merge_rate == 0.8

    def test_no_resolved_prs_rate_is_zero(self, make_pr, make_snapshot, window):
        """Only open PRs leave the merge rate at 0."""
        data = extract_pr_history_data(
            make_snapshot(pull_requests=[make_pr("OPEN")]), window
        )
        assert data.merge_rate == 0
        assert data.merged_pr_dates == ()

    def test_prs_before_window_are_ignored(self, make_pr, make_snapshot, window, now):
        """PRs created before the window start do not count."""
        old = make_pr("CLOSED", created_at=now - timedelta(days=500))
        recent = make_pr("MERGED")
        data = extract_pr_history_data(make_snapshot(pull_requests=[old, recent]), window)

        assert data.total_prs == 1
        assert data.merge_rate == 1.0

    def test_pr_size_statistics(self, make_pr, make_snapshot, window):
        """Average size and very short PR count use additions plus deletions."""
        prs = [
            make_pr(additions=3, deletions=2),
            make_pr(additions=90, deletions=5),
        ]
        data = extract_pr_history_data(make_snapshot(pull_requests=prs), window)

        assert data.average_pr_size == 50
        assert data.very_short_prs == 1
        assert len(data.merged_pr_dates) == 2


class TestCheckPrMergeRate:
    """Test the PR merge rate check."""

    def test_passes_at_threshold(self, make_pr, make_snapshot, window):
        prs = [make_pr("MERGED") for _ in range(8)] + [make_pr("CLOSED") for _ in range(2)]
        data = extract_pr_history_data(make_snapshot(pull_requests=prs), window)
        result = check_pr_merge_rate(data, 0.5)

        assert result.name is MetricName.PR_MERGE_RATE
        assert result.passed is True
        assert result.raw_value == 0.8
        assert "80.0% merge rate" in result.details
        assert "meets threshold" in result.details
        assert result.data_points == 10

    def test_fails_below_threshold(self, make_pr, make_snapshot, window):
        prs = [make_pr("MERGED")] + [make_pr("CLOSED") for _ in range(3)]
        data = extract_pr_history_data(make_snapshot(pull_requests=prs), window)
        result = check_pr_merge_rate(data, 0.5)

        assert result.passed is False
        assert "below threshold" in result.details

    def test_no_resolved_prs_pass_only_with_zero_threshold(self, make_snapshot, window):
        data = extract_pr_history_data(make_snapshot(), window)

        assert check_pr_merge_rate(data, 0).passed is True
        failed = check_pr_merge_rate(data, 0.3)
        assert failed.passed is False
        assert failed.details == "No PRs found in analysis window"
