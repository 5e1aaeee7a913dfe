"""Tests for the repository history metrics."""

from contributor_trust_guard.metrics.repo_history import (
    check_repo_history_merge_rate,
    check_repo_history_min_prs,
    extract_repo_history_data,
)


class TestRepoHistory:
    """Test repository-scoped history."""

    def test_matches_repository_case_insensitively(
        self, make_pr, make_snapshot, window, pr_context
    ):
        prs = [
            make_pr("MERGED", owner="ACME", repo="Widgets"),
            make_pr("MERGED", owner="acme", repo="widgets"),
            make_pr("CLOSED", owner="acme", repo="widgets"),
            make_pr("MERGED", owner="acme", repo="gears"),
        ]
        data = extract_repo_history_data(make_snapshot(pull_requests=prs), pr_context, window)

        assert data.repo_name == "acme/widgets"
        assert data.total_prs_in_repo == 3
        assert data.merged_prs_in_repo == 2
        assert data.closed_without_merge_in_repo == 1
        assert data.repo_merge_rate == 2 / 3
        assert data.is_first_time_contributor is False

        result = check_repo_history_merge_rate(data, 0.5)
        assert result.passed is True
        assert result.details == (
            "Repo merge rate 66.7% meets threshold (>= 50%). 2/3 PRs merged in acme/widgets"
        )

    def test_first_time_contributor(self, make_snapshot, window, pr_context):
        data = extract_repo_history_data(make_snapshot(), pr_context, window)

        assert data.is_first_time_contributor is True
        assert check_repo_history_merge_rate(data, 0).passed is True
        result = check_repo_history_merge_rate(data, 0.5)
        assert result.passed is False
        assert "First-time contributor to acme/widgets" in result.details

    def test_all_open_prs(self, make_pr, make_snapshot, window, pr_context):
        prs = [make_pr("OPEN"), make_pr("OPEN")]
        data = extract_repo_history_data(make_snapshot(pull_requests=prs), pr_context, window)
        result = check_repo_history_merge_rate(data, 0.5)

        assert result.passed is False
        assert result.details == "All 2 PRs in acme/widgets are still open."
        assert check_repo_history_merge_rate(data, 0).passed is True

    def test_min_prs(self, make_pr, make_snapshot, window, pr_context):
        prs = [make_pr("MERGED"), make_pr("CLOSED")]
        data = extract_repo_history_data(make_snapshot(pull_requests=prs), pr_context, window)

        passed = check_repo_history_min_prs(data, 2)
        assert passed.passed is True
        assert passed.details == "Has 2 PRs in acme/widgets (meets threshold >= 2)"
        assert check_repo_history_min_prs(data, 3).passed is False
