"""Tests for the merger diversity metric."""

from datetime import timedelta

from contributor_trust_guard.metrics.merger_diversity import (
    check_merger_diversity,
    extract_merger_diversity_data,
)


class TestExtractMergerDiversityData:
    """Test merger classification."""

    def test_self_merge_is_case_insensitive(self, make_pr, make_snapshot, window):
        prs = [make_pr(merged_by="Alice", owner="someone-else")]
        data = extract_merger_diversity_data(make_snapshot(pull_requests=prs), "alice", window)

        assert data.self_merge_count == 1
        assert data.self_merges_on_external_repos == 1
        assert data.external_repos_with_merge_privilege == ("someone-else/widgets",)
        assert data.self_merge_rate == 1.0

    def test_only_self_merges_on_own_repos(self, make_pr, make_snapshot, window):
        prs = [make_pr(merged_by="alice", owner="ALICE", repo=f"r{i}") for i in range(3)]
        data = extract_merger_diversity_data(make_snapshot(pull_requests=prs), "alice", window)

        assert data.self_merges_on_own_repos == 3
        assert data.others_merge_count == 0
        assert data.only_self_merges_on_own_repos is True
        assert data.unique_mergers == 1

    def test_mixed_mergers(self, make_pr, make_snapshot, window):
        prs = [
            make_pr(merged_by="alice", owner="alice"),
            make_pr(merged_by="bob"),
            make_pr(merged_by="Carol"),
            make_pr(merged_by="carol"),
            make_pr(merged_by=None),
        ]
        data = extract_merger_diversity_data(make_snapshot(pull_requests=prs), "alice", window)

        assert data.total_merged_prs == 5
        assert data.unique_mergers == 3
        assert data.merger_logins == ("alice", "bob", "carol")
        assert data.others_merge_count == 3
        assert data.self_merge_rate == 0.2
        assert data.only_self_merges_on_own_repos is False

    def test_merged_before_window_is_ignored(self, make_pr, make_snapshot, window, now):
        old = make_pr(
            created_at=now - timedelta(days=500),
            merged_at=now - timedelta(days=499),
            merged_by="bob",
        )
        data = extract_merger_diversity_data(make_snapshot(pull_requests=[old]), "alice", window)

        assert data.total_merged_prs == 0
        assert data.only_self_merges_on_own_repos is False


class TestCheckMergerDiversity:
    """Test the merger diversity check."""

    def test_no_merged_prs(self, make_snapshot, window):
        data = extract_merger_diversity_data(make_snapshot(), "alice", window)

        assert check_merger_diversity(data, 0).passed is True
        assert check_merger_diversity(data, 1).passed is False

    def test_only_own_repo_self_merges_fail_with_threshold(self, make_pr, make_snapshot, window):
        prs = [make_pr(merged_by="alice", owner="alice") for _ in range(4)]
        data = extract_merger_diversity_data(make_snapshot(pull_requests=prs), "alice", window)

        result = check_merger_diversity(data, 1)
        assert result.passed is False
        assert result.raw_value == 0
        assert "No external trust demonstrated" in result.details

        # A zero threshold never forces failure
        assert check_merger_diversity(data, 0).passed is True

    def test_external_merge_privilege_details(self, make_pr, make_snapshot, window):
        prs = [make_pr(merged_by="alice", owner="acme"), make_pr(merged_by="bob")]
        data = extract_merger_diversity_data(make_snapshot(pull_requests=prs), "alice", window)
        result = check_merger_diversity(data, 2)

        assert result.passed is True
        assert "Has merge rights on 1 external repos" in result.details
        assert "Self-merge rate: 50%" in result.details
