"""Tests for suspicious activity pattern detection."""

from datetime import datetime, timezone

import pytest

from contributor_trust_guard.metrics.account_age import AccountData
from contributor_trust_guard.metrics.merger_diversity import MergerDiversityData
from contributor_trust_guard.metrics.pr_history import PRHistoryData
from contributor_trust_guard.metrics.repo_quality import RepoContribution, RepoQualityData
from contributor_trust_guard.metrics.suspicious_patterns import (
    PatternSeverity,
    PatternType,
    calculate_pr_rate,
    check_suspicious_patterns,
    extract_suspicious_patterns,
    has_critical_spam_patterns,
)


def _pr_history(total_prs: int) -> PRHistoryData:
    return PRHistoryData(
        total_prs=total_prs,
        merged_prs=total_prs,
        closed_without_merge=0,
        open_prs=0,
        merge_rate=1.0 if total_prs else 0.0,
        average_pr_size=10.0,
        very_short_prs=0,
        merged_pr_dates=(),
    )


def _repo_quality(repo_count: int, stars: int = 500, merged_per_repo: int = 1) -> RepoQualityData:
    repos = tuple(
        RepoContribution(owner=f"owner{i}", repo="repo", stars=stars, merged_pr_count=merged_per_repo)
        for i in range(repo_count)
    )
    return RepoQualityData(
        contributed_repos=repos,
        quality_repo_count=sum(1 for r in repos if r.stars >= 100),
        average_repo_stars=float(stars) if repos else 0.0,
        highest_star_repo=stars if repos else 0,
    )


def _account(age_in_days: int) -> AccountData:
    return AccountData(
        created_at=datetime(2020, 1, 1, tzinfo=timezone.utc),
        age_in_days=age_in_days,
        months_with_activity=1,
        total_months_in_window=12,
        consistency_score=1 / 12,
    )


def _mergers(total_merged: int = 0, self_merge_rate: float = 0.0) -> MergerDiversityData:
    self_merges = round(total_merged * self_merge_rate)
    return MergerDiversityData(
        total_merged_prs=total_merged,
        unique_mergers=1 if total_merged else 0,
        self_merge_count=self_merges,
        others_merge_count=total_merged - self_merges,
        self_merges_on_own_repos=self_merges,
        self_merges_on_external_repos=0,
        external_repos_with_merge_privilege=(),
        only_self_merges_on_own_repos=False,
        self_merge_rate=self_merge_rate,
        merger_logins=(),
    )


def _types(data):
    return [p.type for p in data.detected_patterns]


class TestSpamPattern:
    """Test the new-account spam rule."""

    def test_fires_when_all_conditions_hold(self):
        data = extract_suspicious_patterns(
            _pr_history(30), _repo_quality(12), _account(10), _mergers()
        )

        assert PatternType.SPAM_PATTERN in _types(data)
        pattern = data.detected_patterns[0]
        assert pattern.severity is PatternSeverity.CRITICAL
        assert pattern.evidence["accountAgeDays"] == 10
        assert pattern.evidence["totalPRs"] == 30
        assert pattern.evidence["uniqueRepoCount"] == 12
        assert pattern.evidence["threshold_accountAge"] == 30
        assert has_critical_spam_patterns(data) is True

    @pytest.mark.parametrize(
        "age,total_prs,repos",
        [(30, 30, 12), (10, 25, 12), (10, 30, 10)],
    )
    def test_boundaries_do_not_fire(self, age, total_prs, repos):
        """Conditions are strict; equality at 30 days, 25 PRs or 10 repos does not trigger."""
        data = extract_suspicious_patterns(
            _pr_history(total_prs), _repo_quality(repos), _account(age), _mergers()
        )
        assert PatternType.SPAM_PATTERN not in _types(data)


class TestHighPrRate:
    """Test the PR rate warning."""

    def test_fires_above_two_per_day(self):
        data = extract_suspicious_patterns(
            _pr_history(21), _repo_quality(1), _account(10), _mergers()
        )

        assert _types(data) == [PatternType.HIGH_PR_RATE]
        assert data.detected_patterns[0].severity is PatternSeverity.WARNING
        assert data.detected_patterns[0].evidence["prRate"] == 2.1
        assert data.pr_rate == 2.1

    def test_exactly_two_per_day_does_not_fire(self):
        data = extract_suspicious_patterns(
            _pr_history(20), _repo_quality(1), _account(10), _mergers()
        )
        assert data.detected_patterns == ()

    def test_zero_age_uses_pr_count(self):
        """An account created today has its PR count used as the rate."""
        assert calculate_pr_rate(3, 0) == 3.0
        assert calculate_pr_rate(1, 0) == 1.0
        assert calculate_pr_rate(10, 5) == 2.0

        data = extract_suspicious_patterns(
            _pr_history(3), _repo_quality(1), _account(0), _mergers()
        )
        assert PatternType.HIGH_PR_RATE in _types(data)


class TestSelfMergeAbuse:
    """Test the self-merge abuse rule."""

    def test_fires_on_low_star_self_merges(self):
        """90% self-merge rate and 45 merges on 2-star repos is critical."""
        data = extract_suspicious_patterns(
            _pr_history(45),
            _repo_quality(3, stars=2, merged_per_repo=15),
            _account(1000),
            _mergers(total_merged=45, self_merge_rate=0.9),
        )

        assert _types(data) == [PatternType.SELF_MERGE_ABUSE]
        pattern = data.detected_patterns[0]
        assert pattern.severity is PatternSeverity.CRITICAL
        assert pattern.evidence["lowQualityPRs"] == 45
        assert pattern.evidence["totalMergedPRs"] == 45
        assert pattern.evidence["selfMergeRate"] == 90.0

    def test_does_not_fire_on_popular_repos(self):
        data = extract_suspicious_patterns(
            _pr_history(45),
            _repo_quality(3, stars=500, merged_per_repo=15),
            _account(1000),
            _mergers(total_merged=45, self_merge_rate=0.9),
        )
        assert data.detected_patterns == ()

    def test_does_not_fire_without_merges(self):
        data = extract_suspicious_patterns(
            _pr_history(0), _repo_quality(0), _account(1000), _mergers()
        )
        assert data.detected_patterns == ()


class TestRepoSpam:
    """Test the repository spread warning."""

    def test_fires_on_many_low_star_repos(self):
        data = extract_suspicious_patterns(
            _pr_history(11), _repo_quality(11, stars=3), _account(1000), _mergers()
        )

        assert _types(data) == [PatternType.REPO_SPAM]
        assert data.detected_patterns[0].evidence["averageStars"] == 3.0
        assert data.unique_repo_count == 11


class TestRuleOrder:
    def test_all_rules_fire_in_fixed_order(self):
        data = extract_suspicious_patterns(
            _pr_history(60),
            _repo_quality(20, stars=1, merged_per_repo=3),
            _account(5),
            _mergers(total_merged=60, self_merge_rate=1.0),
        )

        assert _types(data) == [
            PatternType.SPAM_PATTERN,
            PatternType.HIGH_PR_RATE,
            PatternType.SELF_MERGE_ABUSE,
            PatternType.REPO_SPAM,
        ]


class TestCheckSuspiciousPatterns:
    """Test the suspicious pattern check."""

    def test_no_patterns_pass(self):
        data = extract_suspicious_patterns(
            _pr_history(5), _repo_quality(2), _account(1000), _mergers()
        )
        result = check_suspicious_patterns(data)

        assert result.passed is True
        assert result.details == "No suspicious activity patterns detected."

    def test_warnings_pass_but_are_listed(self):
        data = extract_suspicious_patterns(
            _pr_history(21), _repo_quality(1), _account(10), _mergers()
        )
        result = check_suspicious_patterns(data)

        assert result.passed is True
        assert result.raw_value == 1
        assert result.details.startswith("1 warning pattern(s) noted: HIGH_PR_RATE.")

    def test_critical_fails(self):
        data = extract_suspicious_patterns(
            _pr_history(30), _repo_quality(12), _account(10), _mergers()
        )
        result = check_suspicious_patterns(data)

        assert result.passed is False
        assert result.raw_value == 1
        assert result.details.startswith("CRITICAL: 1 suspicious pattern(s) detected: SPAM_PATTERN.")

    def test_has_critical_handles_missing_data(self):
        assert has_critical_spam_patterns(None) is False
