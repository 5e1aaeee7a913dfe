"""Tests for the code review metric."""

from contributor_trust_guard.metrics.code_reviews import (
    check_code_reviews,
    extract_code_review_data,
)


def test_code_reviews_from_contributions(make_snapshot):
    """Review count and reviewed repositories come from the snapshot."""
    snapshot = make_snapshot(
        review_contributions=7, reviewed_repositories=["acme/widgets", "acme/gears"]
    )
    data = extract_code_review_data(snapshot)

    assert data.reviews_given == 7
    assert data.reviewed_repos == ("acme/widgets", "acme/gears")

    result = check_code_reviews(data, 5)
    assert result.passed is True
    assert result.details == "7 code reviews given across 2 repos (meets threshold >= 5)"


def test_code_reviews_none_given(make_snapshot):
    data = extract_code_review_data(make_snapshot())

    assert check_code_reviews(data, 0).passed is True
    result = check_code_reviews(data, 1)
    assert result.passed is False
    assert "No code reviews given" in result.details
