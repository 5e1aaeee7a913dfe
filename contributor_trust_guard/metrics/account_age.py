"""Account age and activity consistency metrics."""

from datetime import datetime
from typing import NamedTuple

from contributor_trust_guard.metrics.base import MetricCheckResult, MetricName, threshold_note
from contributor_trust_guard.models import AnalysisWindow, ContributorActivitySnapshot


class AccountData(NamedTuple):
    created_at: datetime
    age_in_days: int
    months_with_activity: int
    total_months_in_window: int
    consistency_score: float


def extract_account_data(
    snapshot: ContributorActivitySnapshot,
    window: AnalysisWindow,
    window_months: int,
) -> AccountData:
    """
    Compute account age and how evenly PR activity spreads over the window.

    Age is measured in whole days up to the window end. A calendar month is
    active when at least one PR was created in it.
    """
    created_at = snapshot.profile.created_at
    age_in_days = max((window.end - created_at).days, 0)

    active_months = {
        (pr.created_at.year, pr.created_at.month)
        for pr in snapshot.pull_requests
        if window.contains(pr.created_at)
    }
    total_months = max(window_months, 0)
    consistency = len(active_months) / total_months if total_months > 0 else 0.0

    return AccountData(
        created_at=created_at,
        age_in_days=age_in_days,
        months_with_activity=len(active_months),
        total_months_in_window=total_months,
        consistency_score=min(consistency, 1.0),
    )


def is_new_account(data: AccountData, threshold_days: int) -> bool:
    """True if the account is younger than ``threshold_days``."""
    return data.age_in_days < threshold_days


def check_account_age(data: AccountData, threshold: float) -> MetricCheckResult:
    """Check account age in days against a minimum threshold."""
    age = data.age_in_days
    passed = age >= threshold

    if age < 30:
        details = f"Account is {age} days old (new account)"
    elif age < 365:
        details = f"Account is {age} days old (~{age // 30} months)"
    else:
        details = f"Account is {age} days old (~{age / 365:.1f} years)"
    details += threshold_note(passed, threshold)

    return MetricCheckResult(
        name=MetricName.ACCOUNT_AGE,
        raw_value=age,
        threshold=threshold,
        passed=passed,
        details=details,
        data_points=1,
    )


def check_activity_consistency(data: AccountData, threshold: float) -> MetricCheckResult:
    """Check the share of active months (0-1) against a minimum threshold."""
    if data.months_with_activity == 0:
        return MetricCheckResult(
            name=MetricName.ACTIVITY_CONSISTENCY,
            raw_value=0.0,
            threshold=threshold,
            passed=threshold == 0,
            details="No PR activity found in analysis window",
            data_points=0,
        )

    score = data.consistency_score
    passed = score >= threshold
    details = (
        f"Active in {data.months_with_activity} of {data.total_months_in_window} months "
        f"({score * 100:.0f}%)"
    )
    if threshold > 0:
        comparison = "meets" if passed else "below"
        details += f" ({comparison} threshold >= {threshold * 100:.0f}%)"

    return MetricCheckResult(
        name=MetricName.ACTIVITY_CONSISTENCY,
        raw_value=score,
        threshold=threshold,
        passed=passed,
        details=details,
        data_points=data.months_with_activity,
    )
