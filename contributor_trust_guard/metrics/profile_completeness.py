"""
Profile completeness metric.

Scoring (100 points total):
- Followers: 20 for any, +10 at 10 or more, +10 at 50 or more (max 40)
- Public repos: 15 for any, +5 at 5 or more (max 20)
- Bio: 20
- Company: 20

Location and website are recorded but do not score.
"""

from typing import NamedTuple

from contributor_trust_guard.metrics.base import MetricCheckResult, MetricName, threshold_note
from contributor_trust_guard.models import ContributorActivitySnapshot

# --- Scoring weights ---

FOLLOWERS_BASE = 20
FOLLOWERS_MID = 10
FOLLOWERS_HIGH = 10
FOLLOWERS_MID_COUNT = 10
FOLLOWERS_HIGH_COUNT = 50
REPOS_BASE = 15
REPOS_HIGH = 5
REPOS_HIGH_COUNT = 5
BIO_POINTS = 20
COMPANY_POINTS = 20


class ProfileData(NamedTuple):
    followers_count: int
    public_repos_count: int
    has_bio: bool
    has_company: bool
    has_location: bool
    has_website: bool
    completeness_score: int


def _present(value: str | None) -> bool:
    return bool(value and value.strip())


def calculate_completeness_score(
    followers: int, public_repos: int, has_bio: bool, has_company: bool
) -> int:
    score = 0

    if followers > 0:
        score += FOLLOWERS_BASE
        if followers >= FOLLOWERS_MID_COUNT:
            score += FOLLOWERS_MID
            if followers >= FOLLOWERS_HIGH_COUNT:
                score += FOLLOWERS_HIGH

    if public_repos > 0:
        score += REPOS_BASE
        if public_repos >= REPOS_HIGH_COUNT:
            score += REPOS_HIGH

    if has_bio:
        score += BIO_POINTS
    if has_company:
        score += COMPANY_POINTS

    return score


def extract_profile_data(snapshot: ContributorActivitySnapshot) -> ProfileData:
    profile = snapshot.profile
    has_bio = _present(profile.bio)
    has_company = _present(profile.company)

    return ProfileData(
        followers_count=profile.followers,
        public_repos_count=profile.public_repos,
        has_bio=has_bio,
        has_company=has_company,
        has_location=_present(profile.location),
        has_website=_present(profile.website_url),
        completeness_score=calculate_completeness_score(
            profile.followers, profile.public_repos, has_bio, has_company
        ),
    )


def check_profile_completeness(data: ProfileData, threshold: float) -> MetricCheckResult:
    """Check the profile completeness score (0-100) against a minimum threshold."""
    score = data.completeness_score
    passed = score >= threshold

    present = []
    missing = []
    if data.followers_count > 0:
        present.append(f"{data.followers_count} followers")
    else:
        missing.append("followers")
    if data.public_repos_count > 0:
        present.append(f"{data.public_repos_count} public repos")
    else:
        missing.append("public repos")
    if data.has_bio:
        present.append("bio")
    else:
        missing.append("bio")
    if data.has_company:
        present.append("company")
    else:
        missing.append("company")

    details = f"Profile score: {score}/100."
    if present:
        details += f" Has: {', '.join(present)}."
    if missing and not passed:
        details += f" Missing: {', '.join(missing)}."
    details += threshold_note(passed, threshold)

    return MetricCheckResult(
        name=MetricName.PROFILE_COMPLETENESS,
        raw_value=score,
        threshold=threshold,
        passed=passed,
        details=details,
        data_points=1,
    )
