"""
Configuration management for Contributor Trust Guard.

Settings are loaded from:
1. .contributor-trust-guard.toml (local config)
2. pyproject.toml (project-level config, [tool.contributor-trust-guard])

Explicit overrides (CLI flags) take priority over both; the GitHub token comes
from the environment or a .env file.
"""

import os
import tomllib
from pathlib import Path
from typing import Any, NamedTuple

from dotenv import load_dotenv

from contributor_trust_guard.errors import AuthenticationError, ConfigurationError
from contributor_trust_guard.metrics.base import THRESHOLD_METRICS, MetricName

LOCAL_CONFIG_FILENAME = ".contributor-trust-guard.toml"
TOOL_SECTION = "contributor-trust-guard"

# Global configuration for SSL verification
# Default: True (verify SSL certificates)
# Can be set to False by CLI --insecure flag
VERIFY_SSL = True

DEFAULT_REQUIRED_METRICS: tuple[str, ...] = (
    MetricName.PR_MERGE_RATE.value,
    MetricName.ACCOUNT_AGE.value,
)

DEFAULT_TRUSTED_USERS: tuple[str, ...] = (
    "dependabot[bot]",
    "renovate[bot]",
    "github-actions[bot]",
    "codecov[bot]",
    "sonarcloud[bot]",
)

# How a new account affects the outcome; "require-review" only flags the account
NEW_ACCOUNT_ACTIONS: tuple[str, ...] = ("neutral", "require-review", "block")


class MetricThresholds(NamedTuple):
    """Per-metric thresholds. ``negative_reactions`` is a maximum, the rest are minimums."""

    pr_merge_rate: float = 0
    repo_quality: float = 0
    positive_reactions: float = 0
    negative_reactions: float = 0
    account_age: float = 0
    activity_consistency: float = 0
    issue_engagement: float = 0
    code_reviews: float = 0
    merger_diversity: float = 0
    repo_history_merge_rate: float = 0
    repo_history_min_prs: float = 0
    profile_completeness: float = 0

    def for_metric(self, name: MetricName) -> float:
        return getattr(self, _FIELD_BY_METRIC[name])

    def with_overrides(self, overrides: dict[str, float]) -> "MetricThresholds":
        """Return a copy with thresholds replaced by metric name or field name."""
        changes = {}
        for key, value in overrides.items():
            field = _resolve_threshold_field(key)
            try:
                changes[field] = float(value)
            except (TypeError, ValueError) as e:
                raise ConfigurationError(
                    f"Invalid threshold for {key}: {value!r} is not a number"
                ) from e
        return self._replace(**changes)


_FIELD_BY_METRIC: dict[MetricName, str] = {
    MetricName.PR_MERGE_RATE: "pr_merge_rate",
    MetricName.REPO_QUALITY: "repo_quality",
    MetricName.POSITIVE_REACTIONS: "positive_reactions",
    MetricName.NEGATIVE_REACTIONS: "negative_reactions",
    MetricName.ACCOUNT_AGE: "account_age",
    MetricName.ACTIVITY_CONSISTENCY: "activity_consistency",
    MetricName.ISSUE_ENGAGEMENT: "issue_engagement",
    MetricName.CODE_REVIEWS: "code_reviews",
    MetricName.MERGER_DIVERSITY: "merger_diversity",
    MetricName.REPO_HISTORY_MERGE_RATE: "repo_history_merge_rate",
    MetricName.REPO_HISTORY_MIN_PRS: "repo_history_min_prs",
    MetricName.PROFILE_COMPLETENESS: "profile_completeness",
}


def _resolve_threshold_field(key: str) -> str:
    if key in MetricThresholds._fields:
        return key
    for name in THRESHOLD_METRICS:
        if name.value == key:
            return _FIELD_BY_METRIC[name]
    raise ConfigurationError(f"Unknown threshold metric: {key}")


class TrustConfig(NamedTuple):
    """Validated settings for one contributor evaluation."""

    thresholds: MetricThresholds = MetricThresholds()
    required_metrics: tuple[str, ...] = DEFAULT_REQUIRED_METRICS
    minimum_stars: int = 100
    analysis_window_months: int = 12
    trusted_users: tuple[str, ...] = DEFAULT_TRUSTED_USERS
    trusted_orgs: tuple[str, ...] = ()
    new_account_threshold_days: int = 30
    new_account_action: str = "neutral"
    enable_spam_detection: bool = True


def load_config_file(config_path: Path) -> dict:
    """Load a TOML configuration file."""
    if not config_path.exists():
        return {}
    try:
        with open(config_path, "rb") as f:
            return tomllib.load(f)
    except Exception as e:
        raise ConfigurationError(f"Failed to load config from {config_path}: {e}") from e


def get_tool_settings(root: Path | None = None) -> dict[str, Any]:
    """
    Load the [tool.contributor-trust-guard] table.

    Priority:
    1. .contributor-trust-guard.toml (local config, highest priority)
    2. pyproject.toml (project-level config, fallback)

    Returns:
        The settings table, or an empty dict when neither file defines it.
    """
    root = root or Path.cwd()

    local_config_path = root / LOCAL_CONFIG_FILENAME
    if local_config_path.exists():
        settings = load_config_file(local_config_path).get("tool", {}).get(TOOL_SECTION)
        if settings:
            return settings

    pyproject_path = root / "pyproject.toml"
    if pyproject_path.exists():
        return load_config_file(pyproject_path).get("tool", {}).get(TOOL_SECTION, {})

    return {}


def load_trust_config(
    config_path: Path | None = None,
    overrides: dict[str, Any] | None = None,
) -> TrustConfig:
    """
    Build and validate the evaluation configuration.

    Args:
        config_path: Explicit TOML file to read instead of the default lookup.
        overrides: Values taking priority over file settings. A ``thresholds``
            entry is merged into the file thresholds rather than replacing them.

    Returns:
        A validated ``TrustConfig``.

    Raises:
        ConfigurationError: If any value is invalid.
    """
    if config_path is not None:
        if not config_path.exists():
            raise ConfigurationError(f"Config file not found: {config_path}")
        settings = dict(load_config_file(config_path).get("tool", {}).get(TOOL_SECTION, {}))
    else:
        settings = dict(get_tool_settings())

    threshold_values = dict(settings.pop("thresholds", {}) or {})
    overrides = dict(overrides or {})
    threshold_values.update(overrides.pop("thresholds", {}) or {})
    settings.update({k: v for k, v in overrides.items() if v is not None})

    unknown = set(settings) - set(TrustConfig._fields)
    if unknown:
        raise ConfigurationError(f"Unknown configuration keys: {', '.join(sorted(unknown))}")

    try:
        config = TrustConfig(
            thresholds=MetricThresholds().with_overrides(threshold_values),
            required_metrics=_name_list(settings, "required_metrics", DEFAULT_REQUIRED_METRICS),
            minimum_stars=int(settings.get("minimum_stars", 100)),
            analysis_window_months=int(settings.get("analysis_window_months", 12)),
            trusted_users=_name_list(settings, "trusted_users", DEFAULT_TRUSTED_USERS),
            trusted_orgs=_name_list(settings, "trusted_orgs", ()),
            new_account_threshold_days=int(settings.get("new_account_threshold_days", 30)),
            new_account_action=str(settings.get("new_account_action", "neutral")),
            enable_spam_detection=bool(settings.get("enable_spam_detection", True)),
        )
    except (TypeError, ValueError) as e:
        raise ConfigurationError(f"Invalid configuration value: {e}") from e

    validate_config(config)
    return config


def _name_list(settings: dict[str, Any], key: str, default: tuple[str, ...]) -> tuple[str, ...]:
    value = settings.get(key, default)
    if isinstance(value, str) or not isinstance(value, (list, tuple)):
        raise ConfigurationError(f"{key} must be a list of names, got {value!r}")
    return tuple(str(item) for item in value)


def validate_thresholds(thresholds: MetricThresholds) -> None:
    """Raise ConfigurationError for out-of-range thresholds."""
    for field in ("pr_merge_rate", "activity_consistency", "repo_history_merge_rate"):
        value = getattr(thresholds, field)
        if value < 0 or value > 1:
            raise ConfigurationError(f"{field} threshold must be between 0 and 1, got {value}")

    if thresholds.profile_completeness < 0 or thresholds.profile_completeness > 100:
        raise ConfigurationError(
            "profile_completeness threshold must be between 0 and 100, "
            f"got {thresholds.profile_completeness}"
        )

    for field, value in thresholds._asdict().items():
        if value < 0:
            raise ConfigurationError(f"{field} threshold must be non-negative, got {value}")


def validate_required_metrics(metrics: tuple[str, ...]) -> list[MetricName]:
    """Convert required metric names to MetricName, rejecting unknown ones."""
    valid_values = {name.value: name for name in MetricName}
    invalid = [m for m in metrics if m not in valid_values]
    if invalid:
        raise ConfigurationError(
            f"Invalid metric names in required metrics: {', '.join(invalid)}"
        )
    return [valid_values[m] for m in metrics]


def validate_config(config: TrustConfig) -> None:
    """Validate a complete configuration."""
    validate_thresholds(config.thresholds)

    if config.minimum_stars < 0:
        raise ConfigurationError(
            f"minimum_stars must be non-negative, got {config.minimum_stars}"
        )
    if config.analysis_window_months <= 0:
        raise ConfigurationError(
            f"analysis_window_months must be greater than 0, got {config.analysis_window_months}"
        )
    if config.new_account_threshold_days < 0:
        raise ConfigurationError(
            "new_account_threshold_days must be non-negative, "
            f"got {config.new_account_threshold_days}"
        )

    if config.new_account_action not in NEW_ACCOUNT_ACTIONS:
        raise ConfigurationError(
            f"new_account_action must be one of {', '.join(NEW_ACCOUNT_ACTIONS)}, "
            f"got {config.new_account_action!r}"
        )

    validate_required_metrics(config.required_metrics)


def get_github_token() -> str:
    """
    Read the GitHub token from GITHUB_TOKEN (a .env file is honoured).

    Raises:
        AuthenticationError: If no token is configured.
    """
    load_dotenv()
    token = os.getenv("GITHUB_TOKEN", "").strip()
    if not token:
        raise AuthenticationError(
            "GITHUB_TOKEN environment variable is required.\n"
            "\n"
            "Set the token:\n"
            "   export GITHUB_TOKEN='your_token_here'  # Linux/macOS\n"
            "   or add to your .env file: GITHUB_TOKEN=your_token_here\n"
        )
    return token


def set_verify_ssl(verify: bool) -> None:
    """
    Set the SSL verification setting globally.

    Args:
        verify: Whether to verify SSL certificates.
    """
    global VERIFY_SSL
    VERIFY_SSL = verify


def get_verify_ssl() -> bool:
    """
    Get the current SSL verification setting.

    Returns:
        Whether SSL verification is enabled.
    """
    return VERIFY_SSL
