"""
Command-line interface for Contributor Trust Guard.
"""

import asyncio
import json
from pathlib import Path

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from contributor_trust_guard.config import TrustConfig, load_trust_config, set_verify_ssl
from contributor_trust_guard.core import AnalysisResult, analyze_contributor
from contributor_trust_guard.errors import ConfigurationError, FetchError, RateLimitError
from contributor_trust_guard.models import PRContext
from contributor_trust_guard.vcs.github import GitHubProvider

# --- Constants ---
EXIT_PASSED = 0
EXIT_FAILED = 1
EXIT_ERROR = 2

# --- Typer App ---
app = typer.Typer(no_args_is_help=True)
console = Console()

# --- Helper Functions ---


def parse_repo(repo: str) -> tuple[str, str]:
    """Split ``owner/name`` into its parts."""
    owner, _, name = repo.strip().partition("/")
    if not owner or not name or "/" in name:
        raise ConfigurationError(f"Repository must be given as OWNER/NAME, got: {repo}")
    return owner, name


def parse_threshold_options(values: list[str] | None) -> dict[str, float]:
    """Parse repeated ``NAME=VALUE`` threshold options."""
    thresholds: dict[str, float] = {}
    for value in values or []:
        name, sep, raw = value.partition("=")
        if not sep or not name.strip():
            raise ConfigurationError(f"Threshold must be given as NAME=VALUE, got: {value}")
        try:
            thresholds[name.strip()] = float(raw)
        except ValueError as e:
            raise ConfigurationError(f"Threshold value for {name} is not a number: {raw}") from e
    return thresholds


def display_result(result: AnalysisResult, verbose: bool = False) -> None:
    """Display an analysis result as a rich table with recommendations."""
    username = escape(result.username)

    if result.was_whitelisted:
        console.print(
            f"[green]✓ {username} is a trusted contributor; analysis skipped.[/green]"
        )
        return

    table = Table(title=f"Contributor Trust Report: {username}")
    table.add_column("Metric", justify="left", style="cyan", no_wrap=True)
    table.add_column("Value", justify="right", style="magenta")
    table.add_column("Threshold", justify="right")
    table.add_column("Status", justify="center")
    table.add_column("Details", justify="left")

    for metric in result.metrics:
        status = "[green]Pass[/green]" if metric.passed else "[red]Fail[/red]"
        raw = metric.raw_value
        value = f"{raw:.2f}" if isinstance(raw, float) and not raw.is_integer() else f"{raw:g}"
        table.add_row(
            str(metric.name),
            value,
            f"{metric.threshold:g}",
            status,
            escape(metric.details),
        )

    console.print(table)

    verdict_color = "green" if result.passed else "red"
    verdict = "PASSED" if result.passed else "FAILED"
    console.print(
        f"\n[bold {verdict_color}]{verdict}[/bold {verdict_color}] "
        f"({result.passed_count}/{result.total_metrics} checks passed)"
    )
    console.print(
        f"[dim]Analysis window: {result.data_window_start.date()} to "
        f"{result.data_window_end.date()}[/dim]"
    )

    if result.is_new_account:
        console.print("[yellow]Note: this is a new account.[/yellow]")
    if result.has_limited_data:
        console.print("[yellow]Note: limited activity data is available.[/yellow]")

    patterns = ()
    if result.metrics_data and result.metrics_data.suspicious_patterns:
        patterns = result.metrics_data.suspicious_patterns.detected_patterns
    if patterns:
        console.print("\n[bold]Suspicious patterns:[/bold]")
        for pattern in patterns:
            color = "red" if str(pattern.severity) == "CRITICAL" else "yellow"
            console.print(
                f"  • [{color}]{pattern.type} ({pattern.severity})[/{color}]: "
                f"{escape(pattern.description)}"
            )
            if verbose:
                console.print(f"    [dim]{escape(json.dumps(pattern.evidence))}[/dim]")

    if result.recommendations:
        console.print("\n[bold]Recommendations:[/bold]")
        for recommendation in result.recommendations:
            console.print(f"  • {escape(recommendation)}")


async def _run_analysis(
    pr_context: PRContext, config: TrustConfig, verbose: bool
) -> AnalysisResult:
    async with GitHubProvider(verbose=verbose) as provider:
        return await analyze_contributor(provider, pr_context, config)


@app.callback()
def main():
    """Evaluate whether a pull request author looks like a trustworthy contributor."""


@app.command()
def check(
    username: str = typer.Argument(..., help="GitHub login of the pull request author."),
    repo: str = typer.Option(
        ...,
        "--repo",
        "-r",
        help="Repository receiving the pull request, as OWNER/NAME.",
    ),
    pr_number: int = typer.Option(
        0,
        "--pr-number",
        help="Number of the pull request being evaluated.",
    ),
    config_path: Path | None = typer.Option(
        None,
        "--config",
        "-c",
        help="Path to a TOML config file (default: .contributor-trust-guard.toml or pyproject.toml).",
    ),
    threshold: list[str] | None = typer.Option(
        None,
        "--threshold",
        "-t",
        help="Override a metric threshold, e.g. prMergeRate=0.5. May be repeated.",
    ),
    require: list[str] | None = typer.Option(
        None,
        "--require",
        help="Metric that must pass for the overall verdict. May be repeated.",
    ),
    window_months: int | None = typer.Option(
        None,
        "--window-months",
        help="Months of history to analyze.",
    ),
    minimum_stars: int | None = typer.Option(
        None,
        "--minimum-stars",
        help="Stars a repository needs to count as a quality repository.",
    ),
    new_account_action: str | None = typer.Option(
        None,
        "--new-account-action",
        help=(
            "How to treat accounts younger than the new-account threshold: "
            "neutral, require-review or block."
        ),
    ),
    no_spam_detection: bool = typer.Option(
        False,
        "--no-spam-detection",
        help="Disable suspicious pattern detection.",
    ),
    output_json: bool = typer.Option(
        False,
        "--json",
        help="Print the result as JSON instead of a table.",
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Show fetch progress and pattern evidence.",
    ),
    insecure: bool = typer.Option(
        False,
        "--insecure",
        help="Disable SSL certificate verification for HTTPS requests.",
    ),
):
    """Check a contributor's public GitHub activity against trust thresholds."""
    set_verify_ssl(not insecure)

    try:
        owner, name = parse_repo(repo)
        overrides = {
            "thresholds": parse_threshold_options(threshold),
            "required_metrics": require or None,
            "analysis_window_months": window_months,
            "minimum_stars": minimum_stars,
            "enable_spam_detection": False if no_spam_detection else None,
            "new_account_action": new_account_action,
        }
        config = load_trust_config(config_path, overrides)
    except ConfigurationError as e:
        console.print(f"[red]Configuration error: {escape(str(e))}[/red]")
        raise typer.Exit(code=EXIT_ERROR) from None

    pr_context = PRContext(owner=owner, repo=name, pr_number=pr_number, author=username)

    try:
        result = asyncio.run(_run_analysis(pr_context, config, verbose))
    except FetchError as e:
        message = str(e)
        if isinstance(e, RateLimitError) and e.reset_at is not None:
            message += f" (resets at {e.reset_at:%Y-%m-%d %H:%M:%S} UTC)"
        console.print(
            f"[red]Could not fetch data for {escape(username)}: {escape(message)}[/red]"
        )
        raise typer.Exit(code=EXIT_ERROR) from None

    if output_json:
        typer.echo(json.dumps(result.to_dict(), indent=2))
    else:
        display_result(result, verbose=verbose)

    flag_for_review = config.new_account_action == "require-review" and not output_json
    if result.is_new_account and flag_for_review:
        console.print("[yellow]New account flagged for maintainer review.[/yellow]")

    if result.is_new_account and config.new_account_action == "block":
        if not output_json:
            console.print(
                f"[red]New accounts (< {config.new_account_threshold_days} days) "
                "are not allowed to submit PRs.[/red]"
            )
        raise typer.Exit(code=EXIT_FAILED)

    raise typer.Exit(code=EXIT_PASSED if result.passed else EXIT_FAILED)


if __name__ == "__main__":
    app()
