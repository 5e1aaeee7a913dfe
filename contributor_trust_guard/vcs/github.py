"""
GitHub contributor data provider for Contributor Trust Guard.

This module fetches a contributor's public activity from the GitHub GraphQL API
and assembles it into a ``ContributorActivitySnapshot``. Every physical call
goes through the rate-limit gate and the retry policy; paginated collections
are accumulated up to a hard page cap.
"""

import asyncio
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable

import httpx
from rich.console import Console
from rich.markup import escape

from contributor_trust_guard.config import get_github_token
from contributor_trust_guard.errors import (
    AuthenticationError,
    PermanentError,
    RateLimitError,
    TransientError,
    UserNotFoundError,
)
from contributor_trust_guard.http_client import _build_async_http_client
from contributor_trust_guard.models import (
    AnalysisWindow,
    ContributorActivitySnapshot,
    ContributorProfile,
    IssueCommentNode,
    PullRequestNode,
    RepositoryRef,
    SearchIssueNode,
    parse_datetime,
)
from contributor_trust_guard.vcs.queries import (
    CONTRIBUTOR_DATA_QUERY,
    ISSUE_COMMENT_PAGE_QUERY,
    ORG_MEMBERSHIP_QUERY,
    PULL_REQUEST_PAGE_QUERY,
    build_issue_search_query,
)
from contributor_trust_guard.vcs.rate_limit import (
    MAX_RETRIES,
    RateLimitStatus,
    RetryPolicy,
    calculate_wait_time,
    parse_rate_limit,
    should_wait,
    wait_with_logging,
)

console = Console(stderr=True)

# GitHub API endpoint
GITHUB_GRAPHQL_API = "https://api.github.com/graphql"

# Pages fetched per paginated collection, first page included
MAX_PAGES = 5


class GitHubProvider:
    """Fetches contributor activity through the GitHub GraphQL API."""

    def __init__(
        self,
        token: str | None = None,
        client: httpx.AsyncClient | None = None,
        max_retries: int = MAX_RETRIES,
        max_pages: int = MAX_PAGES,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        verbose: bool = False,
    ):
        """
        Initialize GitHub provider.

        Args:
            token: GitHub token. If not provided, reads from the GITHUB_TOKEN
                   environment variable (or .env file).
            client: Preconfigured async HTTP client; one is created if omitted.
            max_retries: Attempts per physical call, including the first.
            max_pages: Hard cap on pages fetched per paginated collection.
            sleep: Awaitable sleep used for backoff and preemptive waits.
            verbose: Print page-level progress.

        Raises:
            AuthenticationError: If no token is available.
        """
        self.token = token or get_github_token()
        self._client = client
        self._owns_client = client is None
        self.max_retries = max_retries
        self.max_pages = max_pages
        self._sleep = sleep
        self.verbose = verbose
        self._rate_limit_status: RateLimitStatus | None = None

    @property
    def rate_limit_status(self) -> RateLimitStatus | None:
        """Quota telemetry from the most recent successful call, if any."""
        return self._rate_limit_status

    async def __aenter__(self) -> "GitHubProvider":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Close the HTTP client if this provider created it."""
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = _build_async_http_client()
        return self._client

    # --- Public API ---

    async def fetch_contributor_snapshot(
        self, username: str, window: AnalysisWindow
    ) -> ContributorActivitySnapshot:
        """
        Fetch all activity for ``username`` inside ``window``.

        Args:
            username: GitHub login of the contributor.
            window: Analysis window; records created before its start are dropped.

        Returns:
            An immutable ContributorActivitySnapshot.

        Raises:
            UserNotFoundError: If the user does not exist.
            FetchError: If the data could not be fetched after retries.
        """
        console.print(f"Fetching contributor data for [bold cyan]{escape(username)}[/bold cyan]")

        since = window.start.astimezone(timezone.utc)
        issue_search_query = build_issue_search_query(username, since.date().isoformat())
        data = await self._query_graphql(
            CONTRIBUTOR_DATA_QUERY,
            {
                "username": username,
                "since": since.isoformat().replace("+00:00", "Z"),
                "issueSearchQuery": issue_search_query,
            },
        )

        user = data.get("user")
        if not user:
            raise UserNotFoundError(username)

        pr_nodes = await self._paginate(
            username,
            user.get("pullRequests") or {},
            PULL_REQUEST_PAGE_QUERY,
            "pullRequests",
        )
        comment_nodes = await self._paginate(
            username,
            user.get("issueComments") or {},
            ISSUE_COMMENT_PAGE_QUERY,
            "issueComments",
        )

        pull_requests = [_normalize_pull_request(node) for node in pr_nodes if node]
        issue_comments = [_normalize_issue_comment(node) for node in comment_nodes if node]

        # The API filters by date only for some connections; re-apply the window
        pull_requests = [pr for pr in pull_requests if window.contains(pr.created_at)]
        issue_comments = [
            comment
            for comment in issue_comments
            if comment.created_at is None or window.contains(comment.created_at)
        ]

        issue_search = data.get("issueSearch") or {}
        created_issues = [
            _normalize_search_node(node) for node in issue_search.get("nodes") or [] if node
        ]

        contributions = user.get("contributionsCollection") or {}
        review_contributions = (
            contributions.get("pullRequestReviewContributions") or {}
        ).get("totalCount", 0)

        return ContributorActivitySnapshot(
            profile=_normalize_profile(user),
            window=window,
            pull_requests=tuple(pull_requests),
            issue_comments=tuple(issue_comments),
            created_issues=tuple(created_issues),
            issue_count=issue_search.get("issueCount", 0) or 0,
            review_contributions=review_contributions or 0,
            reviewed_repositories=tuple(_reviewed_repositories(contributions)),
        )

    async def check_org_membership(self, username: str, orgs: list[str] | tuple[str, ...]) -> bool:
        """
        Check whether ``username`` is a member of any of ``orgs``.

        Organizations that cannot be queried are treated as "not a member".
        """
        for org in orgs:
            try:
                data = await self._query_graphql(
                    ORG_MEMBERSHIP_QUERY, {"org": org, "username": username}
                )
            except (PermanentError, RateLimitError, TransientError) as e:
                if self.verbose:
                    console.print(
                        f"[dim]Could not check membership for org {escape(org)}: "
                        f"{escape(str(e))}[/dim]"
                    )
                continue

            organization = data.get("organization") or {}
            members = (organization.get("membersWithRole") or {}).get("nodes") or []
            if any(
                (member or {}).get("login", "").lower() == username.lower()
                for member in members
            ):
                console.print(
                    f"User {escape(username)} is a member of trusted organization {escape(org)}"
                )
                return True

        return False

    # --- Transport ---

    async def _paginate(
        self,
        username: str,
        connection: dict[str, Any],
        page_query: str,
        connection_key: str,
    ) -> list[dict[str, Any]]:
        """Accumulate nodes of a user connection, following its cursor up to ``max_pages``."""
        nodes = list(connection.get("nodes") or [])
        page_info = connection.get("pageInfo") or {}
        pages_loaded = 1

        while page_info.get("hasNextPage") and pages_loaded < self.max_pages:
            if self.verbose:
                console.print(
                    f"[dim]Fetching additional {connection_key} page {pages_loaded + 1}[/dim]"
                )
            data = await self._query_graphql(
                page_query,
                {"username": username, "cursor": page_info.get("endCursor")},
            )
            user = data.get("user")
            if not user:
                break
            next_connection = user.get(connection_key) or {}
            nodes.extend(next_connection.get("nodes") or [])
            page_info = next_connection.get("pageInfo") or {}
            pages_loaded += 1

        return nodes

    async def _query_graphql(
        self, query: str, variables: dict[str, Any]
    ) -> dict[str, Any]:
        """
        One logical GraphQL call: preemptive rate-limit wait, then retried attempts.

        Returns:
            The ``data`` object of the response.
        """
        if should_wait(self._rate_limit_status):
            await wait_with_logging(
                calculate_wait_time(self._rate_limit_status), sleep=self._sleep
            )

        policy = RetryPolicy(
            max_retries=self.max_retries, sleep=self._sleep, verbose=self.verbose
        )
        data = await policy.execute(lambda: self._post_graphql(query, variables))

        status = parse_rate_limit(data.get("rateLimit"))
        if status is not None:
            self._rate_limit_status = status
        return data

    async def _post_graphql(
        self, query: str, variables: dict[str, Any]
    ) -> dict[str, Any]:
        """
        Execute one physical GraphQL request and classify any failure.

        Raises:
            RateLimitError: Quota exhausted (HTTP 403/429 or RATE_LIMITED error).
            TransientError: Network failure or 5xx response.
            PermanentError: Any other failure.
        """
        headers = {
            "Authorization": f"bearer {self.token}",
            "Content-Type": "application/json",
        }
        client = self._get_client()
        try:
            response = await client.post(
                GITHUB_GRAPHQL_API,
                json={"query": query, "variables": variables},
                headers=headers,
            )
        except httpx.TransportError as e:
            raise TransientError(f"Network error contacting GitHub: {e}") from e

        if response.status_code >= 400:
            raise _classify_http_error(response)

        try:
            payload = response.json()
        except ValueError as e:
            raise PermanentError(
                "GitHub API returned invalid JSON", status_code=response.status_code
            ) from e

        data = payload.get("data") or {}
        errors = payload.get("errors") or []
        if errors:
            _raise_for_graphql_errors(errors, data)
        return data


def _classify_http_error(response: httpx.Response) -> Exception:
    """Map an HTTP error response to the fetch error taxonomy."""
    status = response.status_code
    body = response.text or ""

    if status == 401:
        return AuthenticationError(
            f"GitHub API rejected the token (401): {body[:200]}", status_code=status
        )

    if status in (403, 429):
        remaining = response.headers.get("x-ratelimit-remaining")
        if (
            "rate limit" in body.lower()
            or remaining == "0"
            or "retry-after" in response.headers
        ):
            return RateLimitError(
                f"GitHub API rate limit exceeded ({status})",
                reset_at=_reset_from_headers(response.headers),
            )

    if 500 <= status < 600:
        return TransientError(f"GitHub API server error {status}", status_code=status)

    return PermanentError(
        f"GitHub API request failed with status {status}: {body[:200]}",
        status_code=status,
    )


def _raise_for_graphql_errors(errors: list[dict[str, Any]], data: dict[str, Any]) -> None:
    """Raise for GraphQL-level errors; a lone NOT_FOUND with partial data is tolerated."""
    types = {str(error.get("type", "")).upper() for error in errors}
    messages = "; ".join(str(error.get("message", "")) for error in errors)

    if "RATE_LIMITED" in types or "rate limit" in messages.lower():
        raise RateLimitError(f"GitHub API rate limit: {messages}")

    if types == {"NOT_FOUND"} and data:
        return

    raise PermanentError(f"GitHub API Errors: {messages}")


def _reset_from_headers(headers: httpx.Headers) -> datetime | None:
    reset = headers.get("x-ratelimit-reset")
    if reset is None:
        return None
    try:
        return datetime.fromtimestamp(float(reset), tz=timezone.utc)
    except (TypeError, ValueError):
        return None


# --- Normalization ---


def _normalize_profile(user: dict[str, Any]) -> ContributorProfile:
    return ContributorProfile(
        login=user.get("login", ""),
        created_at=parse_datetime(user.get("createdAt")) or datetime.now(timezone.utc),
        bio=user.get("bio"),
        company=user.get("company"),
        location=user.get("location"),
        website_url=user.get("websiteUrl"),
        followers=(user.get("followers") or {}).get("totalCount", 0),
        public_repos=(user.get("repositories") or {}).get("totalCount", 0),
    )


def _normalize_pull_request(node: dict[str, Any]) -> PullRequestNode:
    repository = node.get("repository")
    repo_ref = None
    if repository:
        repo_ref = RepositoryRef(
            owner=(repository.get("owner") or {}).get("login", ""),
            name=repository.get("name", ""),
            stars=repository.get("stargazerCount", 0) or 0,
        )

    return PullRequestNode(
        state=node.get("state", "OPEN"),
        merged=bool(node.get("merged", False)),
        created_at=parse_datetime(node.get("createdAt")) or datetime.now(timezone.utc),
        merged_at=parse_datetime(node.get("mergedAt")),
        closed_at=parse_datetime(node.get("closedAt")),
        additions=node.get("additions", 0) or 0,
        deletions=node.get("deletions", 0) or 0,
        merged_by=(node.get("mergedBy") or {}).get("login"),
        repository=repo_ref,
        review_count=(node.get("reviews") or {}).get("totalCount", 0) or 0,
    )


def _reaction_contents(container: dict[str, Any] | None) -> tuple[str, ...]:
    nodes = (container or {}).get("nodes") or []
    return tuple(node["content"] for node in nodes if node and node.get("content"))


def _normalize_issue_comment(node: dict[str, Any]) -> IssueCommentNode:
    return IssueCommentNode(
        created_at=parse_datetime(node.get("createdAt")),
        reactions=_reaction_contents(node.get("reactions")),
    )


def _normalize_search_node(node: dict[str, Any]) -> SearchIssueNode:
    # Fragment spreads return empty objects for non-Issue results
    return SearchIssueNode(
        typename=node.get("__typename", ""),
        created_at=parse_datetime(node.get("createdAt")),
        comment_count=(node.get("comments") or {}).get("totalCount", 0) or 0,
        reactions=_reaction_contents(node.get("reactions")),
    )


def _reviewed_repositories(contributions: dict[str, Any]) -> list[str]:
    repos = []
    for entry in contributions.get("pullRequestReviewContributionsByRepository") or []:
        name = ((entry or {}).get("repository") or {}).get("nameWithOwner")
        if name:
            repos.append(name)
    return repos
