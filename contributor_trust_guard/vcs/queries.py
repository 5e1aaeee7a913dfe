"""GraphQL queries used to fetch contributor activity."""

# Page sizes requested per connection
PULL_REQUEST_PAGE_SIZE = 100
ISSUE_COMMENT_PAGE_SIZE = 100
ISSUE_SEARCH_LIMIT = 50

_RATE_LIMIT_FIELDS = """
  rateLimit {
    remaining
    resetAt
    used
    limit
  }
"""

_PULL_REQUEST_FIELDS = """
      totalCount
      nodes {
        state
        merged
        mergedAt
        createdAt
        closedAt
        additions
        deletions
        mergedBy { login }
        repository {
          owner { login }
          name
          stargazerCount
        }
        reviews(first: 1) { totalCount }
      }
      pageInfo {
        hasNextPage
        endCursor
      }
"""

_ISSUE_COMMENT_FIELDS = """
      totalCount
      nodes {
        createdAt
        reactions(first: 10) {
          nodes { content }
        }
      }
      pageInfo {
        hasNextPage
        endCursor
      }
"""

CONTRIBUTOR_DATA_QUERY = (
    """
query ContributorAnalysis($username: String!, $since: DateTime!, $issueSearchQuery: String!) {
  user(login: $username) {
    login
    createdAt
    bio
    company
    location
    websiteUrl
    followers { totalCount }
    repositories(privacy: PUBLIC) { totalCount }
"""
    + f"""
    pullRequests(
      first: {PULL_REQUEST_PAGE_SIZE}
      states: [MERGED, CLOSED, OPEN]
      orderBy: {{field: CREATED_AT, direction: DESC}}
    ) {{{_PULL_REQUEST_FIELDS}    }}

    issueComments(
      first: {ISSUE_COMMENT_PAGE_SIZE}
      orderBy: {{field: UPDATED_AT, direction: DESC}}
    ) {{{_ISSUE_COMMENT_FIELDS}    }}
"""
    + """
    contributionsCollection(from: $since) {
      pullRequestReviewContributions { totalCount }
      pullRequestReviewContributionsByRepository(maxRepositories: 25) {
        repository { nameWithOwner }
        contributions { totalCount }
      }
    }
  }
"""
    + f"""
  issueSearch: search(query: $issueSearchQuery, type: ISSUE, first: {ISSUE_SEARCH_LIMIT}) {{
    issueCount
    nodes {{
      __typename
      ... on Issue {{
        createdAt
        comments {{ totalCount }}
        reactions(first: 20) {{
          nodes {{ content }}
        }}
      }}
    }}
  }}
{_RATE_LIMIT_FIELDS}}}
"""
)

PULL_REQUEST_PAGE_QUERY = f"""
query ContributorPullRequests($username: String!, $cursor: String) {{
  user(login: $username) {{
    pullRequests(
      first: {PULL_REQUEST_PAGE_SIZE}
      states: [MERGED, CLOSED, OPEN]
      orderBy: {{field: CREATED_AT, direction: DESC}}
      after: $cursor
    ) {{{_PULL_REQUEST_FIELDS}    }}
  }}
{_RATE_LIMIT_FIELDS}}}
"""

ISSUE_COMMENT_PAGE_QUERY = f"""
query ContributorIssueComments($username: String!, $cursor: String) {{
  user(login: $username) {{
    issueComments(
      first: {ISSUE_COMMENT_PAGE_SIZE}
      orderBy: {{field: UPDATED_AT, direction: DESC}}
      after: $cursor
    ) {{{_ISSUE_COMMENT_FIELDS}    }}
  }}
{_RATE_LIMIT_FIELDS}}}
"""

ORG_MEMBERSHIP_QUERY = (
    """
query OrgMembership($org: String!, $username: String!) {
  organization(login: $org) {
    membersWithRole(query: $username, first: 1) {
      nodes { login }
    }
  }
"""
    + _RATE_LIMIT_FIELDS
    + "}\n"
)


def build_issue_search_query(username: str, since_date: str) -> str:
    """Search string for issues opened by ``username`` on or after ``since_date`` (YYYY-MM-DD)."""
    return f"author:{username} is:issue created:>={since_date}"
