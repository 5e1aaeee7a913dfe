"""Shared HTTP client handling."""

import httpx

from contributor_trust_guard.config import get_verify_ssl

DEFAULT_TIMEOUT = 30


def _build_async_http_client(
    transport: httpx.AsyncBaseTransport | None = None,
) -> httpx.AsyncClient:
    """Create an async HTTP client honouring the global SSL verification setting.

    Each evaluation owns its client; there is no cross-run connection reuse.
    """
    return httpx.AsyncClient(
        verify=get_verify_ssl(),
        timeout=DEFAULT_TIMEOUT,
        transport=transport,
        limits=httpx.Limits(
            max_connections=10,
            max_keepalive_connections=5,
            keepalive_expiry=30.0,
        ),
    )
