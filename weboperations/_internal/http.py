"""Shared HTTP client configuration."""

import httpx

from weboperations._version import __version__

DEFAULT_TIMEOUT = 30.0


def create_http_client(
    *,
    timeout: float = DEFAULT_TIMEOUT,
    base_url: str | None = None,
    headers: dict[str, str] | None = None,
) -> httpx.Client:
    """Create configured HTTP client.

    The client is shared by every request issued through one WebOperations
    context, so connection pooling and TLS are left to httpx.

    Args:
        timeout: Default request timeout in seconds.
        base_url: Optional base URL for all requests.
        headers: Extra default headers.

    Returns:
        Configured httpx.Client instance.
    """
    return httpx.Client(
        timeout=timeout,
        base_url=base_url or "",
        headers={"User-Agent": f"weboperations/{__version__}", **(headers or {})},
    )
