"""Shared HTTP helpers for source adapters."""

from typing import Optional
from urllib.parse import urljoin, urlparse

import httpx

BROWSER_HEADERS = {
    "User-Agent": (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/124.0 Safari/537.36"
    ),
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
    "Accept-Language": "en-US,en;q=0.9",
}

# Status codes returned by bot-mitigation layers (Cloudflare, Akamai, ...)
BLOCK_STATUS_CODES = {403, 429, 503}


class SourceBlockedError(Exception):
    """Raised when a site answers with an anti-bot response."""

    def __init__(self, url: str, status_code: int) -> None:
        super().__init__(f"Blocked by anti-bot protection ({status_code}) at {url}")
        self.url = url
        self.status_code = status_code


def build_client(
    timeout: float = 15.0,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> httpx.AsyncClient:
    """Create an async client with browser-like headers."""
    return httpx.AsyncClient(
        timeout=timeout,
        follow_redirects=True,
        headers=BROWSER_HEADERS,
        transport=transport,
    )


async def fetch_text(client: httpx.AsyncClient, url: str) -> str:
    """GET a URL and return the body, raising on anti-bot and non-2xx responses."""
    response = await client.get(url)
    if response.status_code in BLOCK_STATUS_CODES:
        raise SourceBlockedError(url, response.status_code)
    response.raise_for_status()
    return response.text


def is_http_url(value: Optional[str]) -> bool:
    """Whether value is an absolute http(s) URL."""
    if not value:
        return False
    parsed = urlparse(value.strip())
    return parsed.scheme in ("http", "https") and bool(parsed.netloc)


def absolutize(link: Optional[str], base_url: str) -> Optional[str]:
    """Resolve a possibly relative link against the page URL."""
    if not link:
        return None
    link = link.strip()
    if link.startswith(("data:", "javascript:", "mailto:", "#")):
        return None
    return urljoin(base_url, link)


def origin_of(url: str) -> str:
    """scheme://host of a URL."""
    parsed = urlparse(url)
    return f"{parsed.scheme}://{parsed.netloc}"


def describe_error(error: Exception) -> str:
    """Short human-readable description of a fetch failure."""
    if isinstance(error, SourceBlockedError):
        return str(error)
    if isinstance(error, httpx.HTTPStatusError):
        return f"HTTP {error.response.status_code}"
    if isinstance(error, httpx.TimeoutException):
        return "Request timed out"
    if isinstance(error, httpx.HTTPError):
        return f"HTTP error: {error}"
    return f"Unexpected error: {error}"
