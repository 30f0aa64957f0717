"""Detect which adapter a blog needs."""

import asyncio
from typing import Optional
from urllib.parse import urlparse

import httpx
from bs4 import BeautifulSoup
from pydantic import BaseModel, Field
from rich.console import Console

from .feed_fetcher import looks_like_feed
from .html_fetcher import discover_feed_links
from .http import SourceBlockedError, build_client, describe_error, fetch_text

console = Console()

FEED_PATHS = (
    "/feed/",
    "/rss",
    "/rss.xml",
    "/atom.xml",
    "/blog/feed/",
    "/articles/feed/",
    "/insights/feed/",
    "/posts/feed/",
)
LISTING_PATHS = ("/blog", "/blogs", "/articles", "/insights", "/posts", "/news")


class PlatformDetection(BaseModel):
    """Adapter choice for a source."""

    platform_kind: str = Field(..., description="feed, sitemap, paginatedArchive or genericHTML")
    extraction_method: str = Field(..., description="RSS, SITEMAP, ARCHIVE, SCRAPER or AI")
    feed_url: Optional[str] = Field(None, description="Feed, sitemap or listing URL")
    platform: str = Field("custom", description="Detected blogging platform")
    archive_style: str = Field("wordpress")


def platform_from_html(html: Optional[str]) -> str:
    """Blogging platform inferred from homepage markup."""
    if not html:
        return "custom"
    lowered = html.lower()
    if "wp-content" in lowered or 'content="wordpress' in lowered:
        return "wordpress"
    if "blogger.com" in lowered or "blogspot" in lowered:
        return "blogger"
    if "substackcdn.com" in lowered or "substack.com" in lowered:
        return "substack"
    if 'content="ghost' in lowered:
        return "ghost"
    if "medium.com" in lowered:
        return "medium"
    return "custom"


class PlatformDetector:
    """Probe a blog and choose its platform kind and extraction method."""

    def __init__(self, timeout: float = 8.0, transport: Optional[httpx.AsyncBaseTransport] = None) -> None:
        self.timeout = timeout
        self.transport = transport

    async def _try(self, client: httpx.AsyncClient, url: str) -> Optional[str]:
        try:
            return await fetch_text(client, url)
        except (httpx.HTTPError, SourceBlockedError) as e:
            console.print(f"[dim]{url}: {describe_error(e)}[/dim]")
            return None

    async def _is_feed(self, client: httpx.AsyncClient, url: str) -> bool:
        text = await self._try(client, url)
        return bool(text) and looks_like_feed(text)

    async def detect(self, origin_url: str) -> PlatformDetection:
        """Detect the adapter for a blog origin."""
        origin = origin_url.rstrip("/")
        host = urlparse(origin).netloc.lower()

        async with build_client(self.timeout, self.transport) as client:
            if host.endswith("substack.com") or host.endswith("medium.com"):
                return PlatformDetection(
                    platform_kind="feed",
                    extraction_method="RSS",
                    feed_url=f"{origin}/feed",
                    platform="substack" if "substack" in host else "medium",
                )

            homepage = await self._try(client, origin)
            platform = "blogger" if host.endswith("blogspot.com") else platform_from_html(homepage)

            if platform == "blogger":
                return PlatformDetection(
                    platform_kind="paginatedArchive",
                    extraction_method="ARCHIVE",
                    platform=platform,
                    archive_style="blogger",
                )

            candidates = discover_feed_links(homepage, origin) if homepage else []
            if platform == "ghost":
                candidates.append(f"{origin}/rss/")
            candidates.extend(origin + path for path in FEED_PATHS)

            for feed_url in dict.fromkeys(candidates):
                if not await self._is_feed(client, feed_url):
                    continue
                if platform == "wordpress":
                    return PlatformDetection(
                        platform_kind="paginatedArchive",
                        extraction_method="ARCHIVE",
                        feed_url=feed_url,
                        platform=platform,
                    )
                return PlatformDetection(
                    platform_kind="feed",
                    extraction_method="RSS",
                    feed_url=feed_url,
                    platform=platform,
                )

            if platform == "substack":
                return PlatformDetection(
                    platform_kind="sitemap",
                    extraction_method="SITEMAP",
                    feed_url=f"{origin}/sitemap.xml",
                    platform=platform,
                )

            for path in LISTING_PATHS:
                html = await self._try(client, origin + path)
                if html and _has_post_listing(html):
                    return PlatformDetection(
                        platform_kind="genericHTML",
                        extraction_method="SCRAPER",
                        feed_url=origin + path,
                        platform=platform,
                    )

        return PlatformDetection(
            platform_kind="genericHTML",
            extraction_method="AI",
            feed_url=None,
            platform=platform,
        )

    def detect_sync(self, origin_url: str) -> PlatformDetection:
        """Synchronous wrapper for detect."""
        return asyncio.run(self.detect(origin_url))


def _has_post_listing(html: str) -> bool:
    soup = BeautifulSoup(html, "html.parser")
    return bool(
        soup.select("article")
        or soup.select(".post")
        or soup.select(".blog-post")
        or len(soup.select("h2 a")) > 3
    )
