"""Sitemap-based source adapter."""

import asyncio
from datetime import datetime, timezone
from typing import Dict, List, Optional, Set
from urllib.parse import urlparse

import httpx
from bs4 import BeautifulSoup
from rich.console import Console

from ..models import Source
from .base import SourceFetcher
from .dates import parse_published
from .fields import fields_from_page, parse_html, title_from_page
from .http import describe_error, fetch_text
from .models import RawPost

console = Console()

_UNDATED = datetime.min.replace(tzinfo=timezone.utc)


class SitemapFetcher(SourceFetcher):
    """Collect post URLs from a sitemap tree and parse each post page."""

    method = "SITEMAP"

    def __init__(
        self,
        timeout: float = 15.0,
        max_concurrent_pages: int = 4,
        transport=None,
        max_posts: int = 50,
        max_depth: int = 3,
    ) -> None:
        super().__init__(timeout, max_concurrent_pages, transport)
        self.max_posts = max_posts
        self.max_depth = max_depth

    def start_url(self, source: Source) -> str:
        if source.feed_url and source.feed_url.endswith(".xml"):
            return source.feed_url
        return source.origin_url.rstrip("/") + "/sitemap.xml"

    async def _fetch_posts(self, client: httpx.AsyncClient, source: Source) -> List[RawPost]:
        entries = await self.collect_post_urls(
            client, self.start_url(source), source.post_path_pattern
        )

        # Newest first when lastmod is available
        ordered = sorted(
            entries.items(),
            key=lambda item: parse_published(item[1]) or _UNDATED,
            reverse=True,
        )
        ordered = ordered[: self.max_posts]

        semaphore = asyncio.Semaphore(self.max_concurrent_pages)

        async def fetch_one(url: str, lastmod: Optional[str]) -> Optional[RawPost]:
            async with semaphore:
                return await self._page_to_post(client, url, lastmod)

        posts = await asyncio.gather(*(fetch_one(url, lastmod) for url, lastmod in ordered))
        return [post for post in posts if post is not None]

    async def collect_post_urls(
        self,
        client: httpx.AsyncClient,
        sitemap_url: str,
        path_pattern: str,
        depth: int = 0,
        seen: Optional[Set[str]] = None,
    ) -> Dict[str, Optional[str]]:
        """Map of post URL -> lastmod gathered from a sitemap and its children.

        A failure on the top-level sitemap propagates; failing child sitemaps
        are skipped.
        """
        if seen is None:
            seen = set()
        seen.add(sitemap_url)

        text = await fetch_text(client, sitemap_url)
        soup = BeautifulSoup(text, "html.parser")

        entries: Dict[str, Optional[str]] = {}
        for url_tag in soup.find_all("url"):
            loc = url_tag.find("loc")
            if loc is None or not loc.get_text(strip=True):
                continue
            location = loc.get_text(strip=True)
            if path_pattern and path_pattern not in urlparse(location).path:
                continue
            lastmod = url_tag.find("lastmod")
            entries[location] = lastmod.get_text(strip=True) if lastmod else None

        if depth >= self.max_depth:
            return entries

        for child in soup.find_all("sitemap"):
            loc = child.find("loc")
            child_url = loc.get_text(strip=True) if loc else ""
            if not child_url or child_url in seen:
                continue
            try:
                entries.update(
                    await self.collect_post_urls(client, child_url, path_pattern, depth + 1, seen)
                )
            except Exception as e:
                console.print(f"[yellow]Skipping child sitemap {child_url}: {describe_error(e)}[/yellow]")

        return entries

    async def _page_to_post(
        self,
        client: httpx.AsyncClient,
        url: str,
        lastmod: Optional[str],
    ) -> Optional[RawPost]:
        soup = parse_html(await self._load_page(client, url))
        if soup is None:
            return None

        title = title_from_page(soup)
        if not title:
            return None

        fields = fields_from_page(soup, url)
        return RawPost(
            title=title,
            link=url,
            published=fields.published or lastmod or "",
            author=fields.author,
            image=fields.image,
        )
