"""Generic-HTML source adapter: scrapers, feed discovery, then the LLM."""

import asyncio
from typing import List, Optional

import httpx
from bs4 import BeautifulSoup
from rich.console import Console

from ..models import Source
from .feed_fetcher import FeedFetcher
from .http import absolutize, describe_error, fetch_text
from .llm_extractor import LLMPostExtractor
from .models import RawPost
from .scrapers import ScraperRegistry

console = Console()

FEED_TYPES = ("application/rss+xml", "application/atom+xml", "application/feed+xml")


def discover_feed_links(html: str, base_url: str) -> List[str]:
    """Feed URLs advertised by <link rel="alternate"> tags."""
    soup = BeautifulSoup(html, "html.parser")
    links: List[str] = []
    for tag in soup.find_all("link", href=True):
        rel = tag.get("rel") or []
        if isinstance(rel, str):
            rel = rel.split()
        if "alternate" not in [r.lower() for r in rel]:
            continue
        if (tag.get("type") or "").lower() not in FEED_TYPES:
            continue
        href = absolutize(tag["href"], base_url)
        if href and href not in links:
            links.append(href)
    return links


class HTMLFetcher(FeedFetcher):
    """Scrape a listing page.

    Order: site scrapers from the registry, feeds advertised by the page,
    then the LLM extractor when one is configured.
    """

    method = "SCRAPER"

    def __init__(
        self,
        timeout: float = 15.0,
        max_concurrent_pages: int = 4,
        transport=None,
        registry: Optional[ScraperRegistry] = None,
        llm_extractor: Optional[LLMPostExtractor] = None,
        max_discovered_feeds: int = 3,
    ) -> None:
        super().__init__(timeout, max_concurrent_pages, transport)
        self.registry = registry or ScraperRegistry()
        self.llm_extractor = llm_extractor
        self.max_discovered_feeds = max_discovered_feeds

    def start_url(self, source: Source) -> str:
        return source.feed_url or source.origin_url

    async def _fetch_posts(self, client: httpx.AsyncClient, source: Source) -> List[RawPost]:
        url = self.start_url(source)
        html = await fetch_text(client, url)

        scraper_name, posts = self.registry.scrape(source, html, url)
        if posts:
            console.print(f"[dim]{source.name}: {len(posts)} posts via scraper {scraper_name}[/dim]")
            return posts

        for feed_url in discover_feed_links(html, url)[: self.max_discovered_feeds]:
            try:
                text = await fetch_text(client, feed_url)
                posts = await self.parse_feed(client, text, feed_url)
            except Exception as e:
                console.print(f"[dim]{source.name}: discovered feed {feed_url} failed: {describe_error(e)}[/dim]")
                continue
            if posts:
                console.print(f"[dim]{source.name}: {len(posts)} posts via discovered feed[/dim]")
                return posts

        if self.llm_extractor is None:
            return []

        posts = await asyncio.to_thread(self.llm_extractor.extract, html, url)
        console.print(f"[dim]{source.name}: {len(posts)} posts via LLM extraction[/dim]")
        return posts
