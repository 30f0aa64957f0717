"""Feed (RSS/Atom) source adapter."""

import asyncio
from typing import Any, List, Mapping, Optional

import feedparser
import httpx
from rich.console import Console

from ..models import Source
from .base import SourceFetcher
from .fields import entry_html, parse_html, resolve_entry_fields
from .http import absolutize, fetch_text
from .models import FetchResult, RawPost

console = Console()


class FeedFormatError(ValueError):
    """Raised when a feed URL does not serve an RSS or Atom document."""


def looks_like_feed(text: str) -> bool:
    """Whether a response body is an RSS, RDF or Atom document."""
    head = text[:2000].lower()
    return "<rss" in head or "<feed" in head or "<rdf:rdf" in head


def default_feed_url(origin_url: str) -> str:
    """Conventional feed location for a blog origin."""
    return origin_url.rstrip("/") + "/feed"


class FeedFetcher(SourceFetcher):
    """Fetch and parse syndication feeds."""

    method = "RSS"

    def start_url(self, source: Source) -> str:
        return source.feed_url or default_feed_url(source.origin_url)

    async def _fetch_posts(self, client: httpx.AsyncClient, source: Source) -> List[RawPost]:
        feed_url = self.start_url(source)
        text = await fetch_text(client, feed_url)
        return await self.parse_feed(client, text, feed_url)

    async def parse_feed(
        self,
        client: httpx.AsyncClient,
        text: str,
        feed_url: str,
    ) -> List[RawPost]:
        """Parse a feed document into posts, resolving missing fields."""
        if not looks_like_feed(text):
            raise FeedFormatError(f"No RSS or Atom document at {feed_url}")

        feed = feedparser.parse(text)
        if feed.bozo and not feed.entries:
            raise FeedFormatError(f"Invalid feed: {feed.bozo_exception}")

        semaphore = asyncio.Semaphore(self.max_concurrent_pages)

        async def load_page(url: str) -> Optional[str]:
            async with semaphore:
                return await self._load_page(client, url)

        tasks = [self._entry_to_post(entry, feed_url, load_page) for entry in feed.entries]
        posts = await asyncio.gather(*tasks)
        return [post for post in posts if post is not None]

    async def _entry_to_post(
        self,
        entry: Mapping[str, Any],
        feed_url: str,
        load_page,
    ) -> Optional[RawPost]:
        title = (entry.get("title") or "").strip()
        link = absolutize(entry.get("link"), feed_url)
        if not title or not link:
            return None

        fields = await resolve_entry_fields(entry, link, load_page)

        body = parse_html(entry_html(entry))
        body_text = body.get_text(" ", strip=True) if body is not None else None

        return RawPost(
            title=title,
            link=link,
            published=fields.published or "",
            author=fields.author,
            image=fields.image,
            body_text=body_text or None,
        )


def print_fetch_summary(results: List[FetchResult]) -> None:
    """Print summary of source fetch results."""
    total_posts = sum(r.post_count for r in results)
    successful = sum(1 for r in results if r.success)
    failed = len(results) - successful
    blocked = sum(1 for r in results if r.blocked)

    console.print("\n[bold]Harvest Summary:[/bold]")
    console.print(f"  Sources fetched: {len(results)}")
    console.print(f"  Successful: [green]{successful}[/green]")
    console.print(f"  Failed: [red]{failed}[/red] (blocked: {blocked})")
    console.print(f"  Total posts: {total_posts}")

    if failed > 0:
        console.print("\n[bold red]Failed sources:[/bold red]")
        for result in results:
            if not result.success:
                console.print(f"  - {result.source_name}: {result.error}")
