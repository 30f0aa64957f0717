"""Paginated-archive source adapter."""

import asyncio
from typing import List

import httpx
from rich.console import Console

from ..models import Source
from .feed_fetcher import FeedFetcher
from .http import describe_error, fetch_text
from .models import RawPost

console = Console()

BLOGGER_PAGE_SIZE = 50

# Minimum items per page; a shorter page marks the end of the archive
MIN_PAGE_ITEMS = {
    "wordpress": 5,
    "blogger": BLOGGER_PAGE_SIZE,
}


def archive_page_url(source: Source, page: int) -> str:
    """URL of page ``page`` (1-based) of a source's feed archive."""
    origin = source.origin_url.rstrip("/")
    if source.archive_style == "blogger":
        start = 1 + (page - 1) * BLOGGER_PAGE_SIZE
        return (
            f"{origin}/feeds/posts/default"
            f"?start-index={start}&max-results={BLOGGER_PAGE_SIZE}&orderby=published"
        )
    base = source.feed_url or f"{origin}/feed/"
    separator = "&" if "?" in base else "?"
    return f"{base}{separator}paged={page}"


class ArchiveFetcher(FeedFetcher):
    """Walk a paginated feed archive until it runs out."""

    method = "ARCHIVE"

    def __init__(
        self,
        timeout: float = 15.0,
        max_concurrent_pages: int = 4,
        transport=None,
        max_pages: int = 20,
        page_delay: float = 0.5,
    ) -> None:
        super().__init__(timeout, max_concurrent_pages, transport)
        self.max_pages = max_pages
        self.page_delay = page_delay

    def start_url(self, source: Source) -> str:
        return archive_page_url(source, 1)

    async def _fetch_posts(self, client: httpx.AsyncClient, source: Source) -> List[RawPost]:
        min_items = MIN_PAGE_ITEMS.get(source.archive_style, 1)
        posts: List[RawPost] = []
        seen = set()

        for page in range(1, self.max_pages + 1):
            url = archive_page_url(source, page)
            try:
                text = await fetch_text(client, url)
                page_posts = await self.parse_feed(client, text, url)
            except Exception as e:
                if page == 1:
                    raise
                # Past the last page WordPress answers 404
                if not (isinstance(e, httpx.HTTPStatusError) and e.response.status_code == 404):
                    console.print(
                        f"[yellow]{source.name}: stopping at page {page}: {describe_error(e)}[/yellow]"
                    )
                break

            new_posts = [p for p in page_posts if p.link not in seen]
            seen.update(p.link for p in new_posts)
            posts.extend(new_posts)

            if len(page_posts) < min_items or not new_posts:
                break
            if self.page_delay:
                await asyncio.sleep(self.page_delay)

        return posts
