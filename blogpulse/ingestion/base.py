"""Base class for source adapters."""

import asyncio
from abc import ABC, abstractmethod
from typing import List, Optional

import httpx
from rich.console import Console

from ..models import Source
from .http import SourceBlockedError, build_client, describe_error, fetch_text
from .models import FetchResult, RawPost

console = Console()


class SourceFetcher(ABC):
    """Turns a Source into a list of RawPosts without ever raising.

    Subclasses implement ``_fetch_posts``; any exception it raises becomes a
    failed FetchResult so one broken source never blocks the batch.
    """

    method = "RSS"

    def __init__(
        self,
        timeout: float = 15.0,
        max_concurrent_pages: int = 4,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.timeout = timeout
        self.max_concurrent_pages = max_concurrent_pages
        self.transport = transport

    def _client(self) -> httpx.AsyncClient:
        return build_client(self.timeout, self.transport)

    @abstractmethod
    async def _fetch_posts(self, client: httpx.AsyncClient, source: Source) -> List[RawPost]:
        """Fetch and parse posts for one source."""

    def start_url(self, source: Source) -> str:
        """URL the adapter fetches first."""
        return source.feed_url or source.origin_url

    async def fetch_source(self, source: Source) -> FetchResult:
        """Fetch posts for a source, converting every failure into a result."""
        url = self.start_url(source)
        try:
            async with self._client() as client:
                posts = await self._fetch_posts(client, source)
        except SourceBlockedError as e:
            return FetchResult(
                source_name=source.name,
                source_url=url,
                success=False,
                blocked=True,
                error=str(e),
            )
        except Exception as e:
            return FetchResult(
                source_name=source.name,
                source_url=url,
                success=False,
                error=describe_error(e),
            )

        for post in posts:
            post.source_id = source.id
            post.source_name = source.name

        return FetchResult(
            source_name=source.name,
            source_url=url,
            success=True,
            posts=posts,
            method=self.method,
        )

    def fetch_source_sync(self, source: Source) -> FetchResult:
        """Synchronous wrapper for fetch_source."""
        return asyncio.run(self.fetch_source(source))

    async def _load_page(self, client: httpx.AsyncClient, url: str) -> Optional[str]:
        """Fetch an article page for field fallbacks; None on any failure."""
        try:
            return await fetch_text(client, url)
        except (httpx.HTTPError, SourceBlockedError) as e:
            console.print(f"[dim]Page fetch failed for {url}: {describe_error(e)}[/dim]")
            return None
