"""Dispatch sources to their adapters and merge the results."""

import asyncio
from typing import Dict, List, Optional

from rich.console import Console

from ..config import HarvestConfig
from ..inference import LLMProvider
from ..models import Source
from .archive_fetcher import ArchiveFetcher
from .base import SourceFetcher
from .feed_fetcher import FeedFetcher
from .html_fetcher import HTMLFetcher
from .llm_extractor import LLMPostExtractor
from .models import FetchResult, HarvestResult
from .sitemap_fetcher import SitemapFetcher

console = Console()


class Harvester:
    """Run one adapter per active source in a bounded pool."""

    def __init__(self, fetchers: Dict[str, SourceFetcher], max_concurrent: int = 5) -> None:
        self.fetchers = fetchers
        self.max_concurrent = max_concurrent

    @classmethod
    def from_config(
        cls,
        config: HarvestConfig,
        llm: Optional[LLMProvider] = None,
        transport=None,
    ) -> "Harvester":
        """Build the standard adapter set from harvest settings."""
        common = {
            "timeout": config.timeout,
            "max_concurrent_pages": config.max_concurrent_pages,
            "transport": transport,
        }
        extractor = LLMPostExtractor(llm, max_chars=config.llm_html_limit) if llm else None
        fetchers: Dict[str, SourceFetcher] = {
            "feed": FeedFetcher(**common),
            "sitemap": SitemapFetcher(
                max_posts=config.max_sitemap_posts,
                max_depth=config.max_sitemap_depth,
                **common,
            ),
            "paginatedArchive": ArchiveFetcher(
                max_pages=config.max_pages,
                page_delay=config.page_delay,
                **common,
            ),
            "genericHTML": HTMLFetcher(llm_extractor=extractor, **common),
        }
        return cls(fetchers, max_concurrent=config.max_concurrent_sources)

    def fetcher_for(self, source: Source) -> SourceFetcher:
        """Adapter for a source's platform kind; unknown kinds use the HTML adapter."""
        return self.fetchers.get(source.platform_kind) or self.fetchers["genericHTML"]

    async def harvest(self, sources: List[Source]) -> HarvestResult:
        """Fetch all enabled sources concurrently."""
        active = [s for s in sources if s.enabled]
        if not active:
            return HarvestResult()

        semaphore = asyncio.Semaphore(self.max_concurrent)

        async def fetch_with_semaphore(source: Source) -> FetchResult:
            async with semaphore:
                result = await self.fetcher_for(source).fetch_source(source)
            if result.success:
                console.print(f"  [green]✓[/green] {source.name}: {result.post_count} posts")
            else:
                console.print(f"  [red]✗[/red] {source.name}: {result.error}")
            return result

        results = await asyncio.gather(*(fetch_with_semaphore(s) for s in active))

        posts = [post for result in results for post in result.posts]
        return HarvestResult(posts=posts, results=list(results))

    def harvest_sync(self, sources: List[Source]) -> HarvestResult:
        """Synchronous wrapper for harvest."""
        return asyncio.run(self.harvest(sources))
