"""Article fetcher and text extractor."""

import asyncio
from typing import Dict, List, Optional

import httpx
import trafilatura
from bs4 import BeautifulSoup
from rich.console import Console

from .http import SourceBlockedError, build_client, describe_error, fetch_text
from .models import ArticleContent

console = Console()


def html_to_text(html: str) -> str:
    """Plain text of a page with scripts and styles removed."""
    soup = BeautifulSoup(html, "html.parser")
    for tag in soup(["script", "style", "noscript", "nav", "footer", "aside"]):
        tag.decompose()
    return " ".join(soup.get_text(" ").split())


class ArticleFetcher:
    """Fetch article pages and extract the main text."""

    def __init__(
        self,
        timeout: float = 15.0,
        max_concurrent: int = 4,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        """Initialize article fetcher."""
        self.timeout = timeout
        self.max_concurrent = max_concurrent
        self.transport = transport

    def extract_text(self, html: str, url: str) -> str:
        """Main text via trafilatura, falling back to the whole page text."""
        extracted = trafilatura.extract(
            html,
            include_comments=False,
            include_tables=False,
            deduplicate=True,
            url=url,
        )
        if extracted and extracted.strip():
            return extracted.strip()
        return html_to_text(html)

    async def fetch_article(self, client: httpx.AsyncClient, url: str) -> ArticleContent:
        """Fetch and extract a single article."""
        try:
            html = await fetch_text(client, url)
        except (httpx.HTTPError, SourceBlockedError) as e:
            return ArticleContent(url=url, fetch_success=False, error=describe_error(e))

        text = self.extract_text(html, url)
        if not text:
            return ArticleContent(
                url=url,
                fetch_success=False,
                error="Failed to extract article content",
            )
        return ArticleContent(url=url, text=text)

    async def fetch_all_articles(self, urls: List[str]) -> Dict[str, ArticleContent]:
        """Fetch articles concurrently, keyed by URL."""
        if not urls:
            return {}

        semaphore = asyncio.Semaphore(self.max_concurrent)

        async with build_client(self.timeout, self.transport) as client:

            async def fetch_with_semaphore(url: str) -> ArticleContent:
                async with semaphore:
                    return await self.fetch_article(client, url)

            results = await asyncio.gather(*(fetch_with_semaphore(url) for url in urls))

        return {article.url: article for article in results}

    def fetch_articles_sync(self, urls: List[str]) -> Dict[str, ArticleContent]:
        """Synchronous wrapper for fetch_all_articles."""
        return asyncio.run(self.fetch_all_articles(urls))


def print_article_summary(articles: List[ArticleContent]) -> None:
    """Print summary of article fetch results."""
    successful = sum(1 for a in articles if a.fetch_success)
    failed = len(articles) - successful

    console.print("\n[bold]Article Fetch Summary:[/bold]")
    console.print(f"  Total articles: {len(articles)}")
    console.print(f"  Successful: [green]{successful}[/green]")
    console.print(f"  Failed: [red]{failed}[/red]")

    if failed > 0:
        error_counts: Dict[str, int] = {}
        for article in articles:
            if not article.fetch_success:
                error = article.error or "Unknown error"
                error_counts[error] = error_counts.get(error, 0) + 1

        console.print("\n[bold red]Failed articles:[/bold red]")
        for error, count in sorted(error_counts.items()):
            console.print(f"  - {error}: {count}")
