"""Per-post classification pipeline."""

import asyncio
from datetime import datetime, timezone
from typing import Dict, List, Optional

from rich.console import Console

from ..config import PipelineConfig
from ..inference import LLMProvider
from ..ingestion import ArticleFetcher, RawPost, parse_published
from ..models import ANALYSIS_CLASSIFICATIONS, Classification, EnrichedPost, Sentiment
from ..notifications import OperatorAlerter
from ..resolution import CompanyResolver
from .stages import Classifier, CompanyExtractor, CompanyValidator, Summarizer, fallback_summary
from .state import PostState, PostWorkItem

console = Console()


class ClassificationPipeline:
    """Classify, extract, resolve, validate and summarize posts.

    Stages run strictly in order per post. Only resolve and validate are
    retried, in place, when no match survives validation. Failed inference
    stages fall back to defaults so every post with a body is stored.
    """

    def __init__(
        self,
        llm: LLMProvider,
        resolver: CompanyResolver,
        article_fetcher: Optional[ArticleFetcher] = None,
        alerter: Optional[OperatorAlerter] = None,
        config: Optional[PipelineConfig] = None,
    ) -> None:
        self.config = config or PipelineConfig()
        self.resolver = resolver
        self.article_fetcher = article_fetcher or ArticleFetcher()
        self.alerter = alerter or OperatorAlerter()
        self.classifier = Classifier(
            llm,
            min_words=self.config.min_company_words,
            content_limit=self.config.content_limit,
        )
        self.extractor = CompanyExtractor(llm)
        self.validator = CompanyValidator(llm)
        self.summarizer = Summarizer(llm)

    def _resolve_and_validate(self, item: PostWorkItem, title: str, content: str) -> None:
        while True:
            item.advance(PostState.RESOLVED)
            item.resolutions = self.resolver.resolve_all(item.extracted)

            outcome = self.validator.validate(title, content, item.resolutions)
            item.record_error("validate", outcome.error)
            item.matches = outcome.value
            item.advance(PostState.VALIDATED)

            if item.matches or not item.resolutions or item.attempts >= self.config.validation_retries:
                return
            item.attempts += 1
            console.print(
                f"[yellow]No validated match for {item.raw.link}, retry {item.attempts}/"
                f"{self.config.validation_retries}[/yellow]"
            )

    def run(self, item: PostWorkItem, harvested_at: Optional[datetime] = None) -> EnrichedPost:
        """Drive one work item from Fetched to Validated and build its record."""
        raw = item.raw
        content = item.body[: self.config.content_limit]

        classified = self.classifier.classify(raw.title, item.body)
        item.record_error("classify", classified.error)
        item.classification = classified.value
        item.advance(PostState.CLASSIFIED)

        classification = item.classification.classification
        extracted = self.extractor.extract(raw.title, content, classification, item.classification.companies)
        item.record_error("extract", extracted.error)
        item.extracted = extracted.value
        item.advance(PostState.EXTRACTED)

        self._resolve_and_validate(item, raw.title, content)
        if item.extracted and not item.matches:
            self.alerter.resolution_failure(raw.link, raw.title, item.extracted)

        summarized = self.summarizer.summarize(raw.title, content, item.classification.summary)
        item.record_error("summarize", summarized.error)
        item.summary = summarized.value

        # A single-company label cannot carry several companies
        if classification == Classification.COMPANY_ANALYSIS and len(item.matches) > 1:
            classification = Classification.MULTI_COMPANY_ANALYSIS

        item.enriched = self.build_post(item, classification, harvested_at)
        return item.enriched

    def build_post(
        self,
        item: PostWorkItem,
        classification: Classification,
        harvested_at: Optional[datetime] = None,
    ) -> EnrichedPost:
        """EnrichedPost for a processed work item."""
        now = datetime.now(timezone.utc)
        raw = item.raw
        summary = item.summary.summary if item.summary else fallback_summary(raw.title, item.body)
        sentiment = item.summary.sentiment if item.summary else Sentiment.NEUTRAL

        return EnrichedPost(
            link=raw.link,
            title=raw.title.strip(),
            published_at=parse_published(raw.published) or harvested_at or now,
            author=raw.author,
            image=raw.image,
            summary=summary,
            classification=classification,
            sentiment_tags=[sentiment],
            company_matches=item.matches,
            source_id=raw.source_id,
            source_name=raw.source_name or None,
            is_valid_analysis=classification in ANALYSIS_CLASSIFICATIONS and bool(item.matches),
            last_checked_at=now,
        )

    def process(self, raw: RawPost, body: str, harvested_at: Optional[datetime] = None) -> PostWorkItem:
        """Run the pipeline for one post whose body is already known."""
        item = PostWorkItem(raw=raw, body=body)
        try:
            self.run(item, harvested_at)
        except Exception as e:
            # Unexpected failures still yield a stored, degraded post
            console.print(f"[red]Pipeline failed for {raw.link}: {e}[/red]")
            item.record_error("pipeline", f"{type(e).__name__}: {e}")
            item.degrade()
            item.enriched = self.build_post(item, Classification.OTHER, harvested_at)
        return item

    async def fetch_bodies(self, posts: List[RawPost]) -> Dict[str, str]:
        """Body text per link; posts without a usable body are left out.

        The article page is preferred; the feed body is kept when it is longer,
        and stands in for a failed page fetch when it reaches min_body_chars.
        """
        bodies: Dict[str, str] = {}
        articles = await self.article_fetcher.fetch_all_articles([p.link for p in posts])

        for post in posts:
            feed_body = (post.body_text or "").strip()
            article = articles.get(post.link)
            if article is not None and article.fetch_success and article.text:
                bodies[post.link] = max(article.text, feed_body, key=len)
            elif len(feed_body) >= self.config.min_body_chars:
                bodies[post.link] = feed_body
            else:
                error = article.error if article is not None else "not fetched"
                console.print(f"[yellow]No body for {post.link} ({error}), retrying next run[/yellow]")

        return bodies

    async def process_all(self, posts: List[RawPost]) -> List[PostWorkItem]:
        """Process posts concurrently, bounded by max_concurrent_posts."""
        if not posts:
            return []

        harvested_at = datetime.now(timezone.utc)
        bodies = await self.fetch_bodies(posts)
        semaphore = asyncio.Semaphore(self.config.max_concurrent_posts)

        async def process_with_semaphore(post: RawPost) -> PostWorkItem:
            async with semaphore:
                return await asyncio.to_thread(self.process, post, bodies[post.link], harvested_at)

        return list(
            await asyncio.gather(*(process_with_semaphore(p) for p in posts if p.link in bodies))
        )

    def process_sync(self, posts: List[RawPost]) -> List[PostWorkItem]:
        """Synchronous wrapper for process_all."""
        return asyncio.run(self.process_all(posts))
