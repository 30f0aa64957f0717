"""Source adapters, harvesting and dedup."""

from .archive_fetcher import ArchiveFetcher
from .article_fetcher import ArticleFetcher
from .base import SourceFetcher
from .dates import parse_published
from .dedup import DedupGateway, DedupResult, validate_raw_post
from .feed_fetcher import FeedFetcher
from .harvester import Harvester
from .html_fetcher import HTMLFetcher
from .llm_extractor import LLMPostExtractor
from .models import ArticleContent, FetchResult, HarvestResult, RawPost
from .platform import PlatformDetection, PlatformDetector
from .scrapers import ScraperRegistry, StaticListScraper
from .sitemap_fetcher import SitemapFetcher

__all__ = [
    "ArchiveFetcher",
    "ArticleContent",
    "ArticleFetcher",
    "DedupGateway",
    "DedupResult",
    "FeedFetcher",
    "FetchResult",
    "HTMLFetcher",
    "HarvestResult",
    "Harvester",
    "LLMPostExtractor",
    "PlatformDetection",
    "PlatformDetector",
    "RawPost",
    "ScraperRegistry",
    "SitemapFetcher",
    "SourceFetcher",
    "StaticListScraper",
    "parse_published",
    "validate_raw_post",
]
