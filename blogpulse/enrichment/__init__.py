"""Reference company list refresh and market-cap enrichment."""

from .breaker import CircuitBreaker
from .providers import (
    MarketDataProvider,
    RateLimitedError,
    ScreenerProvider,
    YahooFinanceProvider,
    parse_screener_market_cap,
)
from .reference import build_reference, download_reference
from .service import BatchResult, EnrichmentService

__all__ = [
    "BatchResult",
    "CircuitBreaker",
    "EnrichmentService",
    "MarketDataProvider",
    "RateLimitedError",
    "ScreenerProvider",
    "YahooFinanceProvider",
    "build_reference",
    "download_reference",
    "parse_screener_market_cap",
]
