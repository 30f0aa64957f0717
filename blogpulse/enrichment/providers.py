"""Market-cap providers."""

import random
import re
import time
from abc import ABC, abstractmethod
from typing import Callable, List, Optional, Tuple

import httpx
import yfinance as yf
from bs4 import BeautifulSoup
from rich.console import Console
from yfinance.exceptions import YFRateLimitError

from ..ingestion.http import BROWSER_HEADERS
from ..models import CompanyReference

console = Console()

# NSE series suffixes that are not part of the listed symbol
SERIES_SUFFIX = re.compile(r"-(SM|E1|E2|IV|X1|RR|ST|BE|BZ|IL|W1|IT)$")
ACCEPTED_QUOTE_TYPES = {"EQUITY", "OTHER", "NONE"}

Sleep = Callable[[float], None]


class RateLimitedError(Exception):
    """Raised when a provider signals throttling."""

    def __init__(self, provider: str, symbol: str) -> None:
        self.provider = provider
        self.symbol = symbol
        super().__init__(f"{provider} rate limited on {symbol}")


def clean_symbol(symbol: str) -> str:
    return SERIES_SUFFIX.sub("", symbol.strip().upper())


class MarketDataProvider(ABC):
    """Look up a company's market capitalization."""

    name = "provider"

    def __init__(
        self,
        min_delay: float = 1.5,
        max_delay: float = 3.0,
        sleep: Optional[Sleep] = None,
    ) -> None:
        self.min_delay = min_delay
        self.max_delay = max_delay
        self.sleep = sleep or time.sleep

    def polite_delay(self) -> None:
        """Randomized pause before each external call."""
        if self.max_delay > 0:
            self.sleep(random.uniform(self.min_delay, self.max_delay))

    @abstractmethod
    def market_cap(self, company: CompanyReference) -> Optional[float]:
        """Market cap in rupees, None when unknown.

        Raises:
            RateLimitedError: when the provider throttles the request
        """
        pass


class YahooFinanceProvider(MarketDataProvider):
    """Primary provider backed by yfinance quotes."""

    name = "yahoo"

    def tickers(self, company: CompanyReference) -> List[str]:
        """Yahoo tickers to try, primary exchange first."""
        nse = [f"{clean_symbol(company.nse_code)}.NS"] if company.nse_code else []
        bse_symbol = company.bse_code or company.nse_code
        bse = [f"{clean_symbol(bse_symbol)}.BO"] if bse_symbol else []
        ordered = bse + nse if company.exchange == "BSE" else nse + bse
        return list(dict.fromkeys(ordered))

    def quote(self, ticker: str) -> Tuple[Optional[float], Optional[str]]:
        """(marketCap, quoteType) for one ticker."""
        info = yf.Ticker(ticker).info or {}
        return info.get("marketCap"), info.get("quoteType")

    def market_cap(self, company: CompanyReference) -> Optional[float]:
        for ticker in self.tickers(company):
            self.polite_delay()
            try:
                market_cap, quote_type = self.quote(ticker)
            except YFRateLimitError as e:
                raise RateLimitedError(self.name, ticker) from e
            except Exception as e:
                console.print(f"  [dim]✗ {ticker}: {str(e)[:60]}[/dim]")
                continue

            if quote_type and quote_type.upper() not in ACCEPTED_QUOTE_TYPES:
                console.print(f"  [yellow]⚠ {ticker}: unsupported quoteType ({quote_type})[/yellow]")
                continue
            if market_cap:
                console.print(f"  [green]✓[/green] {ticker}: ₹{market_cap / 1e7:,.2f} Cr")
                return float(market_cap)

        return None


def parse_screener_market_cap(html: str) -> Optional[float]:
    """Market cap from a Screener company page, converted from crores."""
    soup = BeautifulSoup(html, "html.parser")
    for item in soup.find_all("li"):
        label = item.find("span", class_="name")
        if label is None or label.get_text(strip=True) != "Market Cap":
            continue
        number = item.find("span", class_="number")
        if number is None:
            return None
        try:
            return float(number.get_text(strip=True).replace(",", "")) * 1e7
        except ValueError:
            return None
    return None


class ScreenerProvider(MarketDataProvider):
    """Fallback provider scraping screener.in company pages.

    Rate-limit responses are retried after 3 s, 6 s, 9 s before giving up.
    """

    name = "screener"
    base_url = "https://www.screener.in/company"

    def __init__(
        self,
        timeout: float = 15.0,
        retries: int = 3,
        backoff_step: float = 3.0,
        transport: Optional[httpx.BaseTransport] = None,
        **kwargs,
    ) -> None:
        super().__init__(**kwargs)
        self.timeout = timeout
        self.retries = retries
        self.backoff_step = backoff_step
        self.transport = transport

    def market_cap(self, company: CompanyReference) -> Optional[float]:
        symbol = company.nse_code or company.bse_code
        if not symbol:
            return None
        url = f"{self.base_url}/{clean_symbol(symbol)}/"
        headers = {**BROWSER_HEADERS, "Referer": "https://www.screener.in/"}

        self.polite_delay()
        with httpx.Client(
            timeout=self.timeout,
            headers=headers,
            follow_redirects=True,
            transport=self.transport,
        ) as client:
            for attempt in range(self.retries + 1):
                try:
                    response = client.get(url)
                except httpx.HTTPError as e:
                    console.print(f"  [dim]✗ screener {symbol}: {e}[/dim]")
                    return None

                if response.status_code == 429:
                    if attempt == self.retries:
                        console.print(f"  [red]✗ screener rate limited permanently for {symbol}[/red]")
                        return None
                    backoff = (attempt + 1) * self.backoff_step
                    console.print(f"  [yellow]⏳ 429 for {symbol}, retrying in {backoff:.0f}s[/yellow]")
                    self.sleep(backoff)
                    continue

                if response.status_code != 200:
                    console.print(f"  [dim]✗ screener returned {response.status_code} for {symbol}[/dim]")
                    return None

                market_cap = parse_screener_market_cap(response.text)
                if market_cap is None:
                    console.print(f"  [dim]✗ market cap not found for {symbol}[/dim]")
                return market_cap

        return None
