"""Tests for market-cap enrichment and the reference list build."""

from unittest.mock import patch

import httpx
import pytest
from yfinance.exceptions import YFRateLimitError

from blogpulse.enrichment import (
    CircuitBreaker,
    EnrichmentService,
    MarketDataProvider,
    RateLimitedError,
    ScreenerProvider,
    YahooFinanceProvider,
    build_reference,
    parse_screener_market_cap,
)
from blogpulse.enrichment.providers import clean_symbol
from blogpulse.enrichment.service import CURSOR_NAME

from .helpers import FakeCompanyStorage, FakeJobStateManager, make_company

SCREENER_PAGE = """<html><body><ul id="top-ratios">
  <li><span class="name">Market Cap</span>
      <span class="nowrap value">₹ <span class="number">1,234.5</span> Cr.</span></li>
  <li><span class="name">Current Price</span><span class="number">99</span></li>
</ul></body></html>"""


class ScriptedProvider(MarketDataProvider):
    """Provider answering from a per-call script of values or exceptions."""

    def __init__(self, name, script):
        super().__init__(min_delay=0, max_delay=0)
        self.name = name
        self.script = list(script)
        self.calls = []

    def market_cap(self, company):
        self.calls.append(company.nse_code)
        step = self.script.pop(0) if len(self.script) > 1 else self.script[0]
        if isinstance(step, Exception):
            raise step
        return step


def unchecked(count):
    return FakeCompanyStorage(
        make_company(f"COMPANY {i} LIMITED", f"C{i}", market_cap=None) for i in range(count)
    )


class TestEnrichmentService:
    def test_rate_limit_trips_the_breaker_for_the_rest_of_the_run(self, conn):
        storage = unchecked(3)
        primary = ScriptedProvider("yahoo", [RateLimitedError("yahoo", "C0.NS"), 1e10])
        fallback = ScriptedProvider("screener", [2e9])
        service = EnrichmentService(storage, FakeJobStateManager(), primary, fallback, batch_size=10)

        result = service.run_batch(conn)

        assert primary.calls == ["C0"]
        assert fallback.calls == ["C0", "C1", "C2"]
        assert result.primary_disabled
        assert result.found == 3
        assert all(c.market_cap == 2e9 for c in storage.companies)

    def test_every_row_is_marked_checked(self, conn):
        storage = unchecked(3)
        primary = ScriptedProvider("yahoo", [None])
        fallback = ScriptedProvider("screener", [None])
        service = EnrichmentService(storage, FakeJobStateManager(), primary, fallback)

        result = service.run_batch(conn)

        assert result.processed == 3
        assert result.found == 0
        assert all(c.market_cap_checked for c in storage.companies)
        assert all(c.market_cap is None for c in storage.companies)

    def test_primary_answer_skips_fallback(self, conn):
        storage = unchecked(1)
        primary = ScriptedProvider("yahoo", [7e9])
        fallback = ScriptedProvider("screener", [1.0])
        service = EnrichmentService(storage, FakeJobStateManager(), primary, fallback)

        assert service.lookup(storage.companies[0]) == (7e9, "yahoo")
        assert fallback.calls == []

    def test_fallback_rate_limit_yields_nothing(self):
        primary = ScriptedProvider("yahoo", [None])
        fallback = ScriptedProvider("screener", [RateLimitedError("screener", "C0")])
        service = EnrichmentService(unchecked(0), FakeJobStateManager(), primary, fallback)

        assert service.lookup(make_company("X", "X")) == (None, None)

    def test_cursor_advances_then_resets(self, conn):
        storage = unchecked(3)
        jobs = FakeJobStateManager()
        service = EnrichmentService(
            storage,
            jobs,
            ScriptedProvider("yahoo", [1e9]),
            ScriptedProvider("screener", [None]),
            batch_size=2,
        )

        first = service.run_batch(conn)
        assert first.processed == 2
        assert first.has_more
        assert jobs.cursors[CURSOR_NAME] == storage.get(2).created_at

        second = service.run_batch(conn)
        assert second.processed == 1
        assert not second.has_more
        assert jobs.cursors[CURSOR_NAME] == storage.get(3).created_at

        third = service.run_batch(conn)
        assert third.processed == 0
        assert not third.has_more
        assert jobs.cursors[CURSOR_NAME] is None


class TestCircuitBreaker:
    def test_only_first_trip_reports_opening(self):
        breaker = CircuitBreaker("yahoo")

        assert breaker.trip()
        assert not breaker.trip()
        assert breaker.tripped

        breaker.reset()
        assert not breaker.tripped


class TestScreenerProvider:
    def company(self):
        return make_company("ACME LIMITED", "ACME-BE", market_cap=None)

    def test_backoff_waits_3_6_9_seconds(self):
        statuses = [429, 429, 429, 200]
        requested = []

        def handler(request):
            requested.append(str(request.url))
            status = statuses.pop(0)
            return httpx.Response(status, text=SCREENER_PAGE if status == 200 else "")

        sleeps = []
        provider = ScreenerProvider(
            transport=httpx.MockTransport(handler), min_delay=0, max_delay=0, sleep=sleeps.append
        )

        assert provider.market_cap(self.company()) == pytest.approx(1234.5 * 1e7)
        assert sleeps == [3.0, 6.0, 9.0]
        assert requested[0] == "https://www.screener.in/company/ACME/"

    def test_gives_up_after_retries(self):
        sleeps = []
        provider = ScreenerProvider(
            transport=httpx.MockTransport(lambda request: httpx.Response(429)),
            min_delay=0,
            max_delay=0,
            sleep=sleeps.append,
        )

        assert provider.market_cap(self.company()) is None
        assert sleeps == [3.0, 6.0, 9.0]

    def test_missing_page_is_none(self):
        provider = ScreenerProvider(
            transport=httpx.MockTransport(lambda request: httpx.Response(404)), min_delay=0, max_delay=0
        )

        assert provider.market_cap(self.company()) is None

    def test_parse_market_cap(self):
        assert parse_screener_market_cap(SCREENER_PAGE) == pytest.approx(1.2345e10)
        assert parse_screener_market_cap("<html></html>") is None


class TestYahooFinanceProvider:
    def test_tickers_primary_exchange_first(self):
        provider = YahooFinanceProvider(max_delay=0)

        nse = make_company("RELIANCE INDUSTRIES LIMITED", "RELIANCE", bse_code="500325")
        bse = make_company("SMALL CO", "SMALLCO", bse_code="543210", exchange="BSE")

        assert provider.tickers(nse) == ["RELIANCE.NS", "500325.BO"]
        assert provider.tickers(bse) == ["543210.BO", "SMALLCO.NS"]

    def test_rate_limit_is_translated(self):
        provider = YahooFinanceProvider(max_delay=0)

        with patch.object(provider, "quote", side_effect=YFRateLimitError()):
            with pytest.raises(RateLimitedError):
                provider.market_cap(make_company("ACME LIMITED", "ACME"))

    def test_unsupported_quote_type_is_skipped(self):
        provider = YahooFinanceProvider(max_delay=0)
        quotes = {"ACME.NS": (5e9, "MUTUALFUND"), "ACME.BO": (4e9, "EQUITY")}

        with patch.object(provider, "quote", side_effect=lambda ticker: quotes[ticker]):
            assert provider.market_cap(make_company("ACME LIMITED", "ACME")) == 4e9

    def test_clean_symbol(self):
        assert clean_symbol(" abc-be ") == "ABC"
        assert clean_symbol("M&M") == "M&M"


class TestBuildReference:
    def test_merges_exchanges_and_filters_instruments(self):
        instruments = [
            {"exchange": "NSE", "instrument_type": "EQ", "tradingsymbol": "ACME", "name": "ACME LIMITED",
             "instrument_token": "111", "exchange_token": "1"},
            {"exchange": "BSE", "instrument_type": "EQ", "tradingsymbol": "ACME", "name": "ACME LTD",
             "instrument_token": "222", "exchange_token": "500001"},
            {"exchange": "BSE", "instrument_type": "EQ", "tradingsymbol": "BONLY", "name": "BSE ONLY LIMITED",
             "instrument_token": "333", "exchange_token": "500002"},
            {"exchange": "NSE", "instrument_type": "EQ", "tradingsymbol": "ACMEINAV", "name": "ACME INAV"},
            {"exchange": "NSE", "instrument_type": "EQ", "tradingsymbol": "GS2030", "name": "GOI 7.1% 2030"},
            {"exchange": "NFO", "instrument_type": "FUT", "tradingsymbol": "ACMEFUT", "name": "ACME"},
        ]
        nse_rows = [{"SYMBOL": "ACME", "SERIES": "EQ", "ISIN NUMBER": "INE000A01010"}]

        companies = {c.nse_code: c for c in build_reference(instruments, nse_rows)}

        assert set(companies) == {"ACME", "BONLY"}
        acme = companies["ACME"]
        assert acme.name == "ACME LIMITED"
        assert acme.exchange == "NSE"
        assert acme.bse_code == "500001"
        assert acme.isin == "INE000A01010"
        assert acme.search_tokens == ["ACME", "LIMITED"]
        assert companies["BONLY"].exchange == "BSE"
        assert companies["BONLY"].bse_code == "500002"
