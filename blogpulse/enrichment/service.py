"""Market-cap enrichment of the reference company list."""

from typing import Optional, Tuple

from psycopg import Connection
from pydantic import BaseModel, Field
from rich.console import Console

from ..db.companies import CompanyStorage
from ..db.jobs import JobStateManager
from ..ingestion.fields import first_success
from ..models import CompanyReference
from .breaker import CircuitBreaker
from .providers import MarketDataProvider, RateLimitedError

console = Console()

CURSOR_NAME = "market_cap_enrichment"


class BatchResult(BaseModel):
    """Outcome of one enrichment batch."""

    processed: int = Field(0, description="Rows marked checked")
    found: int = Field(0, description="Rows that received a market cap")
    has_more: bool = Field(False, description="Whether another batch should be scheduled")
    primary_disabled: bool = Field(False, description="Whether the circuit breaker is open")


class EnrichmentService:
    """Look up market caps for unchecked companies, a small batch at a time.

    The primary provider is skipped for the rest of the run once it signals a
    rate limit. Every row in a batch is marked checked whatever the outcome.
    """

    def __init__(
        self,
        storage: CompanyStorage,
        jobs: JobStateManager,
        primary: MarketDataProvider,
        fallback: MarketDataProvider,
        breaker: Optional[CircuitBreaker] = None,
        batch_size: int = 10,
    ) -> None:
        self.storage = storage
        self.jobs = jobs
        self.primary = primary
        self.fallback = fallback
        self.breaker = breaker or CircuitBreaker(primary.name)
        self.batch_size = batch_size

    def _from_primary(self, company: CompanyReference) -> Optional[Tuple[float, str]]:
        if self.breaker.tripped:
            return None
        try:
            market_cap = self.primary.market_cap(company)
        except RateLimitedError as e:
            if self.breaker.trip():
                console.print(f"[yellow]{e}; using {self.fallback.name} for the rest of the run[/yellow]")
            return None
        return (market_cap, self.primary.name) if market_cap else None

    def _from_fallback(self, company: CompanyReference) -> Optional[Tuple[float, str]]:
        try:
            market_cap = self.fallback.market_cap(company)
        except RateLimitedError as e:
            console.print(f"[yellow]{e}[/yellow]")
            return None
        return (market_cap, self.fallback.name) if market_cap else None

    def lookup(self, company: CompanyReference) -> Tuple[Optional[float], Optional[str]]:
        """(market cap, provider name), or (None, None) when nothing answered."""
        found = first_success(
            [lambda: self._from_primary(company), lambda: self._from_fallback(company)]
        )
        return found if found else (None, None)

    def run_batch(self, conn: Connection) -> BatchResult:
        """Enrich the next batch after the stored cursor and advance it."""
        cursor = self.jobs.get_cursor(conn, CURSOR_NAME)
        batch = self.storage.fetch_unchecked_batch(conn, cursor, self.batch_size)

        if not batch:
            if cursor is not None:
                self.jobs.set_cursor(conn, CURSOR_NAME, None)
            return BatchResult(primary_disabled=self.breaker.tripped)

        result = BatchResult()
        for company in batch:
            console.print(f"[bold]{company.name}[/bold] ({company.nse_code or company.bse_code})")
            market_cap, provider = self.lookup(company)
            self.storage.update_market_cap(conn, company.id, market_cap)
            result.processed += 1
            if market_cap is not None:
                result.found += 1
            else:
                console.print(f"  [dim]no market cap for {company.name}[/dim]")

        self.jobs.set_cursor(conn, CURSOR_NAME, batch[-1].created_at)
        result.has_more = len(batch) == self.batch_size
        result.primary_disabled = self.breaker.tripped
        return result
