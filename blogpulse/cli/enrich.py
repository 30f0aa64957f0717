"""Market-cap enrichment command."""

import typer
from rich.console import Console

from ..config import Config
from ..db import CompanyStorage, JobStateManager, get_connection, validate_connection
from ..enrichment import CircuitBreaker, EnrichmentService, ScreenerProvider, YahooFinanceProvider

console = Console()


def enrich_command(
    batches: int = typer.Option(1, "--batches", "-b", help="Batches to run before exiting", min=1),
) -> None:
    """Look up market caps for unchecked companies.

    Meant to be scheduled; each invocation processes a bounded number of
    batches and resumes from the stored cursor.
    """
    config = Config()
    settings = config.config.enrichment
    db_config = config.get_db_config()

    if not validate_connection(db_config):
        console.print("[red]❌ Database connection failed![/red]")
        raise typer.Exit(1)

    delays = {"min_delay": settings.min_delay, "max_delay": settings.max_delay}
    service = EnrichmentService(
        CompanyStorage(),
        JobStateManager(),
        primary=YahooFinanceProvider(**delays),
        fallback=ScreenerProvider(
            timeout=settings.timeout,
            retries=settings.fallback_retries,
            backoff_step=settings.backoff_step,
            **delays,
        ),
        breaker=CircuitBreaker("yahoo"),
        batch_size=settings.batch_size,
    )

    processed = found = 0
    with get_connection(db_config) as conn:
        for number in range(1, batches + 1):
            console.print(f"\n[bold]Batch {number}/{batches}[/bold]")
            result = service.run_batch(conn)
            processed += result.processed
            found += result.found
            if not result.has_more:
                console.print("[green]No unchecked companies left[/green]")
                break

    breaker = "open" if service.breaker.tripped else "closed"
    console.print(
        f"\n[bold]Enrichment summary:[/bold] {processed} checked, "
        f"[green]{found}[/green] with market cap, primary breaker {breaker}"
    )
