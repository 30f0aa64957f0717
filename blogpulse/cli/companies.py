"""Reference company list commands."""

import typer
from rich.console import Console
from rich.table import Table

from ..config import Config
from ..db import CompanyStorage, get_connection
from ..enrichment import download_reference

console = Console()
companies_app = typer.Typer(help="Manage the reference company list")


@companies_app.command("refresh")
def companies_refresh(
    recheck: bool = typer.Option(False, "--recheck", help="Queue every company for market-cap enrichment"),
) -> None:
    """Download the instrument list and upsert the reference companies."""
    config = Config()
    storage = CompanyStorage()

    try:
        companies = download_reference()
    except Exception as e:
        console.print(f"[red]❌ Failed to download instruments: {e}[/red]")
        raise typer.Exit(1)

    with get_connection(config.get_db_config()) as conn:
        count = storage.upsert_companies(conn, companies)
        console.print(f"[green]✅ Upserted {count} companies[/green]")
        if recheck:
            queued = storage.reset_market_cap_checks(conn)
            console.print(f"Queued {queued} companies for enrichment")
        totals = storage.count(conn)

    console.print(
        f"Total: {totals['total']}, with market cap: {totals['with_market_cap']}, "
        f"unchecked: {totals['unchecked']}"
    )


@companies_app.command("show")
def companies_show(
    query: str = typer.Argument(..., help="Name or code fragment"),
    limit: int = typer.Option(10, "--limit", "-l"),
) -> None:
    """Search the reference list."""
    config = Config()
    with get_connection(config.get_db_config()) as conn:
        companies = CompanyStorage().find(conn, query, limit)

    if not companies:
        console.print(f"[yellow]No company matches '{query}'.[/yellow]")
        return

    table = Table(title=f"Companies matching '{query}'")
    table.add_column("Name", style="cyan")
    table.add_column("NSE", style="green")
    table.add_column("BSE", style="green")
    table.add_column("Market cap (Cr)", style="yellow", justify="right")
    table.add_column("Checked", style="dim")
    for company in companies:
        table.add_row(
            company.name,
            company.nse_code or "-",
            company.bse_code or "-",
            f"{company.market_cap / 1e7:,.0f}" if company.market_cap else "-",
            "✓" if company.market_cap_checked else "✗",
        )
    console.print(table)
