"""Run command implementation."""

from typing import Optional

import pendulum
import typer
from rich.console import Console

from ..config import Config
from ..db import validate_connection
from ..pipeline import PipelineOrchestrator

console = Console()


def run_command(
    run_date: Optional[str] = typer.Option(
        None,
        "--date",
        help="Logical date of the run (YYYY-MM-DD). Default: today",
    ),
) -> None:
    """Harvest all sources, classify new posts and notify trackers."""
    try:
        config = Config()

        if run_date is None:
            run_date = pendulum.now().format("YYYY-MM-DD")

        console.print("[dim]Checking database connection...[/dim]")
        if not validate_connection(config.get_db_config()):
            console.print("[red]❌ Database connection failed![/red]")
            console.print("Please check your database configuration and ensure Postgres is running.")
            raise typer.Exit(1)

        orchestrator = PipelineOrchestrator(config)
        success = orchestrator.run(run_date=run_date)

        if not success:
            raise typer.Exit(1)

    except typer.Exit:
        raise
    except KeyboardInterrupt:
        console.print("\n[yellow]Pipeline interrupted by user[/yellow]")
        raise typer.Exit(1)
    except Exception as e:
        console.print(f"[red]Pipeline failed: {e}[/red]")
        raise typer.Exit(1)
