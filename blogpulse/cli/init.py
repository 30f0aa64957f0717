"""Init command implementation."""

from pathlib import Path
from typing import List

import typer
from rich.console import Console
from rich.panel import Panel

from ..config import ConfigModel, SourceConfig, save_config, save_sources
from ..db import init_database, validate_connection

console = Console()


def create_default_sources() -> List[SourceConfig]:
    """Create a starter set of investment blogs, one per platform kind."""
    return [
        SourceConfig(
            name="SOIC",
            platform_kind="feed",
            origin_url="https://soic.substack.com",
            feed_url="https://soic.substack.com/feed",
            extraction_method="RSS",
        ),
        SourceConfig(
            name="Equity Maniac",
            platform_kind="feed",
            origin_url="https://equitymaniac.substack.com",
            feed_url="https://equitymaniac.substack.com/feed",
            extraction_method="RSS",
        ),
        SourceConfig(
            name="Fundoo Professor",
            platform_kind="paginatedArchive",
            origin_url="https://fundooprofessor.wordpress.com",
            feed_url="https://fundooprofessor.wordpress.com/feed/",
            extraction_method="ARCHIVE",
            archive_style="wordpress",
        ),
        SourceConfig(
            name="Valuation in Motion",
            platform_kind="paginatedArchive",
            origin_url="https://valuationinmotion.blogspot.com",
            extraction_method="ARCHIVE",
            archive_style="blogger",
        ),
        SourceConfig(
            name="Dr Vijay Malik",
            platform_kind="feed",
            origin_url="https://www.drvijaymalik.com",
            feed_url="https://www.drvijaymalik.com/feed",
            extraction_method="RSS",
        ),
    ]


def init_command(
    config_dir: Path = typer.Option(
        Path.home() / ".config" / "blogpulse",
        "--config-dir",
        "-c",
        help="Configuration directory",
    ),
    db_host: str = typer.Option("localhost", "--db-host", help="Postgres host"),
    db_port: int = typer.Option(5432, "--db-port", help="Postgres port"),
    db_name: str = typer.Option("blogpulse", "--db-name", help="Database name"),
    db_user: str = typer.Option("blogpulse_user", "--db-user", help="Database user"),
    seed_sources: bool = typer.Option(
        True,
        "--seed-sources/--no-seed-sources",
        help="Seed a starter set of blogs",
    ),
) -> None:
    """Initialize blogpulse configuration and database."""
    console.print(Panel.fit("📰 Blogpulse - Initialization", style="bold blue"))

    config_dir.mkdir(parents=True, exist_ok=True)
    config_path = config_dir / "config.yaml"
    sources_path = config_dir / "sources.yaml"

    config = ConfigModel(
        postgres={
            "host": db_host,
            "port": db_port,
            "database": db_name,
            "user": db_user,
            "password_env": "BLOGPULSE_DB_PASSWORD",
        },
    )

    save_config(config, config_path)
    console.print(f"✅ Created config: {config_path}")

    if seed_sources:
        sources = create_default_sources()
        save_sources(sources, sources_path)
        console.print(f"✅ Created sources: {sources_path} (seeded with {len(sources)} sources)")
    else:
        save_sources([], sources_path)
        console.print(f"✅ Created sources: {sources_path} (empty)")

    _bootstrap_database(config.postgres.model_dump())

    console.print(
        Panel(
            "[green]Blogpulse is ready.[/green]\n\n"
            f"Config file:  {config_path}\n"
            f"Sources file: {sources_path}\n\n"
            "Before the first harvest:\n"
            "  export BLOGPULSE_DB_PASSWORD=...\n"
            "  export OPENAI_API_KEY=...\n"
            "  blogpulse companies refresh\n"
            "  blogpulse run",
            title="Initialized",
            style="green",
        )
    )


def _bootstrap_database(db_config: dict) -> None:
    """Check connectivity and create the schema, exiting on failure."""
    with console.status("Connecting to Postgres..."):
        reachable = validate_connection(db_config)

    if not reachable:
        console.print(
            f"[red]❌ Cannot reach {db_config['database']} on {db_config['host']}:{db_config['port']}[/red]\n"
            "Check that Postgres is running and that BLOGPULSE_DB_PASSWORD is exported."
        )
        raise typer.Exit(1)

    try:
        init_database(db_config)
    except Exception as e:
        console.print(f"[red]❌ Schema creation failed: {e}[/red]")
        raise typer.Exit(1)

    console.print("✅ Database reachable and schema in place")
