"""Stored post commands."""

import asyncio
from datetime import datetime
from typing import List, Optional

import pendulum
import typer
from rich.console import Console
from rich.table import Table

from ..config import Config
from ..db import PostStorage, get_connection
from ..ingestion import RawPost
from ..models import Classification, EnrichedPost
from ..pipeline import PipelineOrchestrator

console = Console()
posts_app = typer.Typer(help="Browse and reprocess stored posts")


def _print_posts(posts: List[EnrichedPost], title: str) -> None:
    if not posts:
        console.print("[yellow]No posts found.[/yellow]")
        return

    table = Table(title=title)
    table.add_column("Published", style="yellow")
    table.add_column("Title", style="cyan")
    table.add_column("Class", style="magenta")
    table.add_column("Sentiment", style="green")
    table.add_column("Companies", style="blue")
    for post in posts:
        table.add_row(
            pendulum.instance(post.published_at).format("YYYY-MM-DD"),
            post.title[:60],
            post.classification.value,
            ", ".join(tag.value for tag in post.sentiment_tags) or "-",
            ", ".join(post.company_names) or "-",
        )
    console.print(table)

    oldest = posts[-1].published_at
    console.print(f"[dim]Next page: --before {oldest.isoformat()}[/dim]")


@posts_app.command("list")
def posts_list(
    classification: Optional[Classification] = typer.Option(None, "--classification", "-c"),
    before: Optional[datetime] = typer.Option(None, "--before", help="Only posts published before this time"),
    limit: int = typer.Option(20, "--limit", "-l", min=1, max=100),
) -> None:
    """List recent posts, newest first."""
    config = Config()
    with get_connection(config.get_db_config()) as conn:
        posts = PostStorage().list_posts(conn, classification=classification, before=before, limit=limit)
    _print_posts(posts, "Posts")


@posts_app.command("company")
def posts_company(
    name: str = typer.Argument(..., help="Resolved company name"),
    limit: int = typer.Option(20, "--limit", "-l", min=1, max=100),
) -> None:
    """List posts that mention a company."""
    config = Config()
    with get_connection(config.get_db_config()) as conn:
        posts = PostStorage().posts_for_company(conn, name, limit)
    _print_posts(posts, f"Posts on {name}")


@posts_app.command("reprocess")
def posts_reprocess(
    link: str = typer.Argument(..., help="Link of a stored post"),
) -> None:
    """Re-run the classification pipeline for a stored post."""
    config = Config()
    storage = PostStorage()

    with get_connection(config.get_db_config()) as conn:
        stored = storage.get_by_link(conn, link)
        if stored is None:
            console.print(f"[red]No stored post with link {link}[/red]")
            raise typer.Exit(1)

        pipeline = PipelineOrchestrator(config).build_pipeline(conn)
        raw = RawPost(
            title=stored.title,
            link=stored.link,
            published=stored.published_at.isoformat(),
            author=stored.author,
            image=stored.image,
            source_id=stored.source_id,
            source_name=stored.source_name or "",
        )
        bodies = asyncio.run(pipeline.fetch_bodies([raw]))
        if link not in bodies:
            console.print(f"[red]Could not fetch the article body for {link}[/red]")
            raise typer.Exit(1)

        item = pipeline.process(raw, bodies[link])
        storage.update_enrichment(conn, item.enriched)

    post = item.enriched
    console.print(
        f"[green]✅ Reprocessed[/green] {post.title}\n"
        f"  {stored.classification.value} -> {post.classification.value}\n"
        f"  Companies: {', '.join(post.company_names) or '-'}"
    )
    if item.errors:
        console.print(f"[yellow]Degraded stages: {'; '.join(item.errors)}[/yellow]")
