"""Sources management commands."""

from typing import List, Optional

import typer
from rich.console import Console
from rich.table import Table

from ..config import Config, SourceConfig, load_sources, save_sources
from ..inference import build_llm_provider
from ..ingestion import Harvester, PlatformDetector
from ..models import Source

console = Console()
sources_app = typer.Typer(help="Manage blog sources")


def _load(config: Config) -> List[SourceConfig]:
    try:
        return load_sources(config.sources_path)
    except FileNotFoundError:
        console.print("[red]Sources file not found. Run 'blogpulse init' first.[/red]")
        raise typer.Exit(1)


@sources_app.command("list")
def sources_list() -> None:
    """List all configured sources."""
    sources = _load(Config())

    if not sources:
        console.print("[yellow]No sources configured.[/yellow]")
        return

    table = Table(title="Configured Sources")
    table.add_column("Name", style="cyan")
    table.add_column("Kind", style="magenta")
    table.add_column("Method", style="green")
    table.add_column("Enabled", style="yellow")
    table.add_column("URL", style="blue")

    for source in sources:
        table.add_row(
            source.name,
            source.platform_kind,
            source.extraction_method,
            "✓" if source.enabled else "✗",
            source.feed_url or source.origin_url,
        )

    console.print(table)


@sources_app.command("add")
def sources_add(
    name: str = typer.Option(..., "--name", "-n", help="Source name"),
    url: str = typer.Option(..., "--url", "-u", help="Blog home URL"),
    feed_url: Optional[str] = typer.Option(None, "--feed-url", help="Feed, sitemap or listing URL"),
    detect: bool = typer.Option(True, "--detect/--no-detect", help="Probe the blog to pick an adapter"),
) -> None:
    """Add a new blog source."""
    config = Config()
    try:
        sources = load_sources(config.sources_path)
    except FileNotFoundError:
        sources = []

    new_source = SourceConfig(name=name, origin_url=url, feed_url=feed_url)
    if any(s.name == name or s.origin_url == new_source.origin_url for s in sources):
        console.print(f"[red]Source '{name}' or URL already exists.[/red]")
        raise typer.Exit(1)

    if detect:
        detection = PlatformDetector().detect_sync(new_source.origin_url)
        new_source = new_source.model_copy(update={
            "platform_kind": detection.platform_kind,
            "extraction_method": detection.extraction_method,
            "feed_url": feed_url or detection.feed_url,
            "archive_style": detection.archive_style,
        })
        console.print(
            f"Detected [cyan]{detection.platform}[/cyan]: "
            f"{detection.platform_kind} via {detection.extraction_method}"
        )

    sources.append(new_source)
    save_sources(sources, config.sources_path)

    console.print(f"[green]✅ Added source: {name}[/green]")


@sources_app.command("remove")
def sources_remove(
    name: str = typer.Argument(..., help="Source name to deactivate"),
) -> None:
    """Deactivate a source; its stored posts are kept."""
    config = Config()
    sources = _load(config)

    if not any(s.name == name for s in sources):
        console.print(f"[red]Source '{name}' not found.[/red]")
        raise typer.Exit(1)

    sources = [s.model_copy(update={"enabled": False}) if s.name == name else s for s in sources]
    save_sources(sources, config.sources_path)
    console.print(f"[green]✅ Deactivated source: {name}[/green]")


@sources_app.command("detect")
def sources_detect(
    name: str = typer.Argument(..., help="Source name to re-detect"),
    save: bool = typer.Option(False, "--save", help="Write the detected adapter to sources.yaml"),
) -> None:
    """Detect which adapter a source needs."""
    config = Config()
    sources = _load(config)
    source = next((s for s in sources if s.name == name), None)
    if source is None:
        console.print(f"[red]Source '{name}' not found.[/red]")
        raise typer.Exit(1)

    detection = PlatformDetector().detect_sync(source.origin_url)

    table = Table(title=f"Detection: {name}")
    table.add_column("Field", style="cyan")
    table.add_column("Current", style="dim")
    table.add_column("Detected", style="green")
    table.add_row("platform", "-", detection.platform)
    table.add_row("platform_kind", source.platform_kind, detection.platform_kind)
    table.add_row("extraction_method", source.extraction_method, detection.extraction_method)
    table.add_row("feed_url", source.feed_url or "-", detection.feed_url or "-")
    table.add_row("archive_style", source.archive_style, detection.archive_style)
    console.print(table)

    if save:
        updated = source.model_copy(update={
            "platform_kind": detection.platform_kind,
            "extraction_method": detection.extraction_method,
            "feed_url": detection.feed_url,
            "archive_style": detection.archive_style,
        })
        save_sources([updated if s.name == name else s for s in sources], config.sources_path)
        console.print(f"[green]✅ Saved detection for {name}[/green]")


@sources_app.command("test")
def sources_test(
    name: Optional[str] = typer.Argument(None, help="Source name to test (or test all)"),
    limit: int = typer.Option(5, "--limit", "-l", help="Posts to show per source"),
) -> None:
    """Run each source's adapter and show what it returns."""
    config = Config()
    sources = _load(config)

    if name:
        sources = [s for s in sources if s.name == name]
        if not sources:
            console.print(f"[red]Source '{name}' not found.[/red]")
            raise typer.Exit(1)

    llm = build_llm_provider(config.get_llm_config())
    harvester = Harvester.from_config(config.config.harvest, llm=llm)

    for source_config in sources:
        if not source_config.enabled:
            console.print(f"[yellow]⚠️  {source_config.name}: Disabled[/yellow]")
            continue

        source = Source(**source_config.model_dump())
        result = harvester.fetcher_for(source).fetch_source_sync(source)
        if not result.success:
            marker = " (blocked)" if result.blocked else ""
            console.print(f"[red]❌ {source.name}: Failed{marker} - {result.error}[/red]")
            continue

        console.print(f"[green]✅ {source.name}: {result.post_count} posts via {result.method}[/green]")
        table = Table(show_header=True, header_style="bold")
        table.add_column("Published", style="yellow")
        table.add_column("Title", style="cyan")
        table.add_column("Author", style="magenta")
        for post in result.posts[:limit]:
            table.add_row(post.published or "-", post.title[:70], post.author or "-")
        console.print(table)
