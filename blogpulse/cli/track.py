"""Tracker commands."""

from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from ..config import Config
from ..db import TrackingManager, get_connection

console = Console()
track_app = typer.Typer(help="Manage company and author trackers")

TARGET_TYPES = ("company", "author")


def _check_type(target_type: str) -> str:
    if target_type not in TARGET_TYPES:
        console.print(f"[red]Target type must be one of {', '.join(TARGET_TYPES)}[/red]")
        raise typer.Exit(1)
    return target_type


@track_app.command("add")
def track_add(
    user: str = typer.Option(..., "--user", "-u", help="User id"),
    target: str = typer.Argument(..., help="Company name or author"),
    target_type: str = typer.Option("company", "--type", "-t", help="company or author"),
    email: Optional[str] = typer.Option(None, "--email", "-e", help="Delivery address for the user"),
) -> None:
    """Follow a company or author."""
    target_type = _check_type(target_type)
    config = Config()
    tracking = TrackingManager()

    with get_connection(config.get_db_config()) as conn:
        if email:
            tracking.upsert_user(conn, user, email)
        created = tracking.track(conn, user, target_type, target)

    if created:
        console.print(f"[green]✅ {user} now follows {target_type} '{target}'[/green]")
    else:
        console.print(f"[yellow]{user} already follows {target_type} '{target}'[/yellow]")


@track_app.command("remove")
def track_remove(
    user: str = typer.Option(..., "--user", "-u", help="User id"),
    target: str = typer.Argument(..., help="Company name or author"),
    target_type: str = typer.Option("company", "--type", "-t", help="company or author"),
) -> None:
    """Stop following a company or author."""
    target_type = _check_type(target_type)
    config = Config()

    with get_connection(config.get_db_config()) as conn:
        removed = TrackingManager().untrack(conn, user, target_type, target)

    if not removed:
        console.print(f"[red]{user} does not follow {target_type} '{target}'[/red]")
        raise typer.Exit(1)
    console.print(f"[green]✅ Removed tracker on '{target}'[/green]")


@track_app.command("list")
def track_list(
    user: Optional[str] = typer.Option(None, "--user", "-u", help="Only this user's trackers"),
) -> None:
    """List trackers."""
    config = Config()
    with get_connection(config.get_db_config()) as conn:
        trackers = TrackingManager().list_trackers(conn, user)

    if not trackers:
        console.print("[yellow]No trackers.[/yellow]")
        return

    table = Table(title="Trackers")
    table.add_column("User", style="cyan")
    table.add_column("Type", style="magenta")
    table.add_column("Target", style="green")
    for tracker in trackers:
        table.add_row(tracker.user_id, tracker.target_type, tracker.target_id)
    console.print(table)
