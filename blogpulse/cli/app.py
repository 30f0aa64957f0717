"""Main CLI application."""

import typer
from dotenv import load_dotenv

# Load .env file if it exists
load_dotenv()

from .companies import companies_app
from .enrich import enrich_command
from .init import init_command
from .posts import posts_app
from .run import run_command
from .sources import sources_app
from .track import track_app

app = typer.Typer(
    name="blogpulse",
    help="Blogpulse - investment blog harvester and tagger",
    no_args_is_help=True,
)

# Register commands
app.command("init")(init_command)
app.command("run")(run_command)
app.command("enrich")(enrich_command)
app.add_typer(sources_app, name="sources", help="Manage blog sources")
app.add_typer(companies_app, name="companies", help="Manage the reference company list")
app.add_typer(posts_app, name="posts", help="Browse and reprocess stored posts")
app.add_typer(track_app, name="track", help="Manage trackers")


if __name__ == "__main__":
    app()
