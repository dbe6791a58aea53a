"""Main CLI application."""

from pathlib import Path
from typing import Optional

import typer
from dotenv import load_dotenv

# Load .env file if it exists
load_dotenv()

from ..config import Config
from .articles import articles_app, catalog_app
from .cleanup import cleanup_command
from .diagnostics import diagnose_command, health_command, validate_config_command
from .fetch import fetch_command
from .init import init_command
from .schedule import schedule_command

app = typer.Typer(
    name="newsagg",
    help="News Aggregator - Multi-source article ingestion",
    no_args_is_help=True,
)


@app.callback()
def main(
    ctx: typer.Context,
    config_path: Optional[Path] = typer.Option(
        None,
        "--config",
        envvar="NEWSAGG_CONFIG",
        help="Path to config.yaml",
    ),
) -> None:
    """News Aggregator - Multi-source article ingestion."""
    if ctx.obj is None:
        ctx.obj = Config(config_path)


# Register commands
app.command("init")(init_command)
app.command("fetch")(fetch_command)
app.command("cleanup")(cleanup_command)
app.command("schedule")(schedule_command)
app.command("validate-config")(validate_config_command)
app.command("diagnose")(diagnose_command)
app.command("health")(health_command)
app.add_typer(articles_app, name="articles", help="Browse stored articles")
app.add_typer(catalog_app, name="catalog", help="List sources, categories and authors")


if __name__ == "__main__":
    app()
