"""Cleanup command implementation."""

from datetime import datetime
from typing import Optional

import pendulum
import typer
from rich.console import Console

from ..db import get_connection
from ..db.articles import ArticleStorage
from ..logging import get_logger
from .common import require_config

console = Console()
logger = get_logger(__name__)


def cleanup_articles(
    db_config: dict,
    days: int,
    dry_run: bool = False,
    confirm: bool = True,
    storage: Optional[ArticleStorage] = None,
) -> int:
    """
    Delete articles published more than ``days`` days ago.

    Returns:
        Number of matching articles (deleted unless dry_run)
    """
    storage = storage or ArticleStorage()
    cutoff: datetime = pendulum.now("UTC").subtract(days=days)

    console.print(
        f"Cleaning up articles older than {days} days (before {cutoff.to_date_string()})..."
    )

    with get_connection(db_config) as conn:
        count = storage.count_older_than(conn, cutoff)

        if count == 0:
            console.print("No articles to clean up.")
            return 0

        console.print(f"[yellow]Found {count} articles to delete.[/yellow]")

        if dry_run:
            console.print("DRY RUN - No articles were actually deleted.")
            return count

        if confirm and not typer.confirm("Do you want to proceed with deletion?", default=True):
            console.print("Cleanup cancelled.")
            return 0

        deleted = storage.delete_older_than(conn, cutoff)

    console.print(f"[green]Successfully deleted {deleted} articles.[/green]")
    logger.info(
        "cleanup.completed",
        deleted_count=deleted,
        cutoff_date=cutoff.to_date_string(),
    )
    return deleted


def cleanup_command(
    ctx: typer.Context,
    days: Optional[int] = typer.Option(
        None,
        "--days",
        "-d",
        min=1,
        help="Number of days to keep articles (default from config: 30)",
    ),
    dry_run: bool = typer.Option(
        False,
        "--dry-run",
        help="Show what would be deleted without actually deleting",
    ),
    yes: bool = typer.Option(
        False,
        "--yes",
        "-y",
        help="Do not ask for confirmation",
    ),
) -> None:
    """Clean up old articles from the database."""
    config = require_config(ctx)
    if days is None:
        days = config.config.cleanup.days

    try:
        cleanup_articles(config.get_db_config(), days, dry_run=dry_run, confirm=not yes)
    except Exception as e:
        console.print(f"[red]Failed to clean up articles: {e}[/red]")
        logger.error("cleanup.failed", error=str(e), days=days)
        raise typer.Exit(1)
