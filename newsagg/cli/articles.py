"""Article and catalog read commands."""

from datetime import datetime
from typing import List, Optional

import typer
from rich.console import Console
from rich.table import Table

from ..db import get_connection
from ..db.articles import ArticleStorage
from ..db.references import ReferenceManager
from ..models import ArticleFilters, ArticlePage, FeedPreferences
from .common import require_config

console = Console()
articles_app = typer.Typer(help="Browse stored articles")
catalog_app = typer.Typer(help="List sources, categories and authors")


def print_article_page(result: ArticlePage, title: str) -> None:
    """Render one page of articles as a table."""
    if not result.items:
        console.print("[yellow]No articles found.[/yellow]")
        return

    table = Table(title=f"{title} (page {result.page}/{result.last_page}, {result.total} total)")
    table.add_column("ID", style="dim")
    table.add_column("Published", style="green")
    table.add_column("Source", style="cyan")
    table.add_column("Category", style="magenta")
    table.add_column("Author", style="yellow")
    table.add_column("Title")

    for article in result.items:
        table.add_row(
            str(article.id),
            article.published_at.strftime("%Y-%m-%d %H:%M"),
            article.source_name,
            article.category_name or "",
            article.author_name or "",
            article.title,
        )

    console.print(table)


@articles_app.command("list")
def articles_list(
    ctx: typer.Context,
    keyword: Optional[str] = typer.Option(None, "--keyword", "-k", help="Full-text search terms"),
    date: Optional[datetime] = typer.Option(
        None, "--date", formats=["%Y-%m-%d"], help="Exact publication date"
    ),
    date_from: Optional[datetime] = typer.Option(
        None, "--from", formats=["%Y-%m-%d"], help="Earliest publication date"
    ),
    date_to: Optional[datetime] = typer.Option(
        None, "--to", formats=["%Y-%m-%d"], help="Latest publication date"
    ),
    category: Optional[str] = typer.Option(None, "--category", "-c", help="Category slug"),
    source: Optional[str] = typer.Option(None, "--source", "-s", help="Source slug"),
    author: Optional[str] = typer.Option(None, "--author", "-a", help="Author name"),
    page: int = typer.Option(1, "--page", min=1, help="Page number"),
    per_page: int = typer.Option(20, "--per-page", help="Articles per page (max 100)"),
) -> None:
    """Search stored articles, newest first."""
    config = require_config(ctx)
    filters = ArticleFilters(
        keyword=keyword,
        published_on=date.date() if date else None,
        date_from=date_from.date() if date_from else None,
        date_to=date_to.date() if date_to else None,
        category=category,
        source=source,
        author=author,
        page=page,
        per_page=per_page,
    )

    with get_connection(config.get_db_config()) as conn:
        result = ArticleStorage().search_articles(conn, filters)

    print_article_page(result, "Articles")


@articles_app.command("feed")
def articles_feed(
    ctx: typer.Context,
    source_ids: List[int] = typer.Option([], "--source-id", help="Preferred source id"),
    category_ids: List[int] = typer.Option([], "--category-id", help="Preferred category id"),
    author_ids: List[int] = typer.Option([], "--author-id", help="Preferred author id"),
    page: int = typer.Option(1, "--page", min=1, help="Page number"),
    per_page: int = typer.Option(20, "--per-page", help="Articles per page (max 100)"),
) -> None:
    """Articles matching any of the given preferences."""
    config = require_config(ctx)
    preferences = FeedPreferences(
        source_ids=source_ids,
        category_ids=category_ids,
        author_ids=author_ids,
    )

    with get_connection(config.get_db_config()) as conn:
        result = ArticleStorage().get_feed(conn, preferences, page=page, per_page=per_page)

    print_article_page(result, "Feed")


def _print_catalog(ctx: typer.Context, kind: str) -> None:
    config = require_config(ctx)
    references = ReferenceManager()

    with get_connection(config.get_db_config()) as conn:
        rows = getattr(references, f"list_{kind}")(conn)

    if not rows:
        console.print(f"[yellow]No {kind} stored yet.[/yellow]")
        return

    table = Table(title=kind.capitalize())
    table.add_column("ID", style="dim")
    table.add_column("Name", style="cyan")
    if kind != "authors":
        table.add_column("Slug", style="magenta")

    for row in rows:
        cells = [str(row.id), row.name]
        if kind != "authors":
            cells.append(row.slug)
        table.add_row(*cells)

    console.print(table)


@catalog_app.command("sources")
def catalog_sources(ctx: typer.Context) -> None:
    """List news sources."""
    _print_catalog(ctx, "sources")


@catalog_app.command("categories")
def catalog_categories(ctx: typer.Context) -> None:
    """List categories."""
    _print_catalog(ctx, "categories")


@catalog_app.command("authors")
def catalog_authors(ctx: typer.Context) -> None:
    """List authors."""
    _print_catalog(ctx, "authors")
