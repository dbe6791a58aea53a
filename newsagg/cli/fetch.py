"""Fetch command implementation."""

from typing import Optional

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from ..db import validate_connection
from ..models import RunSummary
from .common import build_orchestrator, require_config

console = Console()


def print_run_summary(summary: RunSummary) -> None:
    """Print per-adapter results and the run totals."""
    table = Table(title="Fetch Summary")
    table.add_column("Adapter", style="cyan")
    table.add_column("Status", style="bold")
    table.add_column("Fetched", style="green")
    table.add_column("Stored", style="green")
    table.add_column("Duration", style="yellow")
    table.add_column("Details", style="dim")

    for result in summary.adapters:
        status = "[red]✗[/red]" if result.error else "[green]✓[/green]"
        details = result.error or f"{result.new} new, {result.updated} updated"
        table.add_row(
            result.name,
            status,
            str(result.fetched),
            str(result.stored),
            f"{result.duration_seconds:.1f}s",
            details,
        )

    console.print(table)

    if summary.success:
        console.print(Panel(
            f"[green]✅ Fetch completed[/green]\n\n"
            f"Total fetched: {summary.total_fetched}\n"
            f"Total stored: {summary.total_stored}\n"
            f"Duration: {summary.duration_seconds:.1f} seconds",
            style="green",
        ))
    else:
        errors = "\n".join(f"  - {error}" for error in summary.errors)
        console.print(Panel(
            f"[red]❌ Errors encountered: {len(summary.errors)}[/red]\n\n"
            f"Total fetched: {summary.total_fetched}\n"
            f"Total stored: {summary.total_stored}\n"
            f"Duration: {summary.duration_seconds:.1f} seconds\n\n"
            f"{errors}",
            style="red",
        ))


def fetch_command(
    ctx: typer.Context,
    source: Optional[str] = typer.Option(
        None,
        "--source",
        "-s",
        help="Fetch from matching adapters only (e.g. guardian)",
    ),
    force: bool = typer.Option(
        False,
        "--force",
        "-f",
        help="Fetch even if the last run was recent",
    ),
) -> None:
    """Fetch articles from all registered news providers."""
    config = require_config(ctx)

    if not validate_connection(config.get_db_config()):
        console.print("[red]❌ Database connection failed![/red]")
        raise typer.Exit(1)

    orchestrator = build_orchestrator(config)
    summary = orchestrator.run(force=force, source=source)

    if summary.skipped:
        if summary.skip_reason == "locked":
            console.print("[yellow]Skipping fetch - another run is in progress[/yellow]")
        else:
            console.print("[yellow]Skipping fetch - too soon since last run[/yellow]")
        return

    print_run_summary(summary)

    if not summary.success:
        raise typer.Exit(1)
