"""Configuration, provider and health checks."""

import uuid
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from ..db import get_connection, validate_connection
from ..db.articles import ArticleStorage
from ..ingestion import build_adapters
from ..ingestion.base import ProviderAuthError, ProviderError
from ..pipeline import last_fetch_run
from .common import build_cache, require_config

console = Console()

MIN_ADAPTERS = 3


def mask_key(key: Optional[str]) -> str:
    """Show only the first and last four characters of a secret."""
    if not key:
        return "[red]NOT SET[/red]"
    if len(key) <= 8:
        return "*" * len(key)
    return f"{key[:4]}...{key[-4:]}"


def validate_config_command(ctx: typer.Context) -> None:
    """Check provider keys, base URLs and database settings."""
    config = require_config(ctx)
    errors = config.validate()

    if errors:
        console.print("[red]❌ Configuration validation failed:[/red]")
        for error in errors:
            console.print(f"  - {error}")
        raise typer.Exit(1)

    console.print("[green]✅ Configuration is valid[/green]")


def diagnose_command(ctx: typer.Context) -> None:
    """Probe every provider with a small request."""
    config = require_config(ctx)

    keys = Table(title="API Keys")
    keys.add_column("Provider", style="cyan")
    keys.add_column("Enabled", style="yellow")
    keys.add_column("Key")
    for name, provider in config.config.providers.items():
        keys.add_row(
            name,
            "✓" if provider.enabled else "✗",
            mask_key(config.get_api_key(provider)),
        )
    console.print(keys)

    results = Table(title="Provider Probes")
    results.add_column("Provider", style="cyan")
    results.add_column("Status", style="bold")
    results.add_column("Total", style="green")
    results.add_column("Sample", style="dim")

    for adapter in build_adapters(config, include_disabled=True):
        try:
            probe = adapter.probe()
        except ProviderAuthError as e:
            results.add_row(adapter.label, "[red]auth failed[/red]", "-", str(e))
            continue
        except ProviderError as e:
            status = f"HTTP {e.status_code}" if e.status_code else "error"
            results.add_row(adapter.label, f"[red]{status}[/red]", "-", str(e))
            continue
        except Exception as e:
            results.add_row(adapter.label, "[red]unreachable[/red]", "-", str(e))
            continue

        results.add_row(
            adapter.label,
            "[green]ok[/green]",
            str(probe["total"]),
            probe["sample"] or "",
        )

    console.print(results)


def health_command(ctx: typer.Context) -> None:
    """Report database, cache, adapter and last-run health."""
    config = require_config(ctx)
    db_config = config.get_db_config()
    healthy = True

    table = Table(title="Health")
    table.add_column("Check", style="cyan")
    table.add_column("Status", style="bold")
    table.add_column("Details")

    database_ok = validate_connection(db_config)
    if database_ok:
        with get_connection(db_config) as conn:
            count = ArticleStorage().count_articles(conn)
        table.add_row("database", "[green]ok[/green]", f"{count} articles")
    else:
        healthy = False
        table.add_row("database", "[red]error[/red]", "connection failed")

    cache = build_cache(config)
    key = f"health_check_{uuid.uuid4().hex}"
    try:
        cache.put(key, "ok", 10)
        roundtrip = cache.get(key) == "ok"
        cache.delete(key)
    except Exception as e:
        roundtrip = False
        table.add_row("cache", "[red]error[/red]", str(e))
    else:
        if roundtrip:
            table.add_row("cache", "[green]ok[/green]", "write/read/delete")
        else:
            table.add_row("cache", "[red]error[/red]", "value did not round-trip")
    healthy = healthy and roundtrip

    adapters = build_adapters(config)
    if len(adapters) >= MIN_ADAPTERS:
        table.add_row("adapters", "[green]ok[/green]", f"{len(adapters)} registered")
    else:
        table.add_row("adapters", "[yellow]warning[/yellow]", f"{len(adapters)} registered")

    last_run = None
    if roundtrip:
        last_run = last_fetch_run(cache)
    if last_run:
        table.add_row(
            "last fetch",
            "[green]ok[/green]" if not last_run.errors_count else "[yellow]warning[/yellow]",
            f"{last_run.last_run.isoformat()} - {last_run.total_stored} stored, "
            f"{last_run.errors_count} errors",
        )
    else:
        table.add_row("last fetch", "[dim]unknown[/dim]", "no recent run recorded")

    console.print(table)

    if not healthy:
        raise typer.Exit(1)
