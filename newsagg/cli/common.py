"""Shared wiring for CLI commands."""

from datetime import timedelta
from functools import partial
from typing import Callable

import typer
from rich.console import Console

from ..config import Config
from ..db import get_connection
from ..db.articles import ArticleStorage
from ..db.cache import CacheStore, PostgresCache
from ..ingestion import build_adapters
from ..logging import configure_logging
from ..pipeline import FetchOrchestrator

console = Console()


def require_config(ctx: typer.Context) -> Config:
    """Load the configuration for this invocation and set up logging."""
    config: Config = ctx.obj if isinstance(ctx.obj, Config) else Config()

    try:
        model = config.config
    except FileNotFoundError:
        console.print(
            f"[red]Config file not found: {config.config_path}[/red]\n"
            "Run 'newsagg init' first or point NEWSAGG_CONFIG at your config file."
        )
        raise typer.Exit(1)
    except ValueError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)

    configure_logging(model.logging.level, model.logging.json_output)
    return config


def connection_factory(config: Config) -> Callable:
    """Callable returning a pooled connection context manager."""
    return partial(get_connection, config.get_db_config())


def build_cache(config: Config) -> CacheStore:
    """Cache shared by every process using this database."""
    return PostgresCache(connection_factory(config))


def build_orchestrator(config: Config) -> FetchOrchestrator:
    """Wire adapters, storage and run coordination from configuration."""
    cache = build_cache(config)
    fetch = config.config.fetch
    return FetchOrchestrator(
        adapters=build_adapters(config, cache=cache),
        storage=ArticleStorage(),
        connection_factory=connection_factory(config),
        cache=cache,
        min_interval=timedelta(minutes=fetch.min_interval_minutes),
        lock_ttl=timedelta(minutes=fetch.lock_ttl_minutes),
        metrics_ttl=timedelta(hours=fetch.metrics_ttl_hours),
    )
