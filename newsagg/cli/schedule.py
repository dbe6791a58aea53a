"""Schedule command: periodic fetch and daily cleanup."""

import time

import pendulum
import typer
from rich.console import Console

from ..db import close_connection_pool
from ..db.cache import PostgresCache
from ..logging import get_logger
from .cleanup import cleanup_articles
from .common import build_orchestrator, connection_factory, require_config

console = Console()
logger = get_logger(__name__)


def next_cleanup_time(now: pendulum.DateTime, hour: int) -> pendulum.DateTime:
    """The next occurrence of ``hour``:00 UTC strictly after ``now``."""
    candidate = now.start_of("day").add(hours=hour)
    if candidate <= now:
        candidate = candidate.add(days=1)
    return candidate


def schedule_command(
    ctx: typer.Context,
    once: bool = typer.Option(
        False,
        "--once",
        help="Run one scheduling tick and exit",
    ),
) -> None:
    """Run fetch periodically and cleanup once a day."""
    config = require_config(ctx)
    settings = config.config
    interval = settings.fetch.schedule_interval_minutes
    orchestrator = build_orchestrator(config)
    cache = PostgresCache(connection_factory(config))

    now = pendulum.now("UTC")
    next_fetch = now
    next_cleanup = next_cleanup_time(now, settings.cleanup.hour)

    console.print(
        f"Fetching every {interval} minutes; "
        f"cleanup daily at {settings.cleanup.hour:02d}:00 UTC. Press Ctrl+C to stop."
    )
    logger.info(
        "schedule.started",
        interval_minutes=interval,
        cleanup_hour=settings.cleanup.hour,
    )

    try:
        while True:
            now = pendulum.now("UTC")

            if now >= next_fetch:
                summary = orchestrator.run()
                if summary.skipped:
                    logger.info("schedule.fetch_skipped", reason=summary.skip_reason)
                elif summary.success:
                    logger.info(
                        "schedule.fetch_succeeded",
                        total_fetched=summary.total_fetched,
                        total_stored=summary.total_stored,
                    )
                else:
                    logger.error("schedule.fetch_failed", errors=summary.errors)
                next_fetch = now.add(minutes=interval)

            if now >= next_cleanup:
                try:
                    deleted = cleanup_articles(
                        config.get_db_config(),
                        settings.cleanup.days,
                        confirm=False,
                    )
                    purged = cache.purge_expired()
                    logger.info("schedule.cleanup_succeeded", deleted=deleted, purged=purged)
                except Exception as e:
                    logger.error("schedule.cleanup_failed", error=str(e), exc_info=True)
                next_cleanup = next_cleanup_time(now, settings.cleanup.hour)

            if once:
                break

            wake = min(next_fetch, next_cleanup)
            time.sleep(max(1.0, (wake - pendulum.now("UTC")).total_seconds()))
    except KeyboardInterrupt:
        console.print("\nScheduler stopped.")
        logger.info("schedule.stopped")
    finally:
        close_connection_pool()
