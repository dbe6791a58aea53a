"""Fetch orchestrator: runs every adapter and persists what they return."""

import time
from contextlib import AbstractContextManager
from datetime import timedelta
from typing import Callable, List, Optional, Sequence

import pendulum
from psycopg import Connection

from ..db.articles import ArticleStorage
from ..db.cache import CacheStore
from ..ingestion.base import NewsAdapter
from ..logging import get_logger
from ..models import AdapterResult, FetchRun, RunSummary
from .gate import RunGate, RunLock

logger = get_logger(__name__)

METRICS_KEY = "article_fetch_metrics"


class AdapterStage:
    """Tracks one adapter's part of a run."""

    def __init__(self, adapter: NewsAdapter):
        self.name = type(adapter).__name__
        self.start_time: Optional[float] = None
        self.end_time: Optional[float] = None
        self.fetched = 0
        self.stats = {}
        self.error: Optional[str] = None

    def start(self):
        """Mark stage as started."""
        self.start_time = time.monotonic()

    def complete(self, stats: Optional[dict] = None):
        """Mark stage as completed successfully."""
        self.end_time = time.monotonic()
        if stats:
            self.stats.update(stats)

    def fail(self, error: str):
        """Mark stage as failed."""
        self.end_time = time.monotonic()
        self.error = error

    @property
    def duration(self) -> float:
        """Get stage duration in seconds."""
        if self.start_time is not None and self.end_time is not None:
            return self.end_time - self.start_time
        return 0.0

    def result(self) -> AdapterResult:
        return AdapterResult(
            name=self.name,
            fetched=self.fetched,
            stored=self.stats.get("stored", 0),
            new=self.stats.get("new", 0),
            updated=self.stats.get("updated", 0),
            duration_seconds=round(self.duration, 3),
            error=self.error,
        )


def matches_source(adapter: NewsAdapter, source: Optional[str]) -> bool:
    """Case-insensitive substring match on the adapter key or class name."""
    if not source:
        return True
    needle = source.lower()
    return needle in adapter.name.lower() or needle in type(adapter).__name__.lower()


class FetchOrchestrator:
    """
    Runs all registered adapters one after another.

    Each adapter's batch is stored in its own transaction, so a failure only
    loses that adapter's batch. Errors are collected into the summary; none
    escape ``run``.
    """

    def __init__(
        self,
        adapters: Sequence[NewsAdapter],
        storage: ArticleStorage,
        connection_factory: Callable[[], AbstractContextManager[Connection]],
        cache: CacheStore,
        min_interval: timedelta = timedelta(minutes=2),
        lock_ttl: timedelta = timedelta(minutes=10),
        metrics_ttl: timedelta = timedelta(hours=24),
        gate: Optional[RunGate] = None,
        lock: Optional[RunLock] = None,
    ) -> None:
        """
        Initialize fetch orchestrator.

        Args:
            adapters: Adapters in the order they should run
            storage: Dedup/upsert engine
            connection_factory: Callable returning a connection context manager
            cache: Shared cache for the gate, lock and metrics
            min_interval: Minimum time between non-forced runs
            lock_ttl: Maximum time the run lock may be held
            metrics_ttl: How long the metrics snapshot is kept
        """
        self.adapters = list(adapters)
        self.storage = storage
        self.connection_factory = connection_factory
        self.cache = cache
        self.gate = gate or RunGate(cache, min_interval=min_interval)
        self.lock = lock or RunLock(cache, ttl=lock_ttl)
        self.metrics_ttl = metrics_ttl

    def run(self, force: bool = False, source: Optional[str] = None) -> RunSummary:
        """
        Run the fetch.

        Args:
            force: Ignore the run gate (the run lock still applies)
            source: Only run adapters whose name contains this string

        Returns:
            Run summary; ``success`` is False when any adapter failed
        """
        try:
            acquired = self.lock.acquire()
        except Exception as e:
            logger.error("fetch.lock_unavailable", error=str(e))
            return RunSummary(errors=[f"Run lock unavailable: {e}"])

        if not acquired:
            logger.info("fetch.skipped", reason="locked")
            return RunSummary(skipped=True, skip_reason="locked")

        try:
            if not force and not self.gate.should_run():
                logger.info("fetch.skipped", reason="too_soon")
                return RunSummary(skipped=True, skip_reason="too_soon")

            self.gate.mark_started()
            return self._execute(source)
        except Exception as e:
            logger.error("fetch.failed", error=str(e), exc_info=True)
            return RunSummary(errors=[f"Fetch run failed: {e}"])
        finally:
            try:
                self.lock.release()
            except Exception as e:
                logger.warning("fetch.lock_release_failed", error=str(e))

    def _execute(self, source: Optional[str]) -> RunSummary:
        start_time = time.monotonic()
        adapters = [a for a in self.adapters if matches_source(a, source)]
        logger.info(
            "fetch.started",
            adapters=[type(a).__name__ for a in adapters],
            source=source,
        )

        stages: List[AdapterStage] = []
        errors: List[str] = []
        total_fetched = 0
        total_stored = 0

        for adapter in adapters:
            stage = AdapterStage(adapter)
            stages.append(stage)
            stage.start()

            try:
                articles = adapter.fetch_and_adapt()
                stage.fetched = len(articles)
                total_fetched += stage.fetched

                if not articles:
                    logger.warning("fetch.adapter_empty", adapter=stage.name)
                    stage.complete()
                    continue

                with self.connection_factory() as conn:
                    stats = self.storage.store_batch(conn, articles)

                total_stored += stats["stored"]
                stage.complete(stats)
                logger.info(
                    "fetch.adapter_stored",
                    adapter=stage.name,
                    fetched=stage.fetched,
                    stored=stats["stored"],
                    new=stats["new"],
                    updated=stats["updated"],
                )

            except Exception as e:
                error = f"Error with {stage.name}: {e}"
                errors.append(error)
                stage.fail(error)
                logger.error("fetch.adapter_failed", adapter=stage.name, error=str(e), exc_info=True)

        duration = round(time.monotonic() - start_time, 3)
        summary = RunSummary(
            total_fetched=total_fetched,
            total_stored=total_stored,
            duration_seconds=duration,
            errors=errors,
            adapters=[stage.result() for stage in stages],
        )

        logger.info(
            "fetch.completed",
            total_fetched=total_fetched,
            total_stored=total_stored,
            duration_seconds=duration,
            errors=errors,
        )
        self._save_metrics(summary)
        return summary

    def _save_metrics(self, summary: RunSummary) -> None:
        snapshot = FetchRun(
            last_run=pendulum.now("UTC"),
            total_fetched=summary.total_fetched,
            total_stored=summary.total_stored,
            duration=summary.duration_seconds,
            errors_count=len(summary.errors),
        )
        try:
            self.cache.put(
                METRICS_KEY,
                snapshot.model_dump(mode="json"),
                self.metrics_ttl.total_seconds(),
            )
        except Exception as e:
            logger.warning("fetch.metrics_unavailable", error=str(e))


def last_fetch_run(cache: CacheStore) -> Optional[FetchRun]:
    """Read the metrics snapshot of the latest run, if any."""
    value = cache.get(METRICS_KEY)
    if not value:
        return None
    return FetchRun.model_validate(value)
