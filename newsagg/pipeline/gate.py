"""Run gate and run lock for the fetch orchestrator."""

import uuid
from datetime import timedelta
from typing import Callable, Optional

import pendulum

from ..db.cache import CacheStore
from ..logging import get_logger

logger = get_logger(__name__)

LAST_RUN_KEY = "last_article_fetch"
LOCK_KEY = "article_fetch_lock"


def utc_now() -> pendulum.DateTime:
    return pendulum.now("UTC")


class RunGate:
    """
    Advisory throttle: refuses runs closer together than min_interval.

    The marker lives in the shared cache so every process sees it.
    """

    def __init__(
        self,
        cache: CacheStore,
        min_interval: timedelta = timedelta(minutes=2),
        marker_ttl: timedelta = timedelta(days=1),
        clock: Callable[[], pendulum.DateTime] = utc_now,
    ) -> None:
        self.cache = cache
        self.min_interval = min_interval
        self.marker_ttl = marker_ttl
        self.clock = clock

    def last_run(self) -> Optional[pendulum.DateTime]:
        """When the last run started, if recorded."""
        value = self.cache.get(LAST_RUN_KEY)
        if not value:
            return None
        try:
            return pendulum.parse(value)
        except (ValueError, TypeError):
            logger.warning("gate.marker_unreadable", value=value)
            return None

    def should_run(self) -> bool:
        """True if nothing ran yet or the minimum interval has passed."""
        last_run = self.last_run()
        if last_run is None:
            return True
        return self.clock() - last_run >= self.min_interval

    def mark_started(self) -> pendulum.DateTime:
        """Record now as the start of a run."""
        started_at = self.clock()
        self.cache.put(LAST_RUN_KEY, started_at.isoformat(), self.marker_ttl.total_seconds())
        return started_at


class RunLock:
    """
    Mutual exclusion between fetch runs, across processes.

    Acquisition is one atomic add on the shared cache; the TTL bounds how
    long a crashed holder can block later runs.
    """

    def __init__(
        self,
        cache: CacheStore,
        ttl: timedelta = timedelta(minutes=10),
        key: str = LOCK_KEY,
    ) -> None:
        self.cache = cache
        self.ttl = ttl
        self.key = key
        self._token: Optional[str] = None

    @property
    def held(self) -> bool:
        return self._token is not None

    def acquire(self) -> bool:
        """Try to take the lock without waiting."""
        token = uuid.uuid4().hex
        if self.cache.add(self.key, token, self.ttl.total_seconds()):
            self._token = token
            return True
        return False

    def release(self) -> None:
        """Release the lock if we still own it."""
        if self._token is None:
            return
        try:
            self.cache.delete(self.key, expected=self._token)
        finally:
            self._token = None
