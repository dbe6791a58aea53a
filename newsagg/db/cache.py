"""Key-value cache with expiry, shared by the run gate and adapters."""

import threading
import time
from abc import ABC, abstractmethod
from contextlib import AbstractContextManager
from typing import Any, Callable, Dict, Optional, Tuple

from psycopg import Connection
from psycopg.types.json import Jsonb

_MISSING = object()


class CacheStore(ABC):
    """Abstract key-value store with per-entry time to live."""

    @abstractmethod
    def get(self, key: str, default: Any = None) -> Any:
        """Return the live value stored under key, or default."""
        pass

    @abstractmethod
    def put(self, key: str, value: Any, ttl: float) -> None:
        """Store value under key for ttl seconds, replacing any entry."""
        pass

    @abstractmethod
    def add(self, key: str, value: Any, ttl: float) -> bool:
        """
        Store value only if key is absent or expired.

        This is a single atomic step; it is what run locks are built on.

        Returns:
            True if the value was stored
        """
        pass

    @abstractmethod
    def delete(self, key: str, expected: Any = _MISSING) -> bool:
        """
        Remove key.

        Args:
            key: Cache key
            expected: When given, only delete if the stored value equals it

        Returns:
            True if an entry was removed
        """
        pass


class MemoryCache(CacheStore):
    """In-process cache, for single-process use and tests."""

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        """Initialize memory cache."""
        self._clock = clock
        self._entries: Dict[str, Tuple[Any, float]] = {}
        self._lock = threading.Lock()

    def _live(self, key: str) -> Any:
        entry = self._entries.get(key)
        if entry is None:
            return _MISSING
        value, expires_at = entry
        if expires_at <= self._clock():
            del self._entries[key]
            return _MISSING
        return value

    def get(self, key: str, default: Any = None) -> Any:
        with self._lock:
            value = self._live(key)
            return default if value is _MISSING else value

    def put(self, key: str, value: Any, ttl: float) -> None:
        with self._lock:
            self._entries[key] = (value, self._clock() + ttl)

    def add(self, key: str, value: Any, ttl: float) -> bool:
        with self._lock:
            if self._live(key) is not _MISSING:
                return False
            self._entries[key] = (value, self._clock() + ttl)
            return True

    def delete(self, key: str, expected: Any = _MISSING) -> bool:
        with self._lock:
            current = self._live(key)
            if current is _MISSING:
                return False
            if expected is not _MISSING and current != expected:
                return False
            del self._entries[key]
            return True


class PostgresCache(CacheStore):
    """Cache backed by the cache_entries table, shared across processes."""

    def __init__(
        self,
        connection_factory: Callable[[], AbstractContextManager[Connection]],
    ) -> None:
        """
        Initialize Postgres cache.

        Args:
            connection_factory: Callable returning a connection context manager,
                e.g. ``functools.partial(get_connection, db_config)``
        """
        self.connection_factory = connection_factory

    def get(self, key: str, default: Any = None) -> Any:
        with self.connection_factory() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    """
                    SELECT value FROM cache_entries
                    WHERE key = %s AND expires_at > CURRENT_TIMESTAMP
                    """,
                    (key,),
                )
                row = cur.fetchone()
            conn.commit()
        return default if row is None else row["value"]

    def put(self, key: str, value: Any, ttl: float) -> None:
        with self.connection_factory() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    """
                    INSERT INTO cache_entries (key, value, expires_at)
                    VALUES (%s, %s, CURRENT_TIMESTAMP + make_interval(secs => %s))
                    ON CONFLICT (key) DO UPDATE SET
                        value = EXCLUDED.value,
                        expires_at = EXCLUDED.expires_at
                    """,
                    (key, Jsonb(value), float(ttl)),
                )
            conn.commit()

    def add(self, key: str, value: Any, ttl: float) -> bool:
        with self.connection_factory() as conn:
            with conn.cursor() as cur:
                # Takes over an expired entry but never a live one
                cur.execute(
                    """
                    INSERT INTO cache_entries (key, value, expires_at)
                    VALUES (%s, %s, CURRENT_TIMESTAMP + make_interval(secs => %s))
                    ON CONFLICT (key) DO UPDATE SET
                        value = EXCLUDED.value,
                        expires_at = EXCLUDED.expires_at
                    WHERE cache_entries.expires_at <= CURRENT_TIMESTAMP
                    RETURNING key
                    """,
                    (key, Jsonb(value), float(ttl)),
                )
                stored = cur.fetchone() is not None
            conn.commit()
        return stored

    def delete(self, key: str, expected: Any = _MISSING) -> bool:
        with self.connection_factory() as conn:
            with conn.cursor() as cur:
                if expected is _MISSING:
                    cur.execute("DELETE FROM cache_entries WHERE key = %s", (key,))
                else:
                    cur.execute(
                        "DELETE FROM cache_entries WHERE key = %s AND value = %s",
                        (key, Jsonb(expected)),
                    )
                deleted = cur.rowcount > 0
            conn.commit()
        return deleted

    def purge_expired(self) -> int:
        """Delete expired entries and return how many were removed."""
        with self.connection_factory() as conn:
            with conn.cursor() as cur:
                cur.execute("DELETE FROM cache_entries WHERE expires_at <= CURRENT_TIMESTAMP")
                purged = cur.rowcount
            conn.commit()
        return purged
