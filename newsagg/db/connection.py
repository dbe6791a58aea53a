"""Database connection management."""

import os
from contextlib import contextmanager
from typing import Any, Dict, Generator

import psycopg
from psycopg.conninfo import make_conninfo
from psycopg.rows import dict_row
from psycopg_pool import ConnectionPool

APPLICATION_NAME = "newsagg"


class DatabaseConfig:
    """Database settings resolved from the postgres config section."""

    def __init__(self, config: Dict[str, Any]) -> None:
        self.host = config.get("host", "localhost")
        self.port = config.get("port", 5432)
        self.database = config.get("database", "newsagg")
        self.user = config.get("user", "newsagg_user")
        self.pool_size = config.get("pool_size", 10)
        self.connect_timeout = config.get("connect_timeout", 10)

        # An explicit password wins over the environment lookup
        password_env = config.get("password_env")
        self.password = config.get("password") or ""
        if not self.password and password_env:
            self.password = os.environ.get(password_env, "")

    @property
    def connection_string(self) -> str:
        """libpq connection string, safe for passwords with special characters."""
        return make_conninfo(
            host=self.host,
            port=self.port,
            dbname=self.database,
            user=self.user,
            password=self.password or None,
            connect_timeout=self.connect_timeout,
            application_name=APPLICATION_NAME,
        )


# One pool per distinct connection string
_pools: Dict[str, ConnectionPool] = {}


def get_connection_pool(config: Dict[str, Any]) -> ConnectionPool:
    """Get or create the pool for this database."""
    db_config = DatabaseConfig(config)
    conninfo = db_config.connection_string

    pool = _pools.get(conninfo)
    if pool is None:
        pool = ConnectionPool(
            conninfo,
            min_size=1,
            max_size=max(1, db_config.pool_size),
            kwargs={"row_factory": dict_row},
            open=True,
        )
        _pools[conninfo] = pool
    return pool


def close_connection_pool() -> None:
    """Close every pool opened by this process."""
    while _pools:
        _, pool = _pools.popitem()
        pool.close()


@contextmanager
def get_connection(config: Dict[str, Any]) -> Generator[psycopg.Connection, None, None]:
    """Borrow a connection; it is returned to the pool on exit."""
    pool = get_connection_pool(config)
    with pool.connection() as conn:
        yield conn
