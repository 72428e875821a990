"""
Database connection factory utilities for the employee directory pipeline.

Provides centralized management of the shared PostgreSQL connection pool. The
PoolManager singleton hands the same pool to the inserter, the exporter and any
unrelated callers in the process, and closes it on exit.

One-off connections retry transient connection failures using tenacity. Batch
writes never go through the retrying path.
"""

from __future__ import annotations

import atexit
import threading
from typing import Any, Dict, Optional

import psycopg
from psycopg import Connection
from psycopg_pool import ConnectionPool
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from directory_pipeline.config import Settings, get_settings


def build_dsn(settings: Optional[Settings] = None) -> str:
    """Compose a DSN string from settings."""
    settings = settings or get_settings()
    return (
        f"postgresql://{settings.db_user}:{settings.db_password}"
        f"@{settings.db_host}:{settings.db_port}/{settings.db_name}"
    )


class PoolManager:
    """
    Thread-safe singleton owning the process-wide connection pool.

    Handles lifecycle management with automatic cleanup via atexit hook.
    """

    _instance: Optional["PoolManager"] = None
    _lock = threading.Lock()

    def __new__(cls) -> "PoolManager":
        """Create or return the singleton instance."""
        with cls._lock:
            if cls._instance is None:
                cls._instance = super().__new__(cls)
                cls._instance._pool = None
                atexit.register(cls._instance.close_all)
            return cls._instance

    def get_pool(
        self,
        min_size: Optional[int] = None,
        max_size: Optional[int] = None,
        dsn: Optional[str] = None,
    ) -> ConnectionPool:
        """
        Get or create the shared connection pool.

        Sizes default to DB_POOL_MIN / DB_POOL_MAX. Arguments only apply when
        the pool is first created.
        """
        with self._lock:
            if self._pool is None:
                settings = get_settings()
                self._pool = ConnectionPool(
                    conninfo=dsn or build_dsn(settings),
                    min_size=min_size or settings.db_pool_min,
                    max_size=max_size or settings.db_pool_max,
                    open=True,
                )
            return self._pool

    def close_all(self) -> None:
        """
        Close the managed pool. Called automatically on exit via atexit hook.
        """
        with self._lock:
            pool, self._pool = self._pool, None
        if pool is not None:
            pool.close()


def get_sync_pool(min_size: Optional[int] = None, max_size: Optional[int] = None) -> ConnectionPool:
    """
    Get or create the shared synchronous pool via PoolManager.
    """
    return PoolManager().get_pool(min_size=min_size, max_size=max_size)


@retry(
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=1, min=1, max=10),
    retry=retry_if_exception_type((psycopg.OperationalError, psycopg.InterfaceError)),
    reraise=True,
)
def get_sync_connection(dsn: Optional[str] = None) -> Connection:
    """
    Acquire a dedicated connection with automatic retry.

    Retries up to 3 times with exponential backoff for transient connection
    errors. Use this for one-off checks; pipeline work goes through the pool.

    Raises
    ------
    psycopg.OperationalError
        If connection fails after all retry attempts.
    """
    return psycopg.connect(dsn or build_dsn())


def check_connection(dsn: Optional[str] = None) -> Dict[str, Any]:
    """
    Verify the database is reachable and report server time and version.
    """
    with get_sync_connection(dsn) as conn:
        row = conn.execute("SELECT NOW(), version()").fetchone()
    return {
        "connected": True,
        "server_time": row[0],
        "version": row[1],
    }


__all__ = [
    "PoolManager",
    "build_dsn",
    "check_connection",
    "get_sync_connection",
    "get_sync_pool",
]
