"""
Infrastructure package for the employee directory pipeline.

Centralizes database connectivity concerns (pool lifecycle, DSN, one-off
connections). Keep this layer focused on I/O and resource management,
decoupled from generation, insertion and export logic.
"""

from directory_pipeline.infrastructure.db_factory import (
    PoolManager,
    build_dsn,
    check_connection,
    get_sync_connection,
    get_sync_pool,
)

__all__ = [
    "PoolManager",
    "build_dsn",
    "check_connection",
    "get_sync_connection",
    "get_sync_pool",
]
