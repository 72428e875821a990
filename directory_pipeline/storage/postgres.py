"""
PostgreSQL record store built on psycopg 3 and the shared psycopg_pool pool.

Each call borrows a pooled connection for exactly one statement-level unit of
work and commits on exit, so concurrent readers can observe partially completed
runs. Driver errors are wrapped in StorageError; uniqueness conflicts never
reach the caller because inserts use ON CONFLICT DO NOTHING.
"""

from __future__ import annotations

import time
from contextlib import contextmanager
from typing import Any, Dict, Generator, List, Optional, Sequence, Tuple

import psycopg
from psycopg import Connection, sql
from psycopg_pool import ConnectionPool

from directory_pipeline.config import get_settings
from directory_pipeline.domain.models import Gender, Record
from directory_pipeline.errors import ConfigurationError, StorageError
from directory_pipeline.infrastructure.db_factory import get_sync_pool
from directory_pipeline.storage.base import (
    PAGINATION_INDEX,
    SORTABLE_COLUMNS,
    AbstractRecordStore,
    IndexDefinition,
    RecordFilter,
)
from directory_pipeline.utils.logging import get_logger

log = get_logger(__name__)

_COLUMNS = sql.SQL("id, full_name, birth_date, gender, created_at")


def optimization_indexes(special_letter: str = "F") -> List[IndexDefinition]:
    """Indexes that speed up exports and special-record queries."""
    if len(special_letter) != 1 or not special_letter.isalpha():
        raise ConfigurationError(f"Special letter must be a single letter, got {special_letter!r}")
    letter = special_letter.upper()
    return [
        PAGINATION_INDEX,
        IndexDefinition(
            name=f"idx_employees_gender_name_{letter.lower()}",
            definition=(
                f"(gender, full_name) WHERE gender = 'Male' AND full_name LIKE '{letter}%'"
            ),
            description=f"Partial index for male employees with '{letter}' surnames",
        ),
        IndexDefinition("idx_employees_full_name", "(full_name)", "General full name index"),
        IndexDefinition("idx_employees_gender", "(gender)", "Gender filtering index"),
        IndexDefinition("idx_employees_birth_date", "(birth_date)", "Birth date index"),
    ]


def _escape_like(value: str) -> str:
    return value.replace("\\", "\\\\").replace("%", r"\%").replace("_", r"\_")


def _where_clause(filter: Optional[RecordFilter]) -> Tuple[sql.Composable, List[Any]]:
    filter = filter or RecordFilter()
    conditions: List[sql.Composable] = []
    params: List[Any] = []
    if filter.gender is not None:
        conditions.append(sql.SQL("gender = %s"))
        params.append(Gender(filter.gender).value)
    if filter.name_starts_with:
        conditions.append(sql.SQL("full_name ILIKE %s"))
        params.append(f"{_escape_like(filter.name_starts_with)}%")
    if filter.is_empty:
        return sql.SQL(""), params
    return sql.SQL("WHERE {conditions}").format(conditions=sql.SQL(" AND ").join(conditions)), params


def _row_to_record(row: Sequence[Any]) -> Record:
    return Record(
        id=row[0],
        full_name=row[1],
        birth_date=row[2],
        gender=Gender(row[3]),
        created_at=row[4],
    )


class PostgresRecordStore(AbstractRecordStore):
    """
    RecordStore backed by the `employees` table (see db/init.sql).
    """

    def __init__(
        self,
        pool: Optional[ConnectionPool] = None,
        table: Optional[str] = None,
        dsn_override: Optional[str] = None,
    ) -> None:
        self._pool = pool
        self._owns_pool = False
        self._dsn_override = dsn_override
        self.table = table or get_settings().db_table
        self._table = sql.Identifier(self.table)

    def _get_pool(self) -> ConnectionPool:
        if self._pool is None:
            if self._dsn_override:
                self._pool = ConnectionPool(conninfo=self._dsn_override, min_size=1, max_size=4, open=True)
                self._owns_pool = True
            else:
                self._pool = get_sync_pool()
        return self._pool

    def close(self) -> None:
        """Close the pool if this store created it; the shared pool is left open."""
        if self._owns_pool and self._pool is not None:
            self._pool.close()
            self._pool = None
            self._owns_pool = False

    @contextmanager
    def _unit_of_work(self, action: str) -> Generator[Connection, None, None]:
        try:
            with self._get_pool().connection() as conn:
                yield conn
        except psycopg.Error as exc:
            raise StorageError(f"Failed to {action}: {exc}") from exc

    def insert_many(self, records: Sequence[Record]) -> List[int]:
        if not records:
            return []
        values = sql.SQL(", ").join(sql.SQL("(%s, %s, %s)") for _ in records)
        query = sql.SQL(
            "INSERT INTO {table} (full_name, birth_date, gender) VALUES {values} "
            "ON CONFLICT (full_name, birth_date) DO NOTHING RETURNING id"
        ).format(table=self._table, values=values)
        params: List[Any] = []
        for record in records:
            params.extend((record.full_name.strip(), record.birth_date, Gender(record.gender).value))

        with self._unit_of_work("insert employees") as conn:
            rows = conn.execute(query, params).fetchall()
        return [row[0] for row in rows]

    def query_page(
        self,
        after_id: int,
        limit: int,
        sort_by: str = "full_name",
        after_value: Optional[str] = None,
    ) -> List[Record]:
        if sort_by not in SORTABLE_COLUMNS:
            raise ConfigurationError(f"Unsupported sort column {sort_by!r}; use one of {SORTABLE_COLUMNS}")

        params: List[Any] = []
        if sort_by == "id":
            where = sql.SQL("WHERE id > %s")
            order = sql.SQL("id")
            params.append(after_id)
        else:
            order = sql.SQL("full_name, id")
            if after_value is None:
                where = sql.SQL("")
            else:
                where = sql.SQL("WHERE (full_name, id) > (%s, %s)")
                params.extend((after_value, after_id))
        params.append(limit)

        query = sql.SQL("SELECT {columns} FROM {table} {where} ORDER BY {order} LIMIT %s").format(
            columns=_COLUMNS, table=self._table, where=where, order=order
        )
        with self._unit_of_work("query employees page") as conn:
            rows = conn.execute(query, params).fetchall()
        return [_row_to_record(row) for row in rows]

    def count(self, filter: Optional[RecordFilter] = None) -> int:
        where, params = _where_clause(filter)
        query = sql.SQL("SELECT COUNT(*) FROM {table} {where}").format(table=self._table, where=where)
        with self._unit_of_work("count employees") as conn:
            row = conn.execute(query, params or None).fetchone()
        return int(row[0])

    def find(self, filter: Optional[RecordFilter] = None, limit: int = 100) -> List[Record]:
        """
        First `limit` records matching `filter`, in (full_name, id) order.
        """
        if limit <= 0:
            raise ConfigurationError(f"Query limit must be positive, got {limit}")
        where, params = _where_clause(filter)
        params.append(limit)
        query = sql.SQL("SELECT {columns} FROM {table} {where} ORDER BY full_name, id LIMIT %s").format(
            columns=_COLUMNS, table=self._table, where=where
        )
        with self._unit_of_work("query employees") as conn:
            rows = conn.execute(query, params).fetchall()
        return [_row_to_record(row) for row in rows]

    def ensure_index(self, name: str, definition: str) -> None:
        query = sql.SQL("CREATE INDEX IF NOT EXISTS {name} ON {table} {definition}").format(
            name=sql.Identifier(name), table=self._table, definition=sql.SQL(definition)
        )
        with self._unit_of_work(f"create index {name}") as conn:
            conn.execute(query)

    def create_optimization_indexes(self, special_letter: str = "F") -> List[Dict[str, Any]]:
        """
        Create every optimization index, returning per-index timing.
        """
        results: List[Dict[str, Any]] = []
        for index in optimization_indexes(special_letter):
            start = time.perf_counter()
            self.ensure_index(index.name, index.definition)
            elapsed_ms = (time.perf_counter() - start) * 1000
            log.info(f"[INDEX] {index.name}", extra={"index": index.name, "elapsed_ms": round(elapsed_ms, 2)})
            results.append(
                {
                    "name": index.name,
                    "description": index.description,
                    "execution_ms": round(elapsed_ms, 2),
                }
            )
        return results

    def table_stats(self) -> Dict[str, Any]:
        """
        Totals, gender split, birth date range and on-disk size of the table.

        A missing table reports zeros instead of failing.
        """
        query = sql.SQL(
            """
            SELECT
                COUNT(*),
                COUNT(DISTINCT full_name),
                COUNT(*) FILTER (WHERE gender = 'Male'),
                COUNT(*) FILTER (WHERE gender = 'Female'),
                MIN(birth_date),
                MAX(birth_date),
                pg_size_pretty(pg_total_relation_size(%s::regclass))
            FROM {table}
            """
        ).format(table=self._table)
        try:
            with self._get_pool().connection() as conn:
                row = conn.execute(query, (self.table,)).fetchone()
        except psycopg.errors.UndefinedTable:
            return {
                "total_records": 0,
                "unique_names": 0,
                "male_count": 0,
                "female_count": 0,
                "oldest_birth_date": None,
                "youngest_birth_date": None,
                "table_size": "0 bytes",
            }
        except psycopg.Error as exc:
            raise StorageError(f"Failed to get table statistics: {exc}") from exc

        return {
            "total_records": row[0],
            "unique_names": row[1],
            "male_count": row[2],
            "female_count": row[3],
            "oldest_birth_date": row[4],
            "youngest_birth_date": row[5],
            "table_size": row[6],
        }


__all__ = ["PostgresRecordStore", "optimization_indexes"]
