"""
Pytest configuration for the employee directory pipeline.

Provides fixtures for:
- In-memory record store and sinks for unit tests
- Settings pinned to an unconstrained development profile
- Database connection management and schema setup for integration tests
"""

from __future__ import annotations

import os
from datetime import date
from pathlib import Path
from typing import Dict, Generator, List, Optional, Sequence, Set, Tuple

import psycopg
import pytest

from directory_pipeline import config as config_module
from directory_pipeline.config import Settings
from directory_pipeline.domain.models import Gender, Record
from directory_pipeline.errors import SinkError, StorageError
from directory_pipeline.storage.base import RecordFilter
from directory_pipeline.storage.postgres import PostgresRecordStore


class InMemoryRecordStore:
    """
    RecordStore with the same observable semantics as the Postgres table.

    Ids are assigned incrementally, (full_name, birth_date) collisions are
    skipped, and pages follow keyset order. `fail_on_insert_call` and
    `fail_on_query_call` (1-based call numbers) inject a StorageError.
    """

    def __init__(self) -> None:
        self.rows: Dict[int, Record] = {}
        self._keys: Set[Tuple[str, date]] = set()
        self._next_id = 1
        self.insert_calls: List[int] = []
        self.query_calls: List[Tuple[int, int, str, Optional[str]]] = []
        self.count_calls = 0
        self.ensured_indexes: List[Tuple[str, str]] = []
        self.fail_on_insert_call: Optional[int] = None
        self.fail_on_query_call: Optional[int] = None

    def insert_many(self, records: Sequence[Record]) -> List[int]:
        self.insert_calls.append(len(records))
        if self.fail_on_insert_call == len(self.insert_calls):
            raise StorageError("simulated connection loss during insert")
        ids: List[int] = []
        for record in records:
            key = (record.full_name.strip(), record.birth_date)
            if key in self._keys:
                continue
            self._keys.add(key)
            record_id = self._next_id
            self._next_id += 1
            self.rows[record_id] = record.model_copy(update={"id": record_id})
            ids.append(record_id)
        return ids

    def query_page(
        self,
        after_id: int,
        limit: int,
        sort_by: str = "full_name",
        after_value: Optional[str] = None,
    ) -> List[Record]:
        self.query_calls.append((after_id, limit, sort_by, after_value))
        if self.fail_on_query_call == len(self.query_calls):
            raise StorageError("simulated connection loss during query")
        if sort_by == "id":
            ordered = sorted(self.rows.values(), key=lambda r: r.id)
            rows = [r for r in ordered if r.id > after_id]
        else:
            ordered = sorted(self.rows.values(), key=lambda r: (r.full_name, r.id))
            if after_value is None:
                rows = ordered
            else:
                rows = [r for r in ordered if (r.full_name, r.id) > (after_value, after_id)]
        return rows[:limit]

    def _matching(self, filter: Optional[RecordFilter]) -> List[Record]:
        rows = list(self.rows.values())
        if filter is not None and filter.gender is not None:
            rows = [r for r in rows if r.gender == filter.gender]
        if filter is not None and filter.name_starts_with:
            prefix = filter.name_starts_with.lower()
            rows = [r for r in rows if r.full_name.lower().startswith(prefix)]
        return rows

    def count(self, filter: Optional[RecordFilter] = None) -> int:
        self.count_calls += 1
        return len(self._matching(filter))

    def find(self, filter: Optional[RecordFilter] = None, limit: int = 100) -> List[Record]:
        return sorted(self._matching(filter), key=lambda r: (r.full_name, r.id))[:limit]

    def ensure_index(self, name: str, definition: str) -> None:
        self.ensured_indexes.append((name, definition))


class MemorySink:
    """Sink that keeps writes in memory; `fail_on_write` injects a SinkError."""

    def __init__(self, fail_on_write: Optional[int] = None) -> None:
        self.writes: List[str] = []
        self.closed = False
        self.discarded = False
        self.fail_on_write = fail_on_write

    @property
    def text(self) -> str:
        return "".join(self.writes)

    def write(self, text: str) -> None:
        if self.fail_on_write == len(self.writes) + 1:
            raise SinkError("simulated disk full")
        self.writes.append(text)

    def close(self) -> int:
        self.closed = True
        return len(self.text.encode("utf-8"))

    def discard(self) -> None:
        self.discarded = True
        self.writes.clear()


def make_record(
    full_name: str,
    birth_date: str = "1985-03-15",
    gender: Gender = Gender.MALE,
) -> Record:
    return Record(full_name=full_name, birth_date=date.fromisoformat(birth_date), gender=gender)


@pytest.fixture(autouse=True)
def unconstrained_host(monkeypatch: pytest.MonkeyPatch) -> None:
    """
    Pin the host profile: no cgroup memory limit and no deployment flags.
    """
    monkeypatch.setattr(config_module, "container_memory_limit_bytes", lambda: None)
    for name in ("APP_ENV", "MEMORY_SAFE_MODE", "DEPLOYMENT_MODE"):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def settings() -> Settings:
    """Development settings with small page/batch cadences for fast tests."""
    return Settings(
        app_env="development",
        memory_safe_mode=False,
        deployment_mode=False,
        insert_batch_size=1000,
        max_batch_size=1000,
        constrained_max_batch_size=500,
        memory_check_every_batches=10,
        export_page_size=5000,
        export_check_every_pages=10,
    )


@pytest.fixture
def memory_store() -> InMemoryRecordStore:
    return InMemoryRecordStore()


@pytest.fixture
def memory_sink() -> MemorySink:
    return MemorySink()


@pytest.fixture
def record_factory():
    return make_record


@pytest.fixture(scope="session")
def test_settings() -> Settings:
    """
    Settings fixture with test-specific overrides.

    Can be overridden via environment variables in CI or local testing.
    """
    return Settings(
        db_host=os.getenv("DB_HOST", "localhost"),
        db_port=int(os.getenv("DB_PORT", "5432")),
        db_user=os.getenv("DB_USER", "postgres"),
        db_password=os.getenv("DB_PASSWORD", "postgres"),
        db_name=os.getenv("DB_NAME", "employee_directory"),
        log_level="DEBUG",
    )


@pytest.fixture(scope="session")
def test_dsn(test_settings: Settings) -> str:
    """
    Database connection string for tests.
    """
    return (
        f"postgresql://{test_settings.db_user}:{test_settings.db_password}"
        f"@{test_settings.db_host}:{test_settings.db_port}/{test_settings.db_name}"
    )


@pytest.fixture(scope="session")
def db_connection_available(test_dsn: str) -> bool:
    """
    Check if database is reachable.

    Used to conditionally skip integration tests when DB is not available.
    """
    try:
        with psycopg.connect(test_dsn, connect_timeout=5) as conn:
            conn.execute("SELECT 1;").fetchone()
        return True
    except psycopg.Error:
        return False


@pytest.fixture(scope="session")
def db_connection(
    test_dsn: str, db_connection_available: bool
) -> Generator[psycopg.Connection, None, None]:
    """
    Provide a session-scoped database connection for integration tests.

    Skips tests if database is not available.
    """
    if not db_connection_available:
        pytest.skip("Database not available for integration tests")

    conn = psycopg.connect(test_dsn)
    try:
        yield conn
    finally:
        conn.close()


@pytest.fixture(scope="session")
def db_schema_initialized(db_connection: psycopg.Connection) -> bool:
    """
    Ensure the employees table exists, creating it from db/init.sql.
    """
    init_sql_path = Path(__file__).parent.parent / "db" / "init.sql"
    with db_connection.cursor() as cur:
        cur.execute(init_sql_path.read_text())
    db_connection.commit()
    return True


@pytest.fixture(scope="function")
def clean_employees_table(db_connection: psycopg.Connection, db_schema_initialized: bool):
    """
    Empty the employees table before and after each test function.
    """
    with db_connection.cursor() as cur:
        cur.execute("TRUNCATE TABLE public.employees RESTART IDENTITY CASCADE;")
    db_connection.commit()
    yield
    with db_connection.cursor() as cur:
        cur.execute("TRUNCATE TABLE public.employees RESTART IDENTITY CASCADE;")
    db_connection.commit()


@pytest.fixture(scope="function")
def pg_store(test_dsn: str, clean_employees_table) -> Generator[PostgresRecordStore, None, None]:
    """
    PostgresRecordStore on its own small pool against an empty table.
    """
    store = PostgresRecordStore(dsn_override=test_dsn, table="employees")
    try:
        yield store
    finally:
        store.close()


@pytest.fixture
def sink_factory():
    return MemorySink
