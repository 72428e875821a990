"""
Integration tests for the PostgreSQL record store and the full pipeline.

These tests run against a real PostgreSQL instance and verify that:
1. Inserts skip (full_name, birth_date) conflicts and report assigned ids
2. Keyset pages cover the table exactly once in (full_name, id) order
3. Generation, insertion and export agree end to end

Run with: RUN_INTEGRATION_TESTS=1 pytest tests/integration/
"""

from __future__ import annotations

import os
from datetime import date

import pytest

from directory_pipeline.domain.models import Gender, Record
from directory_pipeline.domain.results import Completed, ExportResult
from directory_pipeline.export import CursorExporter, FileSink
from directory_pipeline.generation import RecordGenerator, generate_sample_records
from directory_pipeline.pipeline import BatchInserter
from directory_pipeline.storage import RecordFilter, optimization_indexes

BASE_COUNT = 400
SPECIAL_COUNT = 25
BATCH_SIZE = 50
PAGE_SIZE = 37
SEED = 123

pytestmark = pytest.mark.skipif(
    os.getenv("RUN_INTEGRATION_TESTS", "0") != "1",
    reason="Integration tests require RUN_INTEGRATION_TESTS=1 and reachable Postgres",
)


class TestInsertMany:
    def test_returns_ids_of_inserted_rows(self, pg_store):
        ids = pg_store.insert_many(generate_sample_records())

        assert len(ids) == 10
        assert len(set(ids)) == 10
        assert pg_store.count() == 10

    def test_conflicts_are_skipped(self, pg_store):
        sample = generate_sample_records()
        pg_store.insert_many([sample[1], sample[3]])

        ids = pg_store.insert_many(sample[:5])

        assert len(ids) == 3
        assert pg_store.count() == 5

    def test_empty_batch_is_a_no_op(self, pg_store):
        assert pg_store.insert_many([]) == []


class TestQueries:
    def test_count_filters(self, pg_store):
        pg_store.insert_many(generate_sample_records())

        assert pg_store.count(RecordFilter(gender=Gender.MALE)) == 5
        assert pg_store.count(RecordFilter(gender=Gender.MALE, name_starts_with="F")) == 4
        assert pg_store.count(RecordFilter(name_starts_with="f")) == 4

    def test_find_returns_special_records(self, pg_store):
        pg_store.insert_many(generate_sample_records())
        pg_store.create_optimization_indexes("F")

        found = pg_store.find(RecordFilter(gender=Gender.MALE, name_starts_with="F"), limit=10)

        assert len(found) == 4
        assert all(r.gender is Gender.MALE and r.full_name.startswith("F") for r in found)
        assert len(pg_store.find(RecordFilter(gender=Gender.MALE, name_starts_with="F"), limit=2)) == 2

    def test_like_wildcards_are_literal(self, pg_store):
        pg_store.insert_many(generate_sample_records())

        assert pg_store.count(RecordFilter(name_starts_with="%")) == 0

    def test_keyset_pages_cover_the_table_once(self, pg_store):
        pg_store.insert_many(
            [
                Record(full_name="Fox John Lee", birth_date=date(1950 + i, 1, 1), gender=Gender.MALE)
                for i in range(20)
            ]
        )
        pg_store.insert_many(generate_sample_records())

        seen = []
        after_id, after_value = 0, None
        while True:
            page = pg_store.query_page(after_id, 6, "full_name", after_value)
            if not page:
                break
            seen.extend(page)
            after_id, after_value = page[-1].id, page[-1].full_name

        assert len(seen) == 30
        assert len({r.id for r in seen}) == 30
        assert [(r.full_name, r.id) for r in seen] == sorted((r.full_name, r.id) for r in seen)

    def test_indexes_are_idempotent(self, pg_store):
        first = pg_store.create_optimization_indexes("F")
        second = pg_store.create_optimization_indexes("F")

        assert [r["name"] for r in first] == [i.name for i in optimization_indexes("F")]
        assert len(second) == len(first)

    def test_table_stats(self, pg_store):
        pg_store.insert_many(generate_sample_records())

        stats = pg_store.table_stats()

        assert stats["total_records"] == 10
        assert stats["male_count"] == 5
        assert stats["female_count"] == 5
        assert stats["oldest_birth_date"] == date(1985, 3, 15)


class TestPipeline:
    def test_generate_insert_export(self, pg_store, tmp_path, test_settings):
        generator = RecordGenerator(BASE_COUNT, SPECIAL_COUNT, BATCH_SIZE, seed=SEED)
        outcome = BatchInserter(pg_store, batch_size=BATCH_SIZE, settings=test_settings).insert_stream(
            generator, total=generator.total
        )

        assert isinstance(outcome, Completed)
        assert outcome.result.total_records == generator.total
        persisted = pg_store.count()
        assert persisted == outcome.result.total_inserted

        path = tmp_path / "employees.txt"
        result = CursorExporter(pg_store, settings=test_settings).export(FileSink(path), page_size=PAGE_SIZE)

        assert isinstance(result, ExportResult)
        assert result.records_written == persisted
        text = path.read_text(encoding="utf-8")
        assert f"Total Records: {persisted}" in text

    def test_rerunning_a_seeded_generation_inserts_nothing(self, pg_store, test_settings):
        inserter = BatchInserter(pg_store, batch_size=BATCH_SIZE, settings=test_settings)

        first = inserter.insert_stream(RecordGenerator(100, 10, BATCH_SIZE, seed=SEED))
        second = inserter.insert_stream(RecordGenerator(100, 10, BATCH_SIZE, seed=SEED))

        assert isinstance(second, Completed)
        assert second.result.total_inserted == 0
        assert second.result.total_skipped == first.result.total_records
