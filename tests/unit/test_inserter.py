from __future__ import annotations

import threading
from datetime import date
from typing import List

import pytest

from directory_pipeline.config import Settings
from directory_pipeline.domain.models import Gender, Record
from directory_pipeline.domain.results import Cancelled, Completed, Failed
from directory_pipeline.errors import ConfigurationError, StorageError, ValidationError
from directory_pipeline.generation import RecordGenerator
from directory_pipeline.pipeline.governor import MemoryCheck, MemoryPressure
from directory_pipeline.pipeline.inserter import BatchInserter, clamp_batch_size

BIG_BATCH = 1200
PRODUCTION_CEILING = 500


class _RecordingProgress:
    def __init__(self) -> None:
        self.batches: List[tuple] = []
        self.pages: List[tuple] = []
        self.completed: List[dict] = []

    def on_batch(self, current: int, total: int) -> None:
        self.batches.append((current, total))

    def on_page(self, current: int, total: int) -> None:
        self.pages.append((current, total))

    def on_complete(self, summary: dict) -> None:
        self.completed.append(summary)


class _CountingGovernor:
    def __init__(self, exceeded: bool = False) -> None:
        self.calls = 0
        self.exceeded = exceeded

    def check_and_mitigate(self, limit_bytes=None) -> MemoryCheck:
        self.calls += 1
        return MemoryCheck(
            exceeded=self.exceeded,
            current_bytes=2 if self.exceeded else 0,
            limit_bytes=1,
            pressure=MemoryPressure.CRITICAL if self.exceeded else MemoryPressure.NORMAL,
        )


def _five_records(record_factory) -> List[Record]:
    return [
        record_factory("Adams John Michael", "1985-03-15"),
        record_factory("Brown Sarah Elizabeth", "1990-07-22", Gender.FEMALE),
        record_factory("Foster David Alexander", "1988-11-03"),
        record_factory("Garcia Maria Rose", "1992-05-18", Gender.FEMALE),
        record_factory("Fisher Robert James", "1987-09-12"),
    ]


def test_insert_batch_skips_existing_keys(memory_store, settings, record_factory) -> None:
    records = _five_records(record_factory)
    memory_store.insert_many([records[1], records[3]])
    inserter = BatchInserter(memory_store, settings=settings)

    result = inserter.insert_batch(records)

    assert result.inserted_count == 3
    assert result.skipped_count == 2
    assert result.inserted_count + result.skipped_count == len(records)


def test_reinserting_the_same_batch_is_idempotent(memory_store, settings, record_factory) -> None:
    records = _five_records(record_factory)
    inserter = BatchInserter(memory_store, settings=settings)

    first = inserter.insert_batch(records)
    second = inserter.insert_batch(records)

    assert (first.inserted_count, first.skipped_count) == (5, 0)
    assert (second.inserted_count, second.skipped_count) == (0, 5)
    assert memory_store.count() == 5


def test_invalid_records_block_the_whole_batch(memory_store, settings, record_factory) -> None:
    records = _five_records(record_factory)
    records[1] = Record.model_construct(full_name="", birth_date=date(1990, 1, 1), gender=Gender.FEMALE)
    records[4] = record_factory("Fisher Robert James", "2999-01-01")
    inserter = BatchInserter(memory_store, settings=settings)

    with pytest.raises(ValidationError) as exc_info:
        inserter.insert_batch(records)

    assert exc_info.value.positions == [2, 5]
    assert "Record 2:" in str(exc_info.value)
    assert memory_store.insert_calls == []
    assert memory_store.count() == 0


def test_insert_one_parses_raw_fields_after_validation(memory_store, settings) -> None:
    raw = Record.model_construct(full_name="  Ivanov Petr Sergeevich ", birth_date="2009-07-12", gender="Male")

    saved = BatchInserter(memory_store, settings=settings).insert_one(raw)

    assert saved.id == 1
    assert saved.full_name == "Ivanov Petr Sergeevich"
    assert saved.birth_date == date(2009, 7, 12)
    assert saved.gender is Gender.MALE
    assert memory_store.insert_calls == [1]


def test_insert_one_returns_none_for_an_existing_key(memory_store, settings, record_factory) -> None:
    existing = record_factory("Ivanov Petr Sergeevich", "2009-07-12")
    memory_store.insert_many([existing])

    assert BatchInserter(memory_store, settings=settings).insert_one(existing) is None
    assert memory_store.count() == 1


def test_insert_one_rejects_invalid_records(memory_store, settings) -> None:
    raw = Record.model_construct(full_name="Ivanov Petr", birth_date="2999-01-01", gender="Other")

    with pytest.raises(ValidationError) as exc_info:
        BatchInserter(memory_store, settings=settings).insert_one(raw)

    assert exc_info.value.positions == [1]
    assert len(exc_info.value.failures[0].reasons) == 2
    assert memory_store.insert_calls == []


def test_validation_error_propagates_from_the_stream(memory_store, settings, record_factory) -> None:
    bad = Record.model_construct(full_name="Fox", birth_date="not-a-date", gender=Gender.MALE)
    inserter = BatchInserter(memory_store, settings=settings)

    with pytest.raises(ValidationError):
        inserter.insert_stream([[record_factory("Adams John Lee")], [bad]])

    assert memory_store.count() == 1


def test_batch_size_is_clamped_to_the_ceiling(settings) -> None:
    assert clamp_batch_size(BIG_BATCH, settings) == settings.max_batch_size
    assert clamp_batch_size(10, settings) == 10
    assert clamp_batch_size(None, settings) == settings.insert_batch_size


def test_production_profile_lowers_the_ceiling() -> None:
    production = Settings(app_env="production")

    assert production.constrained_profile
    assert clamp_batch_size(BIG_BATCH, production) == PRODUCTION_CEILING


def test_non_positive_batch_size_is_a_configuration_error(settings) -> None:
    with pytest.raises(ConfigurationError):
        clamp_batch_size(-5, settings)


def test_oversized_batches_are_split_under_production(memory_store) -> None:
    production = Settings(app_env="production")
    generator = RecordGenerator(base_count=BIG_BATCH, special_count=0, batch_size=BIG_BATCH, seed=9)
    inserter = BatchInserter(memory_store, batch_size=BIG_BATCH, settings=production)

    outcome = inserter.insert_stream(generator, total=generator.total)

    assert isinstance(outcome, Completed)
    assert memory_store.insert_calls == [500, 500, 200]
    assert outcome.result.batches_processed == 3
    assert outcome.result.total_records == BIG_BATCH


def test_stream_reports_progress_after_every_batch(memory_store, settings) -> None:
    generator = RecordGenerator(base_count=20, special_count=5, batch_size=10, seed=10)
    progress = _RecordingProgress()
    inserter = BatchInserter(memory_store, batch_size=10, settings=settings)

    outcome = inserter.insert_stream(generator, progress=progress, total=generator.total)

    assert isinstance(outcome, Completed)
    assert progress.batches == [(10, 25), (20, 25), (25, 25)]
    assert progress.completed[-1]["status"] == "completed"
    assert progress.completed[-1]["total_records"] == 25
    assert outcome.result.total_inserted + outcome.result.total_skipped == 25


def test_governor_is_consulted_every_n_batches(memory_store, settings) -> None:
    generator = RecordGenerator(base_count=100, special_count=0, batch_size=4, seed=11)
    governor = _CountingGovernor()
    inserter = BatchInserter(
        memory_store, governor=governor, batch_size=4, settings=settings, check_every_batches=10
    )

    inserter.insert_stream(generator)

    assert governor.calls == 2


def test_memory_breaches_are_counted(memory_store, settings) -> None:
    generator = RecordGenerator(base_count=30, special_count=0, batch_size=10, seed=12)
    inserter = BatchInserter(
        memory_store,
        governor=_CountingGovernor(exceeded=True),
        batch_size=10,
        settings=settings,
        check_every_batches=1,
    )

    outcome = inserter.insert_stream(generator)

    assert isinstance(outcome, Completed)
    assert outcome.result.memory_breaches == 3


def test_storage_failure_returns_partial_result(memory_store, settings) -> None:
    generator = RecordGenerator(base_count=50, special_count=0, batch_size=10, seed=13)
    memory_store.fail_on_insert_call = 3
    progress = _RecordingProgress()
    inserter = BatchInserter(memory_store, batch_size=10, settings=settings)

    outcome = inserter.insert_stream(generator, progress=progress, total=generator.total)

    assert isinstance(outcome, Failed)
    assert isinstance(outcome.error, StorageError)
    assert outcome.partial.batches_processed == 2
    assert outcome.partial.total_records == 20
    assert progress.completed[-1]["status"] == "failed"


def test_cancellation_stops_between_batches(memory_store, settings) -> None:
    cancel = threading.Event()

    def _batches(source):
        for index, batch in enumerate(source):
            if index == 2:
                cancel.set()
            yield batch

    generator = RecordGenerator(base_count=50, special_count=0, batch_size=10, seed=14)
    inserter = BatchInserter(memory_store, batch_size=10, settings=settings)

    outcome = inserter.insert_stream(_batches(generator), cancel=cancel)

    assert isinstance(outcome, Cancelled)
    assert outcome.partial.batches_processed == 2
    assert len(memory_store.insert_calls) == 2


def test_empty_stream_completes_with_zero_counts(memory_store, settings) -> None:
    outcome = BatchInserter(memory_store, settings=settings).insert_stream([])

    assert isinstance(outcome, Completed)
    assert outcome.result.total_records == 0
    assert outcome.result.batches_processed == 0
