"""
Batched, idempotent, memory-governed record insertion.

`BatchInserter.insert_batch` validates a whole batch before touching storage and
writes it with skip-on-duplicate semantics. `insert_stream` pulls batches one at
a time from any iterable (typically a `RecordGenerator`), so at most one batch
is in flight, and reports an explicit `InsertOutcome`.

Usage:
    inserter = BatchInserter(PostgresRecordStore(), governor=MemoryGovernor.from_settings())
    outcome = inserter.insert_stream(generator, progress=reporter, total=generator.total)
"""

from __future__ import annotations

import threading
import time
from dataclasses import replace
from datetime import date
from typing import Iterable, Iterator, List, Optional, Sequence

from directory_pipeline.config import Settings, get_settings
from directory_pipeline.domain.models import Record
from directory_pipeline.domain.results import (
    AggregateResult,
    BatchResult,
    Cancelled,
    Completed,
    Failed,
    InsertOutcome,
)
from directory_pipeline.errors import ConfigurationError, RecordFailure, StorageError, ValidationError
from directory_pipeline.pipeline.governor import MemoryGovernor
from directory_pipeline.progress import NullProgress, ProgressSink
from directory_pipeline.storage.base import RecordStore
from directory_pipeline.utils.logging import get_logger

log = get_logger(__name__)


def clamp_batch_size(requested: Optional[int], settings: Optional[Settings] = None) -> int:
    """
    Reduce `requested` to the environment's batch ceiling.

    Oversized requests are silently reduced, never rejected.
    """
    settings = settings or get_settings()
    size = settings.insert_batch_size if requested is None else requested
    if size <= 0:
        raise ConfigurationError(f"Batch size must be positive, got {size}")
    ceiling = settings.batch_ceiling
    if size > ceiling:
        log.debug(
            f"[BATCH SIZE] reduced {size} -> {ceiling}",
            extra={"requested": size, "ceiling": ceiling, "constrained": settings.constrained_profile},
        )
    return min(size, ceiling)


def validate_batch(batch: Sequence[Record], today: Optional[date] = None) -> None:
    """
    Raise ValidationError listing every failing record (1-based positions).
    """
    failures: List[RecordFailure] = []
    for position, record in enumerate(batch, start=1):
        errors = record.validation_errors(today)
        if errors:
            failures.append(RecordFailure(position=position, reasons=tuple(errors)))
    if failures:
        raise ValidationError(failures)


class BatchInserter:
    """
    Persists batches through a RecordStore.

    Parameters
    ----------
    store : RecordStore
        Storage with skip-on-conflict `insert_many`.
    governor : MemoryGovernor | None
        Consulted every `check_every_batches` batches during `insert_stream`.
    batch_size : int | None
        Requested batch size; clamped to the environment ceiling.
    memory_limit_bytes : int | None
        Limit passed to the governor; defaults to the governor's own limit.
    """

    def __init__(
        self,
        store: RecordStore,
        governor: Optional[MemoryGovernor] = None,
        batch_size: Optional[int] = None,
        settings: Optional[Settings] = None,
        check_every_batches: Optional[int] = None,
        memory_limit_bytes: Optional[int] = None,
    ) -> None:
        self.settings = settings or get_settings()
        self.store = store
        self.governor = governor
        self.batch_size = clamp_batch_size(batch_size, self.settings)
        self.check_every_batches = check_every_batches or self.settings.memory_check_every_batches
        if self.check_every_batches <= 0:
            raise ConfigurationError("check_every_batches must be positive")
        self.memory_limit_bytes = memory_limit_bytes

    def insert_batch(self, batch: Sequence[Record], batch_number: int = 1) -> BatchResult:
        """
        Validate and insert one batch.

        Raises
        ------
        ValidationError
            If any record fails field checks; nothing is written.
        StorageError
            On any storage failure other than a uniqueness conflict.
        """
        validate_batch(batch)
        start = time.perf_counter()
        inserted_ids = self.store.insert_many(batch)
        duration = time.perf_counter() - start

        inserted = len(inserted_ids)
        result = BatchResult(
            batch_number=batch_number,
            records=len(batch),
            inserted_count=inserted,
            skipped_count=len(batch) - inserted,
            duration_seconds=duration,
        )
        log.debug(
            f"[INSERT BATCH] #{batch_number}",
            extra={
                "batch": batch_number,
                "records": result.records,
                "inserted": result.inserted_count,
                "skipped": result.skipped_count,
                "duration_ms": round(duration * 1000, 2),
            },
        )
        return result

    def insert_one(self, record: Record) -> Optional[Record]:
        """
        Validate and persist a single record.

        `record` may come from ``Record.model_construct`` with raw field values;
        it is parsed into a typed record only after validation passes.

        Returns
        -------
        Record | None
            The stored record with its id, or None when a record with the same
            (full_name, birth_date) already exists.
        """
        validate_batch([record])
        parsed = Record(
            full_name=record.full_name.strip(),
            birth_date=record.birth_date,
            gender=record.gender,
        )
        ids = self.store.insert_many([parsed])
        if not ids:
            log.info("[INSERT DUPLICATE]", extra={"full_name": parsed.full_name})
            return None
        log.info(f"[INSERT ONE] id={ids[0]}", extra={"id": ids[0], "full_name": parsed.full_name})
        return parsed.model_copy(update={"id": ids[0]})

    def _units(self, batches: Iterable[Sequence[Record]]) -> Iterator[Sequence[Record]]:
        """Split incoming batches that exceed the ceiling."""
        for batch in batches:
            if len(batch) <= self.batch_size:
                yield batch
                continue
            for offset in range(0, len(batch), self.batch_size):
                yield batch[offset : offset + self.batch_size]

    def insert_stream(
        self,
        batches: Iterable[Sequence[Record]],
        progress: Optional[ProgressSink] = None,
        total: Optional[int] = None,
        cancel: Optional[threading.Event] = None,
    ) -> InsertOutcome:
        """
        Insert every batch of `batches` in order.

        Parameters
        ----------
        batches : iterable of record batches
            Consumed lazily, one batch at a time.
        progress : ProgressSink | None
            Receives `on_batch(records_so_far, total)` after every batch and
            `on_complete(summary)` at the end.
        total : int | None
            Expected record count for progress percentages.
        cancel : threading.Event | None
            Checked between batches; when set the run stops cleanly.

        Returns
        -------
        InsertOutcome
            Completed, Cancelled (partial counts) or Failed (StorageError plus
            the counts of batches committed before the failure).
        """
        progress = progress or NullProgress()
        aggregate = AggregateResult()
        records_seen = 0
        start = time.perf_counter()

        def _finish(agg: AggregateResult) -> AggregateResult:
            return replace(agg, total_duration_seconds=time.perf_counter() - start)

        def _summary(status: str, agg: AggregateResult, **extra: object) -> dict:
            return {
                "status": status,
                "current": records_seen,
                "total": total or records_seen,
                **agg.to_dict(),
                **extra,
            }

        log.info(
            "[INSERT START]",
            extra={"total": total, "batch_size": self.batch_size, "check_every": self.check_every_batches},
        )
        for unit in self._units(batches):
            if cancel is not None and cancel.is_set():
                partial = _finish(aggregate)
                log.warning("[INSERT CANCELLED]", extra=partial.to_dict())
                progress.on_complete(_summary("cancelled", partial))
                return Cancelled(partial=partial)

            batch_number = aggregate.batches_processed + 1
            try:
                batch_result = self.insert_batch(unit, batch_number=batch_number)
            except StorageError as exc:
                partial = _finish(aggregate)
                log.error(
                    f"[INSERT FAILED] batch #{batch_number}: {exc}",
                    extra={"batch": batch_number, **partial.to_dict()},
                )
                progress.on_complete(_summary("failed", partial, error=str(exc)))
                return Failed(error=exc, partial=partial)

            aggregate = aggregate.add(batch_result)
            records_seen += batch_result.records
            progress.on_batch(records_seen, total or records_seen)

            if self.governor is not None and aggregate.batches_processed % self.check_every_batches == 0:
                check = self.governor.check_and_mitigate(self.memory_limit_bytes)
                if check.exceeded:
                    aggregate = replace(aggregate, memory_breaches=aggregate.memory_breaches + 1)

        result = _finish(aggregate)
        log.info("[INSERT COMPLETE]", extra=result.to_dict())
        progress.on_complete(_summary("completed", result))
        return Completed(result=result)


__all__ = ["BatchInserter", "clamp_batch_size", "validate_batch"]
