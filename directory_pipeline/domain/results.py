"""
Result contracts returned by the inserter and the exporter.

Insertion outcomes are an explicit sum type so callers match on what happened
instead of probing optional keys:

    outcome = inserter.insert_stream(batches)
    if isinstance(outcome, Failed):
        ...
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any, Dict, Optional, Union

from directory_pipeline.errors import StorageError


@dataclass(frozen=True)
class BatchResult:
    batch_number: int
    records: int
    inserted_count: int
    skipped_count: int
    duration_seconds: float


@dataclass(frozen=True)
class AggregateResult:
    total_inserted: int = 0
    total_skipped: int = 0
    batches_processed: int = 0
    total_duration_seconds: float = 0.0
    memory_breaches: int = 0

    @property
    def total_records(self) -> int:
        return self.total_inserted + self.total_skipped

    @property
    def throughput_rows_per_sec(self) -> float:
        if self.total_duration_seconds <= 0:
            return 0.0
        return self.total_records / self.total_duration_seconds

    def add(self, batch: BatchResult) -> "AggregateResult":
        return AggregateResult(
            total_inserted=self.total_inserted + batch.inserted_count,
            total_skipped=self.total_skipped + batch.skipped_count,
            batches_processed=self.batches_processed + 1,
            total_duration_seconds=self.total_duration_seconds,
            memory_breaches=self.memory_breaches,
        )

    def to_dict(self) -> Dict[str, Any]:
        payload = asdict(self)
        payload["total_records"] = self.total_records
        payload["throughput_rows_per_sec"] = round(self.throughput_rows_per_sec, 2)
        return payload


@dataclass(frozen=True)
class Completed:
    result: AggregateResult


@dataclass(frozen=True)
class Cancelled:
    partial: AggregateResult


@dataclass(frozen=True)
class Failed:
    error: StorageError
    partial: AggregateResult


InsertOutcome = Union[Completed, Cancelled, Failed]


@dataclass(frozen=True)
class ExportResult:
    records_written: int
    pages: int
    duration_ms: float
    sink_size_bytes: int
    artifact: Optional[Path] = None
    cancelled: bool = False


@dataclass(frozen=True)
class NothingToExport:
    """No records to export; no artifact was produced."""

    reason: str = "No employees found in the database."


ExportOutcome = Union[ExportResult, NothingToExport]


__all__ = [
    "BatchResult",
    "AggregateResult",
    "Completed",
    "Cancelled",
    "Failed",
    "InsertOutcome",
    "ExportResult",
    "NothingToExport",
    "ExportOutcome",
]
