"""
Error taxonomy for the bulk-data pipeline.

Uniqueness conflicts are never errors: the storage layer absorbs them and the
inserter counts them as skips. Everything else that stops a run surfaces as one
of the exceptions below.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Sequence


class PipelineError(RuntimeError):
    """Base class for pipeline failures."""


class ConfigurationError(PipelineError, ValueError):
    """Invalid counts or sizes supplied to the generator, inserter or exporter."""


@dataclass(frozen=True)
class RecordFailure:
    """A record that failed field-level checks, by 1-based position in its batch."""

    position: int
    reasons: Sequence[str]

    def __str__(self) -> str:
        return f"Record {self.position}: {', '.join(self.reasons)}"


class ValidationError(PipelineError):
    """One or more records in a batch failed validation; the batch was not written."""

    def __init__(self, failures: Sequence[RecordFailure]) -> None:
        self.failures: List[RecordFailure] = list(failures)
        lines = "\n".join(str(f) for f in self.failures)
        super().__init__(f"Validation failed for {len(self.failures)} records:\n{lines}")

    @property
    def positions(self) -> List[int]:
        return [f.position for f in self.failures]


class StorageError(PipelineError):
    """Storage failure not explained by a uniqueness conflict."""


class SinkError(PipelineError):
    """Export write or close failure."""


class MemoryPressureWarning(UserWarning):
    """
    Memory usage crossed the governor limit.

    Not raised: the governor attaches it to its check result and logs it.
    """

    def __init__(self, current_bytes: int, limit_bytes: int) -> None:
        self.current_bytes = current_bytes
        self.limit_bytes = limit_bytes
        super().__init__(f"Memory usage {current_bytes} bytes exceeds limit {limit_bytes} bytes")


__all__ = [
    "PipelineError",
    "ConfigurationError",
    "RecordFailure",
    "ValidationError",
    "StorageError",
    "SinkError",
    "MemoryPressureWarning",
]
