"""
Domain package for the employee directory pipeline.

Exports the record model, export cursor and the result contracts shared by the
inserter, exporter and CLI. Keep this package focused on data definitions.
"""

from directory_pipeline.domain.models import ExportCursor, Gender, Record
from directory_pipeline.domain.results import (
    AggregateResult,
    BatchResult,
    Cancelled,
    Completed,
    ExportOutcome,
    ExportResult,
    Failed,
    InsertOutcome,
    NothingToExport,
)

__all__ = [
    "ExportCursor",
    "Gender",
    "Record",
    "AggregateResult",
    "BatchResult",
    "Cancelled",
    "Completed",
    "ExportOutcome",
    "ExportResult",
    "Failed",
    "InsertOutcome",
    "NothingToExport",
]
