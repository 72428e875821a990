"""
Employee directory pipeline - bulk generation, insertion and export of records.

This package moves large synthetic employee datasets into PostgreSQL and back
out again with bounded memory:

- Lazy, seeded record generation with an exact count of rare "special" records
- Idempotent batched insertion with validation and skip-on-duplicate semantics
- Keyset-paginated export to a fixed-width text report
- A memory governor that pauses and collects under pressure
- Non-blocking, coalescing progress reporting
"""

from __future__ import annotations

__version__ = "0.1.0"
__license__ = "MIT"

# Public API exports
from directory_pipeline.config import Settings, get_settings
from directory_pipeline.domain.models import ExportCursor, Gender, Record
from directory_pipeline.domain.results import (
    AggregateResult,
    BatchResult,
    Cancelled,
    Completed,
    ExportResult,
    Failed,
    NothingToExport,
)
from directory_pipeline.errors import (
    ConfigurationError,
    PipelineError,
    SinkError,
    StorageError,
    ValidationError,
)
from directory_pipeline.export import CursorExporter, FileSink, ReportLayout
from directory_pipeline.generation import RecordGenerator, analyze_records, generate_sample_records
from directory_pipeline.pipeline import BatchInserter, MemoryGovernor, format_bytes, track_peak
from directory_pipeline.progress import NullProgress, ProgressEvent, ProgressReporter
from directory_pipeline.utils.logging import configure_logging, get_logger

__all__ = [
    # Version info
    "__version__",
    "__license__",
    # Configuration
    "Settings",
    "get_settings",
    # Domain
    "ExportCursor",
    "Gender",
    "Record",
    "AggregateResult",
    "BatchResult",
    "Cancelled",
    "Completed",
    "ExportResult",
    "Failed",
    "NothingToExport",
    # Errors
    "ConfigurationError",
    "PipelineError",
    "SinkError",
    "StorageError",
    "ValidationError",
    # Pipeline
    "RecordGenerator",
    "analyze_records",
    "generate_sample_records",
    "BatchInserter",
    "MemoryGovernor",
    "format_bytes",
    "track_peak",
    "CursorExporter",
    "FileSink",
    "ReportLayout",
    # Progress
    "NullProgress",
    "ProgressEvent",
    "ProgressReporter",
    # Logging
    "configure_logging",
    "get_logger",
]
