"""
Pipeline package: memory governor and batch inserter.
"""

from directory_pipeline.pipeline.governor import (
    MemoryCheck,
    MemoryGovernor,
    MemoryPressure,
    MemorySample,
    format_bytes,
    track_peak,
)
from directory_pipeline.pipeline.inserter import BatchInserter, clamp_batch_size, validate_batch

__all__ = [
    "BatchInserter",
    "MemoryCheck",
    "MemoryGovernor",
    "MemoryPressure",
    "MemorySample",
    "clamp_batch_size",
    "format_bytes",
    "track_peak",
    "validate_batch",
]
