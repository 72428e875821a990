"""
Synthetic record generation: lazy batch generator, name pools and statistics.
"""

from directory_pipeline.generation.analysis import (
    GenerationStats,
    analyze_records,
    generate_sample_records,
)
from directory_pipeline.generation.generator import RecordGenerator, is_special
from directory_pipeline.generation.pools import NamePools

__all__ = [
    "GenerationStats",
    "NamePools",
    "RecordGenerator",
    "analyze_records",
    "generate_sample_records",
    "is_special",
]
