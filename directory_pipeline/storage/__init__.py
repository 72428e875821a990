"""
Storage package: the RecordStore interface and its PostgreSQL implementation.
"""

from directory_pipeline.storage.base import (
    PAGINATION_INDEX,
    AbstractRecordStore,
    IndexDefinition,
    RecordFilter,
    RecordStore,
)
from directory_pipeline.storage.postgres import PostgresRecordStore, optimization_indexes

__all__ = [
    "PAGINATION_INDEX",
    "AbstractRecordStore",
    "IndexDefinition",
    "PostgresRecordStore",
    "RecordFilter",
    "RecordStore",
    "optimization_indexes",
]
