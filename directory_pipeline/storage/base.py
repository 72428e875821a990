"""
Storage interface consumed by the inserter and the exporter.

Concrete stores (Postgres in production, in-memory fakes in tests) implement
the RecordStore protocol. Every call is its own unit of work: no transaction is
held open across batches or pages.
"""

from __future__ import annotations

import abc
from dataclasses import dataclass
from typing import List, Optional, Protocol, Sequence, runtime_checkable

from directory_pipeline.domain.models import Gender, Record

SORTABLE_COLUMNS = ("full_name", "id")


@dataclass(frozen=True)
class RecordFilter:
    """Optional count/query criteria; unset fields do not filter."""

    gender: Optional[Gender] = None
    name_starts_with: Optional[str] = None

    @property
    def is_empty(self) -> bool:
        return self.gender is None and not self.name_starts_with


@dataclass(frozen=True)
class IndexDefinition:
    name: str
    definition: str
    description: str = ""


# Supports keyset pagination over (full_name, id).
PAGINATION_INDEX = IndexDefinition(
    name="idx_employees_high_performance_pagination",
    definition="(full_name, id)",
    description="Keyset pagination for exports sorted by name",
)


@runtime_checkable
class RecordStore(Protocol):
    """
    Common interface all record stores implement.
    """

    def insert_many(self, records: Sequence[Record]) -> List[int]:
        """
        Insert records, skipping any that collide on (full_name, birth_date).

        Returns
        -------
        list[int]
            Ids assigned to the records actually inserted.
        """
        ...

    def query_page(
        self,
        after_id: int,
        limit: int,
        sort_by: str = "full_name",
        after_value: Optional[str] = None,
    ) -> List[Record]:
        """
        Return up to `limit` records strictly after the given keyset position.

        With ``sort_by="full_name"`` the position is ``(after_value, after_id)``
        and rows are ordered by ``(full_name, id)``; ``after_value=None`` starts
        from the beginning. With ``sort_by="id"`` only `after_id` is used.
        """
        ...

    def count(self, filter: Optional[RecordFilter] = None) -> int:
        """Number of persisted records matching `filter`."""
        ...

    def find(self, filter: Optional[RecordFilter] = None, limit: int = 100) -> List[Record]:
        """First `limit` records matching `filter`, ordered by ``(full_name, id)``."""
        ...

    def ensure_index(self, name: str, definition: str) -> None:
        """Create the index if it does not exist (idempotent)."""
        ...


class AbstractRecordStore(abc.ABC):
    """
    Optional ABC helper for class-based implementations.
    """

    @abc.abstractmethod
    def insert_many(self, records: Sequence[Record]) -> List[int]:  # pragma: no cover - interface only
        raise NotImplementedError

    @abc.abstractmethod
    def query_page(
        self,
        after_id: int,
        limit: int,
        sort_by: str = "full_name",
        after_value: Optional[str] = None,
    ) -> List[Record]:  # pragma: no cover - interface only
        raise NotImplementedError

    @abc.abstractmethod
    def count(self, filter: Optional[RecordFilter] = None) -> int:  # pragma: no cover - interface only
        raise NotImplementedError

    @abc.abstractmethod
    def find(
        self, filter: Optional[RecordFilter] = None, limit: int = 100
    ) -> List[Record]:  # pragma: no cover - interface only
        raise NotImplementedError

    @abc.abstractmethod
    def ensure_index(self, name: str, definition: str) -> None:  # pragma: no cover - interface only
        raise NotImplementedError


__all__ = [
    "RecordStore",
    "AbstractRecordStore",
    "RecordFilter",
    "IndexDefinition",
    "PAGINATION_INDEX",
    "SORTABLE_COLUMNS",
]
