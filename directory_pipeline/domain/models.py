"""
Domain models for the employee directory pipeline.

Defines the employee record schema aligned with `db/init.sql`, the two-valued
gender domain and the process-local export cursor.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import List, Optional, Tuple

from pydantic import BaseModel, Field


class Gender(str, Enum):
    MALE = "Male"
    FEMALE = "Female"


class Record(BaseModel):
    """
    Representation of a single row in the `employees` table.

    `id` and `created_at` stay None until storage accepts the record.
    """

    full_name: str = Field(..., description="Rendered as '<Last> <First> <Middle>'.")
    birth_date: date = Field(..., description="Calendar date, not in the future.")
    gender: Gender = Field(..., description="Male or Female.")
    id: Optional[int] = Field(None, description="Primary key (SERIAL), storage-assigned.")
    created_at: Optional[datetime] = Field(None, description="Row creation timestamp.")

    model_config = {
        "frozen": True,
        "populate_by_name": True,
        "arbitrary_types_allowed": False,
    }

    @property
    def surname(self) -> str:
        parts = self.full_name.split()
        return parts[0] if parts else ""

    @property
    def key(self) -> Tuple[str, date]:
        """The uniqueness key enforced by storage."""
        return (self.full_name.strip(), self.birth_date)

    def validation_errors(self, today: Optional[date] = None) -> List[str]:
        """
        Field-level checks run before a record is submitted for persistence.

        Records built with `model_construct` skip pydantic parsing, so the type
        of every field is checked here as well.
        """
        errors: List[str] = []
        today = today or date.today()

        if not isinstance(self.full_name, str) or not self.full_name.strip():
            errors.append("Full name is required and must be a non-empty string")

        birth_date = self.birth_date
        if isinstance(birth_date, str):
            try:
                birth_date = date.fromisoformat(birth_date)
            except ValueError:
                birth_date = None
        if isinstance(birth_date, datetime) or not isinstance(birth_date, date):
            errors.append("Birth date must be a valid YYYY-MM-DD calendar date")
        elif birth_date > today:
            errors.append("Birth date cannot be in the future")

        if self.gender not in (Gender.MALE, Gender.FEMALE):
            errors.append('Gender must be either "Male" or "Female"')

        return errors

    def age(self, today: Optional[date] = None) -> int:
        """Whole years between `birth_date` and `today`."""
        today = today or date.today()
        years = today.year - self.birth_date.year
        if (today.month, today.day) < (self.birth_date.month, self.birth_date.day):
            years -= 1
        return years


@dataclass
class ExportCursor:
    """
    Keyset position of an export: the sort key of the last row written.

    Advances monotonically within one export and is never persisted.
    """

    last_seen_id: int = 0
    sort_key: Optional[Tuple[str, int]] = field(default=None)

    def advance(self, record: Record) -> None:
        if record.id is None:
            raise ValueError("Cannot advance an export cursor past an unsaved record")
        self.last_seen_id = record.id
        self.sort_key = (record.full_name, record.id)

    @property
    def after_value(self) -> Optional[str]:
        return self.sort_key[0] if self.sort_key else None


__all__ = ["Gender", "Record", "ExportCursor"]
