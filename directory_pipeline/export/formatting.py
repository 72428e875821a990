"""
Fixed-width text layout for exported employee reports.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional, Sequence

from directory_pipeline.domain.models import Record

SORT_DESCRIPTIONS = {
    "full_name": "Full Name (Ascending)",
    "id": "ID (Ascending)",
}


def _fit(value: str, width: int) -> str:
    # Keep one space between columns even when a value is too long.
    if len(value) >= width:
        value = value[: width - 1]
    return value.ljust(width)


@dataclass(frozen=True)
class ReportLayout:
    """
    Column widths and rule length for one export.

    Every row, heading and rule of a report is rendered from the same layout,
    so columns line up for the whole artifact.
    """

    id_width: int = 10
    name_width: int = 35
    date_width: int = 15
    gender_width: int = 10
    rule_width: int = 80
    title: str = "EMPLOYEE DIRECTORY REPORT"

    def column_headings(self) -> str:
        return (
            _fit("ID", self.id_width)
            + _fit("Full Name", self.name_width)
            + _fit("Birth Date", self.date_width)
            + _fit("Gender", self.gender_width)
            + "Age\n"
        )

    def format_row(self, record: Record, today: date) -> str:
        return (
            _fit(str(record.id if record.id is not None else ""), self.id_width)
            + _fit(record.full_name, self.name_width)
            + _fit(record.birth_date.isoformat(), self.date_width)
            + _fit(record.gender.value, self.gender_width)
            + f"{record.age(today)}\n"
        )

    def format_page(self, records: Sequence[Record], today: Optional[date] = None) -> str:
        """One text block for a whole page; written with a single sink call."""
        today = today or date.today()
        return "".join(self.format_row(record, today) for record in records)

    def header(self, total_records: int, generated_at: datetime, sort_by: str) -> str:
        rule = "=" * self.rule_width
        return (
            f"{rule}\n"
            f"{self.title.center(self.rule_width).rstrip()}\n"
            f"{rule}\n"
            f"Generated: {generated_at.strftime('%Y-%m-%d %H:%M:%S %Z').strip()}\n"
            f"Total Employees: {total_records}\n"
            f"Sorted by: {SORT_DESCRIPTIONS.get(sort_by, sort_by)}\n"
            f"{rule}\n\n"
            f"{self.column_headings()}"
            f"{'-' * self.rule_width}\n"
        )

    def footer(
        self,
        records_written: int,
        pages: int,
        duration_ms: float,
        expected: Optional[int] = None,
    ) -> str:
        """
        Closing block; "Total Records" is the number of rows actually written.

        When `expected` (the header's count) differs, the footer says so.
        """
        mismatch = ""
        if expected is not None and expected != records_written:
            mismatch = f"Expected Records: {expected} (table changed during export)\n"
        return (
            f"\n{'-' * self.rule_width}\n"
            f"Total Records: {records_written}\n"
            f"{mismatch}"
            f"Pages: {pages}\n"
            f"Export Duration: {duration_ms:.2f}ms\n"
            "End of Report\n"
            f"{'=' * self.rule_width}\n"
        )


__all__ = ["ReportLayout", "SORT_DESCRIPTIONS"]
