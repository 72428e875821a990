"""
Keyset-paginated bulk export of persisted records.

The exporter walks the table in (full_name, id) order, resuming each page
strictly after the sort key of the last row written instead of using OFFSET,
so fetching page N costs the same as fetching page 1. Each page becomes a
single fixed-width text block and a single sink write.

Usage:
    exporter = CursorExporter(PostgresRecordStore(), governor=MemoryGovernor.from_settings())
    outcome = exporter.export(FileSink("exports/employees.txt"), page_size=5000)
    if isinstance(outcome, NothingToExport):
        ...
"""

from __future__ import annotations

import threading
import time
from datetime import date, datetime
from typing import Optional

from directory_pipeline.config import Settings, get_settings
from directory_pipeline.domain.models import ExportCursor
from directory_pipeline.domain.results import ExportOutcome, ExportResult, NothingToExport
from directory_pipeline.errors import ConfigurationError
from directory_pipeline.export.formatting import ReportLayout
from directory_pipeline.export.sink import Sink
from directory_pipeline.pipeline.governor import MemoryGovernor
from directory_pipeline.progress import NullProgress, ProgressSink
from directory_pipeline.storage.base import PAGINATION_INDEX, SORTABLE_COLUMNS, RecordStore
from directory_pipeline.utils.logging import get_logger

log = get_logger(__name__)


class CursorExporter:
    """
    Streams the full record set to a sink with bounded memory.

    Parameters
    ----------
    store : RecordStore
        Source of keyset pages.
    governor : MemoryGovernor | None
        Consulted every `check_every_pages` pages.
    sort_by : str
        "full_name" (ties broken by id) or "id".
    layout : ReportLayout | None
        Column widths shared by every row of one export.
    """

    def __init__(
        self,
        store: RecordStore,
        governor: Optional[MemoryGovernor] = None,
        settings: Optional[Settings] = None,
        sort_by: str = "full_name",
        layout: Optional[ReportLayout] = None,
        check_every_pages: Optional[int] = None,
    ) -> None:
        if sort_by not in SORTABLE_COLUMNS:
            raise ConfigurationError(f"Unsupported sort column {sort_by!r}; use one of {SORTABLE_COLUMNS}")
        self.settings = settings or get_settings()
        self.store = store
        self.governor = governor
        self.sort_by = sort_by
        self.layout = layout or ReportLayout()
        self.check_every_pages = check_every_pages or self.settings.export_check_every_pages
        if self.check_every_pages <= 0:
            raise ConfigurationError("check_every_pages must be positive")
        self._index_ensured = False

    def _ensure_index(self) -> None:
        # id order is served by the primary key.
        if self._index_ensured or self.sort_by != "full_name":
            return
        self.store.ensure_index(PAGINATION_INDEX.name, PAGINATION_INDEX.definition)
        self._index_ensured = True
        log.debug("[EXPORT INDEX] ensured", extra={"index": PAGINATION_INDEX.name})

    def export(
        self,
        sink: Sink,
        page_size: Optional[int] = None,
        total_expected: Optional[int] = None,
        progress: Optional[ProgressSink] = None,
        cancel: Optional[threading.Event] = None,
    ) -> ExportOutcome:
        """
        Write every persisted record to `sink`.

        Parameters
        ----------
        sink : Sink
            Destination; discarded on failure, cancellation or an empty dataset,
            including a store that returns no rows despite a non-zero count.
        page_size : int | None
            Rows per keyset query. Defaults to EXPORT_PAGE_SIZE.
        total_expected : int | None
            Records to export; defaults to the store's current count.
        progress : ProgressSink | None
            Receives `on_page(records_written, total_expected)` after every page.
        cancel : threading.Event | None
            Checked between pages.

        Returns
        -------
        ExportResult | NothingToExport

        Raises
        ------
        StorageError, SinkError
            After the partial artifact has been discarded.
        """
        if page_size is None:
            page_size = self.settings.export_page_size
        if page_size <= 0:
            raise ConfigurationError(f"Page size must be positive, got {page_size}")
        if total_expected is not None and total_expected < 0:
            raise ConfigurationError(f"Expected record count must not be negative, got {total_expected}")
        progress = progress or NullProgress()

        start = time.perf_counter()
        written = 0
        pages = 0
        try:
            if total_expected is None:
                total_expected = self.store.count()
            if total_expected == 0:
                sink.discard()
                log.info("[EXPORT EMPTY] nothing to export")
                progress.on_complete({"status": "empty", "current": 0, "total": 0})
                return NothingToExport()

            self._ensure_index()
            today = date.today()
            log.info(
                "[EXPORT START]",
                extra={"total_expected": total_expected, "page_size": page_size, "sort_by": self.sort_by},
            )
            sink.write(self.layout.header(total_expected, datetime.now().astimezone(), self.sort_by))

            cursor = ExportCursor()
            while written < total_expected:
                if cancel is not None and cancel.is_set():
                    sink.discard()
                    duration_ms = (time.perf_counter() - start) * 1000
                    log.warning("[EXPORT CANCELLED]", extra={"records_written": written, "pages": pages})
                    progress.on_complete(
                        {"status": "cancelled", "current": written, "total": total_expected}
                    )
                    return ExportResult(
                        records_written=written,
                        pages=pages,
                        duration_ms=duration_ms,
                        sink_size_bytes=0,
                        artifact=None,
                        cancelled=True,
                    )

                rows = self.store.query_page(
                    cursor.last_seen_id, page_size, self.sort_by, cursor.after_value
                )
                if not rows:
                    break
                rows = rows[: total_expected - written]

                sink.write(self.layout.format_page(rows, today))
                cursor.advance(rows[-1])
                written += len(rows)
                pages += 1
                progress.on_page(written, total_expected)
                log.debug(
                    f"[EXPORT PAGE] #{pages}",
                    extra={"page": pages, "rows": len(rows), "records_written": written},
                )

                if self.governor is not None and pages % self.check_every_pages == 0:
                    self.governor.check_and_mitigate()

            if written == 0:
                # Rows vanished between the count and the first page.
                sink.discard()
                log.info("[EXPORT EMPTY] no rows returned", extra={"total_expected": total_expected})
                progress.on_complete({"status": "empty", "current": 0, "total": total_expected})
                return NothingToExport()

            duration_ms = (time.perf_counter() - start) * 1000
            if written < total_expected:
                log.warning(
                    "[EXPORT SHORT] fewer rows than expected",
                    extra={"total_expected": total_expected, "records_written": written},
                )
            sink.write(self.layout.footer(written, pages, duration_ms, expected=total_expected))
            size = sink.close()
        except Exception as exc:
            sink.discard()
            log.error(
                f"[EXPORT FAILED] {exc}",
                extra={"records_written": written, "pages": pages},
            )
            progress.on_complete(
                {"status": "failed", "error": str(exc), "current": written, "total": total_expected or 0}
            )
            raise

        result = ExportResult(
            records_written=written,
            pages=pages,
            duration_ms=duration_ms,
            sink_size_bytes=size,
            artifact=getattr(sink, "path", None),
        )
        log.info(
            "[EXPORT COMPLETE]",
            extra={"records_written": written, "pages": pages, "size_bytes": size, "duration_ms": round(duration_ms, 2)},
        )
        progress.on_complete(
            {
                "status": "completed",
                "current": written,
                "total": total_expected,
                "records_written": written,
                "pages": pages,
                "sink_size_bytes": size,
                "duration_ms": round(duration_ms, 2),
            }
        )
        return result


__all__ = ["CursorExporter"]
