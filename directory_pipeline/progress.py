"""
Push-only progress reporting for the insert and export pipelines.

Producers call `on_batch` / `on_page` / `on_complete` and return immediately.
`ProgressReporter` hands events to a daemon worker thread through a single-slot
mailbox: if the consumer is still busy with an earlier event, a newer event
replaces the pending one instead of queueing behind it. Repeated identical
percentages are suppressed before they reach the mailbox.

Usage:
    with ProgressReporter(lambda event: print(event.percentage)) as progress:
        inserter.insert_stream(generator, progress=progress, total=generator.total)
"""

from __future__ import annotations

import threading
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional, Protocol, Tuple, runtime_checkable

from directory_pipeline.utils.logging import get_logger

log = get_logger(__name__)


@dataclass(frozen=True)
class ProgressEvent:
    kind: str
    current: int
    total: int
    percentage: int
    summary: Optional[Dict[str, Any]] = None


@runtime_checkable
class ProgressSink(Protocol):
    def on_batch(self, current: int, total: int) -> None:
        ...

    def on_page(self, current: int, total: int) -> None:
        ...

    def on_complete(self, summary: Dict[str, Any]) -> None:
        ...


class NullProgress:
    """Progress sink that ignores every event."""

    def on_batch(self, current: int, total: int) -> None:
        pass

    def on_page(self, current: int, total: int) -> None:
        pass

    def on_complete(self, summary: Dict[str, Any]) -> None:
        pass


def percentage(current: int, total: int) -> int:
    if total <= 0:
        return 100
    return max(0, min(100, round(current * 100 / total)))


class ProgressReporter:
    """
    Non-blocking ProgressSink that relays events to `callback` on a worker thread.

    Parameters
    ----------
    callback : Callable[[ProgressEvent], None]
        Consumer of events. Exceptions it raises are logged, never propagated
        into the pipeline.
    """

    def __init__(self, callback: Callable[[ProgressEvent], None], name: str = "progress-reporter") -> None:
        self._callback = callback
        self._lock = threading.Lock()
        self._wake = threading.Event()
        self._pending: Optional[ProgressEvent] = None
        self._last_emitted: Optional[Tuple[str, int]] = None
        self._closed = False
        self._worker = threading.Thread(target=self._run, name=name, daemon=True)
        self._worker.start()

    def on_batch(self, current: int, total: int) -> None:
        self._publish("batch", current, total)

    def on_page(self, current: int, total: int) -> None:
        self._publish("page", current, total)

    def on_complete(self, summary: Dict[str, Any]) -> None:
        total = int(summary.get("total", 0) or 0)
        current = int(summary.get("current", total) or 0)
        self._publish("complete", current, total, summary=summary)

    def _publish(
        self,
        kind: str,
        current: int,
        total: int,
        summary: Optional[Dict[str, Any]] = None,
    ) -> None:
        pct = percentage(current, total)
        with self._lock:
            if self._closed:
                return
            if kind != "complete" and self._last_emitted == (kind, pct):
                return
            self._last_emitted = (kind, pct)
            self._pending = ProgressEvent(kind, current, total, pct, summary)
        self._wake.set()

    def _run(self) -> None:
        while True:
            self._wake.wait()
            with self._lock:
                event, self._pending = self._pending, None
                self._wake.clear()
                closed = self._closed
            if event is not None:
                try:
                    self._callback(event)
                except Exception:  # noqa: BLE001
                    log.exception("[PROGRESS] callback failed", extra={"kind": event.kind})
            if closed:
                return

    def close(self, timeout: float = 5.0) -> None:
        """Deliver any pending event, then stop the worker."""
        with self._lock:
            self._closed = True
        self._wake.set()
        self._worker.join(timeout=timeout)

    def __enter__(self) -> "ProgressReporter":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


__all__ = ["ProgressEvent", "ProgressSink", "ProgressReporter", "NullProgress", "percentage"]
