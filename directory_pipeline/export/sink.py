"""
Append-only export destinations.

A sink receives sequential text writes, finalizes on `close()` (returning the
artifact size) and can `discard()` everything written so far when an export
aborts. `FileSink` writes to a `.part` file next to the target and renames it
into place on close, so a half-written report never appears under its final
name.
"""

from __future__ import annotations

from pathlib import Path
from typing import BinaryIO, Optional, Protocol, Union, runtime_checkable

from directory_pipeline.errors import SinkError
from directory_pipeline.utils.logging import get_logger

log = get_logger(__name__)


@runtime_checkable
class Sink(Protocol):
    def write(self, text: str) -> None:
        ...

    def close(self) -> int:
        """Finalize the artifact and return its size in bytes."""
        ...

    def discard(self) -> None:
        """Remove everything written so far."""
        ...


class FileSink:
    """
    Buffered file sink with atomic finalization.

    The file is opened lazily on the first write; a sink that is discarded
    before any write leaves nothing on disk.
    """

    def __init__(
        self,
        path: Union[str, Path],
        encoding: str = "utf-8",
        buffer_size: int = 1 << 16,
    ) -> None:
        self.path = Path(path)
        self.part_path = self.path.with_name(self.path.name + ".part")
        self.encoding = encoding
        self.buffer_size = buffer_size
        self._handle: Optional[BinaryIO] = None
        self._bytes_written = 0
        self._finished = False

    @property
    def bytes_written(self) -> int:
        return self._bytes_written

    def _open(self) -> BinaryIO:
        if self._handle is None:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self._handle = self.part_path.open("wb", buffering=self.buffer_size)
        return self._handle

    def write(self, text: str) -> None:
        if self._finished:
            raise SinkError(f"Sink for {self.path} is already closed")
        data = text.encode(self.encoding)
        try:
            self._open().write(data)
        except OSError as exc:
            raise SinkError(f"Failed to write {self.part_path}: {exc}") from exc
        self._bytes_written += len(data)

    def close(self) -> int:
        if self._finished:
            raise SinkError(f"Sink for {self.path} is already closed")
        try:
            handle = self._open()
            handle.close()
            self.part_path.replace(self.path)
            size = self.path.stat().st_size
        except OSError as exc:
            raise SinkError(f"Failed to finalize {self.path}: {exc}") from exc
        self._finished = True
        log.debug("[SINK CLOSED]", extra={"path": str(self.path), "size_bytes": size})
        return size

    def discard(self) -> None:
        self._finished = True
        if self._handle is not None:
            try:
                self._handle.close()
            except OSError as exc:
                log.warning(f"[SINK DISCARD] close failed: {exc}", extra={"path": str(self.part_path)})
            self._handle = None
        try:
            self.part_path.unlink(missing_ok=True)
        except OSError as exc:
            log.warning(f"[SINK DISCARD] could not remove partial file: {exc}", extra={"path": str(self.part_path)})
        self._bytes_written = 0


__all__ = ["Sink", "FileSink"]
