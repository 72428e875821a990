"""
Memory-pressure governor for the insert and export loops.

The governor samples process memory, classifies pressure against a limit and,
when the limit is exceeded, slows the pipeline down: one garbage collection
request followed by a cooperative pause (longer when usage is still above the
limit after collecting). It never raises on high memory; callers decide whether
repeated breaches are fatal.

Measures:
- RSS and virtual size (psutil)
- Python allocations (tracemalloc, when tracing is active)

Usage:
    governor = MemoryGovernor(limit_bytes=512 * 1024 * 1024)
    check = governor.check_and_mitigate()
    if check.exceeded:
        ...

    with track_peak("bulk-insert") as stats:
        run()
    print(format_bytes(stats.peak_rss_bytes))
"""

from __future__ import annotations

import contextlib
import gc
import threading
import time
import tracemalloc
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Generator, Optional

import psutil

from directory_pipeline.config import Settings, get_settings
from directory_pipeline.errors import MemoryPressureWarning
from directory_pipeline.utils.logging import get_logger

log = get_logger(__name__)


class MemoryPressure(str, Enum):
    NORMAL = "normal"
    ELEVATED = "elevated"
    CRITICAL = "critical"


@dataclass(frozen=True)
class MemorySample:
    heap_used: int
    heap_total: int
    rss: int


@dataclass(frozen=True)
class MemoryCheck:
    exceeded: bool
    current_bytes: int
    limit_bytes: int
    pressure: MemoryPressure
    paused_seconds: float = 0.0
    freed_bytes: Optional[int] = None
    warning: Optional[MemoryPressureWarning] = None


def format_bytes(num_bytes: Optional[int]) -> str:
    """Render a byte count as e.g. '1.5 MB'."""
    if not num_bytes:
        return "0 Bytes"
    units = ["Bytes", "KB", "MB", "GB", "TB"]
    sign = "-" if num_bytes < 0 else ""
    value = float(abs(num_bytes))
    exponent = 0
    while value >= 1024 and exponent < len(units) - 1:
        value /= 1024
        exponent += 1
    return f"{sign}{round(value, 2):g} {units[exponent]}"


def sample_process_memory(process: Optional[psutil.Process] = None) -> MemorySample:
    """
    Current memory of this process.

    `heap_used` is tracemalloc's traced total while tracing is active and RSS
    otherwise; `heap_total` is the virtual memory size.
    """
    info = (process or psutil.Process()).memory_info()
    heap_used = info.rss
    if tracemalloc.is_tracing():
        heap_used, _ = tracemalloc.get_traced_memory()
    return MemorySample(heap_used=heap_used, heap_total=info.vms, rss=info.rss)


class MemoryGovernor:
    """
    Samples memory and inserts corrective pauses/collections into a pipeline.

    Parameters
    ----------
    limit_bytes : int | None
        Default limit for `check_and_mitigate`. Defaults to MEMORY_LIMIT_MB.
    mild_pause_seconds, severe_pause_seconds : float | None
        Pause after a breach that collection resolved / did not resolve.
    warn_ratio : float | None
        Fraction of the limit above which pressure counts as ELEVATED.
    sampler : Callable[[], MemorySample] | None
        Replaces the psutil-based sampler (tests).
    collect : Callable[[], object] | None
        Collection request. None means the runtime offers none: mitigation
        then degrades to pausing only.
    sleep : Callable[[float], None]
        Pause implementation.
    """

    def __init__(
        self,
        limit_bytes: Optional[int] = None,
        mild_pause_seconds: Optional[float] = None,
        severe_pause_seconds: Optional[float] = None,
        warn_ratio: Optional[float] = None,
        sampler: Optional[Callable[[], MemorySample]] = None,
        collect: Optional[Callable[[], object]] = gc.collect,
        sleep: Callable[[float], None] = time.sleep,
        settings: Optional[Settings] = None,
    ) -> None:
        settings = settings or get_settings()
        self.limit_bytes = limit_bytes if limit_bytes is not None else settings.memory_limit_bytes
        self.mild_pause_seconds = (
            mild_pause_seconds if mild_pause_seconds is not None else settings.memory_mild_pause_ms / 1000
        )
        self.severe_pause_seconds = (
            severe_pause_seconds
            if severe_pause_seconds is not None
            else settings.memory_severe_pause_ms / 1000
        )
        self.warn_ratio = warn_ratio if warn_ratio is not None else settings.memory_warn_ratio
        self._process = psutil.Process() if sampler is None else None
        self._sampler = sampler or (lambda: sample_process_memory(self._process))
        self._collect = collect
        self._sleep = sleep

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "MemoryGovernor":
        settings = settings or get_settings()
        return cls(settings=settings, collect=gc.collect if settings.memory_force_gc else None)

    @property
    def can_collect(self) -> bool:
        return self._collect is not None

    def sample(self) -> MemorySample:
        return self._sampler()

    def classify(self, current_bytes: int, limit_bytes: Optional[int] = None) -> MemoryPressure:
        limit = limit_bytes if limit_bytes is not None else self.limit_bytes
        if current_bytes > limit:
            return MemoryPressure.CRITICAL
        if current_bytes >= limit * self.warn_ratio:
            return MemoryPressure.ELEVATED
        return MemoryPressure.NORMAL

    def check_and_mitigate(self, limit_bytes: Optional[int] = None) -> MemoryCheck:
        """
        Sample memory and mitigate if `limit_bytes` is exceeded.

        Requests at most one collection per call.
        """
        limit = limit_bytes if limit_bytes is not None else self.limit_bytes
        current = self.sample().heap_used
        pressure = self.classify(current, limit)
        if pressure is not MemoryPressure.CRITICAL:
            return MemoryCheck(exceeded=False, current_bytes=current, limit_bytes=limit, pressure=pressure)

        warning = MemoryPressureWarning(current, limit)
        log.warning(
            f"[MEMORY PRESSURE] {format_bytes(current)} > {format_bytes(limit)}",
            extra={"current_bytes": current, "limit_bytes": limit},
        )

        freed: Optional[int] = None
        after = current
        if self._collect is not None:
            self._collect()
            after = self.sample().heap_used
            freed = current - after
            log.info(f"[MEMORY GC] freed {format_bytes(freed)}", extra={"freed_bytes": freed})
        else:
            log.debug("[MEMORY GC] collection unavailable; pausing only (reduced effectiveness)")

        pause = self.severe_pause_seconds if after > limit else self.mild_pause_seconds
        self._sleep(pause)
        return MemoryCheck(
            exceeded=True,
            current_bytes=current,
            limit_bytes=limit,
            pressure=pressure,
            paused_seconds=pause,
            freed_bytes=freed,
            warning=warning,
        )

    def log_usage(self, context: str = "") -> MemorySample:
        sample = self.sample()
        label = f" [{context}]" if context else ""
        log.info(
            f"[MEMORY]{label} RSS {format_bytes(sample.rss)} | "
            f"heap {format_bytes(sample.heap_used)} / {format_bytes(sample.heap_total)}",
            extra={"rss": sample.rss, "heap_used": sample.heap_used, "heap_total": sample.heap_total},
        )
        return sample


@dataclass
class PeakStats:
    label: str
    duration_seconds: float = field(default=0.0)
    peak_rss_bytes: Optional[int] = field(default=None)
    cpu_percent: Optional[float] = field(default=None)


@contextlib.contextmanager
def track_peak(label: str, sample_interval_ms: int = 50) -> Generator[PeakStats, None, None]:
    """
    Measure wall-clock duration and peak RSS of a block.

    A background thread samples RSS so bursty peaks between start and end are
    captured, not just the two snapshots.
    """
    stats = PeakStats(label=label)
    process = psutil.Process()
    peak_rss = process.memory_info().rss
    stop_sampling = threading.Event()

    def _sample() -> None:
        nonlocal peak_rss
        while not stop_sampling.is_set():
            try:
                peak_rss = max(peak_rss, process.memory_info().rss)
            except psutil.Error:
                return
            stop_sampling.wait(timeout=sample_interval_ms / 1000.0)

    process.cpu_percent(interval=None)
    sampler = threading.Thread(target=_sample, daemon=True)
    sampler.start()

    start = time.perf_counter()
    try:
        yield stats
    finally:
        stats.duration_seconds = time.perf_counter() - start
        stop_sampling.set()
        sampler.join(timeout=1.0)
        stats.peak_rss_bytes = peak_rss
        stats.cpu_percent = process.cpu_percent(interval=None)


__all__ = [
    "MemoryCheck",
    "MemoryGovernor",
    "MemoryPressure",
    "MemorySample",
    "PeakStats",
    "format_bytes",
    "sample_process_memory",
    "track_peak",
]
