"""
Container resource discovery.

Reads CPU and memory constraints from environment overrides or cgroup files so
the pipeline can pick a constrained profile and reports can show the limits the
run was executed under.
"""

from __future__ import annotations

import os
from typing import Dict, Optional

# cgroup v1 reports "unlimited" as a page-aligned max int64.
_CGROUP_V1_UNLIMITED = 9223372036854771712


def _read_text(path: str) -> Optional[str]:
    try:
        with open(path, "r") as f:
            return f.read().strip()
    except (FileNotFoundError, PermissionError, OSError):
        return None


def container_memory_limit_bytes() -> Optional[int]:
    """
    Return the memory limit of the current container in bytes, or None if unlimited.

    ``PIPELINE_MEMORY_LIMIT_BYTES`` overrides cgroup discovery.
    """
    override = os.environ.get("PIPELINE_MEMORY_LIMIT_BYTES")
    if override:
        try:
            return int(override)
        except ValueError:
            return None

    # cgroup v2
    content = _read_text("/sys/fs/cgroup/memory.max")
    if content and content != "max":
        try:
            return int(content)
        except ValueError:
            pass

    # cgroup v1 fallback
    content = _read_text("/sys/fs/cgroup/memory/memory.limit_in_bytes")
    if content:
        try:
            mem_bytes = int(content)
        except ValueError:
            return None
        if mem_bytes < _CGROUP_V1_UNLIMITED:
            return mem_bytes
    return None


def container_cpu_limit() -> Optional[float]:
    """Return the CPU quota of the current container in cores, or None."""
    content = _read_text("/sys/fs/cgroup/cpu.max")
    if content:
        parts = content.split()
        if len(parts) == 2 and parts[0] != "max":
            try:
                return int(parts[0]) / int(parts[1])
            except (ValueError, ZeroDivisionError):
                pass

    quota = _read_text("/sys/fs/cgroup/cpu/cpu.cfs_quota_us")
    period = _read_text("/sys/fs/cgroup/cpu/cpu.cfs_period_us")
    if quota and period:
        try:
            quota_us, period_us = int(quota), int(period)
        except ValueError:
            return None
        if quota_us > 0 and period_us > 0:
            return quota_us / period_us
    return None


def get_container_resources() -> Dict[str, Optional[str]]:
    """
    Human-readable container constraints with 'cpus' and 'memory' keys.
    """
    resources: Dict[str, Optional[str]] = {"cpus": None, "memory": None}

    cpus = container_cpu_limit()
    if cpus is not None:
        resources["cpus"] = f"{cpus:.1f}"

    mem_bytes = container_memory_limit_bytes()
    if mem_bytes is not None:
        mem_gb = mem_bytes / (1024**3)
        if mem_gb >= 1:
            resources["memory"] = f"{mem_gb:.1f}GB"
        else:
            resources["memory"] = f"{mem_bytes / (1024**2):.0f}MB"

    return resources


__all__ = ["container_memory_limit_bytes", "container_cpu_limit", "get_container_resources"]
