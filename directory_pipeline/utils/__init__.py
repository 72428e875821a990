"""
Utilities package for the employee directory pipeline.

Exports shared helpers for logging and container resource discovery.
Keep this package lightweight and free of domain-specific logic.
"""

from directory_pipeline.utils.logging import configure_logging, get_logger
from directory_pipeline.utils.resources import (
    container_memory_limit_bytes,
    get_container_resources,
)

__all__ = [
    "configure_logging",
    "get_logger",
    "container_memory_limit_bytes",
    "get_container_resources",
]
