"""
Export package: keyset-paginated exporter, fixed-width layout and sinks.
"""

from directory_pipeline.export.exporter import CursorExporter
from directory_pipeline.export.formatting import ReportLayout
from directory_pipeline.export.sink import FileSink, Sink

__all__ = ["CursorExporter", "FileSink", "ReportLayout", "Sink"]
