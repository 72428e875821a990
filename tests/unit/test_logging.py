from __future__ import annotations

import json
import logging
from pathlib import Path

from directory_pipeline.utils.logging import _json_formatter, configure_logging, get_logger

EXPECTED_INSERTED = 10
EXPECTED_BATCH_SIZE = 1000


def _record(msg: str = "hello") -> logging.LogRecord:
    return logging.LogRecord(
        name="test.logger",
        level=logging.INFO,
        pathname=__file__,
        lineno=1,
        msg=msg,
        args=(),
        exc_info=None,
    )


def test_json_formatter_promotes_extra_fields() -> None:
    record = _record()
    record.inserted = EXPECTED_INSERTED
    record.status = "completed"

    payload = json.loads(_json_formatter(record))

    assert payload["level"] == "INFO"
    assert payload["logger"] == "test.logger"
    assert payload["message"] == "hello"
    assert payload["inserted"] == EXPECTED_INSERTED
    assert payload["status"] == "completed"


def test_json_formatter_supports_nested_extra_field() -> None:
    record = _record()
    record.extra = {"batch_size": EXPECTED_BATCH_SIZE}

    payload = json.loads(_json_formatter(record))

    assert payload["batch_size"] == EXPECTED_BATCH_SIZE


def test_json_formatter_serializes_non_json_values() -> None:
    record = _record("[EXPORT COMPLETE]")
    record.artifact = Path("exports/employees.txt")

    payload = json.loads(_json_formatter(record))

    assert payload["artifact"] == "exports/employees.txt"


def test_configure_logging_keeps_module_loggers_enabled() -> None:
    module_log = get_logger("directory_pipeline.pipeline.inserter")

    configure_logging(level="DEBUG", json_logs=True)

    assert not module_log.disabled
    assert logging.getLogger().level == logging.DEBUG
