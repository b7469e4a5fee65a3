"""Tests for techscout.utils — time helpers and logging setup."""

from __future__ import annotations

import json
import logging
from datetime import date, datetime, timezone

import pytest

from techscout.config import LoggingConfig
from techscout.utils.logging import JsonLineFormatter, configure_logging
from techscout.utils.time_utils import elapsed_ms, months_since, optional_months_since

AS_OF = datetime(2026, 3, 15, tzinfo=timezone.utc)


@pytest.fixture(autouse=True)
def _restore_root_logger():
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    for handler in root.handlers:
        if handler not in handlers:
            handler.close()
    root.handlers[:] = handlers
    root.setLevel(level)


# ── time_utils ────────────────────────────────────────────────────────────────


def test_months_since_counts_whole_30_day_blocks() -> None:
    assert months_since(date(2026, 1, 14), AS_OF) == 2
    assert months_since(date(2026, 2, 13), AS_OF) == 1
    assert months_since(date(2026, 2, 20), AS_OF) == 0


def test_months_since_future_date_is_zero() -> None:
    assert months_since(date(2026, 6, 1), AS_OF) == 0


def test_optional_months_since_passes_none() -> None:
    assert optional_months_since(None, AS_OF) is None
    assert optional_months_since(date(2025, 3, 15), AS_OF) == 12


def test_elapsed_ms() -> None:
    assert elapsed_ms(1.0, 1.25) == 250


# ── logging ───────────────────────────────────────────────────────────────────


def test_json_formatter_includes_extra_fields() -> None:
    """Extra fields passed via ``extra=`` appear at the top level."""
    record = logging.LogRecord(
        "techscout.pipeline", logging.INFO, __file__, 1, "run %s", ("done",), None
    )
    record.trace_id = "IFX-2026-0315-RUN-7KQ2ZD"
    payload = json.loads(JsonLineFormatter().format(record))

    assert payload["level"] == "INFO"
    assert payload["logger"] == "techscout.pipeline"
    assert payload["msg"] == "run done"
    assert payload["trace_id"] == "IFX-2026-0315-RUN-7KQ2ZD"


def test_configure_logging_writes_log_file(tmp_path) -> None:
    log_file = tmp_path / "logs" / "techscout.log"
    configure_logging(LoggingConfig(level="DEBUG", log_file=str(log_file), json_format=True))

    logging.getLogger("techscout.test").debug("hello")
    for handler in logging.getLogger().handlers:
        handler.flush()

    lines = log_file.read_text(encoding="utf-8").splitlines()
    assert json.loads(lines[-1])["msg"] == "hello"
    assert logging.getLogger("httpx").level == logging.WARNING
