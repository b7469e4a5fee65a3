"""
Logging setup for techscout.

``configure_logging(config)`` is called once by each CLI command before any
matching work.  Library modules only ever do ``logging.getLogger(__name__)``.

Log lines go to stderr (and optionally a file) so that command output on
stdout can be piped.  With ``json_format = true`` every line is one JSON
object; fields passed through ``extra=`` are copied to the top level::

    {"ts": "2026-03-15T09:00:00Z", "level": "INFO", "logger": "techscout.pipeline.orchestrator",
     "msg": "...", "trace_id": "IFX-2026-0315-RUN-7KQ2ZD"}
"""

from __future__ import annotations

import json
import logging
import sys
import time
from datetime import datetime, timezone
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from techscout.config import LoggingConfig

TEXT_FORMAT = "%(asctime)s %(levelname)-7s %(name)s | %(message)s"
TIMESTAMP_FORMAT = "%Y-%m-%dT%H:%M:%SZ"

# HTTP client internals log every request at INFO.
QUIET_LOGGERS = ("httpx", "httpcore")

_RESERVED = frozenset(
    logging.LogRecord("", logging.INFO, "", 0, "", None, None).__dict__
) | {"message", "asctime"}


class JsonLineFormatter(logging.Formatter):
    """One JSON object per record: ``ts``, ``level``, ``logger``, ``msg`` plus extras."""

    def format(self, record: logging.LogRecord) -> str:
        line = {
            "ts": datetime.fromtimestamp(record.created, tz=timezone.utc).strftime(TIMESTAMP_FORMAT),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        line.update(
            (k, v) for k, v in vars(record).items()
            if k not in _RESERVED and not k.startswith("_")
        )
        if record.exc_info:
            line["exc"] = self.formatException(record.exc_info)
        return json.dumps(line, default=str)


def _formatter(json_format: bool) -> logging.Formatter:
    if json_format:
        return JsonLineFormatter()
    text = logging.Formatter(TEXT_FORMAT, datefmt=TIMESTAMP_FORMAT)
    text.converter = time.gmtime
    return text


def _handlers(config: "LoggingConfig") -> list[logging.Handler]:
    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stderr)]
    if config.log_file:
        path = Path(config.log_file)
        path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(path, encoding="utf-8"))
    return handlers


def configure_logging(config: "LoggingConfig") -> None:
    """Install stderr (and optional file) handlers on the root logger.

    Replaces any handlers already installed, so calling it twice is safe.

    Args:
        config: ``[logging]`` section of ``AppConfig``.
    """
    level = logging.getLevelName(config.level.upper())
    if not isinstance(level, int):
        level = logging.INFO

    formatter = _formatter(config.json_format)
    handlers = _handlers(config)
    for handler in handlers:
        handler.setLevel(level)
        handler.setFormatter(formatter)

    logging.basicConfig(level=level, handlers=handlers, force=True)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
