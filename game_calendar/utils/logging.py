"""
Log output for the ``game-calendar`` CLI.

stdout carries the JSON event/version payloads, so every log line goes to
stderr (and, when ``[logging] log_file`` is set, to that file as well).
Library modules only ever call ``logging.getLogger(__name__)``; the CLI calls
``configure_logging`` once per command.

With ``json_format = true`` each record becomes one JSON object::

    {"time": "2026-03-01T02:00:00.125Z", "level": "INFO",
     "logger": "game_calendar.service", "message": "Fetched 12 events for zzz",
     "game": "zzz"}

Values passed through ``extra=`` (such as ``game``) become top-level keys.
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import IO, TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from game_calendar.config import LoggingConfig

TEXT_FORMAT = "%(asctime)s %(levelname)-7s %(name)s: %(message)s"
TEXT_DATE_FORMAT = "%H:%M:%S"

# HTTP client chatter: one line per request at INFO.
QUIET_LOGGERS = ("httpx", "httpcore")

_RECORD_FIELDS = frozenset(vars(logging.makeLogRecord({}))) | {"message", "asctime"}


class JsonLineFormatter(logging.Formatter):
    """One JSON object per record, UTC millisecond timestamps, CJK kept as-is."""

    def format(self, record: logging.LogRecord) -> str:
        stamp = datetime.fromtimestamp(record.created, tz=timezone.utc)
        line: dict[str, object] = {
            "time": stamp.isoformat(timespec="milliseconds").replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        line.update(
            (k, v) for k, v in vars(record).items()
            if k not in _RECORD_FIELDS and not k.startswith("_")
        )
        if record.exc_info:
            line["error"] = self.formatException(record.exc_info)
        return json.dumps(line, default=str, ensure_ascii=False)


def build_handlers(
    config: "LoggingConfig", stream: Optional[IO[str]] = None
) -> list[logging.Handler]:
    """stderr (or ``stream``) handler plus the optional file handler."""
    formatter = (
        JsonLineFormatter()
        if config.json_format
        else logging.Formatter(TEXT_FORMAT, datefmt=TEXT_DATE_FORMAT)
    )
    handlers: list[logging.Handler] = [logging.StreamHandler(stream or sys.stderr)]
    if config.log_file:
        path = Path(config.log_file)
        path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(path, encoding="utf-8"))
    for handler in handlers:
        handler.setFormatter(formatter)
    return handlers


def configure_logging(config: "LoggingConfig", stream: Optional[IO[str]] = None) -> None:
    """Replace the root handlers according to ``config``.

    Calling it again (one CLI invocation per test, for instance) swaps the
    handlers rather than stacking them.
    """
    logging.basicConfig(
        level=config.level, handlers=build_handlers(config, stream), force=True
    )
    quiet_level = max(logging.WARNING, logging.getLevelName(config.level))
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(quiet_level)
