"""Logging setup for the vrt-buffer command line."""

from __future__ import annotations

import json
import logging
import sys
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

# Attributes every LogRecord carries; anything else came in through ``extra``.
_RECORD_FIELDS = frozenset(logging.makeLogRecord({}).__dict__) | {"message", "asctime"}

# rasterio logs every GDAL open at DEBUG; keep that out of -v output.
NOISY_LOGGERS = ("rasterio", "rasterio._env", "rasterio._io")


@dataclass(frozen=True)
class LogOptions:
    """Configuration for logging output."""

    verbose: int = 0
    quiet: bool = False
    log_file: Path | None = None
    json_console: bool = False


def _timestamp() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="seconds").replace("+00:00", "Z")


def _extra_fields(record: logging.LogRecord) -> dict[str, Any]:
    """Return fields passed through ``extra`` on a log call."""
    return {key: value for key, value in record.__dict__.items() if key not in _RECORD_FIELDS}


class JsonFormatter(logging.Formatter):
    """Format log records as one JSON object per line."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "timestamp": _timestamp(),
            "level": record.levelname.lower(),
            "logger": record.name,
            "message": record.getMessage(),
        }
        extra = _extra_fields(record)
        if extra:
            payload["extra"] = {key: str(value) for key, value in extra.items()}
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload)


class HumanFormatter(logging.Formatter):
    """Prefix messages with the tile they concern, when known."""

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        tile = getattr(record, "tile", None)
        if tile:
            return f"[{tile}] {message}"
        return message


def _console_level(options: LogOptions) -> int:
    if options.quiet:
        return logging.WARNING
    if options.verbose > 0:
        return logging.DEBUG
    return logging.INFO


def configure_logging(options: LogOptions) -> logging.Logger:
    """Install console and optional JSON file handlers on the root logger."""
    root = logging.getLogger()
    root.handlers.clear()
    root.setLevel(logging.DEBUG)

    console = logging.StreamHandler(sys.stderr)
    console.setLevel(_console_level(options))
    if options.json_console:
        console.setFormatter(JsonFormatter())
    else:
        console.setFormatter(HumanFormatter("%(levelname)s: %(message)s"))
    root.addHandler(console)

    if options.log_file:
        options.log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(options.log_file, encoding="utf-8")
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(JsonFormatter())
        root.addHandler(file_handler)

    noisy_level = logging.WARNING if options.verbose < 2 else logging.NOTSET
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(noisy_level)
    return root
