# src/logging/logger.py — v2
"""Logger factory with JSON and text formatters, plus the LogLine sink bridge."""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from pagepilot.logging.context import get_context
from pagepilot.logging.models import LogLine, LogSink

_ROOT = "pagepilot"

# LogLine level -> stdlib level
_LEVELS = {0: logging.ERROR, 1: logging.INFO, 2: logging.DEBUG}


class JsonFormatter(logging.Formatter):
    """Structured JSON log formatter."""

    def format(self, record: logging.LogRecord) -> str:
        ctx = get_context()
        log_entry: dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        context_dict = ctx.as_dict()
        if context_dict:
            log_entry["context"] = context_dict

        # Extra data passed via record.__dict__
        if hasattr(record, "data") and record.data:  # type: ignore[attr-defined]
            log_entry["data"] = record.data  # type: ignore[attr-defined]

        if record.exc_info and record.exc_info[1] is not None:
            log_entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_entry, default=str)


class TextFormatter(logging.Formatter):
    """Human-readable text formatter for development."""

    def format(self, record: logging.LogRecord) -> str:
        ctx = get_context()
        parts = [
            datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M:%S"),
            f"[{record.levelname:8s}]",
            record.name,
        ]
        if ctx.provider:
            parts.append(f"[{ctx.provider}]")
        if ctx.request_id:
            parts.append(f"({ctx.request_id})")
        parts.append(f"— {record.getMessage()}")
        data = getattr(record, "data", None)
        if data:
            parts.append(" ".join(f"{k}={v}" for k, v in data.items()))
        return " ".join(parts)


def get_logger(name: str) -> logging.Logger:
    """Get a named logger. Configuration is applied by setup_logging()."""
    return logging.getLogger(f"{_ROOT}.{name}")


def setup_logging(
    level: str = "INFO",
    log_format: str = "json",
    log_file: str | Path | None = None,
    rotation: str = "10MB",
    retention: int = 5,
) -> None:
    """Configure the root pagepilot logger.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR).
        log_format: Output format ("json" or "text").
        log_file: Path to log file (None = stderr only).
        rotation: Max file size before rotation (e.g. "10MB").
        retention: Number of rotated files to keep.
    """
    root_logger = logging.getLogger(_ROOT)
    root_logger.setLevel(getattr(logging, level.upper(), logging.INFO))

    # Remove existing handlers to avoid duplicates on re-init
    root_logger.handlers.clear()

    formatter: logging.Formatter
    if log_format == "json":
        formatter = JsonFormatter()
    else:
        formatter = TextFormatter()

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    if log_file:
        from pagepilot.logging.handlers import create_rotating_handler

        root_logger.addHandler(
            create_rotating_handler(
                log_file, rotation=rotation, retention=retention, formatter=formatter
            )
        )


def logging_sink(line: LogLine) -> None:
    """Default LogSink: forward a LogLine to ``pagepilot.<category>``."""
    get_logger(line.category).log(
        _LEVELS[line.level], line.message, extra={"data": line.auxiliary_dict()}
    )


def emit(sink: LogSink | None, line: LogLine) -> None:
    """Deliver a LogLine to a sink without letting the sink fail the caller."""
    if sink is None:
        return
    try:
        sink(line)
    except Exception:  # noqa: BLE001
        logging.getLogger(__name__).warning(
            "Log sink raised while handling %r", line.message, exc_info=True
        )


def verbosity_sink(verbose: int, sink: LogSink = logging_sink) -> LogSink:
    """Wrap ``sink`` so that lines above the ``verbose`` level are dropped."""

    def _filtered(line: LogLine) -> None:
        if line.level <= verbose:
            sink(line)

    return _filtered
