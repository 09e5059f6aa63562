# src/giftrank/logging/logger.py — v1
"""JSON and text log formatters for the ``giftrank`` logger tree.

Pipeline modules log through ``logging.getLogger(__name__)`` and attach
structured payloads (candidate names, fallback reasons, dedup reasons)
with ``extra={"data": {...}}``. Both formatters render that payload next
to the request context from logging.context.
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any

from giftrank.logging.context import get_context

if TYPE_CHECKING:
    from giftrank.config.settings import Settings

ROOT_LOGGER = "giftrank"

# SDK transport loggers that flood DEBUG output with HTTP traces.
_NOISY_LOGGERS = ("httpx", "httpcore", "openai", "anthropic")


def _payload(record: logging.LogRecord) -> dict[str, Any] | None:
    data = getattr(record, "data", None)
    return data if isinstance(data, dict) and data else None


class JsonFormatter(logging.Formatter):
    """One JSON object per line: level, logger, message, context, data."""

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        context = get_context().as_dict()
        if context:
            entry["context"] = context
        data = _payload(record)
        if data:
            entry["data"] = data
        if record.exc_info and record.exc_info[1] is not None:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str, ensure_ascii=False)


class TextFormatter(logging.Formatter):
    """Single-line development format.

    ``2025-01-01 10:00:00 [INFO    ] giftrank.ranking.reranker [req] (rerank) - msg | names=[...]``
    """

    def format(self, record: logging.LogRecord) -> str:
        ctx = get_context()
        line = " ".join(
            part for part in (
                datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M:%S"),
                f"[{record.levelname:8s}]",
                record.name,
                f"[{ctx.request_id}]" if ctx.request_id else "",
                f"({ctx.stage})" if ctx.stage else "",
                f"- {record.getMessage()}",
            ) if part
        )
        data = _payload(record)
        if data:
            line += " | " + " ".join(
                f"{key}={json.dumps(value, default=str, ensure_ascii=False)}"
                for key, value in data.items()
            )
        if record.exc_info and record.exc_info[1] is not None:
            line += "\n" + self.formatException(record.exc_info)
        return line


def setup_logging(
    level: str = "INFO",
    log_format: str = "json",
    log_file: str | None = None,
    rotation: str = "10MB",
    retention: int = 30,
) -> None:
    """Install one stderr handler (and optionally a rotating file) on ``giftrank``.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR).
        log_format: "json" or "text".
        log_file: Optional log file path.
        rotation: Max file size before rotation (e.g. "10MB").
        retention: Number of rotated files to keep.
    """
    root = logging.getLogger(ROOT_LOGGER)
    root.setLevel(getattr(logging, level.upper(), logging.INFO))
    root.handlers.clear()

    formatter = JsonFormatter() if log_format == "json" else TextFormatter()

    # stdout carries CLI results.
    console = logging.StreamHandler(sys.stderr)
    console.setFormatter(formatter)
    root.addHandler(console)

    if log_file:
        from giftrank.logging.handlers import create_rotating_handler

        file_handler = create_rotating_handler(log_file, rotation=rotation, retention=retention)
        file_handler.setFormatter(formatter)
        root.addHandler(file_handler)

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def setup_logging_from_settings(settings: Settings, verbose: bool = False) -> None:
    """Apply the LOG_* settings; ``verbose`` forces DEBUG."""
    setup_logging(
        level="DEBUG" if verbose else settings.log_level,
        log_format=settings.log_format,
        log_file=str(settings.log_file) if settings.log_file else None,
        rotation=settings.log_rotation,
        retention=settings.log_retention,
    )
