"""
Run logging for the curator CLI.

Every command gets its own ``tokenlist.<run_id>`` logger; components log
through ``log_event`` so that each line carries a stable event name next to
the message. The events a run can emit, roughly in order:

    run_started            command and package version
    known_ids_loaded       discovered/curated/banned counts before discovery
    discovery_started      start page, page size and page cap
    page_fetched           raw and accepted item counts for one page
    checkpoint_written     (DEBUG) next page persisted
    discovery_failed       transport error; checkpoint left for the next run
    discovery_complete     stop reason, rejects by reason code
    token_invalid          (WARNING) one skipped record and its violations
    compose_complete       list sizes and the shared updatedAt

With JSON Lines enabled a record renders as

    {"ts": "2026-03-01T12:30:45.120Z", "level": "INFO", "run_id": "20260301_123045Z_a1b2c3",
     "event": "page_fetched", "module": "engine", "msg": "Page 3: 87/100 valid tokens",
     "extra": {"page": 3, "raw_items": 100, "accepted": 87, "total_accepted": 241}}

and an ``exc`` field is added when the record carries exception info.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any


@dataclass(frozen=True)
class LogSettings:
    """
    Configuration for logger initialization.

    Attributes:
        level: Log level string (DEBUG, INFO, WARNING, ERROR).
        run_id: Unique run identifier for log correlation.
        log_file: Optional path to log file (None for console only).
        jsonl: If True, use JSON Lines format; otherwise plain text.
    """
    level: str
    run_id: str
    log_file: Path | None
    jsonl: bool


class JsonLineFormatter(logging.Formatter):
    """Logging formatter that emits one JSON object per record."""

    def __init__(self, run_id: str):
        super().__init__()
        self._run_id = run_id

    def format(self, record: logging.LogRecord) -> str:
        event = getattr(record, "event", "log")
        extra = getattr(record, "extra", {})
        if not isinstance(extra, dict):
            extra = {"value": extra}

        payload = {
            "ts": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "run_id": self._run_id,
            "event": event,
            "module": record.module,
            "msg": record.getMessage(),
            "extra": extra,
        }
        if record.exc_info:
            payload["exc"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False, default=str)


def build_logger(settings: LogSettings) -> logging.Logger:
    """
    Create an isolated (non-propagating) logger for one CLI invocation.

    Console output is always attached; a file handler is added when
    settings.log_file is set. JSON Lines format is used when settings.jsonl
    is True.
    """
    logger = logging.getLogger(f"tokenlist.{settings.run_id}")
    logger.setLevel(settings.level)
    logger.handlers.clear()
    logger.propagate = False

    formatter = JsonLineFormatter(settings.run_id) if settings.jsonl else None

    stream_handler = logging.StreamHandler()
    if formatter:
        stream_handler.setFormatter(formatter)
    logger.addHandler(stream_handler)

    if settings.log_file:
        settings.log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(settings.log_file, encoding="utf-8")
        if formatter:
            file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    return logger


def log_event(
    logger: logging.Logger,
    level: int,
    event: str,
    message: str,
    *,
    exc_info: logging._ExcInfoType | None = None,
    **extra: Any,
) -> None:
    """
    Log a structured event with typed metadata.

    Args:
        logger: Logger instance to use.
        level: Log level (logging.DEBUG, INFO, WARNING, ERROR).
        event: Event type identifier (e.g., "page_fetched", "token_invalid").
        message: Human-readable log message.
        exc_info: Optional exception info for error logging.
        **extra: Additional key-value pairs to include in log entry.

    Example:
        >>> log_event(logger, logging.WARNING, "token_invalid",
        ...           "Skipping token", object_id="0xabc", errors=["decimals 0-18"])
    """
    logger.log(level, message, extra={"event": event, "extra": extra}, exc_info=exc_info)
