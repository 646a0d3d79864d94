"""Structured logging helpers for the expense report service."""

from __future__ import annotations

import json
import logging
import os
from datetime import UTC, datetime
from pathlib import Path
from typing import Final

CONSOLE_FORMAT: Final[str] = "[%(levelname)s] %(name)s: %(message)s"
DEFAULT_LEVEL: Final[str] = "INFO"
DEFAULT_LOG_DIR: Final[Path] = Path("logs")
LOG_FILENAME: Final[str] = "combined.log"
LEVEL_ENV_FLAG: Final[str] = "LOG_LEVEL"
ROOT_LOGGER: Final[str] = "expense_api"

_EXTRA_FIELDS: Final[tuple[str, ...]] = (
    "method",
    "path",
    "status_code",
    "client",
    "report_header_id",
)


class JsonAuditFormatter(logging.Formatter):
    """Render log records as single-line JSON payloads."""

    def format(self, record: logging.LogRecord) -> str:
        timestamp = datetime.fromtimestamp(record.created, tz=UTC).isoformat()
        payload: dict[str, object] = {
            "timestamp": timestamp,
            "level": record.levelname,
            "source": record.name,
            "message": record.getMessage(),
            "process_time_ms": _coerce_number(getattr(record, "process_time_ms", None)),
            "pool_event": bool(getattr(record, "pool_event", False)),
        }
        for field in _EXTRA_FIELDS:
            value = getattr(record, field, None)
            if value is not None:
                payload[field] = value
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False, default=str)


def _coerce_number(value: object) -> float | None:
    if value is None:
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _resolve_level(level: str | int | None) -> int:
    """Pick the level from the argument, then ``LOG_LEVEL``, then INFO."""

    if isinstance(level, int):
        return level
    if isinstance(level, str) and level.strip():
        candidate = level.strip().upper()
    else:
        candidate = os.environ.get(LEVEL_ENV_FLAG, DEFAULT_LEVEL).strip().upper()
    resolved = logging.getLevelName(candidate)
    return int(resolved) if isinstance(resolved, int) else logging.INFO


def _ensure_console_handler(logger: logging.Logger, level: int) -> None:
    for handler in logger.handlers:
        if getattr(handler, "_expense_console", False):
            handler.setLevel(level)
            return
    stream_handler = logging.StreamHandler()
    stream_handler.setLevel(level)
    stream_handler.setFormatter(logging.Formatter(CONSOLE_FORMAT))
    stream_handler._expense_console = True  # type: ignore[attr-defined]
    logger.addHandler(stream_handler)


def _ensure_json_handler(logger: logging.Logger, level: int, log_dir: Path) -> None:
    for handler in logger.handlers:
        if getattr(handler, "_expense_json", False):
            handler.setLevel(level)
            return
    log_dir.mkdir(parents=True, exist_ok=True)
    json_handler = logging.FileHandler(log_dir / LOG_FILENAME, encoding="utf-8")
    json_handler.setLevel(level)
    json_handler.setFormatter(JsonAuditFormatter())
    json_handler._expense_json = True  # type: ignore[attr-defined]
    logger.addHandler(json_handler)


def setup_logger(
    name: str = ROOT_LOGGER,
    json_format: bool = False,
    level: str | int | None = None,
    log_dir: Path | str | None = None,
) -> logging.Logger:
    """Configure and return a service logger.

    Handlers are attached once; repeated calls only adjust levels so the
    application factory can be invoked many times (tests do this).
    """

    resolved_level = _resolve_level(level)
    logger = logging.getLogger(name)
    logger.setLevel(resolved_level)
    # Propagate so capture handlers (``pytest caplog``) still see records.
    logger.propagate = True
    _ensure_console_handler(logger, resolved_level)
    if json_format:
        _ensure_json_handler(logger, resolved_level, Path(log_dir or DEFAULT_LOG_DIR))
    return logger


__all__ = ["JsonAuditFormatter", "setup_logger"]
