"""Logging setup for the monitor process.

stdlib logging only. Pipeline code logs through ``logging.getLogger(__name__)``
and attaches context (generation, position, state, timings) via ``extra=``;
the JSON formatter keeps those keys as fields.
"""

from __future__ import annotations

import json
import logging
import os
import sys
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from pathlib import Path

from maskwatch.core.paths import get_app_state_dir

LOG_FILE_NAME = "maskwatch.log"
LOG_FILE_MAX_BYTES = 2 * 1024 * 1024
LOG_FILE_BACKUPS = 3

_TEXT_FORMAT = "%(asctime)s | %(levelname)s | %(threadName)s | %(name)s | %(message)s"
# Pipeline extras worth keeping in structured logs.
_EXTRA_KEYS = ("event", "generation", "position", "state", "dropped", "duration_ms")
_QUIET_LOGGERS = ("ultralytics", "PIL", "matplotlib")


class _JsonFormatter(logging.Formatter):
    """One JSON object per line."""

    def format(self, record: logging.LogRecord) -> str:
        ts = datetime.fromtimestamp(record.created, tz=timezone.utc)  # noqa: UP017
        out: dict[str, object] = {
            "ts": ts.isoformat(timespec="milliseconds"),
            "level": record.levelname,
            "logger": record.name,
            "thread": record.threadName,
            "msg": record.getMessage(),
        }
        out.update({k: getattr(record, k) for k in _EXTRA_KEYS if hasattr(record, k)})
        if record.exc_info:
            out["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(out, ensure_ascii=False, default=str)


def _env_flag(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in {"1", "true", "yes"}


def _resolve_level(level: str | int | None) -> int:
    raw = level if level is not None else os.getenv("LOG_LEVEL", "INFO")
    if isinstance(raw, int):
        return raw
    return int(getattr(logging, raw.strip().upper(), logging.INFO))


def _file_handler(state_dir: Path | None) -> tuple[logging.Handler, Path] | None:
    """Rotating plain-text log under ``<state dir>/logs``; None if the dir is not writable."""
    try:
        logs_dir = (state_dir or get_app_state_dir()) / "logs"
        logs_dir.mkdir(parents=True, exist_ok=True)
        path = logs_dir / LOG_FILE_NAME
        handler = RotatingFileHandler(
            path, maxBytes=LOG_FILE_MAX_BYTES, backupCount=LOG_FILE_BACKUPS, encoding="utf-8"
        )
    except OSError:
        return None
    handler.setFormatter(logging.Formatter(_TEXT_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
    return handler, path


def setup_logging(
    *,
    level: str | int | None = None,
    json_logs: bool | None = None,
    log_to_file: bool | None = None,
    state_dir: Path | None = None,
) -> Path | None:
    """Configure root logging once per process. Returns the log file path, if any.

    Defaults come from the environment: LOG_LEVEL (INFO), LOG_JSON (off),
    LOG_FILE (on).
    """

    if json_logs is None:
        json_logs = _env_flag("LOG_JSON", "0")
    if log_to_file is None:
        log_to_file = _env_flag("LOG_FILE", "1")

    console = logging.StreamHandler(stream=sys.stdout)
    console.setFormatter(
        _JsonFormatter() if json_logs else logging.Formatter(_TEXT_FORMAT, datefmt="%H:%M:%S")
    )
    handlers: list[logging.Handler] = [console]

    log_path: Path | None = None
    if log_to_file:
        built = _file_handler(state_dir)
        if built is not None:
            handlers.append(built[0])
            log_path = built[1]

    root = logging.getLogger()
    root.handlers.clear()
    for h in handlers:
        root.addHandler(h)
    root.setLevel(_resolve_level(level))

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
    return log_path
