from __future__ import annotations

import io
import json
import logging
from pathlib import Path

import pytest

from maskwatch.core.observability.logging_config import _JsonFormatter, setup_logging
from maskwatch.core.observability.timing import time_block, timed


@pytest.fixture()
def restore_root_logging():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    for h in root.handlers:
        if h not in handlers:
            h.close()
    root.handlers[:] = handlers
    root.setLevel(level)


def test_setup_logging_writes_file_under_state_dir(tmp_path: Path, restore_root_logging) -> None:
    path = setup_logging(level="DEBUG", json_logs=False, log_to_file=True, state_dir=tmp_path)
    assert path == tmp_path / "logs" / "maskwatch.log"
    logging.getLogger("maskwatch.test").info("hello file")
    for h in logging.getLogger().handlers:
        h.flush()
    assert "hello file" in path.read_text(encoding="utf-8")
    assert logging.getLogger().level == logging.DEBUG


def test_setup_logging_without_file(restore_root_logging, monkeypatch) -> None:
    monkeypatch.setenv("LOG_LEVEL", "warning")
    assert setup_logging(json_logs=False, log_to_file=False) is None
    assert logging.getLogger().level == logging.WARNING


def test_json_formatter_keeps_pipeline_extras() -> None:
    record = logging.LogRecord("maskwatch.x", logging.INFO, __file__, 1, "Session %s", ("running",), None)
    record.generation = 4
    record.state = "running"
    payload = json.loads(_JsonFormatter().format(record))
    assert payload["msg"] == "Session running"
    assert payload["generation"] == 4
    assert payload["state"] == "running"
    assert payload["level"] == "INFO"


def _capture(name: str) -> tuple[logging.Logger, io.StringIO, logging.Handler]:
    stream = io.StringIO()
    handler = logging.StreamHandler(stream)
    logger = logging.getLogger(name)
    logger.addHandler(handler)
    logger.setLevel(logging.DEBUG)
    return logger, stream, handler


def test_time_block_measures_and_logs() -> None:
    logger, stream, handler = _capture("maskwatch.test.timing")
    try:
        with time_block("detect", logger=logger) as watch:
            pass
    finally:
        logger.removeHandler(handler)
    assert watch.elapsed_ms >= 0.0
    assert "detect took" in stream.getvalue()


def test_timed_decorator_returns_value() -> None:
    @timed("add")
    def add(a: int, b: int) -> int:
        return a + b

    assert add(2, 3) == 5
    assert add.__name__ == "add"
