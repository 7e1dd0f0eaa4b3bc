"""Unit tests for logging configuration."""

from __future__ import annotations

import json
import logging
import logging.handlers
from io import StringIO
from pathlib import Path

import pytest
import structlog

from onboardpack.config import LoggingConfig
from onboardpack.logging import (
    add_correlation_id,
    bind_run_context,
    set_correlation_id,
    setup_logging,
)


@pytest.fixture(autouse=True)
def reset_logging() -> None:
    """Reset logging configuration before each test."""
    logging.getLogger().handlers.clear()
    structlog.reset_defaults()
    structlog.contextvars.clear_contextvars()
    set_correlation_id(None)


def _capture(config: LoggingConfig) -> StringIO:
    setup_logging(config)
    stream = StringIO()
    logging.getLogger().handlers[0].stream = stream
    return stream


def test_json_output_format() -> None:
    stream = _capture(LoggingConfig(level="INFO", format="json"))

    structlog.get_logger("test.module").info("test_event", key1="value1", key2=42)

    entry = json.loads(stream.getvalue().strip())
    assert entry["event"] == "test_event"
    assert entry["key1"] == "value1"
    assert entry["key2"] == 42
    assert entry["level"] == "info"
    assert entry["logger"] == "test.module"


def test_level_filters_info() -> None:
    stream = _capture(LoggingConfig(level="WARNING", format="json"))

    structlog.get_logger("test.module").info("hidden_event")

    assert stream.getvalue() == ""


def test_run_context_is_bound() -> None:
    stream = _capture(LoggingConfig(level="INFO", format="json"))

    bind_run_context("run-1", "my-repo")
    structlog.get_logger("test.module").info("pipeline_started")

    entry = json.loads(stream.getvalue().strip())
    assert entry["run_id"] == "run-1"
    assert entry["repo"] == "my-repo"
    assert entry["correlation_id"] == "run-1"


def test_correlation_id_processor() -> None:
    set_correlation_id("abc")
    assert add_correlation_id(None, "info", {"event": "x"})["correlation_id"] == "abc"

    set_correlation_id(None)
    assert "correlation_id" not in add_correlation_id(None, "info", {"event": "x"})


def test_file_handler_rotates(tmp_path: Path) -> None:
    log_file = tmp_path / "logs" / "onboardpack.log"
    setup_logging(LoggingConfig(level="INFO", format="json", file=log_file))

    structlog.get_logger("test.module").info("file_event")
    for handler in logging.getLogger().handlers:
        handler.flush()

    assert isinstance(logging.getLogger().handlers[0], logging.handlers.RotatingFileHandler)
    assert "file_event" in log_file.read_text(encoding="utf-8")
