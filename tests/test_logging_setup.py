# Copyright (c) 2025 Henru Wang
# All rights reserved.

"""Tests for logging setup."""

import json
import logging
import sys
import tempfile
from pathlib import Path

import pytest

from smart_context.logging_setup import StructuredFormatter, resolve_level, setup_logging


@pytest.fixture(autouse=True)
def restore_root_handlers():
    """Restore the root logger after each test."""
    root_logger = logging.getLogger()
    handlers = list(root_logger.handlers)
    level = root_logger.level
    yield
    for handler in root_logger.handlers:
        if handler not in handlers:
            handler.close()
    root_logger.handlers = handlers
    root_logger.setLevel(level)


def test_setup_logging_creates_directory():
    """Test that setup_logging creates the log directory."""
    with tempfile.TemporaryDirectory() as tmpdir:
        log_dir = Path(tmpdir) / ".smart_context_logs"
        assert not log_dir.exists()

        setup_logging(log_dir=log_dir, console_output=False)

        assert log_dir.is_dir()


def test_setup_logging_returns_log_file():
    """Test that setup_logging creates and returns a single log file."""
    with tempfile.TemporaryDirectory() as tmpdir:
        log_dir = Path(tmpdir) / ".smart_context_logs"

        log_file = setup_logging(log_dir=log_dir, console_output=False)

        assert log_file.exists()
        assert log_file.name.startswith("smart_context_")
        assert list(log_dir.glob("*.log")) == [log_file]


def test_logging_produces_json():
    """Test that logs are written in JSON format."""
    with tempfile.TemporaryDirectory() as tmpdir:
        log_dir = Path(tmpdir) / ".smart_context_logs"

        log_file = setup_logging(log_dir=log_dir, log_level=logging.INFO, console_output=False)

        logging.getLogger("test_logger").info("Test message")

        log_lines = [line for line in log_file.read_text().strip().split("\n") if line]

        # Startup message + test message
        assert len(log_lines) >= 2
        for line in log_lines:
            log_entry = json.loads(line)
            assert "timestamp" in log_entry
            assert "level" in log_entry
            assert "logger" in log_entry
            assert "message" in log_entry


def test_logging_levels():
    """Test that records below the configured level are dropped."""
    with tempfile.TemporaryDirectory() as tmpdir:
        log_dir = Path(tmpdir) / ".smart_context_logs"

        log_file = setup_logging(log_dir=log_dir, log_level=logging.WARNING, console_output=False)

        logger = logging.getLogger("test_logger")
        logger.debug("Debug message")
        logger.info("Info message")
        logger.warning("Warning message")
        logger.error("Error message")

        log_lines = [line for line in log_file.read_text().strip().split("\n") if line]
        messages = [json.loads(line)["message"] for line in log_lines]

        assert "Warning message" in messages
        assert "Error message" in messages
        assert "Debug message" not in messages
        assert "Info message" not in messages


def test_structured_formatter_with_exception():
    """Test that exceptions are formatted correctly."""
    formatter = StructuredFormatter()

    try:
        raise ValueError("Test exception")
    except ValueError:
        record = logging.LogRecord(
            name="test",
            level=logging.ERROR,
            pathname="test.py",
            lineno=1,
            msg="An error occurred",
            args=(),
            exc_info=sys.exc_info(),
        )

    log_entry = json.loads(formatter.format(record))

    assert log_entry["level"] == "ERROR"
    assert log_entry["message"] == "An error occurred"
    assert "ValueError: Test exception" in log_entry["exception"]


def test_structured_formatter_extra_fields():
    """Test that extra_fields are merged into the JSON record."""
    formatter = StructuredFormatter()
    record = logging.LogRecord(
        name="test",
        level=logging.INFO,
        pathname="test.py",
        lineno=1,
        msg="Selected %d files",
        args=(3,),
        exc_info=None,
    )
    record.extra_fields = {"project": "demo", "files": 3}

    log_entry = json.loads(formatter.format(record))

    assert log_entry["message"] == "Selected 3 files"
    assert log_entry["project"] == "demo"
    assert log_entry["files"] == 3
    assert log_entry["timestamp"].endswith("Z")


def test_setup_logging_clears_existing_handlers():
    """Test that setup_logging clears existing handlers."""
    with tempfile.TemporaryDirectory() as tmpdir:
        log_dir = Path(tmpdir) / ".smart_context_logs"

        setup_logging(log_dir=log_dir, console_output=False)
        initial_handler_count = len(logging.getLogger().handlers)

        setup_logging(log_dir=log_dir, console_output=False)

        assert len(logging.getLogger().handlers) == initial_handler_count


def test_console_output_goes_to_stderr():
    """Test that the console handler writes to stderr, keeping stdout free."""
    with tempfile.TemporaryDirectory() as tmpdir:
        log_dir = Path(tmpdir) / ".smart_context_logs"

        setup_logging(log_dir=log_dir, console_output=True)
        handlers = logging.getLogger().handlers
        assert len(handlers) == 2  # File + Console
        stream_handlers = [
            h
            for h in handlers
            if isinstance(h, logging.StreamHandler) and not isinstance(h, logging.FileHandler)
        ]
        assert stream_handlers[0].stream is sys.stderr

        setup_logging(log_dir=log_dir, console_output=False)
        assert len(logging.getLogger().handlers) == 1  # File only


def test_level_names_accepted():
    """Test that level names from the command line configure the level."""
    with tempfile.TemporaryDirectory() as tmpdir:
        log_file = setup_logging(
            log_dir=Path(tmpdir) / ".smart_context_logs", log_level="warning", console_output=False
        )

        logging.getLogger("test_logger").info("Info message")
        logging.getLogger("test_logger").warning("Warning message")

        messages = [json.loads(line)["message"] for line in log_file.read_text().splitlines()]
        assert messages == ["Warning message"]


def test_resolve_level():
    assert resolve_level("DEBUG") == logging.DEBUG
    assert resolve_level("error") == logging.ERROR
    assert resolve_level(logging.INFO) == logging.INFO

    with pytest.raises(ValueError):
        resolve_level("chatty")


def test_records_carry_thread_name():
    """Test that JSON records name the thread that logged them."""
    record = logging.LogRecord("test", logging.INFO, "test.py", 1, "msg", (), None)

    log_entry = json.loads(StructuredFormatter().format(record))

    assert log_entry["thread"] == record.threadName


def test_third_party_loggers_quieted():
    """Test that MCP transport loggers stay at WARNING or above."""
    with tempfile.TemporaryDirectory() as tmpdir:
        setup_logging(
            log_dir=Path(tmpdir) / ".smart_context_logs", log_level="DEBUG", console_output=False
        )

        assert logging.getLogger("mcp").level == logging.WARNING
