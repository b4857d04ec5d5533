# Copyright (c) 2025 Henru Wang
# All rights reserved.

"""Structured logging for the smart context engine.

Records go to a daily JSON-lines file, one object per line, and optionally
to stderr in a human-readable form. Graph building and semantic matching log
from pool threads, so each JSON record carries the thread name.
"""

import json
import logging
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional, Union

DEFAULT_LOG_DIRNAME = ".smart_context_logs"

# Third-party loggers that are chatty at INFO during MCP sessions
QUIET_LOGGERS = ("mcp", "httpx", "anyio")

CONSOLE_FORMAT = "%(asctime)s [%(threadName)s] %(name)s %(levelname)s: %(message)s"


class StructuredFormatter(logging.Formatter):
    """Format records as single-line JSON objects."""

    def format(self, record: logging.LogRecord) -> str:
        entry: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc)
            .isoformat()
            .replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "thread": record.threadName,
            "message": record.getMessage(),
        }

        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)

        # logger.info(..., extra={"extra_fields": {...}})
        extra_fields = getattr(record, "extra_fields", None)
        if isinstance(extra_fields, dict):
            entry.update(extra_fields)

        return json.dumps(entry, default=str)


def resolve_level(level: Union[int, str]) -> int:
    """Turn a level name such as "debug" or a numeric level into a logging level.

    Raises:
        ValueError: If the name is not a standard level name.
    """
    if isinstance(level, int):
        return level
    resolved = logging.getLevelName(level.upper())
    if not isinstance(resolved, int):
        raise ValueError(f"Unknown log level: {level}")
    return resolved


def setup_logging(
    log_dir: Optional[Path] = None,
    log_level: Union[int, str] = logging.INFO,
    console_output: bool = True,
) -> Path:
    """Configure the root logger for a server process.

    Existing root handlers are replaced, so calling this twice does not
    duplicate output.

    Args:
        log_dir: Directory for log files (default: ./.smart_context_logs)
        log_level: Level number or name (default: INFO)
        console_output: Also log to stderr. stdout is left alone because the
            stdio MCP transport owns it.

    Returns:
        Path of the JSON log file.
    """
    level = resolve_level(log_level)
    if log_dir is None:
        log_dir = Path.cwd() / DEFAULT_LOG_DIRNAME
    log_dir.mkdir(parents=True, exist_ok=True)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers.clear()

    log_file = log_dir / f"smart_context_{datetime.now(timezone.utc):%Y%m%d}.log"
    file_handler = logging.FileHandler(log_file, encoding="utf-8")
    file_handler.setFormatter(StructuredFormatter())
    root_logger.addHandler(file_handler)

    if console_output:
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setFormatter(logging.Formatter(CONSOLE_FORMAT, datefmt="%H:%M:%S"))
        root_logger.addHandler(console_handler)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))

    logging.getLogger(__name__).info(
        f"Logging to {log_file} at {logging.getLevelName(level)}"
    )
    return log_file
