"""hookgate logging with a colored console handler and JSON log files."""

from __future__ import annotations

import json
import logging
import sys
from datetime import UTC, datetime
from logging.handlers import RotatingFileHandler
from pathlib import Path

# Extra record attributes copied into JSON log lines
_EXTRA_FIELDS = ("check", "stage", "tool", "exit_code", "duration_ms", "summary")


class JsonFormatter(logging.Formatter):
    """JSON formatter for structured logging."""

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON.

        Args:
            record: Log record to format

        Returns:
            JSON-formatted log string
        """
        log_data = {
            "ts": datetime.now(UTC).isoformat().replace("+00:00", "Z"),
            "level": record.levelname.lower(),
            "logger": record.name,
            "message": record.getMessage(),
        }

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        for key in _EXTRA_FIELDS:
            if hasattr(record, key):
                log_data[key] = getattr(record, key)

        return json.dumps(log_data)


class ConsoleFormatter(logging.Formatter):
    """Colored console formatter for human-readable output."""

    COLORS = {
        "DEBUG": "\033[36m",  # Cyan
        "INFO": "\033[32m",  # Green
        "WARNING": "\033[33m",  # Yellow
        "ERROR": "\033[31m",  # Red
        "CRITICAL": "\033[35m",  # Magenta
    }
    RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        color = self.COLORS.get(record.levelname, "")
        timestamp = datetime.now().strftime("%H:%M:%S")
        context = f"[{record.check}] " if hasattr(record, "check") else ""
        return f"{color}{timestamp} {record.levelname:8s}{self.RESET} {context}{record.getMessage()}"


def get_logger(name: str) -> logging.Logger:
    """Get a logger under the hookgate namespace.

    Args:
        name: Logger name (typically a short module name)

    Returns:
        Logger instance
    """
    return logging.getLogger(f"hookgate.{name}")


def setup_logging(
    level: str = "warning",
    log_dir: str | Path | None = None,
    json_output: bool = True,
    console_output: bool = True,
    max_bytes: int = 5 * 1024 * 1024,
    backup_count: int = 3,
) -> None:
    """Set up logging configuration.

    Args:
        level: Log level (debug, info, warning, error)
        log_dir: Directory for the JSON log file
        json_output: Whether to write JSON logs to file
        console_output: Whether to log to stderr
        max_bytes: Maximum size of log file before rotation
        backup_count: Number of backup files to keep
    """
    log_level = getattr(logging, level.upper(), logging.WARNING)

    root_logger = logging.getLogger("hookgate")
    root_logger.setLevel(logging.DEBUG if log_dir and json_output else log_level)
    root_logger.handlers = []

    if console_output:
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setLevel(log_level)
        console_handler.setFormatter(ConsoleFormatter())
        root_logger.addHandler(console_handler)

    if log_dir and json_output:
        log_path = Path(log_dir)
        try:
            log_path.mkdir(parents=True, exist_ok=True)
            file_handler = RotatingFileHandler(
                log_path / "hookgate.log",
                maxBytes=max_bytes,
                backupCount=backup_count,
            )
        except OSError as e:
            root_logger.setLevel(log_level)
            root_logger.warning(f"Cannot write logs to {log_path}: {e}")
        else:
            file_handler.setLevel(logging.DEBUG)
            file_handler.setFormatter(JsonFormatter())
            root_logger.addHandler(file_handler)

    root_logger.propagate = False
