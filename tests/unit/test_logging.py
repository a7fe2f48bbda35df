"""Unit tests for hookgate logging module."""

import json
import logging
import sys
from pathlib import Path

from hookgate.logging import ConsoleFormatter, JsonFormatter, get_logger, setup_logging


def make_record(msg: str, level: int = logging.INFO, exc_info=None) -> logging.LogRecord:
    return logging.LogRecord(
        name="hookgate.test",
        level=level,
        pathname="test.py",
        lineno=1,
        msg=msg,
        args=(),
        exc_info=exc_info,
    )


class TestJsonFormatter:
    """Tests for JSON log formatter."""

    def test_format_basic_message(self) -> None:
        """Test formatting basic log message."""
        data = json.loads(JsonFormatter().format(make_record("Test message")))

        assert data["message"] == "Test message"
        assert data["level"] == "info"
        assert data["logger"] == "hookgate.test"
        assert data["ts"].endswith("Z")

    def test_format_with_exception(self) -> None:
        """Test formatting message with exception."""
        try:
            raise ValueError("Test error")
        except ValueError:
            exc_info = sys.exc_info()

        data = json.loads(JsonFormatter().format(make_record("Error occurred", logging.ERROR, exc_info)))

        assert data["level"] == "error"
        assert "ValueError" in data["exception"]

    def test_format_with_extra_fields(self) -> None:
        """Test check and tool context is copied into the JSON line."""
        record = make_record("Tool finished")
        record.check = "security"
        record.exit_code = 1

        data = json.loads(JsonFormatter().format(record))

        assert data["check"] == "security"
        assert data["exit_code"] == 1
        assert "tool" not in data


class TestConsoleFormatter:
    """Tests for console formatter."""

    def test_includes_check_context(self) -> None:
        """Test the check name prefixes the message."""
        record = make_record("slow")
        record.check = "performance"

        result = ConsoleFormatter().format(record)

        assert "[performance] slow" in result
        assert "INFO" in result


class TestSetupLogging:
    """Tests for setup_logging."""

    def test_writes_json_file(self, tmp_path: Path) -> None:
        """Test debug records reach the JSON file while the console stays at warning."""
        setup_logging(level="warning", log_dir=tmp_path, console_output=False)
        logger = get_logger("test")
        logger.debug("hidden from console", extra={"stage": "pre-commit"})
        for handler in logging.getLogger("hookgate").handlers:
            handler.flush()

        lines = (tmp_path / "hookgate.log").read_text().splitlines()
        data = json.loads(lines[-1])
        assert data["message"] == "hidden from console"
        assert data["stage"] == "pre-commit"

    def test_console_only(self) -> None:
        """Test no file handler without a log directory."""
        setup_logging(level="info")
        handlers = logging.getLogger("hookgate").handlers

        assert len(handlers) == 1
        assert isinstance(handlers[0].formatter, ConsoleFormatter)

    def test_unwritable_log_dir_falls_back_to_console(self, tmp_path: Path) -> None:
        """Test a log directory that cannot be created leaves only the console handler."""
        blocker = tmp_path / "not-a-dir"
        blocker.write_text("file in the way\n")

        setup_logging(level="info", log_dir=blocker / "logs")
        root = logging.getLogger("hookgate")

        assert len(root.handlers) == 1
        assert isinstance(root.handlers[0].formatter, ConsoleFormatter)
        assert root.level == logging.INFO

    def test_get_logger_namespace(self) -> None:
        """Test loggers live under the hookgate namespace."""
        assert get_logger("orchestrator").name == "hookgate.orchestrator"
