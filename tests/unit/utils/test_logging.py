"""Tests for logging configuration utilities."""

import json
import logging
import sys

import pytest

from powerhour.core.utils.logging import StructuredJSONFormatter, configure_logging, get_logger


@pytest.fixture(autouse=True)
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    for handler in root.handlers:
        if handler not in handlers:
            handler.close()
    root.handlers = handlers
    root.setLevel(level)


def make_record(msg="Test message", level=logging.INFO, exc_info=None):
    record = logging.LogRecord(
        name="powerhour.test",
        level=level,
        pathname="/path/to/file.py",
        lineno=42,
        msg=msg,
        args=(),
        exc_info=exc_info,
    )
    record.funcName = "test_function"
    record.module = "test_module"
    return record


class TestStructuredJSONFormatter:
    """Test suite for StructuredJSONFormatter."""

    def test_basic_log_format(self):
        """Test basic log record formatting to JSON."""
        data = json.loads(StructuredJSONFormatter().format(make_record()))

        assert data["level"] == "INFO"
        assert data["message"] == "Test message"
        assert "timestamp" in data
        assert data["context"]["logger_name"] == "powerhour.test"
        assert data["context"]["module"] == "test_module"
        assert data["context"]["function"] == "test_function"
        assert data["context"]["line"] == 42

    def test_log_with_extra_fields(self):
        """Test that extra fields are included in context."""
        record = make_record(level=logging.DEBUG)
        record.library_id = "lib_abc"
        record.song_count = 12

        data = json.loads(StructuredJSONFormatter().format(record))

        assert data["context"]["library_id"] == "lib_abc"
        assert data["context"]["song_count"] == 12

    def test_log_with_exception(self):
        """Test that exception details are captured."""
        try:
            raise ValueError("bad clip")
        except ValueError:
            record = make_record(msg="Failed", level=logging.ERROR, exc_info=sys.exc_info())

        data = json.loads(StructuredJSONFormatter().format(record))

        assert data["context"]["error_type"] == "ValueError"
        assert data["context"]["error_message"] == "bad clip"
        assert "Traceback" in data["context"]["stack_trace"]


class TestConfigureLogging:
    """Test suite for configure_logging."""

    def test_sets_level(self):
        """Test that the root level follows the argument."""
        configure_logging(level="debug")

        assert logging.getLogger().level == logging.DEBUG

    def test_structured_file_output(self, tmp_path):
        """Test JSON lines written to a log file."""
        log_file = tmp_path / "powerhour.jsonl"
        configure_logging(level="INFO", filename=str(log_file), structured=True)

        logging.getLogger("powerhour.test").info("Scanned %d files", 3)
        for handler in logging.getLogger().handlers:
            handler.flush()

        line = log_file.read_text(encoding="utf-8").strip().splitlines()[-1]
        assert json.loads(line)["message"] == "Scanned 3 files"

    def test_custom_format(self, tmp_path):
        """Test plain text output with a custom format string."""
        log_file = tmp_path / "powerhour.log"
        configure_logging(level="INFO", format_string="%(levelname)s|%(message)s", filename=str(log_file))

        logging.getLogger("powerhour.test").warning("careful")
        for handler in logging.getLogger().handlers:
            handler.flush()

        assert log_file.read_text(encoding="utf-8").strip() == "WARNING|careful"

    def test_noisy_loggers_quieted(self):
        """Test that third-party loggers are raised to ERROR."""
        configure_logging()

        assert logging.getLogger("numba").level == logging.ERROR


class TestGetLogger:
    """Test suite for get_logger."""

    def test_plain_logger(self):
        """Test that no context returns a plain logger."""
        assert isinstance(get_logger("powerhour.x"), logging.Logger)

    def test_adapter_with_context(self):
        """Test that context returns a LoggerAdapter carrying it."""
        adapter = get_logger("powerhour.x", mix_id="mix_1")

        assert isinstance(adapter, logging.LoggerAdapter)
        assert adapter.extra == {"mix_id": "mix_1"}
