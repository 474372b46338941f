# tests/unit/logging/test_logger.py
"""Tests for logging/logger.py: logger factory and formatters."""

from __future__ import annotations

import json
import logging

from sevenpools.logging.context import clear_context, set_persona_context, set_tool_context
from sevenpools.logging.logger import JsonFormatter, TextFormatter, get_logger, setup_logging


def _record(msg: str = "Hello", level: int = logging.INFO) -> logging.LogRecord:
    return logging.LogRecord(
        name="test", level=level, pathname="", lineno=0,
        msg=msg, args=(), exc_info=None,
    )


class TestJsonFormatter:
    def setup_method(self):
        clear_context()

    def teardown_method(self):
        clear_context()

    def test_format_basic(self):
        parsed = json.loads(JsonFormatter().format(_record()))
        assert parsed["level"] == "INFO"
        assert parsed["message"] == "Hello"
        assert "timestamp" in parsed
        assert "context" not in parsed

    def test_format_with_context(self):
        set_tool_context("set_persona")
        set_persona_context("person:larry_harvey", "persist")
        parsed = json.loads(JsonFormatter().format(_record()))
        assert parsed["context"]["tool"] == "set_persona"
        assert parsed["context"]["stage"] == "persist"

    def test_extra_data(self):
        record = _record()
        record.data = {"corpus_size": 8}
        parsed = json.loads(JsonFormatter().format(record))
        assert parsed["data"] == {"corpus_size": 8}

    def test_exception(self):
        try:
            raise RuntimeError("boom")
        except RuntimeError:
            import sys
            record = logging.LogRecord(
                name="test", level=logging.ERROR, pathname="", lineno=0,
                msg="failed", args=(), exc_info=sys.exc_info(),
            )
        parsed = json.loads(JsonFormatter().format(record))
        assert "RuntimeError: boom" in parsed["exception"]


class TestTextFormatter:
    def setup_method(self):
        clear_context()

    def teardown_method(self):
        clear_context()

    def test_format_basic(self):
        output = TextFormatter().format(_record("Hello text"))
        assert "Hello text" in output
        assert "INFO" in output

    def test_format_with_context(self):
        set_tool_context("search")
        set_persona_context("person:x", "persist")
        output = TextFormatter().format(_record())
        assert "[search]" in output
        assert "<person:x>" in output
        assert "(persist)" in output


class TestGetLogger:
    def test_returns_logger(self):
        logger = get_logger("test_module")
        assert logger.name == "sevenpools.test_module"


class TestSetupLogging:
    def test_no_handler_stacking(self):
        setup_logging(level="DEBUG", log_format="text")
        root = setup_logging(level="INFO", log_format="json")
        assert len(root.handlers) == 1
        assert isinstance(root.handlers[0].formatter, JsonFormatter)
        assert root.level == logging.INFO

    def test_file_handler(self, tmp_path):
        log_file = tmp_path / "logs" / "sevenpools.log"
        root = setup_logging(log_file=str(log_file))
        try:
            assert len(root.handlers) == 2
            assert log_file.parent.exists()
        finally:
            for handler in root.handlers:
                handler.close()
            root.handlers.clear()
