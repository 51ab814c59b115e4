"""
Integration tests for monitor/logger.py -- structured logging.
"""

import json
import logging
import os
import sys

from monitor.logger import JSONFormatter, ConsoleFormatter, setup_logging


def _record(msg, level=logging.INFO, name="pricing.engine", args=(), exc_info=None):
    return logging.LogRecord(
        name=name, level=level, pathname="engine.py",
        lineno=1, msg=msg, args=args, exc_info=exc_info,
    )


class TestJSONFormatter:
    def test_format_basic_message(self):
        parsed = json.loads(JSONFormatter().format(_record("Quote %s", args=("r1",))))
        assert parsed["level"] == "INFO"
        assert parsed["msg"] == "Quote r1"
        assert parsed["logger"] == "pricing.engine"
        assert "ts" in parsed

    def test_format_with_exception(self):
        try:
            raise ValueError("bad split")
        except ValueError:
            record = _record("Failed", level=logging.ERROR, exc_info=sys.exc_info())
        parsed = json.loads(JSONFormatter().format(record))
        assert parsed["level"] == "ERROR"
        assert "bad split" in parsed["exception"]


class TestConsoleFormatter:
    def test_format_basic_message(self):
        output = ConsoleFormatter().format(_record("Hello %s", args=("world",)))
        assert "INF" in output
        assert "[engine]" in output
        assert "Hello world" in output

    def test_format_critical(self):
        output = ConsoleFormatter().format(
            _record("Split failed", level=logging.CRITICAL, name="settlement.splitter")
        )
        assert "CRT" in output
        assert "[splitter]" in output

    def test_format_exception_on_next_line(self):
        try:
            raise ValueError("store down")
        except ValueError:
            record = _record("Lookup failed", level=logging.WARNING, exc_info=sys.exc_info())
        first, second = ConsoleFormatter().format(record).split("\n")
        assert "WRN" in first
        assert second.strip() == "store down"


def _cleanup_handlers():
    """Close and remove file and console handlers from root logger."""
    root = logging.getLogger()
    for h in root.handlers[:]:
        if isinstance(h, logging.FileHandler) or isinstance(h.formatter, ConsoleFormatter):
            h.close()
            root.removeHandler(h)


class TestSetupLogging:
    def teardown_method(self):
        _cleanup_handlers()

    def test_root_always_debug(self):
        setup_logging("WARNING")
        assert logging.getLogger().level == logging.DEBUG

    def test_console_handler_respects_level(self):
        setup_logging("WARNING")
        root = logging.getLogger()
        console_handlers = [
            h for h in root.handlers if isinstance(h, logging.StreamHandler)
            and not isinstance(h, logging.FileHandler)
        ]
        assert len(console_handlers) == 1
        assert console_handlers[0].level == logging.WARNING

    def test_no_file_without_log_dir(self):
        assert setup_logging("INFO") is None
        root = logging.getLogger()
        assert not any(isinstance(h, logging.FileHandler) for h in root.handlers)

    def test_returns_log_path(self, tmp_path):
        log_path = setup_logging("INFO", log_dir=str(tmp_path / "logs"))
        assert log_path.endswith(".log")
        assert "fees_" in log_path
        assert os.path.exists(log_path)

    def test_verbose_file_captures_debug(self, tmp_path):
        log_path = setup_logging("WARNING", log_dir=str(tmp_path))
        logging.getLogger("pricing.engine").debug("desired fee computed")
        _cleanup_handlers()
        with open(log_path) as f:
            assert "desired fee computed" in f.read()

    def test_json_handler_attached_when_file_specified(self, tmp_path):
        path = tmp_path / "fees.jsonl"
        setup_logging("INFO", json_log_file=str(path))
        root = logging.getLogger()
        assert any(isinstance(h.formatter, JSONFormatter) for h in root.handlers)
        assert any(isinstance(h.formatter, ConsoleFormatter) for h in root.handlers)

        logging.getLogger("settlement.splitter").info("Split r1")
        _cleanup_handlers()
        line = path.read_text().strip().splitlines()[-1]
        assert json.loads(line)["logger"] == "settlement.splitter"

    def test_no_json_handler_without_file(self):
        setup_logging("INFO")
        root = logging.getLogger()
        assert not any(isinstance(h.formatter, JSONFormatter) for h in root.handlers)
