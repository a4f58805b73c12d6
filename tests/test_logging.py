# Area: Shared Tests
"""Tests for logging setup, formatters and integrity error reporting."""

import json
import logging
import tempfile
from pathlib import Path

import pytest

from traitor_sync._shared.logging_config import log_integrity_error, setup_logging
from traitor_sync._shared.logging_formatters import JSONFormatter, TerminalFormatter
from traitor_sync.errors import IntegrityError


@pytest.fixture
def package_logger():
    pkg_logger = logging.getLogger("traitor_sync")
    saved = (list(pkg_logger.handlers), pkg_logger.level, pkg_logger.propagate)
    yield pkg_logger
    for handler in list(pkg_logger.handlers):
        pkg_logger.removeHandler(handler)
        handler.close()
    handlers, level, propagate = saved
    for handler in handlers:
        pkg_logger.addHandler(handler)
    pkg_logger.setLevel(level)
    pkg_logger.propagate = propagate


def make_record(msg="hello", level=logging.INFO, **extra):
    record = logging.LogRecord("traitor_sync.test", level, __file__, 1, msg, None, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestFormatters:
    """Tests for TerminalFormatter and JSONFormatter."""

    def test_terminal_colors_copy_only(self):
        """Test coloring leaves the original record untouched."""
        formatter = TerminalFormatter(fmt="%(levelname)s %(message)s")
        record = make_record(level=logging.WARNING)
        line = formatter.format(record)
        assert "\033[33m" in line
        assert record.levelname == "WARNING"

    def test_terminal_shows_context(self):
        """Test session and player extras are appended."""
        formatter = TerminalFormatter(fmt="%(message)s")
        line = formatter.format(make_record(session_id="s1", player="Ada"))
        assert line == "hello [session_id=s1 player=Ada]"

    def test_json_fields(self):
        """Test one JSON object with the context fields."""
        data = json.loads(JSONFormatter().format(make_record(session_id="s1")))
        assert data["level"] == "INFO"
        assert data["logger"] == "traitor_sync.test"
        assert data["message"] == "hello"
        assert data["session_id"] == "s1"
        assert "player" not in data


class TestSetupLogging:
    """Tests for setup_logging()."""

    def test_writes_json_lines(self, package_logger):
        """Test records land in the file as JSON lines."""
        with tempfile.TemporaryDirectory() as tmpdir:
            log_path = Path(tmpdir) / "logs" / "sync.log"
            setup_logging(str(log_path), "DEBUG")
            logging.getLogger("traitor_sync.sync.engine").info(
                "joined", extra={"session_id": "s1"}
            )
            for handler in package_logger.handlers:
                handler.flush()
            lines = log_path.read_text(encoding="utf-8").strip().splitlines()
            for handler in list(package_logger.handlers):
                package_logger.removeHandler(handler)
                handler.close()
        entry = json.loads(lines[-1])
        assert entry["message"] == "joined"
        assert entry["session_id"] == "s1"
        assert entry["logger"] == "traitor_sync.sync.engine"

    def test_replaces_handlers(self, package_logger):
        """Test calling setup twice does not duplicate handlers."""
        setup_logging("", logging.INFO)
        setup_logging("", logging.WARNING)
        assert len(package_logger.handlers) == 1
        assert package_logger.level == logging.WARNING
        assert package_logger.propagate is False


class TestIntegrityErrors:
    """Tests for IntegrityError formatting and reporting."""

    def test_format_error_log(self):
        """Test the block names the session and details."""
        error = IntegrityError("no traitors left", "s1", {"alive_traitors": 0})
        block = error.format_error_log()
        assert "SESSION HALTED" in block
        assert "INTEGRITY_VIOLATION" in block
        assert "s1" in block
        assert '"alive_traitors": 0' in block

    def test_log_integrity_error(self, package_logger, capsys):
        """Test the block goes to stderr and a CRITICAL record is logged."""
        records = []

        class Collect(logging.Handler):
            def emit(self, record):
                records.append(record)

        package_logger.addHandler(Collect())
        package_logger.setLevel(logging.DEBUG)
        log_integrity_error(IntegrityError("broken", "s9"))
        assert "broken" in capsys.readouterr().err
        assert records[-1].levelno == logging.CRITICAL
        assert records[-1].session_id == "s9"
