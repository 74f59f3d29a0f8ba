#!/usr/bin/env python3
"""Tests for the structured Logger (ztr.infrastructure.logger)."""

import logging
import threading

import pytest

from ztr.infrastructure.logger import LogLevel, Logger, get_logger, set_global_logger


class RecordingHandler(logging.Handler):
    """Handler keeping every record it receives."""

    def __init__(self):
        super().__init__()
        self.records = []

    def emit(self, record):
        self.records.append(record)


@pytest.fixture
def recorder():
    return RecordingHandler()


@pytest.fixture
def logger(recorder):
    return Logger(name="ztr.test.logger", level=LogLevel.DEBUG, handlers=[recorder])


class TestLogLevel:
    """Tests for LogLevel enum."""

    def test_log_levels(self):
        """Test log level values match Python logging."""
        assert LogLevel.DEBUG == logging.DEBUG
        assert LogLevel.INFO == logging.INFO
        assert LogLevel.WARNING == logging.WARNING
        assert LogLevel.ERROR == logging.ERROR
        assert LogLevel.CRITICAL == logging.CRITICAL


class TestLogger:
    """Tests for Logger class."""

    def test_logger_creation(self):
        """Test creating a logger."""
        logger = Logger(name="ztr.test.create", level=LogLevel.WARNING)
        assert logger.name == "ztr.test.create"
        assert logger.get_level() == LogLevel.WARNING
        assert logger.logger.propagate is False
        assert len(logger.logger.handlers) == 1

    def test_set_level_from_string(self, logger):
        """Levels may be given by name, in any case."""
        logger.set_level("warning")
        assert logger.get_level() == LogLevel.WARNING
        assert logger.logger.isEnabledFor(LogLevel.ERROR)
        assert not logger.logger.isEnabledFor(LogLevel.INFO)

    def test_context_appended_to_message(self, logger, recorder):
        """Keyword context is rendered as key=value pairs."""
        logger.info("Walk finished", files=3, pruned=1)
        record = recorder.records[-1]
        assert record.getMessage() == "Walk finished | files=3 pruned=1"
        assert record.context == {"files": 3, "pruned": 1}
        assert record.levelno == logging.INFO

    def test_message_without_context(self, logger, recorder):
        """A bare message is logged unchanged."""
        logger.warning("plain")
        assert recorder.records[-1].getMessage() == "plain"

    def test_add_context_scopes(self, logger, recorder):
        """Pushed context applies inside the block only."""
        with logger.add_context(stage="walk"):
            with logger.add_context(root="/src"):
                logger.debug("inner", path="a")
            logger.debug("outer")
        logger.debug("after")

        messages = [r.getMessage() for r in recorder.records]
        assert messages == [
            "inner | stage=walk root=/src path=a",
            "outer | stage=walk",
            "after",
        ]

    def test_context_is_thread_local(self, logger, recorder):
        """Context pushed on one thread does not leak into another."""
        seen = []

        def worker():
            logger.info("from thread")
            seen.append(recorder.records[-1].getMessage())

        with logger.add_context(stage="main"):
            thread = threading.Thread(target=worker)
            thread.start()
            thread.join()

        assert seen == ["from thread"]

    def test_level_filtering(self, recorder):
        """Records below the level are dropped."""
        logger = Logger(name="ztr.test.filter", level=LogLevel.ERROR, handlers=[recorder])
        logger.info("dropped")
        logger.error("kept")
        assert [r.getMessage() for r in recorder.records] == ["kept"]

    def test_file_handler(self, logger, tmp_path):
        """create_file_handler writes formatted records to disk."""
        log_file = tmp_path / "ztr.log"
        handler = logger.create_file_handler(log_file)
        logger.add_handler(handler)
        try:
            logger.info("to file", key="value")
        finally:
            logger.logger.removeHandler(handler)
            handler.close()

        content = log_file.read_text(encoding="utf-8")
        assert "INFO" in content
        assert "to file | key=value" in content


class TestGlobalLogger:
    """Tests for the process-wide default logger."""

    def test_set_and_get(self, recorder):
        """set_global_logger installs the instance get_logger returns."""
        custom = Logger(name="ztr", handlers=[recorder])
        set_global_logger(custom)
        assert get_logger() is custom

    def test_reset_creates_new_logger(self):
        """After a reset get_logger builds a fresh default."""
        set_global_logger(None)
        first = get_logger()
        assert first.name == "ztr"
        assert get_logger() is first
