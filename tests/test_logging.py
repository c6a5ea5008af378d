"""
Tests for logging setup
"""
import io
import logging

import pytest

from gironaneta.core.logging import (
    APP_LOGGER,
    HANDLER_NAME,
    resolve_level,
    setup_logging,
)


class TestResolveLevel:

    def test_case_insensitive(self):
        assert resolve_level("debug") == logging.DEBUG
        assert resolve_level(" Warning ") == logging.WARNING

    def test_unknown_level(self):
        with pytest.raises(ValueError):
            resolve_level("loud")


class TestSetupLogging:
    """Test suite for setup_logging."""

    @pytest.fixture(autouse=True)
    def restore_logger(self):
        logger = logging.getLogger(APP_LOGGER)
        handlers, level = list(logger.handlers), logger.level
        yield
        logger.handlers = handlers
        logger.setLevel(level)

    def test_writes_to_stream(self):
        """Test records reach the given stream in the pipe-separated format."""
        stream = io.StringIO()
        logger = setup_logging("INFO", stream=stream)

        logging.getLogger("gironaneta.dispatch").info("Report abc sent")

        line = stream.getvalue()
        assert logger.name == APP_LOGGER
        assert "| INFO     | gironaneta.dispatch:" in line
        assert line.rstrip().endswith("| Report abc sent")

    def test_level_filters(self):
        stream = io.StringIO()
        setup_logging("warning", stream=stream)

        logging.getLogger("gironaneta.api").info("hidden")
        logging.getLogger("gironaneta.api").warning("shown")

        assert "hidden" not in stream.getvalue()
        assert "shown" in stream.getvalue()

    def test_repeat_setup_keeps_one_handler(self):
        """Test calling setup twice does not duplicate output."""
        first, second = io.StringIO(), io.StringIO()
        setup_logging("INFO", stream=first)
        logger = setup_logging("INFO", stream=second)

        logger.info("once")

        named = [h for h in logger.handlers if h.get_name() == HANDLER_NAME]
        assert len(named) == 1
        assert first.getvalue() == ""
        assert second.getvalue().count("once") == 1

    def test_quiets_http_clients(self):
        setup_logging("DEBUG", stream=io.StringIO())
        assert logging.getLogger("httpx").level == logging.WARNING
        assert logging.getLogger("sqlalchemy.engine").level == logging.WARNING

    def test_default_level_from_settings(self, monkeypatch, test_settings):
        monkeypatch.setattr(test_settings, "log_level", "ERROR")
        logger = setup_logging(stream=io.StringIO())
        assert logger.level == logging.ERROR
