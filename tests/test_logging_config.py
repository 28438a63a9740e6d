"""Tests for logging setup."""

import io
import logging
import os
from unittest.mock import patch

import pytest
from rich.console import Console
from rich.logging import RichHandler

from testrail_uploader.logging_config import LOGGER_NAME, configure_logging


@pytest.fixture(autouse=True)
def reset_package_logger():
    """Restore the package logger after each test."""
    logger = logging.getLogger(LOGGER_NAME)
    handlers = list(logger.handlers)
    level = logger.level
    yield
    logger.handlers[:] = handlers
    logger.setLevel(level)


def rich_handlers(logger: logging.Logger) -> list[logging.Handler]:
    return [h for h in logger.handlers if isinstance(h, RichHandler)]


class TestConfigureLogging:
    """Tests for configure_logging."""

    def test_attaches_one_rich_handler(self):
        """Repeated calls keep a single RichHandler."""
        logger = configure_logging("DEBUG")
        configure_logging("DEBUG")

        assert logger.name == LOGGER_NAME
        assert len(rich_handlers(logger)) == 1

    def test_explicit_level(self):
        """An explicit level name is applied."""
        assert configure_logging("warning").level == logging.WARNING

    def test_level_from_environment(self):
        """TESTRAIL_LOG_LEVEL is used when no level is given."""
        with patch.dict(os.environ, {"TESTRAIL_LOG_LEVEL": "ERROR"}):
            assert configure_logging().level == logging.ERROR

    def test_default_level_is_info(self):
        """INFO is the default level."""
        env = {k: v for k, v in os.environ.items() if k != "TESTRAIL_LOG_LEVEL"}
        with patch.dict(os.environ, env, clear=True):
            assert configure_logging().level == logging.INFO

    def test_unknown_level_falls_back_to_info(self):
        """An unrecognised level name falls back to INFO."""
        assert configure_logging("chatty").level == logging.INFO

    def test_module_loggers_reach_console(self):
        """Records from package modules are rendered to the console."""
        buffer = io.StringIO()
        configure_logging("INFO", console=Console(file=buffer, width=200))

        logging.getLogger("testrail_uploader.client").info("Reporting to plan 7")

        assert "Reporting to plan 7" in buffer.getvalue()
