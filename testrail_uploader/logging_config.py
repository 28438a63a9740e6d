"""Console logging for the TestRail uploader.

Library modules only call logging.getLogger(__name__); applications call
configure_logging() once to get rich-formatted output.
"""

import logging
import os
from typing import Optional, Union

from rich.console import Console
from rich.logging import RichHandler

LOGGER_NAME = "testrail_uploader"
LOG_LEVEL_ENV = "TESTRAIL_LOG_LEVEL"


def configure_logging(level: Optional[Union[int, str]] = None, console: Optional[Console] = None) -> logging.Logger:
    """Attach a RichHandler to the package logger.

    Calling this again only updates the level.

    Args:
        level: Log level name or number. Defaults to the TESTRAIL_LOG_LEVEL
               environment variable, then INFO.
        console: Rich console to write to (stderr by default).

    Returns:
        The configured package logger.
    """
    if level is None:
        level = os.environ.get(LOG_LEVEL_ENV, "INFO")
    if isinstance(level, str):
        level = logging.getLevelName(level.strip().upper())
        if not isinstance(level, int):
            level = logging.INFO

    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(level)

    if not any(isinstance(handler, RichHandler) for handler in logger.handlers):
        handler = RichHandler(
            console=console or Console(stderr=True),
            show_path=False,
            rich_tracebacks=True,
        )
        handler.setFormatter(logging.Formatter("%(name)s - %(message)s"))
        logger.addHandler(handler)

    return logger
