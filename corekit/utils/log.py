"""
Logging setup for corekit.

Library modules log through logging.getLogger(__name__) and never attach
handlers themselves. get_logger() is the one place that does, for scripts and
applications that want corekit's output on the console at the configured level.
"""

import logging
import sys
from typing import Optional

from corekit.config.settings import get_settings

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def get_logger(name: str, level: Optional[str] = None) -> logging.Logger:
    """
    Return a logger with a console handler attached.

    Args:
        name: Logger name (usually __name__ or "corekit").
        level: Level name; defaults to LoggingSettings.level from the environment.

    Returns:
        Configured logger. Calling this again for the same name updates the
        level but never adds a second handler.
    """
    if level is None:
        numeric_level = get_settings().logging.numeric_level
    else:
        numeric_level = getattr(logging, level.upper(), logging.INFO)

    logger = logging.getLogger(name)
    logger.setLevel(numeric_level)

    # Avoid duplicate output when called more than once
    if not logger.handlers:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))
        logger.addHandler(console_handler)

    for handler in logger.handlers:
        handler.setLevel(numeric_level)

    return logger
