"""Logging configuration for the setlist manager.

All project loggers hang off the ``setlists`` logger so one handler covers
the store, the routes and the client service.
"""

import logging

ROOT_LOGGER_NAME = "setlists"

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)-24s | %(message)s"


def setup_logging(level: str | int = "INFO") -> logging.Logger:
    """Set up project logging on stderr.

    Safe to call more than once: the handler installed by a previous call is
    replaced rather than duplicated.

    Args:
        level: Level name or number for the project logger

    Returns:
        Configured project logger
    """
    logger = logging.getLogger(ROOT_LOGGER_NAME)
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO
    logger.setLevel(level)

    for handler in list(logger.handlers):
        if getattr(handler, "_setlists_handler", False):
            logger.removeHandler(handler)

    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
    handler._setlists_handler = True
    logger.addHandler(handler)

    return logger


def get_logger(name: str) -> logging.Logger:
    """Get a logger for a specific module.

    Args:
        name: Module name (usually __name__)

    Returns:
        Logger instance
    """
    return logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}")
