"""Loggers for the tutor package, formatted like uvicorn's own output."""

import logging
from typing import Optional, Union

from uvicorn.logging import DefaultFormatter

from tutor.configs import settings

FORMAT = "%(levelprefix)s %(asctime)s [%(threadName)s] [%(name)s] %(message)s"


def get_logger(name: str = __name__, level: Optional[Union[int, str]] = None) -> logging.Logger:
    """Return a logger writing to stderr, at LOG_LEVEL unless `level` is given."""
    level = level if level is not None else settings.LOG_LEVEL.upper()
    logger = logging.getLogger(name)
    logger.setLevel(level)

    if not logger.handlers:
        handler = logging.StreamHandler()
        formatter = DefaultFormatter(FORMAT, datefmt="%Y-%m-%d %H:%M:%S")
        handler.setFormatter(formatter)
        logger.addHandler(handler)
        logger.propagate = False

    return logger
