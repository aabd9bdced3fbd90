"""Logging configuration for m2handler applications.

The library itself only creates loggers; applications (and the
``python -m m2handler`` launcher) call :func:`setup_logging` once at startup.
"""

import logging
import sys

FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s:%(funcName)s:%(lineno)d | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

_handler = None


def setup_logging(level=logging.INFO, stream=None) -> logging.Handler:
    """
    Send log messages at *level* and above to *stream* (default: stdout).
    Calling this again replaces the handler installed by the previous call.

    Returns the installed handler.
    """
    global _handler

    if isinstance(level, str):
        level = level.upper()

    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    if _handler is not None:
        root_logger.removeHandler(_handler)

    if stream is None:
        stream = sys.stdout

    console_handler = logging.StreamHandler(stream)
    console_handler.setLevel(level)
    console_handler.setFormatter(logging.Formatter(FORMAT, datefmt=DATE_FORMAT))

    root_logger.addHandler(console_handler)
    _handler = console_handler

    return console_handler

