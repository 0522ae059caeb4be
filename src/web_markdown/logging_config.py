"""Logging setup for the web-markdown CLI and server."""

import logging
import sys
from pathlib import Path
from typing import Optional, TextIO, Union

LOGGER_NAME = "web_markdown"
DEFAULT_FORMAT = "%(asctime)s %(levelname)-7s %(name)s: %(message)s"


def _handler(handler: logging.Handler, level: int, formatter: logging.Formatter) -> logging.Handler:
    handler.setLevel(level)
    handler.setFormatter(formatter)
    return handler


def setup_logging(
    level: str = "INFO",
    log_file: Optional[Union[str, Path]] = None,
    format_string: Optional[str] = None,
    force: bool = False,
    stream: Optional[TextIO] = None,
) -> logging.Logger:
    """
    Route ``web_markdown.*`` records to stderr and, optionally, a file.

    stdout is left alone because ``web-markdown convert`` writes the
    Markdown there. Calling this again is a no-op unless ``force`` is set,
    so the server and the CLI can both call it safely.

    Args:
        level: Level name; unknown names mean INFO
        log_file: Also append records to this file
        format_string: Record format (DEFAULT_FORMAT if None)
        force: Replace handlers installed by an earlier call
        stream: Console stream (stderr if None)

    Returns:
        The package logger
    """
    numeric_level = getattr(logging, level.upper(), logging.INFO)
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(numeric_level)

    if logger.handlers and not force:
        return logger

    formatter = logging.Formatter(format_string or DEFAULT_FORMAT)
    handlers = [logging.StreamHandler(stream or sys.stderr)]
    if log_file:
        handlers.append(logging.FileHandler(log_file, encoding="utf-8"))

    logger.handlers.clear()
    for handler in handlers:
        logger.addHandler(_handler(handler, numeric_level, formatter))

    # Records stop here; an application's root handlers would print them twice
    logger.propagate = False
    return logger
