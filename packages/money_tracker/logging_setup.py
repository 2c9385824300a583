"""Logging for the ``money_tracker`` package.

Library modules call ``get_logger("money_tracker.<module>")`` and never attach
handlers. Entry points (the CLI) call :func:`configure_logging`, which owns a
single ``StreamHandler`` on the package root logger. Each CLI invocation may
ask for a different level (``--log-level`` or ``MONEY_LOG_LEVEL``), so a
repeated call swaps the handler instead of stacking another one, and
:func:`reset_logging` hands the package back to the host's logging tree.
"""

from __future__ import annotations

import logging
import os
import sys
from typing import IO

_PKG_LOGGER_NAME = "money_tracker"
_DEFAULT_FORMAT = "%(asctime)s %(name)s %(levelname)s %(message)s"

# The handler installed by configure_logging, if any.
_handler: logging.Handler | None = None


def _parse_level(level: int | str | None) -> int:
    if level is None:
        level = os.getenv("MONEY_LOG_LEVEL")
    if isinstance(level, int):
        return level
    if isinstance(level, str):
        level = level.strip().upper()
        if level.isdigit():
            return int(level)
        numeric = getattr(logging, level, None)
        if isinstance(numeric, int):
            return numeric
    return logging.INFO


def configure_logging(
    level: int | str | None = None,
    *,
    fmt: str | None = None,
    stream: IO[str] | None = None,
) -> logging.Handler:
    """Send package logs to ``stream`` (``sys.stderr`` at call time) at ``level``.

    ``level`` falls back to ``MONEY_LOG_LEVEL``, then ``INFO``. Returns the
    installed handler.
    """

    global _handler
    logger = logging.getLogger(_PKG_LOGGER_NAME)
    for h in list(logger.handlers):
        if h is _handler or isinstance(h, logging.NullHandler):
            logger.removeHandler(h)

    resolved = _parse_level(level)
    handler = logging.StreamHandler(stream if stream is not None else sys.stderr)
    handler.setLevel(resolved)
    handler.setFormatter(logging.Formatter(fmt or _DEFAULT_FORMAT))

    logger.setLevel(resolved)
    logger.addHandler(handler)
    logger.propagate = False
    _handler = handler
    return handler


def reset_logging() -> None:
    """Undo :func:`configure_logging`: records propagate to the root logger again."""

    global _handler
    logger = logging.getLogger(_PKG_LOGGER_NAME)
    if _handler is not None:
        logger.removeHandler(_handler)
        _handler = None
    logger.setLevel(logging.NOTSET)
    logger.propagate = True


def get_logger(name: str) -> logging.Logger:
    pkg_logger = logging.getLogger(_PKG_LOGGER_NAME)
    if _handler is None and not pkg_logger.handlers:
        pkg_logger.addHandler(logging.NullHandler())
    return logging.getLogger(name)
