from __future__ import annotations

import io
import logging

import pytest

from money_tracker.logging_setup import _parse_level, configure_logging, get_logger, reset_logging


@pytest.mark.parametrize(
    ("level", "expected"),
    [
        (logging.DEBUG, logging.DEBUG),
        ("warning", logging.WARNING),
        (" Error ", logging.ERROR),
        ("15", 15),
        ("not-a-level", logging.INFO),
    ],
)
def test_parse_level(level: int | str, expected: int) -> None:
    assert _parse_level(level) == expected


def test_parse_level_reads_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("MONEY_LOG_LEVEL", "debug")
    assert _parse_level(None) == logging.DEBUG

    monkeypatch.setenv("MONEY_LOG_LEVEL", "bogus")
    assert _parse_level(None) == logging.INFO

    monkeypatch.delenv("MONEY_LOG_LEVEL")
    assert _parse_level(None) == logging.INFO


def test_get_logger_returns_named_child() -> None:
    logger = get_logger("money_tracker.reordering")

    assert logger.name == "money_tracker.reordering"
    assert logging.getLogger("money_tracker").handlers


def test_configure_logging_replaces_its_handler() -> None:
    first, second = io.StringIO(), io.StringIO()
    logger = get_logger("money_tracker.accounts")

    configure_logging("WARNING", fmt="%(levelname)s %(message)s", stream=first)
    logger.info("hidden")
    logger.warning("to first")
    configure_logging("debug", fmt="%(levelname)s %(message)s", stream=second)
    logger.debug("to second")

    assert first.getvalue() == "WARNING to first\n"
    assert second.getvalue() == "DEBUG to second\n"
    pkg_logger = logging.getLogger("money_tracker")
    streams = [h.stream for h in pkg_logger.handlers if isinstance(h, logging.StreamHandler)]
    assert streams == [second]


def test_reset_logging_restores_propagation() -> None:
    configure_logging("INFO", stream=io.StringIO())
    assert logging.getLogger("money_tracker").propagate is False

    reset_logging()

    pkg_logger = logging.getLogger("money_tracker")
    assert pkg_logger.propagate is True
    assert pkg_logger.level == logging.NOTSET
    assert not any(isinstance(h, logging.StreamHandler) for h in pkg_logger.handlers)
