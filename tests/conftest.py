"""Pytest configuration for test isolation.

Services share one process-wide SQLAlchemy engine (``db.client``). Each
database test gets its own SQLite file under ``tmp_path`` and the engine is
disposed afterwards so the next test can bind a fresh URL.
"""

from __future__ import annotations

import sys
from collections.abc import Iterator
from pathlib import Path

import pytest

# Make the workspace packages importable without an editable install.
_ROOT = Path(__file__).resolve().parents[1]
sys.path[:0] = [
    p
    for p in [str(_ROOT / "packages"), str(_ROOT / "libs/db/src"), str(_ROOT)]
    if p not in sys.path
]

from db.client import dispose_engine  # noqa: E402
from money_tracker.logging_setup import reset_logging  # noqa: E402

from tests.helpers.db import bootstrap_sqlite_db  # noqa: E402


@pytest.fixture(autouse=True)
def _restore_logging() -> Iterator[None]:
    """CLI tests configure package logging; hand it back to pytest afterwards."""

    yield
    reset_logging()


@pytest.fixture
def db_url(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Iterator[str]:
    """Fresh file-backed SQLite database, also exported as ``DATABASE_URL``."""

    url = bootstrap_sqlite_db(tmp_path / "money.db")
    monkeypatch.setenv("DATABASE_URL", url)
    yield url
    dispose_engine()
