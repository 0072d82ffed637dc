"""Shared test fixtures for SQLite-based tests."""

from __future__ import annotations

import pytest

from redseen.db import get_engine, init_db


@pytest.fixture()
def engine(tmp_path):
    """Fresh SQLite database file per test with all tables created."""
    eng = get_engine(f"sqlite:///{tmp_path / 'redseen.db'}")
    init_db(eng)
    yield eng
    eng.dispose()
