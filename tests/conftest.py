# tests/conftest.py

"""Shared pytest fixtures for all price_watch tests."""

from collections.abc import Generator
from pathlib import Path

import pytest

from src.config.settings import Settings


@pytest.fixture(autouse=True)
def isolated_db(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch,
) -> Generator[Path, None, None]:
    """Point the default store at a throwaway SQLite file."""
    db_path = tmp_path / "price_watch_test.db"
    monkeypatch.setattr(Settings, "PRICE_DB_PATH", db_path)
    yield db_path
