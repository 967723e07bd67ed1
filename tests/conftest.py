# tests/conftest.py

"""Shared pytest fixtures for all pipeline tests."""

from collections.abc import Generator
from pathlib import Path

import pytest

from src.config.settings import Settings


@pytest.fixture(autouse=True)
def isolated_paths(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch,
) -> Generator[None, None, None]:
    """Point logs, reports and the default database at a temp dir."""
    monkeypatch.setattr(Settings, "LOGS_DIR", tmp_path / "logs")
    monkeypatch.setattr(Settings, "RESULTS_DIR", tmp_path / "results")
    monkeypatch.setattr(
        Settings, "PRICE_DB_PATH", tmp_path / "data" / "test.db",
    )
    yield
