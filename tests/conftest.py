from __future__ import annotations

import pytest

from farmdoc.core.settings import get_settings
from farmdoc.storage.snapshots import InMemorySnapshotStore


@pytest.fixture(autouse=True)
def _isolated_settings(tmp_path, monkeypatch):
    monkeypatch.setenv("FARMDOC_DATA_DIR", str(tmp_path / "data"))
    monkeypatch.delenv("FARMDOC_FALLBACK_HEADERS", raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def store() -> InMemorySnapshotStore:
    return InMemorySnapshotStore()
