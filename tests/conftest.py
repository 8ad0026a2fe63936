from __future__ import annotations

import sys
from pathlib import Path

import pytest

# Ensure local "src/" takes precedence over any globally-installed "founderz" package.
ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"

src_str = str(SRC)
if src_str not in sys.path:
    sys.path.insert(0, src_str)

from founderz.runtime import metrics  # noqa: E402
from founderz.runtime.sqlite_db import SqliteDB  # noqa: E402
from founderz.runtime.state_store import MemoryStateStore, SqliteStateStore  # noqa: E402


@pytest.fixture(autouse=True)
def _reset_metrics() -> None:
    metrics.reset()


@pytest.fixture
def memory_store() -> MemoryStateStore:
    return MemoryStateStore()


@pytest.fixture
def sqlite_store(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> SqliteStateStore:
    monkeypatch.setenv("FOUNDERZ_MODE", "dev")
    return SqliteStateStore(db=SqliteDB(path=str(tmp_path / "founderz.db")))


@pytest.fixture(params=["memory", "sqlite"])
def store(request: pytest.FixtureRequest):
    """Run a test once against each StateStore implementation."""
    return request.getfixturevalue(f"{request.param}_store")
