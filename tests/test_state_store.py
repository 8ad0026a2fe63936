from __future__ import annotations

from pathlib import Path
from typing import Any

import pytest

from founderz.runtime.errors import CommitConflict, TxClosedError
from founderz.runtime.sqlite_db import SqliteDB
from founderz.runtime.state_store import MemoryStateStore, SqliteStateStore


def test_reads_see_own_writes_before_commit(store: Any) -> None:
    tx = store.begin()
    assert tx.get_state("k") is None
    tx.put_state("k", "v")
    assert tx.get_state("k") == "v"
    tx.commit()

    tx2 = store.begin()
    assert tx2.get_state("k") == "v"
    tx2.discard()


def test_discard_drops_writes(store: Any) -> None:
    tx = store.begin()
    tx.put_state("k", "v")
    tx.discard()

    with store.transaction() as tx2:
        assert tx2.get_state("k") is None


def test_transaction_context_discards_on_exception(store: Any) -> None:
    with pytest.raises(RuntimeError):
        with store.transaction() as tx:
            tx.put_state("k", "v")
            raise RuntimeError("boom")

    with store.transaction() as tx2:
        assert tx2.get_state("k") is None


def test_closed_handle_rejects_use(store: Any) -> None:
    tx = store.begin()
    tx.commit()
    with pytest.raises(TxClosedError) as e:
        tx.get_state("k")
    assert e.value.code == "tx_closed"
    with pytest.raises(TxClosedError):
        tx.put_state("k", "v")
    with pytest.raises(TxClosedError):
        tx.commit()

    # discard after close is a no-op
    tx.discard()
    assert tx.state == "committed"


def test_versions_bump_per_committed_write(store: Any) -> None:
    assert store.version("k") == 0
    with store.transaction() as tx:
        tx.put_state("k", "a")
    assert store.version("k") == 1
    with store.transaction() as tx:
        tx.put_state("k", "b")
    assert store.version("k") == 2


def test_memory_commit_conflict_on_stale_read(memory_store: MemoryStateStore) -> None:
    t1 = memory_store.begin()
    t2 = memory_store.begin()

    assert t1.get_state("k") is None
    assert t2.get_state("k") is None
    t1.put_state("k", "first")
    t2.put_state("k", "second")

    t1.commit()
    with pytest.raises(CommitConflict) as e:
        t2.commit()

    err = e.value
    assert err.code == "mvcc_read_conflict"
    assert err.details == {"key": "k", "seen": 0, "current": 1}
    assert t2.state == "discarded"

    with memory_store.transaction() as tx:
        assert tx.get_state("k") == "first"


def test_memory_blind_writes_do_not_conflict(memory_store: MemoryStateStore) -> None:
    t1 = memory_store.begin()
    t2 = memory_store.begin()
    t1.put_state("k", "a")
    t2.put_state("k", "b")
    t1.commit()
    t2.commit()
    assert memory_store.version("k") == 2


def test_memory_disjoint_keys_do_not_conflict(memory_store: MemoryStateStore) -> None:
    t1 = memory_store.begin()
    t2 = memory_store.begin()
    assert t1.get_state("a") is None
    assert t2.get_state("b") is None
    t1.put_state("a", "1")
    t2.put_state("b", "2")
    t1.commit()
    t2.commit()

    with memory_store.transaction() as tx:
        assert tx.get_state("a") == "1"
        assert tx.get_state("b") == "2"


def test_sqlite_state_survives_reopen(tmp_path: Path) -> None:
    path = str(tmp_path / "founderz.db")

    s1 = SqliteStateStore(db=SqliteDB(path=path))
    with s1.transaction() as tx:
        tx.put_state("contract-42", "terms:v1")

    s2 = SqliteStateStore(db=SqliteDB(path=path))
    with s2.transaction() as tx:
        assert tx.get_state("contract-42") == "terms:v1"
    assert s2.version("contract-42") == 1


def test_sqlite_write_is_invisible_until_commit(sqlite_store: SqliteStateStore) -> None:
    tx = sqlite_store.begin()
    tx.put_state("k", "v")

    # A plain reader connection sees the last committed snapshot (WAL).
    with sqlite_store.db.connection() as con:
        assert con.execute("SELECT value FROM world_state WHERE key='k';").fetchone() is None

    tx.commit()
    with sqlite_store.db.connection() as con:
        row = con.execute("SELECT value FROM world_state WHERE key='k';").fetchone()
        assert row is not None
        assert row["value"] == "v"
