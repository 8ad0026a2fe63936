# src/founderz/runtime/state_store.py
from __future__ import annotations

"""founderz.runtime.state_store

Transactional key/value world state that the agreement contract runs on.

Contract consumed by the core (StateTx):
  - get_state(key) -> str | None
  - put_state(key, value) -> None

Lifecycle owned by the host (StateStore):
  - begin() -> StateTx
  - tx.commit() / tx.discard()   (single-use; afterwards the handle is closed)
  - transaction()                 context manager: commit on exit, discard on error

Two implementations:
  - MemoryStateStore: optimistic concurrency. Reads record the version seen,
    writes are buffered; commit() validates the read set under a lock and
    raises CommitConflict if any key moved.
  - SqliteStateStore: every handle is a BEGIN IMMEDIATE write transaction,
    so the database writer lock serializes same-key units of work.
"""

import threading
from contextlib import contextmanager
from typing import Dict, Iterator, Optional, Protocol, Tuple

from founderz.runtime.errors import CommitConflict, TxClosedError
from founderz.runtime.sqlite_db import SqliteDB, SqliteWriteTx, _now_ms


class StateTx(Protocol):
    def get_state(self, key: str) -> Optional[str]: ...

    def put_state(self, key: str, value: str) -> None: ...

    def commit(self) -> None: ...

    def discard(self) -> None: ...


class StateStore(Protocol):
    kind: str

    def begin(self) -> StateTx: ...

    def transaction(self) -> Iterator[StateTx]: ...


_ACTIVE = "active"
_COMMITTED = "committed"
_DISCARDED = "discarded"


@contextmanager
def _run_tx(tx: StateTx) -> Iterator[StateTx]:
    try:
        yield tx
    except BaseException:
        tx.discard()
        raise
    tx.commit()


# ---------------------------------------------------------------------------
# In-memory store (optimistic)
# ---------------------------------------------------------------------------


class MemoryStateTx:
    def __init__(self, store: "MemoryStateStore") -> None:
        self._store = store
        self._reads: Dict[str, int] = {}
        self._writes: Dict[str, str] = {}
        self._state = _ACTIVE

    def _check_active(self) -> None:
        if self._state != _ACTIVE:
            raise TxClosedError(self._state)

    @property
    def state(self) -> str:
        return self._state

    def get_state(self, key: str) -> Optional[str]:
        self._check_active()
        if key in self._writes:
            return self._writes[key]
        value, version = self._store._read(key)
        self._reads.setdefault(key, version)
        return value

    def put_state(self, key: str, value: str) -> None:
        self._check_active()
        self._writes[key] = str(value)

    def commit(self) -> None:
        self._check_active()
        try:
            self._store._apply(self._reads, self._writes)
        except CommitConflict:
            self._state = _DISCARDED
            raise
        self._state = _COMMITTED

    def discard(self) -> None:
        if self._state == _ACTIVE:
            self._state = _DISCARDED


class MemoryStateStore:
    """Process-local world state. Safe to share across threads."""

    kind = "memory"

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._data: Dict[str, Tuple[str, int]] = {}

    def _read(self, key: str) -> Tuple[Optional[str], int]:
        with self._lock:
            rec = self._data.get(key)
        if rec is None:
            return None, 0
        return rec

    def _apply(self, reads: Dict[str, int], writes: Dict[str, str]) -> None:
        with self._lock:
            for key, seen in reads.items():
                rec = self._data.get(key)
                current = rec[1] if rec is not None else 0
                if current != seen:
                    raise CommitConflict(key, seen=seen, current=current)
            for key, value in writes.items():
                rec = self._data.get(key)
                version = rec[1] if rec is not None else 0
                self._data[key] = (value, version + 1)

    def version(self, key: str) -> int:
        return self._read(key)[1]

    def begin(self) -> MemoryStateTx:
        return MemoryStateTx(self)

    def transaction(self):
        return _run_tx(self.begin())


# ---------------------------------------------------------------------------
# SQLite store (pessimistic)
# ---------------------------------------------------------------------------


class SqliteStateTx:
    def __init__(self, wtx: SqliteWriteTx) -> None:
        self._wtx = wtx
        self._state = _ACTIVE

    def _check_active(self) -> None:
        if self._state != _ACTIVE:
            raise TxClosedError(self._state)

    @property
    def state(self) -> str:
        return self._state

    def get_state(self, key: str) -> Optional[str]:
        self._check_active()
        row = self._wtx.con.execute("SELECT value FROM world_state WHERE key=? LIMIT 1;", (key,)).fetchone()
        if row is None:
            return None
        return str(row["value"])

    def put_state(self, key: str, value: str) -> None:
        self._check_active()
        self._wtx.con.execute(
            """
            INSERT INTO world_state(key, value, version, updated_ts_ms)
            VALUES(?, ?, 1, ?)
            ON CONFLICT(key) DO UPDATE SET
              value=excluded.value,
              version=world_state.version + 1,
              updated_ts_ms=excluded.updated_ts_ms;
            """,
            (key, str(value), _now_ms()),
        )

    def commit(self) -> None:
        self._check_active()
        try:
            self._wtx.commit()
        finally:
            # A failed COMMIT has already been rolled back by SqliteWriteTx.
            self._state = _COMMITTED if self._wtx.committed else _DISCARDED

    def discard(self) -> None:
        if self._state == _ACTIVE:
            self._wtx.rollback()
            self._state = _DISCARDED


class SqliteStateStore:
    """World state persisted in the `world_state` table of a SqliteDB."""

    kind = "sqlite"

    def __init__(self, *, db: SqliteDB) -> None:
        self._db = db
        self._db.init_schema()

    @property
    def db(self) -> SqliteDB:
        return self._db

    def version(self, key: str) -> int:
        with self._db.connection() as con:
            row = con.execute("SELECT version FROM world_state WHERE key=? LIMIT 1;", (key,)).fetchone()
            return int(row["version"]) if row is not None else 0

    def begin(self) -> SqliteStateTx:
        return SqliteStateTx(self._db.begin_write())

    def transaction(self):
        return _run_tx(self.begin())
