# src/founderz/runtime/sqlite_db.py
from __future__ import annotations

import os
import random
import sqlite3
import time
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator


def _now_ms() -> int:
    return int(time.time() * 1000)


def _env_int(name: str, default: int) -> int:
    try:
        raw = str(os.environ.get(name, "")).strip()
        return int(raw) if raw else int(default)
    except Exception:
        return int(default)


def _is_locked_error(e: Exception) -> bool:
    msg = str(e).lower()
    return ("database is locked" in msg) or ("database is busy" in msg) or ("locked" in msg and "database" in msg)


class _Backoff:
    """Exponential backoff with jitter, bounded by an absolute deadline."""

    def __init__(self) -> None:
        deadline_ms = _env_int("FOUNDERZ_SQLITE_WRITE_DEADLINE_MS", 30_000)
        deadline_ms = max(250, int(deadline_ms))
        self.deadline_ts = _now_ms() + deadline_ms

        base_sleep = float(_env_int("FOUNDERZ_SQLITE_WRITE_BACKOFF_BASE_MS", 5)) / 1000.0
        max_sleep = float(_env_int("FOUNDERZ_SQLITE_WRITE_BACKOFF_MAX_MS", 250)) / 1000.0
        self.base_sleep = max(0.001, base_sleep)
        self.max_sleep = max(self.base_sleep, max_sleep)

    def expired(self) -> bool:
        return _now_ms() >= self.deadline_ts

    def sleep(self, attempt: int) -> None:
        sleep_s = min(self.max_sleep, self.base_sleep * (2.0 ** min(attempt, 8)))
        sleep_s = sleep_s * (0.5 + random.random())  # jitter in [0.5x, 1.5x]
        time.sleep(sleep_s)


def _execute_with_retry(con: sqlite3.Connection, sql: str, backoff: _Backoff) -> None:
    attempt = 0
    while True:
        try:
            con.execute(sql)
            return
        except sqlite3.OperationalError as e:
            if not _is_locked_error(e):
                raise
            if backoff.expired():
                # Lock still held past the write deadline: fail closed.
                raise
            backoff.sleep(attempt)
            attempt += 1


class SqliteWriteTx:
    """An open BEGIN IMMEDIATE transaction on a private connection.

    The connection is closed by commit() or rollback(), whichever comes first.
    """

    def __init__(self, con: sqlite3.Connection, backoff: _Backoff) -> None:
        self.con = con
        self._backoff = backoff
        self.committed = False
        self._closed = False

    def commit(self) -> None:
        if self._closed:
            return
        try:
            # COMMIT can also transiently fail under contention (rare but
            # possible when other connections are checkpointing).
            _execute_with_retry(self.con, "COMMIT;", self._backoff)
            self.committed = True
        except Exception:
            self.rollback()
            raise
        self._close()

    def rollback(self) -> None:
        if self._closed:
            return
        try:
            self.con.execute("ROLLBACK;")
        except sqlite3.Error:
            pass
        self._close()

    def _close(self) -> None:
        self._closed = True
        try:
            self.con.close()
        except sqlite3.Error:
            pass


class SqliteDB:
    """SQLite manager for the agreement world state.

    Design goals:
      - single durable DB file
      - cross-process safe (SQLite locks)
      - cross-thread safe by never sharing connections

    SQLite allows only one writer at a time. Under multi-process workloads,
    BEGIN IMMEDIATE can transiently fail with "database is locked", so
    acquiring the writer lock uses a bounded retry loop.
    """

    SCHEMA_VERSION = 1

    def __init__(self, *, path: str) -> None:
        self.path = str(path)

    @staticmethod
    def _sqlite_synchronous_pragma() -> str:
        """Return a safe PRAGMA synchronous value.

        Defaults:
          - prod        -> FULL
          - dev/testnet -> NORMAL

        Override with FOUNDERZ_SQLITE_SYNCHRONOUS in {OFF,NORMAL,FULL,EXTRA}.
        """
        mode = (os.environ.get("FOUNDERZ_MODE") or "prod").strip().lower()
        default = "FULL" if mode == "prod" else "NORMAL"
        raw = (os.environ.get("FOUNDERZ_SQLITE_SYNCHRONOUS") or default).strip().upper()

        allowed = {"OFF", "NORMAL", "FULL", "EXTRA"}
        if raw not in allowed:
            raw = default
        return raw

    def ensure_parent_dir(self) -> None:
        p = Path(self.path)
        p.parent.mkdir(parents=True, exist_ok=True)

    def _connect(self) -> sqlite3.Connection:
        self.ensure_parent_dir()

        connect_timeout_s = float(_env_int("FOUNDERZ_SQLITE_CONNECT_TIMEOUT_MS", 30_000)) / 1000.0

        con = sqlite3.connect(
            self.path,
            timeout=connect_timeout_s,
            isolation_level=None,  # we manage BEGIN/COMMIT ourselves
            check_same_thread=False,
        )
        con.row_factory = sqlite3.Row

        # WAL keeps readers off the writer's back. Fail closed if it cannot be
        # enabled unless explicitly allowed.
        allow_non_wal = (os.environ.get("FOUNDERZ_SQLITE_ALLOW_NON_WAL") or "").strip().lower() in {"1", "true"}
        row = con.execute("PRAGMA journal_mode=WAL;").fetchone()
        mode = str(row[0]).strip().lower() if row is not None else ""
        if mode and mode != "wal" and not allow_non_wal:
            con.close()
            raise RuntimeError(f"sqlite journal_mode is '{mode}', expected 'wal'")

        con.execute(f"PRAGMA synchronous={self._sqlite_synchronous_pragma()};")
        con.execute("PRAGMA temp_store=MEMORY;")

        busy_ms = _env_int("FOUNDERZ_SQLITE_BUSY_TIMEOUT_MS", int(connect_timeout_s * 1000))
        busy_ms = max(0, int(busy_ms))
        con.execute(f"PRAGMA busy_timeout={busy_ms};")

        return con

    def init_schema(self) -> None:
        with self.write_tx() as con:
            con.execute(
                """
                CREATE TABLE IF NOT EXISTS meta (
                  key TEXT PRIMARY KEY,
                  value TEXT NOT NULL
                );
                """
            )

            con.execute(
                """
                CREATE TABLE IF NOT EXISTS world_state (
                  key TEXT PRIMARY KEY,
                  value TEXT NOT NULL,
                  version INTEGER NOT NULL,
                  updated_ts_ms INTEGER NOT NULL
                );
                """
            )

            row = con.execute("SELECT value FROM meta WHERE key='schema_version' LIMIT 1;").fetchone()
            if row is None:
                con.execute("INSERT INTO meta(key, value) VALUES('schema_version', ?);", (str(self.SCHEMA_VERSION),))
            else:
                try:
                    v = int(str(row["value"]))
                except ValueError:
                    v = 0
                if v != self.SCHEMA_VERSION:
                    raise RuntimeError(
                        f"sqlite schema_version mismatch: have={v} want={self.SCHEMA_VERSION}. "
                        "Refuse to start to avoid corrupting data."
                    )

    @contextmanager
    def connection(self) -> Iterator[sqlite3.Connection]:
        con = self._connect()
        try:
            yield con
        finally:
            try:
                con.close()
            except sqlite3.Error:
                pass

    def begin_write(self) -> SqliteWriteTx:
        """Open a write transaction, retrying BEGIN IMMEDIATE on lock contention.

        Policy:
          - retry BEGIN IMMEDIATE until a deadline
          - exponential backoff with jitter
          - then raise (fail closed) if we cannot acquire within deadline
        """
        backoff = _Backoff()
        con = self._connect()
        try:
            _execute_with_retry(con, "BEGIN IMMEDIATE;", backoff)
        except Exception:
            con.close()
            raise
        return SqliteWriteTx(con, backoff)

    @contextmanager
    def write_tx(self) -> Iterator[sqlite3.Connection]:
        wtx = self.begin_write()
        try:
            yield wtx.con
        except BaseException:
            wtx.rollback()
            raise
        wtx.commit()
