# src/founderz/runtime/executor_boot.py

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional

from founderz.runtime.executor import ContractExecutor, RetryPolicy
from founderz.runtime.sqlite_db import SqliteDB
from founderz.runtime.state_store import MemoryStateStore, SqliteStateStore, StateStore

_STORE_KINDS = {"sqlite", "memory"}


@dataclass
class ExecutorBootConfig:
    store: str
    db_path: str
    node_id: str
    chain_id: str


def boot_config_from_env() -> ExecutorBootConfig:
    store = (os.environ.get("FOUNDERZ_STORE") or "sqlite").strip().lower()
    db_path = os.environ.get("FOUNDERZ_DB_PATH", "./data/founderz.db")
    node_id = os.environ.get("FOUNDERZ_NODE_ID", "local-node")
    chain_id = os.environ.get("FOUNDERZ_CHAIN_ID", "founderz-dev")

    return ExecutorBootConfig(
        store=store,
        db_path=db_path,
        node_id=node_id,
        chain_id=chain_id,
    )


def build_store(cfg: ExecutorBootConfig) -> StateStore:
    if cfg.store not in _STORE_KINDS:
        raise ValueError(f"unknown FOUNDERZ_STORE {cfg.store!r}; expected one of {sorted(_STORE_KINDS)}")
    if cfg.store == "memory":
        return MemoryStateStore()
    return SqliteStateStore(db=SqliteDB(path=cfg.db_path))


def build_executor(cfg: Optional[ExecutorBootConfig] = None) -> ContractExecutor:
    """
    Build a ContractExecutor from an explicit boot config or, if omitted,
    from environment variables.

    `founderz.api.app` calls this with no args in production.
    """
    c = cfg or boot_config_from_env()
    return ContractExecutor(
        store=build_store(c),
        chain_id=c.chain_id,
        node_id=c.node_id,
        retry=RetryPolicy.from_env(),
    )
