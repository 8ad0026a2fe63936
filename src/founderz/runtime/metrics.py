from __future__ import annotations

import os
import threading
import time
from typing import Dict


_lock = threading.Lock()
_counters: Dict[str, int] = {}
_started_ms = int(time.time() * 1000)

# Outcome counter names. Keep stable; dashboards key on them.
TX_SUBMITTED = "tx_submitted_total"
TX_EVALUATED = "tx_evaluated_total"
TX_COMMITTED = "tx_committed_total"
TX_DISCARDED = "tx_discarded_total"
TX_CONFLICT_RETRIES = "tx_conflict_retries_total"
TX_FAULTS = "tx_faults_total"


def metrics_enabled() -> bool:
    v = (os.environ.get("FOUNDERZ_METRICS_ENABLED") or "").strip().lower()
    if not v:
        return False
    return v in {"1", "true", "yes", "y", "on"}


def inc_counter(name: str, value: int = 1) -> None:
    n = str(name or "").strip()
    if not n:
        return
    with _lock:
        _counters[n] = int(_counters.get(n, 0)) + int(value)


def outcome_counter(function: str, outcome: str) -> str:
    """Per-function outcome counter, e.g. `mint_already_exists_total`."""
    return f"{str(function).strip().lower()}_{str(outcome).strip().lower()}_total"


def snapshot() -> dict:
    with _lock:
        now = int(time.time() * 1000)
        return {
            "ts_ms": now,
            "started_ms": int(_started_ms),
            "uptime_ms": now - int(_started_ms),
            "counters": dict(_counters),
        }


def reset() -> None:
    with _lock:
        _counters.clear()


def format_prometheus(prefix: str = "founderz_") -> str:
    """Prometheus exposition text. Integer counters only."""
    pre = str(prefix or "").strip() or "founderz_"
    snap = snapshot()
    lines: list[str] = [f"{pre}uptime_ms {int(snap.get('uptime_ms') or 0)}"]

    counters = snap["counters"]
    for name in sorted(counters.keys()):
        lines.append(f"{pre}{name} {int(counters[name])}")

    return "\n".join(lines) + "\n"
