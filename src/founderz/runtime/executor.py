from __future__ import annotations

import logging
import os
import random
import time
from dataclasses import dataclass
from typing import Any, Dict, Optional

from founderz.contract.dispatch import ContractRegistry, Invocation, default_registry, dispatch
from founderz.contract.results import LedgerResult
from founderz.runtime import metrics
from founderz.runtime.errors import ApplyError, CommitConflict
from founderz.runtime.runtime_logging import log_event
from founderz.runtime.state_store import StateStore
from founderz.runtime.tx_id import compute_tx_id_from_invocation

Json = Dict[str, Any]

log = logging.getLogger("founderz.executor")


def _env_int(name: str, default: int) -> int:
    try:
        raw = str(os.environ.get(name, "")).strip()
        return int(raw) if raw else int(default)
    except ValueError:
        return int(default)


@dataclass(frozen=True)
class RetryPolicy:
    """Abort-and-retry policy for commit conflicts."""

    max_attempts: int = 5
    backoff_base_ms: int = 5
    backoff_max_ms: int = 250

    @staticmethod
    def from_env() -> "RetryPolicy":
        return RetryPolicy(
            max_attempts=max(1, _env_int("FOUNDERZ_COMMIT_MAX_ATTEMPTS", 5)),
            backoff_base_ms=max(1, _env_int("FOUNDERZ_COMMIT_BACKOFF_BASE_MS", 5)),
            backoff_max_ms=max(1, _env_int("FOUNDERZ_COMMIT_BACKOFF_MAX_MS", 250)),
        )

    def sleep(self, attempt: int) -> None:
        base = float(self.backoff_base_ms) / 1000.0
        cap = max(base, float(self.backoff_max_ms) / 1000.0)
        sleep_s = min(cap, base * (2.0 ** min(attempt, 8)))
        time.sleep(sleep_s * (0.5 + random.random()))


@dataclass
class Receipt:
    tx_id: str
    function: str
    ok: bool
    payload: Optional[str] = None
    error: Optional[Json] = None
    committed: bool = False
    attempts: int = 1

    def to_json(self) -> Json:
        out: Json = {
            "ok": self.ok,
            "tx_id": self.tx_id,
            "function": self.function,
            "committed": self.committed,
            "attempts": self.attempts,
        }
        if self.ok:
            out["payload"] = self.payload
        else:
            out["error"] = self.error
        return out


class ContractExecutor:
    """Host for the agreement contract.

    Owns the transaction lifecycle the contract itself never touches:
      - submit(): one fresh StateTx per attempt; commit on success, discard on
        a typed failure; on CommitConflict discard and re-run the whole unit
        of work (bounded by RetryPolicy)
      - evaluate(): run against a StateTx that is always discarded
    """

    def __init__(
        self,
        *,
        store: StateStore,
        chain_id: str,
        node_id: str,
        registry: Optional[ContractRegistry] = None,
        retry: Optional[RetryPolicy] = None,
    ) -> None:
        self.store = store
        self.chain_id = str(chain_id)
        self.node_id = str(node_id)
        self.registry = registry or default_registry()
        self.retry = retry or RetryPolicy.from_env()

    def _receipt(self, tx_id: str, inv: Invocation, res: LedgerResult, *, committed: bool, attempts: int) -> Receipt:
        return Receipt(
            tx_id=tx_id,
            function=inv.function,
            ok=res.ok,
            payload=res.payload,
            error=res.error.to_json() if res.error is not None else None,
            committed=committed,
            attempts=attempts,
        )

    def _fault(self, event: str, tx_id: str, inv: Invocation, err: ApplyError, attempts: int) -> None:
        metrics.inc_counter(metrics.TX_FAULTS)
        log_event(
            log,
            event,
            level=logging.WARNING,
            tx_id=tx_id,
            contract=inv.contract,
            function=inv.function,
            code=err.code,
            reason=err.reason,
            attempts=attempts,
        )

    def submit(self, invocation: Any) -> Receipt:
        inv = Invocation.from_json(invocation)
        tx_id = compute_tx_id_from_invocation(self.chain_id, inv)
        metrics.inc_counter(metrics.TX_SUBMITTED)

        attempt = 0
        while True:
            attempt += 1
            tx = self.store.begin()
            try:
                res = dispatch(self.registry, tx, inv)
                if res.ok:
                    tx.commit()
                else:
                    tx.discard()
            except CommitConflict as e:
                tx.discard()
                if attempt >= self.retry.max_attempts:
                    self._fault("tx_conflict_exhausted", tx_id, inv, e, attempt)
                    raise
                metrics.inc_counter(metrics.TX_CONFLICT_RETRIES)
                log_event(log, "tx_conflict_retry", tx_id=tx_id, function=inv.function, attempt=attempt)
                self.retry.sleep(attempt - 1)
                continue
            except ApplyError as e:
                tx.discard()
                self._fault("tx_rejected", tx_id, inv, e, attempt)
                raise
            except Exception:
                tx.discard()
                raise
            break

        rcpt = self._receipt(tx_id, inv, res, committed=res.ok, attempts=attempt)
        metrics.inc_counter(metrics.TX_COMMITTED if rcpt.committed else metrics.TX_DISCARDED)
        outcome = "ok" if res.ok else (res.error.kind.value if res.error is not None else "error")
        metrics.inc_counter(metrics.outcome_counter(inv.function, outcome))
        log_event(
            log,
            "tx_submit",
            tx_id=tx_id,
            contract=inv.contract,
            function=inv.function,
            ok=rcpt.ok,
            committed=rcpt.committed,
            attempts=attempt,
            error=rcpt.error,
        )
        return rcpt

    def evaluate(self, invocation: Any) -> Receipt:
        inv = Invocation.from_json(invocation)
        tx_id = compute_tx_id_from_invocation(self.chain_id, inv)
        metrics.inc_counter(metrics.TX_EVALUATED)

        tx = self.store.begin()
        try:
            res = dispatch(self.registry, tx, inv)
        except ApplyError as e:
            self._fault("tx_rejected", tx_id, inv, e, 1)
            raise
        finally:
            tx.discard()

        log_event(
            log,
            "tx_evaluate",
            tx_id=tx_id,
            contract=inv.contract,
            function=inv.function,
            ok=res.ok,
        )
        return self._receipt(tx_id, inv, res, committed=False, attempts=1)
