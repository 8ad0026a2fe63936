# src/founderz/contract/dispatch.py

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Tuple

from founderz.contract.agreement import AgreementLedger
from founderz.contract.results import LedgerResult
from founderz.runtime.errors import ApplyError
from founderz.runtime.state_store import StateTx

Json = Dict[str, Any]
TxFn = Callable[..., LedgerResult]

CONTRACT_NAME = "FounderzContract"
DEFAULT_CONTRACT = CONTRACT_NAME


@dataclass(frozen=True)
class Invocation:
    function: str
    args: List[str] = field(default_factory=list)
    contract: str = DEFAULT_CONTRACT
    nonce: int = 0

    @staticmethod
    def from_json(j: Any) -> "Invocation":
        if isinstance(j, Invocation):
            return j
        if not isinstance(j, dict):
            j = dict(j)  # type: ignore[arg-type]
        args = j.get("args", [])
        if not isinstance(args, (list, tuple)):
            raise ApplyError("bad_args", "args_not_list", {"args": args})
        raw_nonce = j.get("nonce", 0)
        try:
            nonce = int(raw_nonce or 0)
        except (TypeError, ValueError):
            raise ApplyError("bad_args", "nonce_not_int", {"nonce": raw_nonce}) from None
        return Invocation(
            function=str(j.get("function", "") or "").strip(),
            args=list(args),
            contract=str(j.get("contract") or DEFAULT_CONTRACT).strip(),
            nonce=nonce,
        )

    def to_json(self) -> Json:
        return {
            "contract": self.contract,
            "function": self.function,
            "args": list(self.args),
            "nonce": self.nonce,
        }


def _agreement_transactions(ledger: AgreementLedger) -> Dict[str, Tuple[TxFn, Tuple[str, ...]]]:
    return {
        "mint": (ledger.mint, ("key", "value")),
        "fetch": (ledger.fetch, ("key",)),
    }


class ContractRegistry:
    """Named contracts and the transactions each one exposes."""

    def __init__(self) -> None:
        self._contracts: Dict[str, Dict[str, Tuple[TxFn, Tuple[str, ...]]]] = {}

    def register(self, name: str, transactions: Dict[str, Tuple[TxFn, Tuple[str, ...]]]) -> None:
        n = str(name or "").strip()
        if not n:
            raise ValueError("contract name must be non-empty")
        if n in self._contracts:
            raise ValueError(f"contract already registered: {n}")
        self._contracts[n] = dict(transactions)

    def contracts(self) -> List[str]:
        return sorted(self._contracts.keys())

    def functions(self, contract: str) -> List[str]:
        return sorted(self._contracts.get(contract, {}).keys())

    def resolve(self, inv: Invocation) -> Tuple[TxFn, Tuple[str, ...]]:
        txs = self._contracts.get(inv.contract)
        if txs is None:
            raise ApplyError("contract_not_found", "unknown_contract", {"contract": inv.contract})
        entry = txs.get(inv.function)
        if entry is None:
            raise ApplyError(
                "tx_unimplemented",
                "function_not_found",
                {"contract": inv.contract, "function": inv.function},
            )
        return entry


def default_registry(ledger: Optional[AgreementLedger] = None) -> ContractRegistry:
    reg = ContractRegistry()
    reg.register(CONTRACT_NAME, _agreement_transactions(ledger or AgreementLedger()))
    return reg


def dispatch(registry: ContractRegistry, tx: StateTx, inv: Invocation) -> LedgerResult:
    """Validate an invocation against the registry and run it on `tx`."""
    fn, params = registry.resolve(inv)
    if len(inv.args) != len(params):
        raise ApplyError(
            "bad_args",
            "arity_mismatch",
            {"function": inv.function, "expected": list(params), "got": len(inv.args)},
        )
    for name, arg in zip(params, inv.args):
        if not isinstance(arg, str):
            raise ApplyError("bad_args", "arg_not_string", {"function": inv.function, "param": name})
    return fn(tx, *inv.args)
