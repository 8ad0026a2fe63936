# src/founderz/contract/__init__.py
"""
Founderz agreement contract

  - agreement: AgreementLedger (mint / fetch) on a caller-owned StateTx
  - results: LedgerResult / LedgerError / ErrorKind outcome values
  - dispatch: Invocation + ContractRegistry routing named transactions

Hosts (the executor, tests, tools) own the transaction lifecycle; nothing in
this package commits, discards or retries.
"""

from __future__ import annotations

from founderz.contract.agreement import MINT_CONFIRMATION, AgreementLedger, is_blank
from founderz.contract.dispatch import CONTRACT_NAME, ContractRegistry, Invocation, default_registry, dispatch
from founderz.contract.results import ErrorKind, LedgerError, LedgerFailure, LedgerResult

__all__ = [
    "AgreementLedger",
    "CONTRACT_NAME",
    "ContractRegistry",
    "ErrorKind",
    "Invocation",
    "LedgerError",
    "LedgerFailure",
    "LedgerResult",
    "MINT_CONFIRMATION",
    "default_registry",
    "dispatch",
    "is_blank",
]
