# src/founderz/contract/agreement.py
"""founderz.contract.agreement

Write-once agreement ledger.

Key invariants:
  - a key is minted at most once; its value is never updated or deleted here
  - each operation issues exactly one read; mint adds exactly one write on
    success and none on failure
  - blank-as-absent: a stored value that is empty or whitespace-only counts
    as "no agreement" for both mint and fetch

The blank-as-absent rule means a blank agreement can never be durably
stored: it can be overwritten by a later mint and fetch reports it missing.
Invokers that rely on the current behaviour would break if it changed, so it
is kept as-is.

Transaction handles are owned by the caller. This module never begins,
commits or discards them and never retries.
"""
from __future__ import annotations

import unicodedata
from typing import Optional

from founderz.contract.results import ErrorKind, LedgerResult
from founderz.runtime.state_store import StateTx

# Confirmation string returned by a successful mint ("stored"). Invokers
# match on it byte-for-byte.
MINT_CONFIRMATION = "저장 완료"

# Whitespace as the deployed contract's runtime defines it: the Unicode
# space/line/paragraph separators except the no-break spaces, plus these
# ASCII controls. U+0085 is not whitespace.
_CONTROL_WHITESPACE = frozenset("\t\n\x0b\x0c\r\x1c\x1d\x1e\x1f")
_NO_BREAK_SPACES = frozenset("\u00a0\u2007\u202f")
_SEPARATOR_CATEGORIES = ("Zs", "Zl", "Zp")


def _is_whitespace(ch: str) -> bool:
    if ch in _CONTROL_WHITESPACE:
        return True
    if ch in _NO_BREAK_SPACES:
        return False
    return unicodedata.category(ch) in _SEPARATOR_CATEGORIES


def is_blank(value: Optional[str]) -> bool:
    """True for None, "" and strings made only of whitespace."""
    if value is None:
        return True
    return all(_is_whitespace(ch) for ch in value)


class AgreementLedger:
    def mint(self, tx: StateTx, key: str, value: str) -> LedgerResult:
        current = tx.get_state(key)
        if not is_blank(current):
            return LedgerResult.failure(ErrorKind.ALREADY_EXISTS, key, f"key.{key} Agreement already exists")
        tx.put_state(key, value)
        return LedgerResult.success(MINT_CONFIRMATION)

    def fetch(self, tx: StateTx, key: str) -> LedgerResult:
        current = tx.get_state(key)
        if is_blank(current):
            return LedgerResult.failure(ErrorKind.NOT_FOUND, key, f"key.{key} Agreement does not exist")
        return LedgerResult.success(str(current))
