from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass
class ApplyError(Exception):
    """Canonical error type for host-side dispatch and transaction failures.

    Business outcomes of the agreement contract (already exists / not found)
    are *not* raised; they come back as LedgerResult values.
    """

    code: str
    reason: str
    details: Any | None = None

    def __str__(self) -> str:  # pragma: no cover
        if self.details is None:
            return f"{self.code}:{self.reason}"
        return f"{self.code}:{self.reason}:{self.details}"


class CommitConflict(ApplyError):
    """Raised by commit() when a key in the read set changed underneath us."""

    def __init__(self, key: str, *, seen: int, current: int) -> None:
        super().__init__("mvcc_read_conflict", "read_set_changed", {"key": key, "seen": seen, "current": current})


class TxClosedError(ApplyError):
    """Raised when a StateTx handle is used after commit() or discard()."""

    def __init__(self, state: str) -> None:
        super().__init__("tx_closed", "handle_not_active", {"state": state})
