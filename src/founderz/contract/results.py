from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Iterator, Optional

Json = Dict[str, Any]


class ErrorKind(str, Enum):
    ALREADY_EXISTS = "already_exists"
    NOT_FOUND = "not_found"


@dataclass(frozen=True)
class LedgerError:
    kind: ErrorKind
    key: str
    message: str

    def to_json(self) -> Json:
        return {"code": self.kind.value, "message": self.message, "key": self.key}


class LedgerFailure(Exception):
    """Raised by LedgerResult.unwrap() for callers that want exceptions."""

    def __init__(self, error: LedgerError) -> None:
        super().__init__(error.message)
        self.error = error


@dataclass(frozen=True)
class LedgerResult:
    """Outcome of a single contract operation: a payload or a tagged error.

    Exactly one of `payload` / `error` is set.
    """

    ok: bool
    payload: Optional[str] = None
    error: Optional[LedgerError] = None

    def __iter__(self) -> Iterator[Any]:
        """Allow `payload, err = ledger.fetch(...)` unpacking."""
        yield self.payload
        yield self.error

    @staticmethod
    def success(payload: str) -> "LedgerResult":
        return LedgerResult(True, payload, None)

    @staticmethod
    def failure(kind: ErrorKind, key: str, message: str) -> "LedgerResult":
        return LedgerResult(False, None, LedgerError(kind, key, message))

    def unwrap(self) -> str:
        if self.error is not None:
            raise LedgerFailure(self.error)
        return str(self.payload)
