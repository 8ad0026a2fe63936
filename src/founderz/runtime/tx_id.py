from __future__ import annotations

import hashlib
import json
from typing import Any, Dict, List

from founderz.contract.dispatch import Invocation

Json = Dict[str, Any]


def _json_canonical(obj: Any) -> bytes:
    return json.dumps(obj, sort_keys=True, separators=(",", ":"), ensure_ascii=False).encode("utf-8")


def _sha256_hex(data: bytes) -> str:
    return hashlib.sha256(data).hexdigest()


def compute_tx_id(
    *,
    chain_id: str,
    contract: str,
    function: str,
    args: List[Any],
    nonce: int,
) -> str:
    """
    Canonical tx_id function (single source of truth).

    Contract:
      - Includes chain_id (so identical invocations across chains cannot collide)
      - Includes nonce (so a caller can re-submit the same call as a new tx)
      - Excludes timestamps and attempt counters (non-deterministic)
    """
    obj: Json = {
        "chain_id": str(chain_id),
        "contract": str(contract),
        "function": str(function),
        "args": list(args),
        "nonce": int(nonce),
    }
    return _sha256_hex(_json_canonical(obj))


def compute_tx_id_from_invocation(chain_id: str, inv: Invocation) -> str:
    return compute_tx_id(
        chain_id=str(chain_id),
        contract=inv.contract,
        function=inv.function,
        args=inv.args,
        nonce=int(inv.nonce),
    )
