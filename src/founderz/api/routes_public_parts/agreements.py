from __future__ import annotations

from typing import Any, Dict

from fastapi import APIRouter, Request

from founderz.api.routes_public_parts.common import _require_ok, _run
from founderz.api.schemas import MintRequest
from founderz.contract.dispatch import CONTRACT_NAME

router = APIRouter()

Json = Dict[str, Any]


@router.post("/agreements")
def agreements_mint(request: Request, body: MintRequest) -> Json:
    """Mint an agreement (shorthand for submitting `mint(key, value)`)."""
    rcpt = _require_ok(
        _run(
            request,
            {"contract": CONTRACT_NAME, "function": "mint", "args": [body.key, body.value], "nonce": body.nonce},
            submit=True,
        )
    )
    return {"ok": True, "tx_id": rcpt.tx_id, "message": rcpt.payload}


@router.get("/agreements/{key}")
def agreements_fetch(request: Request, key: str) -> Json:
    """Fetch an agreement (shorthand for evaluating `fetch(key)`)."""
    rcpt = _require_ok(
        _run(request, {"contract": CONTRACT_NAME, "function": "fetch", "args": [key]}, submit=False)
    )
    return {"ok": True, "key": key, "value": rcpt.payload}
