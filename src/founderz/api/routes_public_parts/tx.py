from __future__ import annotations

from typing import Any, Dict

from fastapi import APIRouter, Request

from founderz.api.routes_public_parts.common import _require_ok, _run
from founderz.api.schemas import InvocationRequest

router = APIRouter()

Json = Dict[str, Any]


@router.post("/tx/submit")
def tx_submit(request: Request, body: InvocationRequest) -> Json:
    """Submit an invocation as a committing transaction.

    Returns:
      { ok, tx_id, function, committed, attempts, payload }

    Errors:
      409 already_exists / mvcc_read_conflict, 404 not_found / contract_not_found,
      400 for malformed invocations (bad_args, tx_unimplemented).
    """
    return _require_ok(_run(request, body.model_dump(), submit=True)).to_json()


@router.post("/tx/evaluate")
def tx_evaluate(request: Request, body: InvocationRequest) -> Json:
    """Run an invocation against current state without committing."""
    return _require_ok(_run(request, body.model_dump(), submit=False)).to_json()
