from __future__ import annotations

from typing import Any, Dict

from fastapi import APIRouter, Request

from founderz.api.errors import ApiError

router = APIRouter()

Json = Dict[str, Any]


@router.get("/health")
def health(request: Request) -> Json:
    """Liveness + readiness. 503 until an executor is attached."""
    ex = getattr(request.app.state, "executor", None)
    if ex is None:
        raise ApiError.unavailable("not_ready", "executor not ready", {})

    store = getattr(ex, "store", None)
    return {
        "ok": True,
        "node_id": str(getattr(ex, "node_id", "") or ""),
        "chain_id": str(getattr(ex, "chain_id", "") or ""),
        "store": str(getattr(store, "kind", "") or ""),
    }
