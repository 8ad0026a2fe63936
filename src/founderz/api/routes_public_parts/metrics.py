from __future__ import annotations

from fastapi import APIRouter, Response

from founderz.api.errors import ApiError
from founderz.runtime.metrics import format_prometheus, metrics_enabled

router = APIRouter()

PROMETHEUS_CONTENT_TYPE = "text/plain; version=0.0.4; charset=utf-8"


@router.get("/metrics")
def metrics() -> Response:
    """Ledger counters (submits, commits, discards, per-function outcomes).

    Off unless FOUNDERZ_METRICS_ENABLED is truthy; while off the route
    answers 404 metrics_disabled in the usual error body.
    """
    if not metrics_enabled():
        raise ApiError.not_found("metrics_disabled", "metrics are disabled on this node", {})
    return Response(content=format_prometheus(), media_type=PROMETHEUS_CONTENT_TYPE)
