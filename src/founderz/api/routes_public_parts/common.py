from __future__ import annotations

from typing import Any, Dict

from fastapi import Request

from founderz.api.errors import ApiError
from founderz.runtime.errors import ApplyError
from founderz.runtime.executor import ContractExecutor, Receipt

Json = Dict[str, Any]


def _executor(request: Request) -> ContractExecutor:
    ex = getattr(request.app.state, "executor", None)
    if ex is None:
        raise ApiError.unavailable("not_ready", "executor not attached to app.state", {})
    return ex


def _run(request: Request, invocation: Json, *, submit: bool) -> Receipt:
    """Run an invocation through the executor, mapping host faults to ApiError."""
    ex = _executor(request)
    try:
        return ex.submit(invocation) if submit else ex.evaluate(invocation)
    except ApplyError as e:
        raise ApiError.from_apply_error(e) from e


def _require_ok(rcpt: Receipt) -> Receipt:
    """Turn a typed contract failure into the matching HTTP error."""
    if rcpt.ok:
        return rcpt
    err = rcpt.error or {}
    code = str(err.get("code") or "")
    details = {"key": err.get("key"), "tx_id": rcpt.tx_id}
    message = str(err.get("message") or "")
    if code == "already_exists":
        raise ApiError.conflict(code, message, details)
    raise ApiError.not_found(code or "not_found", message, details)
