from __future__ import annotations

import json
import logging
import time
from typing import Any, Dict

Json = Dict[str, Any]


def log_event(logger: logging.Logger, event: str, *, level: int = logging.INFO, **fields: Any) -> None:
    """Emit one ledger event as a single JSON line.

    `ts_ms` and `event` are always present. Fields that are not JSON types
    (enums, exceptions) are rendered with str(). Nothing is formatted when
    the logger would drop the record.
    """
    if not logger.isEnabledFor(level):
        return
    payload: Json = {"ts_ms": int(time.time() * 1000), "event": str(event)}
    payload.update(fields)
    logger.log(level, json.dumps(payload, sort_keys=True, separators=(",", ":"), ensure_ascii=False, default=str))
