from __future__ import annotations

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from founderz.api.config import load_api_config
from founderz.api.errors import ApiError, api_error_handler
from founderz.api.routes_public import public_router
from founderz.api.security import RequestSizeLimitMiddleware
from founderz.api.structured_logging import RequestLogMiddleware
from founderz.runtime.executor import ContractExecutor
from founderz.runtime.executor_boot import build_executor as _build_executor


def build_executor() -> ContractExecutor:
    """Build a ContractExecutor for API runtime.

    This wrapper exists so tests can monkeypatch `founderz.api.app.build_executor`
    without reaching into runtime modules.
    """
    return _build_executor()


def create_app(*, boot_runtime: bool = True) -> FastAPI:
    """Create the FastAPI application.

    boot_runtime:
      - True (default): build the executor (opens the state store)
      - False: keep lightweight for unit tests / import-time validation;
        tests attach their own executor to app.state.executor
    """
    cfg = load_api_config()

    # Disable docs in production.
    if cfg.docs_enabled:
        app = FastAPI(title="Founderz Agreement Ledger API")
    else:
        app = FastAPI(
            title="Founderz Agreement Ledger API",
            docs_url=None,
            redoc_url=None,
            openapi_url=None,
        )

    app.state.cfg = cfg
    app.state.executor = build_executor() if boot_runtime else None

    app.add_exception_handler(ApiError, api_error_handler)

    # --- Middleware (last added runs first) ---
    app.add_middleware(RequestSizeLimitMiddleware)

    if cfg.cors_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=cfg.cors_origins,
            allow_credentials=True,
            allow_methods=["GET", "POST", "OPTIONS"],
            allow_headers=["Authorization", "Content-Type"],
        )

    app.add_middleware(RequestLogMiddleware)

    # --- Routers ---
    app.include_router(public_router)

    return app
