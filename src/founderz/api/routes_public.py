# src/founderz/api/routes_public.py
from __future__ import annotations

from fastapi import APIRouter

from founderz.api.routes_public_parts.agreements import router as agreements_router
from founderz.api.routes_public_parts.health import router as health_router
from founderz.api.routes_public_parts.metrics import router as metrics_router
from founderz.api.routes_public_parts.tx import router as tx_router

public_router = APIRouter()

public_router.include_router(health_router, prefix="/v1", tags=["health"])
public_router.include_router(tx_router, prefix="/v1", tags=["tx"])
public_router.include_router(agreements_router, prefix="/v1", tags=["agreements"])

# Ops
public_router.include_router(metrics_router, prefix="/v1", tags=["metrics"])
