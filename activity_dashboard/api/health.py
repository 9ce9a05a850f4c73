"""
Health endpoints.

Lightweight probes for operational monitoring without exposing secrets.
"""

import logging

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from activity_dashboard.core.kv_store import check_connection

logger = logging.getLogger("activity_dashboard")

root_router = APIRouter(tags=["health"])


@root_router.get("/healthz")
def healthz():
    """Lightweight liveness check (no deps)."""
    return {"status": "ok"}


@root_router.get("/readyz")
def readyz(request: Request):
    """Readiness check: backend answers PING."""
    services = getattr(request.app.state, "services", None)
    if services is None:
        return JSONResponse(status_code=503, content={"status": "error", "detail": "not started"})

    if not check_connection(services.client):
        logger.error("[readyz] backend unreachable")
        return JSONResponse(status_code=503, content={"status": "error", "detail": "backend unreachable"})

    return {"status": "ok"}
