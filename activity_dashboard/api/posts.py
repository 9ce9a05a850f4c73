"""
activity_dashboard/api/posts.py

Scheduled-post lifecycle endpoints.
"""

from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import JSONResponse
from starlette.concurrency import run_in_threadpool

from activity_dashboard.api.deps import INGEST_CORS_HEADERS, get_services, read_json_body
from activity_dashboard.features.activity.clock import parse_day_key
from activity_dashboard.features.activity.service import ActivityServices

STREAM = "posts"

router = APIRouter(prefix="/api/posts", tags=["posts"])


@router.options("/log")
async def log_preflight():
    return JSONResponse({}, headers=INGEST_CORS_HEADERS)


@router.post("/log")
async def log_post_event(request: Request, services: ActivityServices = Depends(get_services)):
    """Record post_scheduled / post_published / post_failed for a persona."""
    payload = await read_json_body(request)
    await run_in_threadpool(services.ingestion.submit, STREAM, payload)
    return JSONResponse({"success": True}, headers=INGEST_CORS_HEADERS)


@router.get("", response_model=Dict[str, Any])
def get_posts(
    date: Optional[str] = Query(None, description="YYYY-MM-DD; defaults to today"),
    services: ActivityServices = Depends(get_services),
) -> Dict[str, Any]:
    """Per-persona scheduled/posted/failed counts, totals and recent post events."""
    if date:
        snapshot = services.query.for_date(STREAM, parse_day_key(date))
    else:
        snapshot = services.query.today(STREAM)
    return snapshot.as_payload()


@router.post("/clear")
def clear_today(services: ActivityServices = Depends(get_services)):
    removed = services.clear_today(STREAM)
    return {"success": True, "cleared": {"statsKeys": removed, "events": True}}
