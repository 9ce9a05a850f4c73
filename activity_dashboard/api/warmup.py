"""
activity_dashboard/api/warmup.py

Warmup stream endpoints: producer ingestion, dashboard stats, admin clear.
"""

from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import JSONResponse
from starlette.concurrency import run_in_threadpool

from activity_dashboard.api.deps import (
    INGEST_CORS_HEADERS,
    READ_CORS_HEADERS,
    get_services,
    read_json_body,
)
from activity_dashboard.features.activity.clock import parse_day_key
from activity_dashboard.features.activity.service import ActivityServices

STREAM = "warmup"

router = APIRouter(prefix="/api", tags=["warmup"])


@router.options("/log")
async def log_preflight():
    return JSONResponse({}, headers=INGEST_CORS_HEADERS)


@router.post("/log")
async def log_event_endpoint(request: Request, services: ActivityServices = Depends(get_services)):
    """Record one warmup action from a browser profile."""
    payload = await read_json_body(request)
    await run_in_threadpool(services.ingestion.submit, STREAM, payload)
    return JSONResponse({"success": True}, headers=INGEST_CORS_HEADERS)


@router.options("/stats")
async def stats_preflight():
    return JSONResponse({}, headers=READ_CORS_HEADERS)


@router.get("/stats", response_model=Dict[str, Any])
def get_stats(
    date: Optional[str] = Query(None, description="YYYY-MM-DD; defaults to today"),
    services: ActivityServices = Depends(get_services),
) -> Dict[str, Any]:
    """
    Today's warmup counters per profile plus the recent event feed.

    Returns:
    - date: day key the counters belong to
    - totals: likes/bookmarks/searches/explores/videos/sessions summed over profiles
    - entities: per-profile counts, busiest first
    - recentEvents: newest first, in log order
    """
    if date:
        snapshot = services.query.for_date(STREAM, parse_day_key(date))
    else:
        snapshot = services.query.today(STREAM)
    return snapshot.as_payload()


@router.post("/clear")
def clear_today(services: ActivityServices = Depends(get_services)):
    """Delete today's warmup counters and the warmup event log."""
    removed = services.clear_today(STREAM)
    return {"success": True, "cleared": {"statsKeys": removed, "events": True}}
