"""Request-scoped access to the services built at startup."""

from typing import Any

from fastapi import Request

from activity_dashboard.core.errors import AppError, ValidationError
from activity_dashboard.features.activity.service import ActivityServices

# Producers run in an uncontrolled extension context
INGEST_CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "POST, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type",
}

READ_CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type",
}


def get_services(request: Request) -> ActivityServices:
    services = getattr(request.app.state, "services", None)
    if services is None:
        raise AppError("Service is starting up", code="not_ready", status_code=503)
    return services


async def read_json_body(request: Request) -> Any:
    try:
        return await request.json()
    except ValueError:
        raise ValidationError("Request body must be valid JSON")
