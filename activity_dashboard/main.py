import logging
import os
from contextlib import asynccontextmanager
from typing import Optional

from dotenv import load_dotenv
from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from redis import Redis

# Load env from the package directory before settings are read
package_dir = os.path.dirname(os.path.abspath(__file__))
if "PYTEST_CURRENT_TEST" not in os.environ:
    load_dotenv(dotenv_path=os.path.join(package_dir, ".env"))

from activity_dashboard.core.config import Settings, settings, validate_config  # noqa: E402
from activity_dashboard.core.errors import (  # noqa: E402
    AppError,
    app_error_handler,
    http_error_handler,
    unhandled_exception_handler,
)
from activity_dashboard.core.kv_store import create_client  # noqa: E402
from activity_dashboard.core.logging import LOGGER_NAME, configure_logging  # noqa: E402
from activity_dashboard.core.middleware.request_id import RequestIdMiddleware  # noqa: E402
from activity_dashboard.api import health, posts, warmup  # noqa: E402
from activity_dashboard.features.activity.clock import Clock, utc_now  # noqa: E402
from activity_dashboard.features.activity.metadata import EntityMetadata  # noqa: E402
from activity_dashboard.features.activity.service import build_services  # noqa: E402


def create_app(
    cfg: Optional[Settings] = None,
    redis_client: Optional[Redis] = None,
    metadata: Optional[EntityMetadata] = None,
    clock: Clock = utc_now,
) -> FastAPI:
    """
    Build the dashboard API.

    The backend handle and services are created when the app starts and the
    handle is closed when it stops. An injected `redis_client` is used as-is
    and left open for its owner.
    """
    cfg = cfg or settings
    configure_logging(cfg.ENV)
    validate_config(strict=cfg.CONFIG_STRICT, settings_obj=cfg)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger = logging.getLogger(LOGGER_NAME)
        logger.info("Starting activity dashboard backend...")
        client = redis_client if redis_client is not None else create_client(cfg)
        app.state.services = build_services(client, cfg, metadata=metadata, clock=clock)
        try:
            yield
        finally:
            app.state.services = None
            if redis_client is None:
                client.close()
            logger.info("Stopping activity dashboard backend...")

    app = FastAPI(title="Activity Dashboard", lifespan=lifespan)
    app.state.services = None

    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(HTTPException, http_error_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)

    app.add_middleware(RequestIdMiddleware)
    # Outermost: AppError and HTTPException responses get CORS headers. Unhandled
    # exceptions are rendered by ServerErrorMiddleware outside it and do not.
    app.add_middleware(
        CORSMiddleware,
        allow_origins=cfg.cors_origins(),
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Content-Type"],
    )

    app.include_router(warmup.router)
    app.include_router(posts.router)
    app.include_router(health.root_router)

    return app


app = create_app()


def run() -> None:
    import uvicorn

    uvicorn.run(
        "activity_dashboard.main:app",
        host=os.getenv("HOST", "0.0.0.0"),
        port=int(os.getenv("PORT", "8000")),
    )


if __name__ == "__main__":
    run()
