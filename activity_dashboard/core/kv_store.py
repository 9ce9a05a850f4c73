"""
Key-value backend connection management.

This module provides:
- Redis client construction from settings (one handle per process)
- Translation of redis failures into BackendUnavailableError
- A connectivity probe for readiness checks

The client is built by the app factory at startup and passed to the stores;
nothing here holds a module-level connection.
"""
import logging
from contextlib import contextmanager
from typing import Iterator, Optional

from redis import Redis
from redis.exceptions import RedisError

from activity_dashboard.core.config import Settings
from activity_dashboard.core.errors import BackendUnavailableError
from activity_dashboard.core.logging import log_event

logger = logging.getLogger("activity_dashboard")


def create_client(cfg: Settings) -> Redis:
    """Build the redis handle. No connection is opened until first use."""
    return Redis.from_url(
        cfg.REDIS_URL,
        decode_responses=True,
        socket_timeout=cfg.REDIS_SOCKET_TIMEOUT,
    )


@contextmanager
def backend_errors(operation: str, stream: Optional[str] = None) -> Iterator[None]:
    """
    Re-raise redis failures as BackendUnavailableError.

    Usage:
        with backend_errors("event_store.append", "warmup"):
            client.lpush(...)
    """
    try:
        yield
    except RedisError as exc:
        log_event(
            "error",
            "backend.error",
            stream=stream,
            error_code="backend_unavailable",
            extra={"operation": operation, "reason": exc},
        )
        raise BackendUnavailableError("Storage backend unavailable") from exc


def check_connection(client: Redis) -> bool:
    """
    Check if the backend answers PING.

    Returns:
        True if connection successful, False otherwise
    """
    try:
        return bool(client.ping())
    except RedisError as e:
        logger.warning(f"Backend connection check failed: {e}")
        return False
