import logging
from typing import List, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic_settings import BaseSettings
from pydantic import ConfigDict


class Settings(BaseSettings):
    # Environment
    ENV: str = "development"
    CONFIG_STRICT: bool = False

    # Key-value backend
    REDIS_URL: str = "redis://localhost:6379/0"
    REDIS_SOCKET_TIMEOUT: Optional[float] = None  # None = client default

    # Day keys are computed in this zone
    DASHBOARD_TIMEZONE: str = "UTC"

    # Retention / caps
    STATS_TTL_SECONDS: int = 86400 * 7
    WARMUP_MAX_EVENTS: int = 500
    POST_MAX_EVENTS: int = 200
    RECENT_EVENTS_LIMIT: int = 50

    # Optimistic counter updates (WATCH/MULTI retries)
    COUNTER_MAX_RETRIES: int = 5

    # Static display metadata (JSON file); built-in table when unset
    ENTITY_METADATA_PATH: Optional[str] = None

    # Producers run in browser extensions, origin is not known up front
    CORS_ALLOW_ORIGINS: str = "*"  # comma-separated

    model_config = ConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    def cors_origins(self) -> List[str]:
        return [o.strip() for o in self.CORS_ALLOW_ORIGINS.split(",") if o.strip()]


settings = Settings()


def validate_config(strict: Optional[bool] = None, settings_obj: Optional[Settings] = None, logger: Optional[logging.Logger] = None) -> bool:
    """Validate configuration values.

    In strict mode raise RuntimeError; otherwise emit warnings only.
    """
    cfg = settings_obj or settings
    log = logger or logging.getLogger("activity_dashboard")
    strict_mode = strict if strict is not None else getattr(cfg, "CONFIG_STRICT", False)

    problems = []
    for key in ("STATS_TTL_SECONDS", "WARMUP_MAX_EVENTS", "POST_MAX_EVENTS", "COUNTER_MAX_RETRIES"):
        value = getattr(cfg, key, None)
        if value is None or value <= 0:
            problems.append(f"{key} must be positive")

    if getattr(cfg, "RECENT_EVENTS_LIMIT", 0) < 0:
        problems.append("RECENT_EVENTS_LIMIT must not be negative")

    tz_name = getattr(cfg, "DASHBOARD_TIMEZONE", "UTC")
    try:
        ZoneInfo(tz_name)
    except (ZoneInfoNotFoundError, ValueError):
        problems.append(f"DASHBOARD_TIMEZONE is not a known zone: {tz_name}")

    if problems:
        message = f"Invalid configuration: {'; '.join(problems)}"
        if strict_mode:
            raise RuntimeError(message)
        log.warning(message)

    return True
