"""Clock helpers: server time, epoch millis and day keys."""

from datetime import date, datetime, timezone
from typing import Callable, Optional
from zoneinfo import ZoneInfo

from activity_dashboard.core.errors import ValidationError

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def epoch_millis(now: datetime) -> int:
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    return int(now.timestamp() * 1000)


def day_key(now: Optional[datetime] = None, tz_name: str = "UTC") -> str:
    """ISO calendar date of `now` in the dashboard's zone (YYYY-MM-DD)."""
    if now is None:
        now = utc_now()
    elif now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    return now.astimezone(ZoneInfo(tz_name)).date().isoformat()


def parse_day_key(value: str) -> str:
    """Validate a caller-supplied YYYY-MM-DD day key."""
    try:
        return date.fromisoformat(value).isoformat()
    except (TypeError, ValueError):
        raise ValidationError(f"Invalid date (expected YYYY-MM-DD): {value}")
