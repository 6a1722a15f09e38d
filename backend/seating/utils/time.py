from datetime import date, datetime, time, timezone
from functools import lru_cache
from zoneinfo import ZoneInfo


@lru_cache
def restaurant_zone(name: str) -> ZoneInfo:
    return ZoneInfo(name)


def local_today(tz_name: str, now: datetime | None = None) -> date:
    """Calendar date at the restaurant; `now` must be timezone-aware when given."""
    current = now or datetime.now(timezone.utc)
    if current.tzinfo is None:
        raise ValueError("datetime must be timezone-aware")
    return current.astimezone(restaurant_zone(tz_name)).date()


def format_hhmm(value: time) -> str:
    return value.strftime("%H:%M")
