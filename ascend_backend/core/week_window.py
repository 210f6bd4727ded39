# ascend_backend/core/week_window.py
# Pure helpers mapping "now" onto league week windows and season countdowns.

from datetime import datetime, timedelta, timezone
from typing import Optional, Tuple

import pytz

from ascend_backend.core.config import LEAGUE_TIMEZONE

WEEK_LENGTH = timedelta(days=7)
# Windows end on Sunday 23:59:59.999, one millisecond before next Monday.
WINDOW_END_OFFSET = timedelta(milliseconds=1)


def utc_now() -> datetime:
    """Current time as naive UTC (the storage convention)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_naive_utc(value: datetime) -> datetime:
    """Normalize aware datetimes to naive UTC; naive values are assumed UTC."""
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def current_week_window(now: Optional[datetime] = None, tz_name: str = LEAGUE_TIMEZONE) -> Tuple[datetime, datetime]:
    """
    Returns (week_start, week_end) for the week containing `now`.
    - week_start: most recent Monday 00:00:00 in the league timezone
    - week_end:   the following Sunday 23:59:59.999
    Both are returned as naive UTC.
    """
    now_utc = to_naive_utc(now) if now is not None else utc_now()
    tz = pytz.timezone(tz_name)

    local_now = pytz.utc.localize(now_utc).astimezone(tz)
    local_monday = (local_now - timedelta(days=local_now.weekday())).replace(tzinfo=None)
    local_monday = local_monday.replace(hour=0, minute=0, second=0, microsecond=0)
    local_next_monday = local_monday + WEEK_LENGTH

    week_start = tz.localize(local_monday).astimezone(pytz.utc).replace(tzinfo=None)
    next_week_start = tz.localize(local_next_monday).astimezone(pytz.utc).replace(tzinfo=None)
    return week_start, next_week_start - WINDOW_END_OFFSET


def time_until_week_end(now: Optional[datetime] = None, tz_name: str = LEAGUE_TIMEZONE) -> timedelta:
    """Time left in the current window, never negative."""
    now_utc = to_naive_utc(now) if now is not None else utc_now()
    _, week_end = current_week_window(now_utc, tz_name)
    return max(timedelta(0), week_end - now_utc)


def split_duration(remaining: timedelta) -> dict:
    """League countdown as {hours, minutes, seconds} (hours may exceed 24)."""
    total_seconds = max(0, int(remaining.total_seconds()))
    return {
        "hours": total_seconds // 3600,
        "minutes": (total_seconds % 3600) // 60,
        "seconds": total_seconds % 60,
    }


def season_time_remaining(ends_at: datetime, now: Optional[datetime] = None) -> dict:
    """Season countdown as {days, hours}, clamped to zero after the end."""
    now_utc = to_naive_utc(now) if now is not None else utc_now()
    total_seconds = max(0, int((to_naive_utc(ends_at) - now_utc).total_seconds()))
    return {
        "days": total_seconds // 86400,
        "hours": (total_seconds % 86400) // 3600,
    }
