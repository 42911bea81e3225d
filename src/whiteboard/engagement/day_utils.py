"""Calendar-day utilities for daily activities, streaks and the post limit.

All day keys are computed in one fixed timezone (settings.day_timezone, UTC by
default) so that a "day" means the same thing for every request.
"""

from __future__ import annotations

from datetime import date, datetime, timedelta
from zoneinfo import ZoneInfo

from whiteboard.config import get_settings


def day_zone() -> ZoneInfo:
    """Timezone used for calendar-day boundaries."""
    return ZoneInfo(get_settings().day_timezone)


def utc_now() -> datetime:
    return datetime.now(ZoneInfo("UTC"))


def get_day(dt: datetime | None = None) -> date:
    """Calendar day of dt in the policy timezone (now if dt is None).

    Naive datetimes are treated as UTC.
    """
    if dt is None:
        dt = utc_now()
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=ZoneInfo("UTC"))
    return dt.astimezone(day_zone()).date()


def get_previous_day(day: date) -> date:
    return day - timedelta(days=1)


def next_streak(last_check_in: date | None, streak_days: int, today: date) -> int:
    """Streak length after checking in on `today`.

    +1 if the last check-in was yesterday, unchanged if it was today,
    otherwise the streak restarts at 1.
    """
    if last_check_in == today:
        return max(streak_days, 1)
    if last_check_in is not None and last_check_in == get_previous_day(today):
        return streak_days + 1
    return 1
