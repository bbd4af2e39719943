# eldercare/utils/dates.py
from __future__ import annotations

from datetime import date, datetime, timedelta

WINDOW_DAYS = 7


def parse_day(value: date | str) -> date:
    """
    Accepts a date or an ISO "YYYY-MM-DD" string.
    Raises ValueError for anything else (datetimes included: callers pass local calendar days).
    """
    if isinstance(value, datetime):
        raise ValueError(f"Expected a calendar date, got datetime {value!r}")
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        return date.fromisoformat(value.strip())
    raise ValueError(f"Expected a calendar date, got {type(value).__name__}")


def previous_day(d: date) -> date:
    return d - timedelta(days=1)


def next_streak(last_checkin: date | None, streak: int, today: date) -> int:
    # consecutive day -> +1, gap or first ever -> 1
    if last_checkin is not None and last_checkin == previous_day(today):
        return int(streak) + 1
    return 1


def current_streak(last_checkin: date | None, streak: int, today: date) -> int:
    """
    Streak as it should be displayed today: the stored counter only counts while
    the run is still alive (checked in today or yesterday).
    """
    if last_checkin is None:
        return 0
    if last_checkin == today or last_checkin == previous_day(today):
        return int(streak)
    return 0


def rolling_window(today: date, days: int = WINDOW_DAYS) -> list[date]:
    # inclusive [today - (days-1), today], oldest first
    return [today - timedelta(days=offset) for offset in range(days - 1, -1, -1)]


def window_start(today: date, days: int = WINDOW_DAYS) -> date:
    return today - timedelta(days=days - 1)
