"""
Centralized datetime, timezone and reporting-period utilities.

All week arithmetic goes through this module. Periods are ISO-8601 weeks
(Monday start, week 1 holds the first Thursday) measured in the organisation's
configured timezone, never UTC and never the caller's local zone.
"""

from datetime import date, datetime, time, timedelta
from typing import NamedTuple, Optional, Tuple

import pytz

from config import settings


MIN_YEAR = 2020
MAX_YEAR = 2100


class Period(NamedTuple):
    """An ISO week and its week-year."""
    week: int
    year: int

    def __str__(self) -> str:
        return f"W{self.week:02d}/{self.year}"


def get_local_tz(tz_name: Optional[str] = None) -> pytz.BaseTzInfo:
    """Get the configured local timezone."""
    return pytz.timezone(tz_name or settings.timezone)


def get_local_now(tz_name: Optional[str] = None) -> datetime:
    """Get current time in local timezone (naive)."""
    return datetime.now(get_local_tz(tz_name)).replace(tzinfo=None)


def to_naive_local(dt: Optional[datetime], tz_name: Optional[str] = None) -> Optional[datetime]:
    """
    Convert any datetime to naive local time for database storage.

    Aware datetimes are shifted into the local zone before tzinfo is dropped;
    naive datetimes are assumed to already be local.
    """
    if dt is None:
        return None

    if dt.tzinfo is not None:
        return dt.astimezone(get_local_tz(tz_name)).replace(tzinfo=None)

    return dt


def to_aware_utc(dt: Optional[datetime], tz_name: Optional[str] = None) -> Optional[datetime]:
    """
    Convert a naive local datetime to timezone-aware UTC.

    Used for API responses, which always carry an offset.
    """
    if dt is None:
        return None

    if dt.tzinfo is not None:
        return dt.astimezone(pytz.UTC)

    local_dt = get_local_tz(tz_name).localize(dt)
    return local_dt.astimezone(pytz.UTC)


# ==================== PERIODS ====================

def period_of(timestamp: datetime, tz_name: Optional[str] = None) -> Period:
    """
    Get the ISO week containing a timestamp.

    The week-year may differ from the calendar year: 29-31 Dec can fall in
    week 1 of the next year and 1-3 Jan in week 52/53 of the previous one.
    """
    local = to_naive_local(timestamp, tz_name)
    iso_year, iso_week, _ = local.isocalendar()
    return Period(week=iso_week, year=iso_year)


def current_period(now: Optional[datetime] = None, tz_name: Optional[str] = None) -> Period:
    """Get the period for the current moment."""
    return period_of(now or get_local_now(tz_name), tz_name)


def previous_period(now: Optional[datetime] = None, tz_name: Optional[str] = None) -> Period:
    """Get last week's period by stepping back seven days, not by decrementing the week."""
    local_now = to_naive_local(now, tz_name) if now else get_local_now(tz_name)
    return period_of(local_now - timedelta(days=7), tz_name)


def weeks_in_year(year: int) -> int:
    """Number of ISO weeks in a week-year (52 or 53)."""
    return date(year, 12, 28).isocalendar()[1]


def is_valid_period(week: int, year: int) -> bool:
    """Check that a week/year pair is inside the storable range and exists."""
    if not isinstance(week, int) or not isinstance(year, int):
        return False
    if year < MIN_YEAR or year > MAX_YEAR:
        return False
    if week < 1 or week > 53:
        return False
    return week <= weeks_in_year(year)


def get_week_start_date(period: Tuple[int, int]) -> date:
    """Monday of the given ISO week."""
    week, year = period
    return date.fromisocalendar(year, week, 1)


def get_week_end_date(period: Tuple[int, int]) -> date:
    """Sunday of the given ISO week."""
    week, year = period
    return date.fromisocalendar(year, week, 7)


def week_bounds(period: Tuple[int, int]) -> Tuple[datetime, datetime]:
    """Naive local datetimes for the first and last instant of the week."""
    start = datetime.combine(get_week_start_date(period), time.min)
    end = datetime.combine(get_week_end_date(period), time.max)
    return start, end


def format_week_range(period: Tuple[int, int]) -> str:
    """Human readable range, e.g. 'Mon 9 Feb - Sun 15 Feb 2026'."""
    start = get_week_start_date(period)
    end = get_week_end_date(period)
    return (
        f"Mon {start.day} {start.strftime('%b')} - "
        f"Sun {end.day} {end.strftime('%b')} {end.year}"
    )


def format_timestamp(dt: Optional[datetime]) -> str:
    """Format a stored timestamp for display in reports and emails."""
    if dt is None:
        return ""
    return dt.strftime("%Y-%m-%d %H:%M")
