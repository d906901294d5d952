"""
Tests for weekly_feedback/utils/datetime_utils.py

Covers ISO-week period arithmetic in the configured timezone, including
year boundaries and 53-week years.
"""

import pytest
from datetime import date, datetime, timedelta
import pytz

from weekly_feedback.utils.datetime_utils import (
    Period,
    current_period,
    format_week_range,
    get_local_now,
    get_week_end_date,
    get_week_start_date,
    is_valid_period,
    period_of,
    previous_period,
    to_aware_utc,
    to_naive_local,
    week_bounds,
    weeks_in_year,
)


class TestPeriodOf:
    """Tests for period_of."""

    def test_mid_year_date(self):
        assert period_of(datetime(2026, 2, 11, 12, 0)) == Period(7, 2026)

    def test_first_days_of_january_can_belong_to_previous_year(self):
        # 1 Jan 2027 is a Friday, so it is in the last week of 2026
        assert period_of(datetime(2027, 1, 1, 9, 0)) == Period(53, 2026)

    def test_late_december_can_belong_to_next_year(self):
        # 30 Dec 2024 is a Monday in week 1 of 2025
        assert period_of(datetime(2024, 12, 30, 9, 0)) == Period(1, 2025)

    def test_aware_timestamp_uses_configured_timezone(self):
        # Sunday 20:00 UTC is already Monday in Tokyo
        ts = pytz.UTC.localize(datetime(2026, 1, 4, 20, 0))
        assert period_of(ts, "Europe/London") == Period(1, 2026)
        assert period_of(ts, "Asia/Tokyo") == Period(2, 2026)

    def test_every_timestamp_falls_inside_its_week(self):
        """Sweep 2020-2030 in 13-hour steps; every period exists and contains its timestamp."""
        t = datetime(2020, 1, 1)
        seen = set()
        while t < datetime(2031, 1, 1):
            p = period_of(t, "Europe/London")
            assert is_valid_period(p.week, p.year), t
            assert get_week_start_date(p) <= t.date() <= get_week_end_date(p), t
            seen.add(p)
            t += timedelta(hours=13)

        assert Period(53, 2020) in seen
        assert Period(53, 2026) in seen
        assert Period(53, 2021) not in seen

    @pytest.mark.parametrize("day,expected", [
        (date(2020, 12, 31), Period(53, 2020)),
        (date(2021, 1, 3), Period(53, 2020)),
        (date(2021, 1, 4), Period(1, 2021)),
        (date(2025, 12, 28), Period(52, 2025)),
        (date(2025, 12, 29), Period(1, 2026)),
        (date(2026, 12, 31), Period(53, 2026)),
        (date(2027, 1, 4), Period(1, 2027)),
    ])
    def test_year_boundaries(self, day, expected):
        assert period_of(datetime.combine(day, datetime.min.time())) == expected

    def test_period_str(self):
        assert str(Period(7, 2026)) == "W07/2026"


class TestPreviousPeriod:
    """Tests for previous_period."""

    def test_steps_back_one_week(self):
        assert previous_period(datetime(2026, 2, 11, 12, 0)) == Period(6, 2026)

    def test_crosses_into_53_week_year(self):
        assert previous_period(datetime(2027, 1, 5, 12, 0)) == Period(53, 2026)

    def test_crosses_into_52_week_year(self):
        assert previous_period(datetime(2026, 1, 2, 12, 0)) == Period(52, 2025)

    def test_current_period_accepts_explicit_now(self):
        assert current_period(datetime(2026, 3, 2, 0, 1)) == Period(10, 2026)


class TestValidPeriods:
    """Tests for weeks_in_year and is_valid_period."""

    def test_weeks_in_year(self):
        assert weeks_in_year(2025) == 52
        assert weeks_in_year(2026) == 53

    @pytest.mark.parametrize("week,year,expected", [
        (1, 2026, True),
        (53, 2026, True),
        (53, 2025, False),
        (0, 2026, False),
        (54, 2026, False),
        (10, 2019, False),
        (10, 2101, False),
    ])
    def test_is_valid_period(self, week, year, expected):
        assert is_valid_period(week, year) is expected

    def test_rejects_non_integers(self):
        assert is_valid_period("7", 2026) is False


class TestWeekDates:
    """Tests for week start/end helpers."""

    def test_week_start_and_end(self):
        assert get_week_start_date(Period(7, 2026)) == date(2026, 2, 9)
        assert get_week_end_date(Period(7, 2026)) == date(2026, 2, 15)

    def test_format_week_range(self):
        assert format_week_range(Period(7, 2026)) == "Mon 9 Feb - Sun 15 Feb 2026"

    def test_week_bounds(self):
        start, end = week_bounds(Period(7, 2026))
        assert start == datetime(2026, 2, 9, 0, 0)
        assert end.date() == date(2026, 2, 15)
        assert (end.hour, end.minute, end.second) == (23, 59, 59)


class TestTimezoneConversion:
    """Tests for naive-local and aware-UTC conversion."""

    def test_get_local_now_is_naive(self):
        assert get_local_now("Europe/London").tzinfo is None

    def test_to_naive_local_shifts_aware_values(self):
        ts = pytz.UTC.localize(datetime(2026, 7, 1, 12, 0))
        assert to_naive_local(ts, "Europe/London") == datetime(2026, 7, 1, 13, 0)

    def test_round_trip_to_utc(self):
        local = datetime(2026, 7, 1, 13, 0)
        assert to_aware_utc(local, "Europe/London") == pytz.UTC.localize(datetime(2026, 7, 1, 12, 0))

    def test_none_passthrough(self):
        assert to_naive_local(None) is None
        assert to_aware_utc(None) is None
