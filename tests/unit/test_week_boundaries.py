"""Unit tests for Sunday-aligned week boundaries."""

from datetime import date, datetime, timedelta, timezone
from zoneinfo import ZoneInfo

from movibeers.tracking.week import start_of_week, week_bounds

UTC = ZoneInfo("UTC")


class TestStartOfWeek:
    def test_sunday_is_start_of_week(self):
        sun = datetime(2026, 10, 11, 0, 0, tzinfo=timezone.utc)
        assert start_of_week(sun, UTC) == date(2026, 10, 11)

    def test_wednesday_returns_previous_sunday(self):
        wed = datetime(2026, 10, 14, 12, 0, tzinfo=timezone.utc)
        assert start_of_week(wed, UTC) == date(2026, 10, 11)

    def test_saturday_late_night_still_same_week(self):
        sat = datetime(2026, 10, 17, 23, 59, 59, tzinfo=timezone.utc)
        assert start_of_week(sat, UTC) == date(2026, 10, 11)

    def test_next_sunday_is_new_week(self):
        sun = datetime(2026, 10, 18, 0, 0, tzinfo=timezone.utc)
        assert start_of_week(sun, UTC) == date(2026, 10, 18)

    def test_result_is_always_a_sunday_not_after_now(self):
        base = datetime(2026, 1, 1, 7, 30, tzinfo=timezone.utc)
        for hours in range(0, 24 * 21, 5):
            now = base + timedelta(hours=hours)
            start = start_of_week(now, UTC)
            assert start.weekday() == 6
            assert start <= now.date()
            assert (now.date() - start).days < 7

    def test_stable_within_a_week(self):
        wed = datetime(2026, 10, 14, 12, 0, tzinfo=timezone.utc)
        results = {start_of_week(wed + timedelta(hours=h), UTC) for h in range(-60, 84)}
        assert results == {date(2026, 10, 11)}

    def test_naive_datetime_treated_as_utc(self):
        assert start_of_week(datetime(2026, 10, 14, 12, 0), UTC) == date(2026, 10, 11)

    def test_timezone_shifts_the_boundary(self):
        """Saturday 23:00 in New York is already Sunday in UTC."""
        utc_sunday = datetime(2026, 10, 18, 3, 0, tzinfo=timezone.utc)
        assert start_of_week(utc_sunday, UTC) == date(2026, 10, 18)
        assert start_of_week(utc_sunday, ZoneInfo("America/New_York")) == date(2026, 10, 11)


class TestWeekBounds:
    def test_bounds_span_sunday_to_saturday(self):
        start, end = week_bounds(date(2026, 10, 11))
        assert start.weekday() == 6
        assert end.weekday() == 5
        assert (end - start).days == 6

