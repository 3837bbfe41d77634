"""Tests for the weekly rollover job."""

from datetime import date, datetime, timedelta, timezone
from unittest.mock import AsyncMock
from zoneinfo import ZoneInfo

import pytest
from conftest import NOW

from movibeers.errors import FetchFailed
from movibeers.models import USERS, WEEKLY_STATS, ActivityType, weekly_stats_id
from movibeers.store import StoreError
from movibeers.tracking.rollover import WeekRollover
from movibeers.tracking.week import WeekCalculator, WeekData

NEXT_SUNDAY = datetime(2026, 10, 18, 0, 5, tzinfo=timezone.utc)


@pytest.fixture
def rollover(store, clock) -> WeekRollover:
    return WeekRollover(store, ZoneInfo("UTC"), beer_goal=2, movie_goal=1, clock=clock)


async def _log_week(services, beers: int, movies: int) -> None:
    for i in range(beers):
        await services.tracker.add_beer("alice", f"Beer {i}")
    for i in range(movies):
        await services.tracker.add_movie("alice", f"Movie {i}")


class TestRollover:
    @pytest.mark.asyncio
    async def test_completed_week_archived_and_streak_extended(self, services, store, rollover, alice):
        await _log_week(services, beers=2, movies=1)

        assert await rollover.run(now=NEXT_SUNDAY) == 1

        stats = (await store.get(WEEKLY_STATS, weekly_stats_id("alice", date(2026, 10, 11)))).data
        assert stats["beersConsumed"] == 2
        assert stats["moviesWatched"] == 1
        assert stats["completedWeek"] is True
        assert stats["weekEndDate"] == date(2026, 10, 17)

        user = (await store.get(USERS, "alice")).data
        assert user["currentStreak"] == 1
        assert user["recordStreak"] == 1
        assert user["currentWeekBeers"] == 0
        assert user["currentWeekMovies"] == 0
        assert user["totalBeers"] == 2
        assert user["counterWeekStart"] == date(2026, 10, 18)

    @pytest.mark.asyncio
    async def test_second_run_is_noop(self, services, rollover, alice):
        await _log_week(services, beers=2, movies=1)
        assert await rollover.run(now=NEXT_SUNDAY) == 1
        assert await rollover.run(now=NEXT_SUNDAY) == 0

    @pytest.mark.asyncio
    async def test_missed_weeks_reset_streak_keep_record(self, services, store, rollover, alice):
        await _log_week(services, beers=2, movies=1)
        await rollover.run(now=NEXT_SUNDAY)

        two_weeks_later = NEXT_SUNDAY + timedelta(days=14)
        assert await rollover.run(now=two_weeks_later) == 1

        history = await rollover.get_weekly_history("alice")
        assert [w.week_start_date for w in history] == [date(2026, 10, 25), date(2026, 10, 18), date(2026, 10, 11)]
        assert [w.completed_week for w in history] == [False, False, True]

        user = (await store.get(USERS, "alice")).data
        assert user["currentStreak"] == 0
        assert user["recordStreak"] == 1

    @pytest.mark.asyncio
    async def test_activity_before_job_counts_for_new_week(self, services, store, clock, rollover, alice):
        await _log_week(services, beers=2, movies=0)
        clock.set(NEXT_SUNDAY - timedelta(minutes=4))
        await services.tracker.add_beer("alice", "Early Sunday")

        await rollover.run(now=NEXT_SUNDAY)

        stats = (await store.get(WEEKLY_STATS, weekly_stats_id("alice", date(2026, 10, 11)))).data
        assert stats["beersConsumed"] == 2
        assert stats["completedWeek"] is False
        assert (await store.get(USERS, "alice")).data["currentWeekBeers"] == 1

    @pytest.mark.asyncio
    async def test_user_failure_does_not_stop_run(self, services, store, rollover, alice, bob, monkeypatch):
        monkeypatch.setattr(store, "commit_batch", AsyncMock(side_effect=StoreError("down")))
        assert await rollover.run(now=NEXT_SUNDAY) == 0

    @pytest.mark.asyncio
    async def test_user_page_failure(self, store, rollover, monkeypatch):
        monkeypatch.setattr(store, "query", AsyncMock(side_effect=StoreError("down")))
        with pytest.raises(FetchFailed):
            await rollover.run(now=NEXT_SUNDAY)


class TestWeekCalculator:
    @pytest.mark.asyncio
    async def test_current_week_counts_existing(self, services, store, clock, alice):
        calc = WeekCalculator(store, ZoneInfo("UTC"), clock)
        assert calc.start_of_current_week() == date(2026, 10, 11)

        week = await calc.current_week("alice", ActivityType.BEER)
        assert week == WeekData(week_start=date(2026, 10, 11), week_number=1)

        await services.tracker.add_beer("alice", "Lager")
        assert (await calc.current_week("alice", ActivityType.BEER)).week_number == 2
        assert (await calc.current_week("alice", ActivityType.MOVIE)).week_number == 1

    @pytest.mark.asyncio
    async def test_previous_week_not_counted(self, services, store, clock, alice):
        await services.tracker.add_beer("alice", "Lager")
        clock.set(NOW + timedelta(days=7))
        calc = WeekCalculator(store, ZoneInfo("UTC"), clock)
        assert (await calc.current_week("alice", ActivityType.BEER)).week_number == 1
