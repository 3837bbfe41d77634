"""Weekly rollover: archive last week's counts, update streaks, reset counters.

Should run shortly after Sunday 00:00 in the configured week time zone.

For each user whose counters still belong to an earlier week:
1. Archive a WeeklyStats document for every week since then
2. Extend the streak for each completed week, reset it on a missed one
3. Reset the current-week counters to this week's activity count

Archived counts come from the activity documents, not the counters, so an
activity logged between midnight and the job run is attributed correctly.
"""

from __future__ import annotations

import logging
from datetime import date, datetime, timedelta
from zoneinfo import ZoneInfo

from movibeers.clock import Clock, utcnow
from movibeers.errors import FetchFailed
from movibeers.models import (
    BEERS,
    MOVIES,
    USERS,
    WEEKLY_STATS,
    User,
    WeeklyStats,
    weekly_stats_id,
)
from movibeers.store import DOCUMENT_ID, AlreadyExists, Query, RecordStore, StoreError
from movibeers.tracking.week import start_of_week, week_bounds

logger = logging.getLogger(__name__)

USER_PAGE_SIZE = 200


class WeekRollover:
    def __init__(
        self,
        store: RecordStore,
        tz: ZoneInfo,
        beer_goal: int = 20,
        movie_goal: int = 3,
        clock: Clock = utcnow,
    ) -> None:
        self.store = store
        self.tz = tz
        self.beer_goal = beer_goal
        self.movie_goal = movie_goal
        self.clock = clock

    async def _count(self, collection: str, user_id: str, week_start: date) -> int:
        query = Query().where("userId", "==", user_id).where("weekStartDate", "==", week_start)
        return await self.store.count(collection, query)

    async def run(self, now: datetime | None = None) -> int:
        """Roll every user that is behind. Returns the number of users rolled."""
        current = start_of_week(now or self.clock(), self.tz)
        rolled = 0
        last_id: str | None = None

        while True:
            query = Query().order_by(DOCUMENT_ID).limit(USER_PAGE_SIZE)
            if last_id is not None:
                query = query.start_after(last_id, last_id)
            try:
                records = await self.store.query(USERS, query)
            except StoreError as exc:
                raise FetchFailed(f"Could not page users: {exc}") from exc

            for record in records:
                user = User.from_record(record)
                try:
                    if await self.roll_user(user, current):
                        rolled += 1
                except StoreError:
                    logger.warning("Week rollover failed for user %s", user.id, exc_info=True)

            if len(records) < USER_PAGE_SIZE:
                break
            last_id = records[-1].id

        logger.info("Week rollover to %s complete: %d users rolled", current.isoformat(), rolled)
        return rolled

    async def roll_user(self, user: User, current: date) -> bool:
        """Roll one user forward to ``current``. Returns False if already there."""
        week = user.counter_week_start or start_of_week(user.join_date, self.tz)
        if week >= current:
            return False

        user_id = user.id or ""
        streak = user.current_streak
        record_streak = user.record_streak
        batch = self.store.batch()

        while week < current:
            beers = await self._count(BEERS, user_id, week)
            movies = await self._count(MOVIES, user_id, week)
            completed = beers >= self.beer_goal and movies >= self.movie_goal
            streak = streak + 1 if completed else 0
            record_streak = max(record_streak, streak)

            start, end = week_bounds(week)
            stats = WeeklyStats(
                user_id=user_id,
                week_start_date=start,
                week_end_date=end,
                beers_consumed=beers,
                movies_watched=movies,
                completed_week=completed,
            )
            batch.create(WEEKLY_STATS, weekly_stats_id(user_id, week), stats.to_document())
            week += timedelta(days=7)

        batch.update(
            USERS,
            user_id,
            {
                "currentStreak": streak,
                "recordStreak": record_streak,
                "currentWeekBeers": await self._count(BEERS, user_id, current),
                "currentWeekMovies": await self._count(MOVIES, user_id, current),
                "counterWeekStart": current,
            },
        )
        try:
            await batch.commit()
        except AlreadyExists:
            # Another run archived these weeks first.
            logger.info("Week rollover for user %s already done", user_id)
            return False
        return True

    async def get_weekly_history(self, user_id: str, limit: int = 12) -> list[WeeklyStats]:
        """Archived weeks, newest first."""
        query = (
            Query().where("userId", "==", user_id).order_by("weekStartDate", descending=True).limit(limit)
        )
        try:
            records = await self.store.query(WEEKLY_STATS, query)
        except StoreError as exc:
            raise FetchFailed(f"Could not load weekly history: {exc}") from exc
        return [WeeklyStats.from_record(r) for r in records]
