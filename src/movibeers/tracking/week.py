"""Week boundaries and per-week activity sequence numbers.

Weeks run Sunday 00:00 through Saturday 23:59:59 in the configured time
zone. An activity's ``week_number`` is its 1-based position among the
author's activities of the same type logged in the current week.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone
from zoneinfo import ZoneInfo

from movibeers.clock import Clock, utcnow
from movibeers.errors import WeekCalculationFailed
from movibeers.models import ActivityType, activity_collection
from movibeers.store import Query, RecordStore, StoreError

logger = logging.getLogger(__name__)


def local_date(now: datetime, tz: ZoneInfo) -> date:
    """Calendar date of ``now`` in ``tz``. Naive datetimes are taken as UTC."""
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    return now.astimezone(tz).date()


def start_of_week(now: datetime, tz: ZoneInfo) -> date:
    """Get the Sunday that opens the week containing ``now``."""
    d = local_date(now, tz)
    # weekday(): Monday=0 .. Sunday=6
    return d - timedelta(days=(d.weekday() + 1) % 7)


def week_bounds(week_start: date) -> tuple[date, date]:
    """First and last calendar day (Sunday, Saturday) of the week."""
    return week_start, week_start + timedelta(days=6)


@dataclass(frozen=True)
class WeekData:
    week_start: date
    week_number: int


class WeekCalculator:
    def __init__(self, store: RecordStore, tz: ZoneInfo, clock: Clock = utcnow) -> None:
        self.store = store
        self.tz = tz
        self.clock = clock

    def start_of_current_week(self) -> date:
        return start_of_week(self.clock(), self.tz)

    async def next_sequence_number(self, user_id: str, activity_type: ActivityType, week_start: date) -> int:
        """Count this week's activities of ``activity_type`` for the user, plus one.

        Two concurrent submissions may observe the same count and receive the
        same number; that race is tolerated.
        """
        query = (
            Query()
            .where("userId", "==", user_id)
            .where("weekStartDate", "==", week_start)
        )
        try:
            existing = await self.store.count(activity_collection(activity_type), query)
        except StoreError as exc:
            logger.exception("Week sequence lookup failed for user %s", user_id)
            raise WeekCalculationFailed(f"Could not compute week number: {exc}") from exc
        return existing + 1

    async def current_week(self, user_id: str, activity_type: ActivityType) -> WeekData:
        week_start = self.start_of_current_week()
        number = await self.next_sequence_number(user_id, activity_type, week_start)
        return WeekData(week_start=week_start, week_number=number)
