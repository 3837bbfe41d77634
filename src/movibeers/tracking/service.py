"""Activity tracking: persist a beer or movie, bump counters, publish to the feed."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

import structlog

from movibeers.clock import Clock, utcnow
from movibeers.errors import (
    FetchFailed,
    NotFound,
    PartialFailure,
    SaveFailed,
    ValidationFailed,
)
from movibeers.feed.publisher import FeedPublisher
from movibeers.models import USERS, Activity, ActivityType, Post, User, activity_collection
from movibeers.store import Increment, Query, RecordStore, StoreError
from movibeers.tracking.standardize import (
    standardize_beer_name,
    standardize_brand,
    standardize_movie_title,
)
from movibeers.tracking.week import WeekCalculator

logger = structlog.get_logger()

MIN_MOVIE_YEAR = 1800

COMMON_FIELDS = ("location", "review", "rating", "image_url", "standardized_id")
BEER_FIELDS = ("brand", "size", "style", "abv")
MOVIE_FIELDS = ("director", "year", "genre", "runtime")

PARTIAL_STEPS = ("counters", "publish")

_COUNTER_FIELDS = {
    ActivityType.BEER: ("totalBeers", "currentWeekBeers"),
    ActivityType.MOVIE: ("totalMovies", "currentWeekMovies"),
}


def _blank(value: Any) -> bool:  # noqa: ANN401
    return value is None or (isinstance(value, str) and not value.strip())


def validate_fields(activity_type: ActivityType, fields: Mapping[str, Any], current_year: int) -> None:
    """Reject input the client should have caught; raises ValidationFailed."""
    if _blank(fields.get("title")):
        label = "Beer name" if activity_type is ActivityType.BEER else "Movie title"
        raise ValidationFailed(f"{label} is required", field="title")

    rating = fields.get("rating")
    if rating is not None and not 1 <= rating <= 5:  # noqa: PLR2004
        raise ValidationFailed("Rating must be between 1 and 5", field="rating")

    if activity_type is ActivityType.BEER:
        abv = fields.get("abv")
        if abv is not None and not 0 <= abv <= 100:  # noqa: PLR2004
            raise ValidationFailed("ABV must be between 0 and 100", field="abv")
        return

    year = fields.get("year")
    if year is not None and not MIN_MOVIE_YEAR <= year <= current_year:
        raise ValidationFailed(f"Year must be between {MIN_MOVIE_YEAR} and {current_year}", field="year")
    runtime = fields.get("runtime")
    if runtime is not None and runtime <= 0:
        raise ValidationFailed("Runtime must be positive", field="runtime")


def _standardized(activity_type: ActivityType, fields: dict[str, Any]) -> dict[str, Any]:
    if activity_type is ActivityType.BEER:
        fields["title"] = standardize_beer_name(fields["title"])
        if not _blank(fields.get("brand")):
            fields["brand"] = standardize_brand(fields["brand"])
    else:
        fields["title"] = standardize_movie_title(fields["title"])
    return fields


class ActivityTracker:
    def __init__(
        self,
        store: RecordStore,
        week: WeekCalculator,
        publisher: FeedPublisher,
        clock: Clock = utcnow,
    ) -> None:
        self.store = store
        self.week = week
        self.publisher = publisher
        self.clock = clock

    async def _load_user(self, user_id: str) -> User:
        try:
            record = await self.store.get(USERS, user_id)
        except StoreError as exc:
            raise FetchFailed(f"Could not load user: {exc}") from exc
        if record is None:
            raise NotFound("user", user_id)
        return User.from_record(record)

    async def add_activity(
        self,
        user_id: str,
        activity_type: ActivityType,
        fields: Mapping[str, Any],
        *,
        standardize: bool = False,
    ) -> Activity:
        """Record one beer or movie for ``user_id``.

        Raises SaveFailed if the activity itself could not be written, and
        PartialFailure if it was written but the counter or feed step was not.
        """
        now = self.clock()
        validate_fields(activity_type, fields, now.year)

        allowed = COMMON_FIELDS + (BEER_FIELDS if activity_type is ActivityType.BEER else MOVIE_FIELDS)
        values = {key: fields[key] for key in allowed if fields.get(key) is not None}
        values["title"] = fields["title"].strip()
        if standardize:
            values = _standardized(activity_type, values)

        author = await self._load_user(user_id)
        week = await self.week.current_week(user_id, activity_type)

        activity = Activity(
            user_id=user_id,
            type=activity_type,
            consumed_at=now,
            week_number=week.week_number,
            week_start_date=week.week_start,
            **values,
        )
        try:
            activity.id = await self.store.insert(activity_collection(activity_type), activity.to_document())
        except StoreError as exc:
            logger.warning("activity_save_failed", user_id=user_id, type=activity_type.value, error=str(exc))
            raise SaveFailed(f"Could not save {activity_type.value}: {exc}") from exc

        await self._finish(activity, author, "counters")
        logger.info(
            "activity_added",
            activity_id=activity.id,
            user_id=user_id,
            type=activity_type.value,
            week_number=activity.week_number,
        )
        return activity

    async def add_beer(self, user_id: str, name: str, *, standardize: bool = False, **fields: Any) -> Activity:  # noqa: ANN401
        return await self.add_activity(user_id, ActivityType.BEER, {**fields, "title": name}, standardize=standardize)

    async def add_movie(self, user_id: str, title: str, *, standardize: bool = False, **fields: Any) -> Activity:  # noqa: ANN401
        return await self.add_activity(user_id, ActivityType.MOVIE, {**fields, "title": title}, standardize=standardize)

    async def _increment_counters(self, activity: Activity) -> None:
        total, current = _COUNTER_FIELDS[activity.type]
        await self.store.update(USERS, activity.user_id, {total: Increment(1), current: Increment(1)})

    async def _finish(self, activity: Activity, author: User, step: str) -> Post:
        """Run the downstream steps from ``step`` onward."""
        if step == "counters":
            try:
                await self._increment_counters(activity)
            except StoreError as exc:
                logger.error("activity_partial_failure", activity_id=activity.id, step="counters", error=str(exc))
                raise PartialFailure(activity, "counters", str(exc)) from exc

        try:
            return await self.publisher.publish(activity, author)
        except (SaveFailed, FetchFailed) as exc:
            logger.error("activity_partial_failure", activity_id=activity.id, step="publish", error=exc.message)
            raise PartialFailure(activity, "publish", exc.message) from exc

    async def retry_partial(self, activity: Activity, step: str) -> Post:
        """Complete the steps a PartialFailure reported as missing.

        Publishing is idempotent by activity id. Retrying ``"counters"``
        increments again, so only retry it for a failure that reported it.
        """
        if step not in PARTIAL_STEPS:
            raise ValidationFailed(f"Unknown step {step!r}", field="step")
        author = await self._load_user(activity.user_id)
        return await self._finish(activity, author, step)

    async def get_activity(self, activity_type: ActivityType, activity_id: str) -> Activity:
        try:
            record = await self.store.get(activity_collection(activity_type), activity_id)
        except StoreError as exc:
            raise FetchFailed(f"Could not load {activity_type.value}: {exc}") from exc
        if record is None:
            raise NotFound(activity_type.value, activity_id)
        return Activity.from_record(record)

    async def list_activities(self, user_id: str, activity_type: ActivityType, limit: int = 50) -> list[Activity]:
        """The user's activities of one type, newest first."""
        query = Query().where("userId", "==", user_id).order_by("consumedAt", descending=True).limit(limit)
        try:
            records = await self.store.query(activity_collection(activity_type), query)
        except StoreError as exc:
            raise FetchFailed(f"Could not load {activity_type.value}s: {exc}") from exc
        return [Activity.from_record(r) for r in records]
