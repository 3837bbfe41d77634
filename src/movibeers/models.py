"""Document models for every collection in the record store.

Attributes are snake_case in Python and camelCase in stored documents.
Cross-document references (Post -> Activity, Notification -> Post) are
plain id fields; callers re-fetch when they need the target.
"""

from __future__ import annotations

from datetime import date, datetime
from enum import Enum
from typing import Any, Self

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from movibeers.store import Record

# ---------------------------------------------------------------------------
# Collections
# ---------------------------------------------------------------------------

USERS = "users"
USERNAMES = "usernames"
BEERS = "beers"
MOVIES = "movies"
POSTS = "posts"
INTERACTIONS = "interactions"
NOTIFICATIONS = "notifications"
WEEKLY_STATS = "weeklyStats"


class ActivityType(str, Enum):
    BEER = "beer"
    MOVIE = "movie"


class InteractionKind(str, Enum):
    LIKE = "like"
    COMMENT = "comment"


class NotificationKind(str, Enum):
    LIKE = "like"
    COMMENT = "comment"
    FOLLOW = "follow"


def activity_collection(activity_type: ActivityType) -> str:
    return BEERS if activity_type is ActivityType.BEER else MOVIES


class DocumentModel(BaseModel):
    """Base for stored documents; ``id`` is the document key, not a field."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: str | None = None

    @classmethod
    def from_record(cls, record: Record) -> Self:
        return cls.model_validate({**record.data, "id": record.id})

    def to_document(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude={"id"})


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------


class User(DocumentModel):
    username: str
    email: str = ""
    bio: str | None = None
    profile_image_url: str | None = Field(None, alias="profileImageURL")
    join_date: datetime
    current_week_beers: int = 0
    current_week_movies: int = 0
    total_beers: int = 0
    total_movies: int = 0
    current_streak: int = 0
    record_streak: int = 0
    following: list[str] = Field(default_factory=list)
    followers: list[str] = Field(default_factory=list)
    # Week the current-week counters belong to; advanced by the weekly rollover.
    counter_week_start: date | None = None


class WeeklyStats(DocumentModel):
    user_id: str
    week_start_date: date
    week_end_date: date
    beers_consumed: int = 0
    movies_watched: int = 0
    completed_week: bool = False


def weekly_stats_id(user_id: str, week_start: date) -> str:
    return f"{user_id}_{week_start.isoformat()}"


# ---------------------------------------------------------------------------
# Activities
# ---------------------------------------------------------------------------


class Activity(DocumentModel):
    """A logged beer or movie. ``title`` is the beer name or the movie title."""

    user_id: str
    type: ActivityType
    title: str
    location: str | None = None
    review: str | None = None
    rating: int | None = None
    consumed_at: datetime
    week_number: int
    week_start_date: date
    image_url: str | None = Field(None, alias="imageURL")
    standardized_id: str | None = None

    # Beer
    brand: str | None = None
    size: str | None = None
    style: str | None = None
    abv: float | None = None

    # Movie
    director: str | None = None
    year: int | None = None
    genre: str | None = None
    runtime: int | None = None

    @property
    def subtitle(self) -> str:
        if self.type is ActivityType.BEER:
            return self.brand or ""
        if self.director:
            return self.director
        return str(self.year) if self.year is not None else ""

    @property
    def is_standardized(self) -> bool:
        return bool(self.standardized_id)


# ---------------------------------------------------------------------------
# Feed
# ---------------------------------------------------------------------------


class Post(DocumentModel):
    user_id: str
    username: str
    type: ActivityType
    item_id: str
    title: str
    subtitle: str | None = None
    image_url: str | None = Field(None, alias="imageURL")
    location: str | None = None
    review: str | None = None
    rating: int | None = None
    created_at: datetime
    week_number: int
    standardized_id: str | None = None


class Interaction(DocumentModel):
    post_id: str
    user_id: str
    type: InteractionKind
    text: str | None = None
    created_at: datetime


class Notification(DocumentModel):
    recipient_id: str
    sender_id: str
    sender_username: str
    type: NotificationKind
    post_id: str | None = None
    post_title: str | None = None
    comment_text: str | None = None
    created_at: datetime
    is_read: bool = False
