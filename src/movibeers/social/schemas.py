"""Pydantic schemas for profile, follow and notification endpoints."""

from __future__ import annotations

from datetime import date, datetime

from pydantic import BaseModel, ConfigDict, Field

from movibeers.models import NotificationKind

# --- Profiles ---


class CreateProfileRequest(BaseModel):
    username: str = Field(..., max_length=64)
    email: str = Field("", max_length=320)


class UpdateProfileRequest(BaseModel):
    bio: str | None = Field(None, max_length=500)
    profile_image_url: str | None = Field(None, max_length=2048)


class UpdateUsernameRequest(BaseModel):
    username: str = Field(..., max_length=64)


class UserResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    username: str
    bio: str | None = None
    profile_image_url: str | None = None
    join_date: datetime
    current_week_beers: int
    current_week_movies: int
    total_beers: int
    total_movies: int
    current_streak: int
    record_streak: int
    following_count: int = 0
    followers_count: int = 0


class UserSummary(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    username: str
    profile_image_url: str | None = None


class UserListResponse(BaseModel):
    users: list[UserSummary]


class SearchResultResponse(BaseModel):
    user: UserSummary
    is_following: bool


class SearchResponse(BaseModel):
    results: list[SearchResultResponse]


class FollowResponse(BaseModel):
    following: bool
    changed: bool = True


class WeeklyStatsResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    week_start_date: date
    week_end_date: date
    beers_consumed: int
    movies_watched: int
    completed_week: bool


class WeeklyHistoryResponse(BaseModel):
    weeks: list[WeeklyStatsResponse]


# --- Notifications ---


class NotificationResponse(BaseModel):
    id: str
    type: NotificationKind
    sender_id: str
    sender_username: str
    post_id: str | None = None
    post_title: str | None = None
    comment_text: str | None = None
    message: str
    created_at: datetime
    is_read: bool


class NotificationListResponse(BaseModel):
    notifications: list[NotificationResponse]


class UnreadCountResponse(BaseModel):
    unread_count: int
    poll_interval_seconds: int


class MarkAllReadResponse(BaseModel):
    updated: int
