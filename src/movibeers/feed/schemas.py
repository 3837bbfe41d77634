"""Pydantic schemas for feed, post and interaction endpoints."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from movibeers.models import ActivityType, InteractionKind


class PostResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    user_id: str
    username: str
    type: ActivityType
    item_id: str
    title: str
    subtitle: str | None = None
    image_url: str | None = None
    location: str | None = None
    review: str | None = None
    rating: int | None = None
    created_at: datetime
    week_number: int
    standardized_id: str | None = None


class FeedResponse(BaseModel):
    posts: list[PostResponse]
    next_cursor: str | None = None
    has_more: bool


class CommentRequest(BaseModel):
    text: str = Field(..., max_length=1000)


class InteractionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    post_id: str
    user_id: str
    type: InteractionKind
    text: str | None = None
    created_at: datetime


class LikeResponse(BaseModel):
    liked: bool
    changed: bool


class PostInteractionsResponse(BaseModel):
    like_count: int
    liked_by_me: bool
    liked_by: list[str]
    comments: list[InteractionResponse]
