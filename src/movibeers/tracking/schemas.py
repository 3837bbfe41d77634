"""Pydantic schemas for tracking endpoints."""

from __future__ import annotations

from datetime import date, datetime

from pydantic import BaseModel, ConfigDict, Field

from movibeers.models import ActivityType


class _ActivityRequest(BaseModel):
    location: str | None = Field(None, max_length=200)
    review: str | None = Field(None, max_length=2000)
    rating: int | None = None
    image_url: str | None = Field(None, max_length=2048)
    standardized_id: str | None = Field(None, max_length=128)
    standardize: bool = False


class AddBeerRequest(_ActivityRequest):
    name: str = Field(..., max_length=200)
    brand: str | None = Field(None, max_length=200)
    size: str | None = Field(None, max_length=50)
    style: str | None = Field(None, max_length=100)
    abv: float | None = None


class AddMovieRequest(_ActivityRequest):
    title: str = Field(..., max_length=300)
    director: str | None = Field(None, max_length=200)
    year: int | None = None
    genre: str | None = Field(None, max_length=100)
    runtime: int | None = None


class ActivityResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    user_id: str
    type: ActivityType
    title: str
    subtitle: str
    brand: str | None = None
    size: str | None = None
    style: str | None = None
    abv: float | None = None
    director: str | None = None
    year: int | None = None
    genre: str | None = None
    runtime: int | None = None
    location: str | None = None
    review: str | None = None
    rating: int | None = None
    image_url: str | None = None
    standardized_id: str | None = None
    is_standardized: bool = False
    consumed_at: datetime
    week_number: int
    week_start_date: date


class ActivityListResponse(BaseModel):
    activities: list[ActivityResponse]


class RetryRequest(BaseModel):
    step: str = Field(..., pattern="^(counters|publish)$")


class SuggestionsResponse(BaseModel):
    suggestions: list[str]
