"""Tracking API endpoints: log beers and movies, list them, retry partial writes."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from movibeers.dependencies import get_current_user_id, get_services
from movibeers.errors import NotFound
from movibeers.feed.schemas import PostResponse
from movibeers.models import ActivityType
from movibeers.services import Services
from movibeers.tracking.schemas import (
    ActivityListResponse,
    ActivityResponse,
    AddBeerRequest,
    AddMovieRequest,
    RetryRequest,
    SuggestionsResponse,
)

router = APIRouter(prefix="/api/v1", tags=["Tracking"])


@router.post("/beers", response_model=ActivityResponse, status_code=201)
async def add_beer(
    body: AddBeerRequest,
    user_id: str = Depends(get_current_user_id),
    services: Services = Depends(get_services),
) -> ActivityResponse:
    """Log a beer. Updates the caller's counters and publishes a feed post."""
    fields = body.model_dump(exclude={"name", "standardize"}, exclude_none=True)
    activity = await services.tracker.add_beer(user_id, body.name, standardize=body.standardize, **fields)
    return ActivityResponse.model_validate(activity)


@router.post("/movies", response_model=ActivityResponse, status_code=201)
async def add_movie(
    body: AddMovieRequest,
    user_id: str = Depends(get_current_user_id),
    services: Services = Depends(get_services),
) -> ActivityResponse:
    """Log a movie. Updates the caller's counters and publishes a feed post."""
    fields = body.model_dump(exclude={"title", "standardize"}, exclude_none=True)
    activity = await services.tracker.add_movie(user_id, body.title, standardize=body.standardize, **fields)
    return ActivityResponse.model_validate(activity)


@router.get("/users/{user_id}/beers", response_model=ActivityListResponse)
async def list_beers(
    user_id: str,
    limit: int = Query(50, ge=1, le=100),
    _caller: str = Depends(get_current_user_id),
    services: Services = Depends(get_services),
) -> ActivityListResponse:
    activities = await services.tracker.list_activities(user_id, ActivityType.BEER, limit)
    return ActivityListResponse(activities=[ActivityResponse.model_validate(a) for a in activities])


@router.get("/users/{user_id}/movies", response_model=ActivityListResponse)
async def list_movies(
    user_id: str,
    limit: int = Query(50, ge=1, le=100),
    _caller: str = Depends(get_current_user_id),
    services: Services = Depends(get_services),
) -> ActivityListResponse:
    activities = await services.tracker.list_activities(user_id, ActivityType.MOVIE, limit)
    return ActivityListResponse(activities=[ActivityResponse.model_validate(a) for a in activities])


@router.post("/activities/{activity_type}/{activity_id}/retry", response_model=PostResponse)
async def retry_partial(
    activity_type: ActivityType,
    activity_id: str,
    body: RetryRequest,
    user_id: str = Depends(get_current_user_id),
    services: Services = Depends(get_services),
) -> PostResponse:
    """Finish the steps a PARTIAL_FAILURE response reported as missing."""
    activity = await services.tracker.get_activity(activity_type, activity_id)
    if activity.user_id != user_id:
        # Other users' activities are indistinguishable from missing ones.
        raise NotFound(activity_type.value, activity_id)
    post = await services.tracker.retry_partial(activity, body.step)
    return PostResponse.model_validate(post)


@router.get("/suggestions/{activity_type}", response_model=SuggestionsResponse)
async def suggestions(
    activity_type: ActivityType,
    q: str = Query("", max_length=100),
    limit: int = Query(5, ge=1, le=20),
    _caller: str = Depends(get_current_user_id),
    services: Services = Depends(get_services),
) -> SuggestionsResponse:
    """Previously logged names starting with ``q``, most popular first."""
    return SuggestionsResponse(suggestions=await services.suggestions.popular(activity_type, q, limit))
