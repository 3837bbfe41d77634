"""Profile and follow-graph API endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from movibeers.config import get_settings
from movibeers.dependencies import get_current_user_id, get_services
from movibeers.models import User
from movibeers.services import Services
from movibeers.social.schemas import (
    CreateProfileRequest,
    FollowResponse,
    SearchResponse,
    SearchResultResponse,
    UpdateProfileRequest,
    UpdateUsernameRequest,
    UserListResponse,
    UserResponse,
    UserSummary,
    WeeklyHistoryResponse,
    WeeklyStatsResponse,
)

router = APIRouter(prefix="/api/v1", tags=["Users"])


def _user_response(user: User) -> UserResponse:
    response = UserResponse.model_validate(user)
    response.following_count = len(user.following)
    response.followers_count = len(user.followers)
    return response


@router.post("/users", response_model=UserResponse, status_code=201)
async def create_profile(
    body: CreateProfileRequest,
    user_id: str = Depends(get_current_user_id),
    services: Services = Depends(get_services),
) -> UserResponse:
    """Create the caller's profile after first sign-in."""
    return _user_response(await services.profiles.create_profile(user_id, body.username, body.email))


@router.get("/users/me", response_model=UserResponse)
async def get_me(
    user_id: str = Depends(get_current_user_id),
    services: Services = Depends(get_services),
) -> UserResponse:
    return _user_response(await services.profiles.get_profile(user_id))


@router.patch("/users/me", response_model=UserResponse)
async def update_me(
    body: UpdateProfileRequest,
    user_id: str = Depends(get_current_user_id),
    services: Services = Depends(get_services),
) -> UserResponse:
    user = await services.profiles.update_profile(user_id, bio=body.bio, profile_image_url=body.profile_image_url)
    return _user_response(user)


@router.put("/users/me/username", response_model=UserResponse)
async def change_username(
    body: UpdateUsernameRequest,
    user_id: str = Depends(get_current_user_id),
    services: Services = Depends(get_services),
) -> UserResponse:
    """Rename the caller. Existing posts pick up the new name in the background."""
    return _user_response(await services.profiles.update_username(user_id, body.username))


@router.get("/users/search", response_model=SearchResponse)
async def search_users(
    q: str = Query("", max_length=64),
    limit: int | None = Query(None, ge=1, le=50),
    user_id: str = Depends(get_current_user_id),
    services: Services = Depends(get_services),
) -> SearchResponse:
    """Case-sensitive username prefix search."""
    results = await services.graph.search_users(user_id, q, limit or get_settings().search_result_limit)
    return SearchResponse(
        results=[
            SearchResultResponse(user=UserSummary.model_validate(r.user), is_following=r.is_following)
            for r in results
        ]
    )


@router.get("/users/{user_id}", response_model=UserResponse)
async def get_user(
    user_id: str,
    _caller: str = Depends(get_current_user_id),
    services: Services = Depends(get_services),
) -> UserResponse:
    return _user_response(await services.profiles.get_profile(user_id))


@router.get("/users/{user_id}/followers", response_model=UserListResponse)
async def list_followers(
    user_id: str,
    _caller: str = Depends(get_current_user_id),
    services: Services = Depends(get_services),
) -> UserListResponse:
    users = await services.graph.list_followers(user_id)
    return UserListResponse(users=[UserSummary.model_validate(u) for u in users])


@router.get("/users/{user_id}/following", response_model=UserListResponse)
async def list_following(
    user_id: str,
    _caller: str = Depends(get_current_user_id),
    services: Services = Depends(get_services),
) -> UserListResponse:
    users = await services.graph.list_following(user_id)
    return UserListResponse(users=[UserSummary.model_validate(u) for u in users])


@router.post("/users/{user_id}/follow", response_model=FollowResponse)
async def follow(
    user_id: str,
    caller: str = Depends(get_current_user_id),
    services: Services = Depends(get_services),
) -> FollowResponse:
    changed = await services.graph.follow(caller, user_id)
    return FollowResponse(following=True, changed=changed)


@router.delete("/users/{user_id}/follow", response_model=FollowResponse)
async def unfollow(
    user_id: str,
    caller: str = Depends(get_current_user_id),
    services: Services = Depends(get_services),
) -> FollowResponse:
    await services.graph.unfollow(caller, user_id)
    return FollowResponse(following=False)


@router.get("/users/{user_id}/weekly-stats", response_model=WeeklyHistoryResponse)
async def weekly_history(
    user_id: str,
    limit: int = Query(12, ge=1, le=104),
    _caller: str = Depends(get_current_user_id),
    services: Services = Depends(get_services),
) -> WeeklyHistoryResponse:
    """Archived weeks, newest first."""
    weeks = await services.rollover.get_weekly_history(user_id, limit)
    return WeeklyHistoryResponse(weeks=[WeeklyStatsResponse.model_validate(w) for w in weeks])
