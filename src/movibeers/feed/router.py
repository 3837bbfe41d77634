"""Feed API endpoints: feed pages, posts, likes and comments."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from movibeers.config import get_settings
from movibeers.dependencies import get_current_user_id, get_services
from movibeers.feed.pagination import FeedPage
from movibeers.feed.schemas import (
    CommentRequest,
    FeedResponse,
    InteractionResponse,
    LikeResponse,
    PostInteractionsResponse,
    PostResponse,
)
from movibeers.services import Services

router = APIRouter(prefix="/api/v1", tags=["Feed"])


def _feed_response(page: FeedPage) -> FeedResponse:
    return FeedResponse(
        posts=[PostResponse.model_validate(p) for p in page.posts],
        next_cursor=page.next_cursor,
        has_more=page.has_more,
    )


@router.get("/feed", response_model=FeedResponse)
async def get_feed(
    limit: int | None = Query(None, ge=1, le=100),
    cursor: str | None = Query(None),
    user_id: str = Depends(get_current_user_id),
    services: Services = Depends(get_services),
) -> FeedResponse:
    """Caller's posts and those of everyone they follow, newest first."""
    page = await services.feed.get_feed(user_id, limit or get_settings().feed_page_size, cursor)
    return _feed_response(page)


@router.get("/feed/more", response_model=FeedResponse)
async def load_more(
    current_count: int = Query(..., ge=0),
    page_increment: int | None = Query(None, ge=1, le=100),
    user_id: str = Depends(get_current_user_id),
    services: Services = Depends(get_services),
) -> FeedResponse:
    """Count-based paging for older clients; prefer ``/feed?cursor=``."""
    page = await services.feed.load_more(user_id, current_count, page_increment or get_settings().feed_page_size)
    return _feed_response(page)


@router.get("/users/{user_id}/posts", response_model=FeedResponse)
async def user_posts(
    user_id: str,
    limit: int = Query(20, ge=1, le=100),
    cursor: str | None = Query(None),
    _caller: str = Depends(get_current_user_id),
    services: Services = Depends(get_services),
) -> FeedResponse:
    return _feed_response(await services.feed.get_user_posts(user_id, limit, cursor))


@router.get("/posts/{post_id}", response_model=PostResponse)
async def get_post(
    post_id: str,
    _caller: str = Depends(get_current_user_id),
    services: Services = Depends(get_services),
) -> PostResponse:
    return PostResponse.model_validate(await services.feed.get_post(post_id))


@router.post("/posts/{post_id}/like", response_model=LikeResponse)
async def like_post(
    post_id: str,
    user_id: str = Depends(get_current_user_id),
    services: Services = Depends(get_services),
) -> LikeResponse:
    """Like a post; liking twice is a no-op."""
    changed = await services.interactions.like(post_id, user_id)
    return LikeResponse(liked=True, changed=changed)


@router.delete("/posts/{post_id}/like", response_model=LikeResponse)
async def unlike_post(
    post_id: str,
    user_id: str = Depends(get_current_user_id),
    services: Services = Depends(get_services),
) -> LikeResponse:
    changed = await services.interactions.unlike(post_id, user_id)
    return LikeResponse(liked=False, changed=changed)


@router.post("/posts/{post_id}/comments", response_model=InteractionResponse, status_code=201)
async def comment_on_post(
    post_id: str,
    body: CommentRequest,
    user_id: str = Depends(get_current_user_id),
    services: Services = Depends(get_services),
) -> InteractionResponse:
    comment = await services.interactions.comment(post_id, user_id, body.text)
    return InteractionResponse.model_validate(comment)


@router.get("/posts/{post_id}/interactions", response_model=PostInteractionsResponse)
async def post_interactions(
    post_id: str,
    user_id: str = Depends(get_current_user_id),
    services: Services = Depends(get_services),
) -> PostInteractionsResponse:
    """Like count, likers and comments (oldest first)."""
    result = await services.interactions.get_interactions(post_id)
    return PostInteractionsResponse(
        like_count=result.like_count,
        liked_by_me=user_id in result.liked_by,
        liked_by=result.liked_by,
        comments=[InteractionResponse.model_validate(c) for c in result.comments],
    )
