"""Projection of an activity and its author into a feed post."""

from __future__ import annotations

import structlog

from movibeers.errors import FetchFailed, SaveFailed
from movibeers.models import POSTS, Activity, Post, User
from movibeers.store import AlreadyExists, RecordStore, StoreError

logger = structlog.get_logger()


def post_id_for(activity: Activity) -> str:
    """One post per activity: the id doubles as the de-duplication key."""
    return f"{activity.type.value}_{activity.id}"


def build_post(activity: Activity, author: User) -> Post:
    return Post(
        id=post_id_for(activity),
        user_id=activity.user_id,
        username=author.username,
        type=activity.type,
        item_id=activity.id,
        title=activity.title,
        subtitle=activity.subtitle,
        image_url=activity.image_url,
        location=activity.location,
        review=activity.review,
        rating=activity.rating,
        created_at=activity.consumed_at,
        week_number=activity.week_number,
        standardized_id=activity.standardized_id,
    )


class FeedPublisher:
    def __init__(self, store: RecordStore) -> None:
        self.store = store

    async def publish(self, activity: Activity, author: User) -> Post:
        """Write the post for ``activity``; publishing it again returns the existing post."""
        if activity.id is None:
            msg = "Cannot publish an activity that has not been saved"
            raise ValueError(msg)

        post = build_post(activity, author)
        try:
            await self.store.insert(POSTS, post.to_document(), doc_id=post.id)
        except AlreadyExists:
            return await self._existing(post.id)
        except StoreError as exc:
            raise SaveFailed(f"Could not publish post: {exc}") from exc

        logger.info("post_published", post_id=post.id, user_id=post.user_id, type=post.type.value)
        return post

    async def _existing(self, post_id: str) -> Post:
        try:
            record = await self.store.get(POSTS, post_id)
        except StoreError as exc:
            raise FetchFailed(f"Could not load post: {exc}") from exc
        if record is None:
            # Deleted between the conflicting insert and this read.
            raise FetchFailed(f"Post {post_id} vanished during publish")
        return Post.from_record(record)
