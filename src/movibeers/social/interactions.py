"""Likes and comments on posts."""

from __future__ import annotations

from dataclasses import dataclass, field

import structlog

from movibeers.clock import Clock, utcnow
from movibeers.errors import DeleteFailed, FetchFailed, MoviBeersError, NotFound, SaveFailed, ValidationFailed
from movibeers.models import (
    INTERACTIONS,
    POSTS,
    USERS,
    Interaction,
    InteractionKind,
    NotificationKind,
    Post,
    User,
)
from movibeers.social.notifications import NotificationDispatcher
from movibeers.store import AlreadyExists, Query, RecordStore, StoreError

logger = structlog.get_logger()

MAX_COMMENT_LENGTH = 1000


def like_id(post_id: str, user_id: str) -> str:
    """One like per (post, user); the store rejects a second insert under this id."""
    return f"like_{post_id}_{user_id}"


@dataclass
class PostInteractions:
    like_count: int = 0
    comments: list[Interaction] = field(default_factory=list)
    liked_by: list[str] = field(default_factory=list)


class InteractionAggregator:
    def __init__(self, store: RecordStore, notifier: NotificationDispatcher, clock: Clock = utcnow) -> None:
        self.store = store
        self.notifier = notifier
        self.clock = clock

    async def _get(self, collection: str, doc_id: str, kind: str) -> dict:
        try:
            record = await self.store.get(collection, doc_id)
        except StoreError as exc:
            raise FetchFailed(f"Could not load {kind}: {exc}") from exc
        if record is None:
            raise NotFound(kind, doc_id)
        return {**record.data, "id": record.id}

    async def _post_and_actor(self, post_id: str, user_id: str) -> tuple[Post, User]:
        post = Post.model_validate(await self._get(POSTS, post_id, "post"))
        actor = User.model_validate(await self._get(USERS, user_id, "user"))
        return post, actor

    async def _notify(self, post: Post, actor: User, kind: NotificationKind, text: str | None = None) -> None:
        try:
            await self.notifier.notify(
                post.user_id,
                actor.id or "",
                actor.username,
                kind,
                post_id=post.id,
                post_title=post.title,
                comment_text=text,
            )
        except MoviBeersError as exc:
            logger.warning("interaction_notification_failed", post_id=post.id, kind=kind.value, error=exc.message)

    async def like(self, post_id: str, user_id: str) -> bool:
        """Like a post. Returns False when the user had already liked it."""
        post, actor = await self._post_and_actor(post_id, user_id)
        interaction = Interaction(post_id=post_id, user_id=user_id, type=InteractionKind.LIKE, created_at=self.clock())
        try:
            await self.store.insert(INTERACTIONS, interaction.to_document(), doc_id=like_id(post_id, user_id))
        except AlreadyExists:
            return False
        except StoreError as exc:
            raise SaveFailed(f"Could not like post: {exc}") from exc

        logger.info("post_liked", post_id=post_id, user_id=user_id)
        await self._notify(post, actor, NotificationKind.LIKE)
        return True

    async def unlike(self, post_id: str, user_id: str) -> bool:
        """Remove the user's like. Returns False when there was none."""
        try:
            return await self.store.delete(INTERACTIONS, like_id(post_id, user_id))
        except StoreError as exc:
            raise DeleteFailed(f"Could not unlike post: {exc}") from exc

    async def comment(self, post_id: str, user_id: str, text: str) -> Interaction:
        text = text.strip()
        if not text:
            raise ValidationFailed("Comment cannot be empty", field="text")
        if len(text) > MAX_COMMENT_LENGTH:
            raise ValidationFailed(f"Comment cannot exceed {MAX_COMMENT_LENGTH} characters", field="text")

        post, actor = await self._post_and_actor(post_id, user_id)
        interaction = Interaction(
            post_id=post_id,
            user_id=user_id,
            type=InteractionKind.COMMENT,
            text=text,
            created_at=self.clock(),
        )
        try:
            interaction.id = await self.store.insert(INTERACTIONS, interaction.to_document())
        except StoreError as exc:
            raise SaveFailed(f"Could not save comment: {exc}") from exc

        logger.info("post_commented", post_id=post_id, user_id=user_id, comment_id=interaction.id)
        await self._notify(post, actor, NotificationKind.COMMENT, text)
        return interaction

    async def get_interactions(self, post_id: str) -> PostInteractions:
        """Like count, likers and comments (oldest first) from one scan."""
        try:
            records = await self.store.query(INTERACTIONS, Query().where("postId", "==", post_id))
        except StoreError as exc:
            raise FetchFailed(f"Could not load interactions: {exc}") from exc

        result = PostInteractions()
        for record in records:
            interaction = Interaction.from_record(record)
            if interaction.type is InteractionKind.LIKE:
                result.like_count += 1
                result.liked_by.append(interaction.user_id)
            else:
                result.comments.append(interaction)
        result.comments.sort(key=lambda c: (c.created_at, c.id or ""))
        return result
