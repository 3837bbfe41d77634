"""Feed resolution: the user's own posts plus posts from everyone they follow."""

from __future__ import annotations

import asyncio
from datetime import datetime

from movibeers.errors import FetchFailed, NotFound, ValidationFailed
from movibeers.feed.pagination import FeedPage, decode_cursor, page_from
from movibeers.models import POSTS, USERS, Post, User
from movibeers.store import MAX_IN_VALUES, Query, RecordStore, StoreError


def _chunks(values: list[str], size: int) -> list[list[str]]:
    return [values[i : i + size] for i in range(0, len(values), size)]


def _newest_first(post: Post) -> tuple[datetime, str]:
    return post.created_at, post.id or ""


class FeedReader:
    def __init__(self, store: RecordStore, in_query_chunk: int = MAX_IN_VALUES, max_page_size: int = 100) -> None:
        self.store = store
        self.in_query_chunk = max(1, min(in_query_chunk, MAX_IN_VALUES))
        self.max_page_size = max_page_size

    async def _authors(self, user_id: str) -> list[str]:
        try:
            record = await self.store.get(USERS, user_id)
        except StoreError as exc:
            raise FetchFailed(f"Could not load user: {exc}") from exc
        if record is None:
            raise NotFound("user", user_id)
        user = User.from_record(record)
        # Own posts are always included, whatever the following list holds.
        return [user_id, *(uid for uid in dict.fromkeys(user.following) if uid != user_id)]

    async def _query(self, authors: list[str], limit: int, after: tuple[datetime, str] | None) -> list[Post]:
        """Newest-first posts by ``authors``, at most ``limit``, strictly after the cursor."""
        queries = []
        for chunk in _chunks(authors, self.in_query_chunk):
            query = Query().where("userId", "in", chunk).order_by("createdAt", descending=True).limit(limit)
            if after is not None:
                query = query.start_after(*after)
            queries.append(self.store.query(POSTS, query))

        try:
            results = await asyncio.gather(*queries)
        except StoreError as exc:
            raise FetchFailed(f"Could not load feed: {exc}") from exc

        posts = [Post.from_record(r) for records in results for r in records]
        posts.sort(key=_newest_first, reverse=True)
        return posts[:limit]

    def _check_limit(self, limit: int) -> int:
        if limit < 1:
            raise ValidationFailed("limit must be positive", field="limit")
        return min(limit, self.max_page_size)

    async def get_feed(self, user_id: str, limit: int = 10, cursor: str | None = None) -> FeedPage:
        """One page of the user's feed; pass ``next_cursor`` back for the next page."""
        limit = self._check_limit(limit)
        after = decode_cursor(cursor) if cursor else None
        authors = await self._authors(user_id)
        rows = await self._query(authors, limit + 1, after)
        return page_from(rows, limit)

    async def load_more(self, user_id: str, current_count: int, page_increment: int = 10) -> FeedPage:
        """Widening-limit paging: refetch ``current_count + page_increment`` and drop the prefix.

        Each call re-reads everything already shown, so a full scroll is
        quadratic in feed length. Kept for clients that page by count;
        ``get_feed`` with a cursor is the efficient path.
        """
        if current_count < 0:
            raise ValidationFailed("current_count must not be negative", field="current_count")
        page_increment = self._check_limit(page_increment)
        authors = await self._authors(user_id)
        rows = await self._query(authors, current_count + page_increment, None)
        suffix = rows[current_count:]
        return FeedPage(posts=suffix, next_cursor=None, has_more=len(suffix) == page_increment)

    async def get_user_posts(self, user_id: str, limit: int = 20, cursor: str | None = None) -> FeedPage:
        """Posts authored by one user, newest first (profile pages)."""
        limit = self._check_limit(limit)
        after = decode_cursor(cursor) if cursor else None
        rows = await self._query([user_id], limit + 1, after)
        return page_from(rows, limit)

    async def get_post(self, post_id: str) -> Post:
        try:
            record = await self.store.get(POSTS, post_id)
        except StoreError as exc:
            raise FetchFailed(f"Could not load post: {exc}") from exc
        if record is None:
            raise NotFound("post", post_id)
        return Post.from_record(record)
