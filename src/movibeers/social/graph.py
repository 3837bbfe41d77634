"""Follow graph: mirrored ``following`` / ``followers`` lists on user documents.

Both sides of an edge are written in one store batch, so they commit or fail
together. ``reconcile`` repairs any divergence left by older writers, taking
each user's ``following`` list as the source of truth.
"""

from __future__ import annotations

from dataclasses import dataclass

import structlog

from movibeers.errors import FetchFailed, MoviBeersError, NotFound, UpdateFailed, ValidationFailed
from movibeers.models import USERS, NotificationKind, User
from movibeers.social.notifications import NotificationDispatcher
from movibeers.store import DOCUMENT_ID, MAX_IN_VALUES, ArrayRemove, ArrayUnion, Query, RecordStore, StoreError

logger = structlog.get_logger()

# Private-use code point sorting after any printable character.
PREFIX_SENTINEL = "\uf8ff"

# Users read per page during a full reconciliation pass.
RECONCILE_PAGE_SIZE = 200


@dataclass
class SearchResult:
    user: User
    is_following: bool


class SocialGraph:
    def __init__(self, store: RecordStore, notifier: NotificationDispatcher) -> None:
        self.store = store
        self.notifier = notifier

    async def _get_user(self, user_id: str) -> User:
        try:
            record = await self.store.get(USERS, user_id)
        except StoreError as exc:
            raise FetchFailed(f"Could not load user: {exc}") from exc
        if record is None:
            raise NotFound("user", user_id)
        return User.from_record(record)

    async def follow(self, follower_id: str, targetee_id: str) -> bool:
        """Create the edge follower -> targetee. Returns False when it already existed."""
        if follower_id == targetee_id:
            raise ValidationFailed("You cannot follow yourself", field="user_id")

        follower = await self._get_user(follower_id)
        await self._get_user(targetee_id)
        existed = targetee_id in follower.following

        # Written even when the edge exists so a half-written edge is repaired.
        batch = self.store.batch()
        batch.update(USERS, follower_id, {"following": ArrayUnion(targetee_id)})
        batch.update(USERS, targetee_id, {"followers": ArrayUnion(follower_id)})
        try:
            await batch.commit()
        except StoreError as exc:
            raise UpdateFailed(f"Could not follow user: {exc}") from exc

        if existed:
            return False
        logger.info("follow_created", follower_id=follower_id, targetee_id=targetee_id)
        try:
            await self.notifier.notify(targetee_id, follower_id, follower.username, NotificationKind.FOLLOW)
        except MoviBeersError as exc:
            # The edge is committed; a lost notification does not undo it.
            logger.warning("follow_notification_failed", targetee_id=targetee_id, error=exc.message)
        return True

    async def unfollow(self, follower_id: str, targetee_id: str) -> None:
        if follower_id == targetee_id:
            raise ValidationFailed("You cannot unfollow yourself", field="user_id")

        await self._get_user(follower_id)
        await self._get_user(targetee_id)

        batch = self.store.batch()
        batch.update(USERS, follower_id, {"following": ArrayRemove(targetee_id)})
        batch.update(USERS, targetee_id, {"followers": ArrayRemove(follower_id)})
        try:
            await batch.commit()
        except StoreError as exc:
            raise UpdateFailed(f"Could not unfollow user: {exc}") from exc
        logger.info("follow_removed", follower_id=follower_id, targetee_id=targetee_id)

    async def search_users(self, current_user_id: str, prefix: str, limit: int = 10) -> list[SearchResult]:
        """Case-sensitive username prefix search, excluding the caller."""
        if not prefix:
            return []
        current = await self._get_user(current_user_id)
        following = set(current.following)

        query = (
            Query()
            .where("username", ">=", prefix)
            .where("username", "<", prefix + PREFIX_SENTINEL)
            .order_by("username")
            .limit(limit + 1)
        )
        try:
            records = await self.store.query(USERS, query)
        except StoreError as exc:
            raise FetchFailed(f"Could not search users: {exc}") from exc

        results = [
            SearchResult(user=User.from_record(r), is_following=r.id in following)
            for r in records
            if r.id != current_user_id
        ]
        return results[:limit]

    async def _users_by_id(self, user_ids: list[str]) -> list[User]:
        users: dict[str, User] = {}
        try:
            for start in range(0, len(user_ids), MAX_IN_VALUES):
                chunk = user_ids[start : start + MAX_IN_VALUES]
                for record in await self.store.query(USERS, Query().where(DOCUMENT_ID, "in", chunk)):
                    users[record.id] = User.from_record(record)
        except StoreError as exc:
            raise FetchFailed(f"Could not load users: {exc}") from exc
        # Keep list order; ids whose document is gone are skipped.
        return [users[uid] for uid in user_ids if uid in users]

    async def list_followers(self, user_id: str) -> list[User]:
        user = await self._get_user(user_id)
        return await self._users_by_id(user.followers)

    async def list_following(self, user_id: str) -> list[User]:
        user = await self._get_user(user_id)
        return await self._users_by_id(user.following)

    async def reconcile(self, user_id: str) -> int:
        """Make every edge touching ``user_id`` symmetric. Returns the number of fixes.

        An id in this user's ``following`` is added to the target's
        ``followers``; an id in ``followers`` whose owner does not list this
        user in ``following`` is removed. Dangling ids are dropped.
        """
        user = await self._get_user(user_id)
        related = list(dict.fromkeys([*user.following, *user.followers]))
        others = {u.id: u for u in await self._users_by_id(related)}

        batch = self.store.batch()
        stale_following = [uid for uid in user.following if uid not in others]
        if stale_following:
            batch.update(USERS, user_id, {"following": ArrayRemove(*stale_following)})
        for uid in user.following:
            target = others.get(uid)
            if target is not None and user_id not in target.followers:
                batch.update(USERS, uid, {"followers": ArrayUnion(user_id)})

        orphaned = [
            uid for uid in user.followers if uid not in others or user_id not in others[uid].following
        ]
        if orphaned:
            batch.update(USERS, user_id, {"followers": ArrayRemove(*orphaned)})

        fixes = len(batch)
        try:
            await batch.commit()
        except StoreError as exc:
            raise UpdateFailed(f"Could not reconcile follow graph: {exc}") from exc
        if fixes:
            logger.info("follow_graph_reconciled", user_id=user_id, fixes=fixes)
        return fixes

    async def reconcile_all(self, page_size: int = RECONCILE_PAGE_SIZE) -> int:
        """Reconcile every user, paging through the collection by id."""
        total = 0
        last_id: str | None = None
        while True:
            query = Query().order_by(DOCUMENT_ID).limit(page_size)
            if last_id is not None:
                query = query.start_after(last_id, last_id)
            try:
                records = await self.store.query(USERS, query)
            except StoreError as exc:
                raise FetchFailed(f"Could not page users: {exc}") from exc
            for record in records:
                try:
                    total += await self.reconcile(record.id)
                except NotFound:
                    continue
            if len(records) < page_size:
                return total
            last_id = records[-1].id
