"""Rewrite a user's denormalized username on posts and sent notifications."""

from __future__ import annotations

import logging

from movibeers.errors import FetchFailed, UpdateFailed
from movibeers.models import NOTIFICATIONS, POSTS, USERS
from movibeers.store import DOCUMENT_ID, Query, RecordStore, StoreError

logger = logging.getLogger(__name__)

PROPAGATE_USERNAME_JOB = "propagate_username"


class UsernameFanout:
    def __init__(self, store: RecordStore, batch_size: int = 200) -> None:
        self.store = store
        self.batch_size = max(1, batch_size)

    async def run(self, user_id: str, username: str) -> int:
        """Point every copy at ``username``. Returns the number of documents rewritten.

        A job superseded by a later rename does nothing; the later job covers it.
        Re-running is harmless, already-current documents are skipped.
        """
        try:
            user = await self.store.get(USERS, user_id)
        except StoreError as exc:
            raise FetchFailed(f"Could not load user: {exc}") from exc
        if user is None or user.data.get("username") != username:
            logger.info("Skipping stale username fan-out for %s", user_id)
            return 0

        updated = await self._rewrite(POSTS, "userId", "username", user_id, username)
        updated += await self._rewrite(NOTIFICATIONS, "senderId", "senderUsername", user_id, username)
        logger.info("Username fan-out for %s rewrote %d documents", user_id, updated)
        return updated

    async def _rewrite(self, collection: str, owner_field: str, name_field: str, user_id: str, username: str) -> int:
        updated = 0
        last_id: str | None = None
        while True:
            query = Query().where(owner_field, "==", user_id).order_by(DOCUMENT_ID).limit(self.batch_size)
            if last_id is not None:
                query = query.start_after(last_id, last_id)
            try:
                records = await self.store.query(collection, query)
            except StoreError as exc:
                raise FetchFailed(f"Could not page {collection}: {exc}") from exc

            batch = self.store.batch()
            for record in records:
                if record.data.get(name_field) != username:
                    batch.update(collection, record.id, {name_field: username})
            updated += len(batch)
            try:
                await batch.commit()
            except StoreError as exc:
                raise UpdateFailed(f"Could not rewrite {collection}: {exc}") from exc

            if len(records) < self.batch_size:
                return updated
            last_id = records[-1].id
