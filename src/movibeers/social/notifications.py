"""Notification creation, read state, and delivery.

Notifications are:
1. Persisted in the record store
2. Pushed to the recipient via WebSocket (Redis pub/sub -> WS bridge)

Polling ``unread_count`` remains the fallback when no socket is open.
"""

from __future__ import annotations

import json
import logging
from typing import Any

from movibeers.clock import Clock, utcnow
from movibeers.errors import FetchFailed, NotFound, SaveFailed, UpdateFailed
from movibeers.models import NOTIFICATIONS, Notification, NotificationKind
from movibeers.store import Query, RecordStore, StoreError

logger = logging.getLogger(__name__)

EXCERPT_LENGTH = 30

# Writes per batch when marking everything read.
MARK_READ_BATCH_SIZE = 400


def comment_excerpt(text: str) -> str:
    """First 30 characters, with an ellipsis only when something was cut."""
    if len(text) <= EXCERPT_LENGTH:
        return text
    return text[:EXCERPT_LENGTH] + "..."


def render_message(notification: Notification) -> str:
    sender = notification.sender_username
    if notification.type is NotificationKind.LIKE:
        return f"{sender} liked your post"
    if notification.type is NotificationKind.COMMENT:
        if notification.comment_text:
            return f"{sender} commented: {comment_excerpt(notification.comment_text)}"
        return f"{sender} commented on your post"
    return f"{sender} started following you"


def ws_payload(notification: Notification) -> dict[str, Any]:
    return {
        "event": "notification",
        "data": {
            "id": notification.id,
            "type": notification.type.value,
            "senderId": notification.sender_id,
            "senderUsername": notification.sender_username,
            "postId": notification.post_id,
            "postTitle": notification.post_title,
            "message": render_message(notification),
            "timestamp": notification.created_at.isoformat(),
            "read": notification.is_read,
        },
    }


class NotificationDispatcher:
    def __init__(self, store: RecordStore, redis: Any | None = None, clock: Clock = utcnow) -> None:  # noqa: ANN401
        self.store = store
        self.redis = redis
        self.clock = clock

    async def notify(
        self,
        recipient_id: str,
        sender_id: str,
        sender_username: str,
        kind: NotificationKind,
        post_id: str | None = None,
        post_title: str | None = None,
        comment_text: str | None = None,
    ) -> Notification | None:
        """Persist a notification and push it; a self-notification is a no-op."""
        if recipient_id == sender_id:
            return None

        notification = Notification(
            recipient_id=recipient_id,
            sender_id=sender_id,
            sender_username=sender_username,
            type=kind,
            post_id=post_id,
            post_title=post_title,
            comment_text=comment_text,
            created_at=self.clock(),
            is_read=False,
        )
        try:
            notification.id = await self.store.insert(NOTIFICATIONS, notification.to_document())
        except StoreError as exc:
            raise SaveFailed(f"Could not save notification: {exc}") from exc

        await self._push(notification)
        return notification

    async def _push(self, notification: Notification) -> None:
        if self.redis is None:
            return
        try:
            await self.redis.publish(f"ws:user:{notification.recipient_id}", json.dumps(ws_payload(notification)))
        except Exception:
            logger.warning("Failed to push notification via ws:user:%s", notification.recipient_id, exc_info=True)

    async def list_notifications(self, recipient_id: str, limit: int = 50) -> list[Notification]:
        """Most recent first."""
        query = (
            Query().where("recipientId", "==", recipient_id).order_by("createdAt", descending=True).limit(limit)
        )
        try:
            records = await self.store.query(NOTIFICATIONS, query)
        except StoreError as exc:
            raise FetchFailed(f"Could not load notifications: {exc}") from exc
        return [Notification.from_record(r) for r in records]

    async def mark_read(self, notification_id: str, recipient_id: str) -> None:
        """Mark one notification read. Someone else's notification is reported as missing."""
        try:
            record = await self.store.get(NOTIFICATIONS, notification_id)
            if record is None or record.data.get("recipientId") != recipient_id:
                raise NotFound("notification", notification_id)
            await self.store.update(NOTIFICATIONS, notification_id, {"isRead": True})
        except StoreError as exc:
            raise UpdateFailed(f"Could not mark notification read: {exc}") from exc

    async def mark_all_read(self, recipient_id: str) -> int:
        """Mark every unread notification read. Returns the number updated."""
        query = Query().where("recipientId", "==", recipient_id).where("isRead", "==", False)
        try:
            records = await self.store.query(NOTIFICATIONS, query)
            for start in range(0, len(records), MARK_READ_BATCH_SIZE):
                batch = self.store.batch()
                for record in records[start : start + MARK_READ_BATCH_SIZE]:
                    batch.update(NOTIFICATIONS, record.id, {"isRead": True})
                await batch.commit()
        except StoreError as exc:
            raise UpdateFailed(f"Could not mark notifications read: {exc}") from exc
        return len(records)

    async def unread_count(self, recipient_id: str) -> int:
        query = Query().where("recipientId", "==", recipient_id).where("isRead", "==", False)
        try:
            return await self.store.count(NOTIFICATIONS, query)
        except StoreError as exc:
            raise FetchFailed(f"Could not count notifications: {exc}") from exc
