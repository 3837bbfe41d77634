"""Notification API endpoints: 4 routes."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from movibeers.config import get_settings
from movibeers.dependencies import get_current_user_id, get_services
from movibeers.services import Services
from movibeers.social.notifications import render_message
from movibeers.social.schemas import (
    MarkAllReadResponse,
    NotificationListResponse,
    NotificationResponse,
    UnreadCountResponse,
)

router = APIRouter(prefix="/api/v1", tags=["Notifications"])


@router.get("/notifications", response_model=NotificationListResponse)
async def list_notifications(
    limit: int | None = Query(None, ge=1, le=200),
    user_id: str = Depends(get_current_user_id),
    services: Services = Depends(get_services),
) -> NotificationListResponse:
    """Caller's notifications, most recent first."""
    notifications = await services.notifications.list_notifications(
        user_id, limit or get_settings().notification_page_size
    )
    return NotificationListResponse(
        notifications=[
            NotificationResponse(
                id=n.id or "",
                type=n.type,
                sender_id=n.sender_id,
                sender_username=n.sender_username,
                post_id=n.post_id,
                post_title=n.post_title,
                comment_text=n.comment_text,
                message=render_message(n),
                created_at=n.created_at,
                is_read=n.is_read,
            )
            for n in notifications
        ]
    )


@router.get("/notifications/unread-count", response_model=UnreadCountResponse)
async def unread_count(
    user_id: str = Depends(get_current_user_id),
    services: Services = Depends(get_services),
) -> UnreadCountResponse:
    """Unread badge count, with the polling interval for clients without a socket."""
    return UnreadCountResponse(
        unread_count=await services.notifications.unread_count(user_id),
        poll_interval_seconds=get_settings().unread_poll_interval_seconds,
    )


@router.post("/notifications/read-all", response_model=MarkAllReadResponse)
async def mark_all_read(
    user_id: str = Depends(get_current_user_id),
    services: Services = Depends(get_services),
) -> MarkAllReadResponse:
    return MarkAllReadResponse(updated=await services.notifications.mark_all_read(user_id))


@router.post("/notifications/{notification_id}/read", status_code=200)
async def mark_notification_read(
    notification_id: str,
    user_id: str = Depends(get_current_user_id),
    services: Services = Depends(get_services),
) -> dict[str, str]:
    await services.notifications.mark_read(notification_id, user_id)
    return {"detail": "Notification marked as read"}
