"""
Notifications API — The caller's in-app notification inbox.

GET    /api/v1/notifications              — newest first, optional unread filter
GET    /api/v1/notifications/unread-count — badge count
POST   /api/v1/notifications/read-all     — mark every unread notification read
POST   /api/v1/notifications/{id}/read    — mark one read
DELETE /api/v1/notifications/{id}         — delete one

Every query is scoped to the authenticated user; another user's
notification id behaves exactly like a missing one (404).
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, Query, status

from app.core.security import get_current_user_id
from app.db.supabase_client import get_service_client
from app.models.notifications import (
    MarkAllReadResponse,
    MarkReadResponse,
    NotificationDeleteResponse,
    NotificationItem,
    NotificationListResponse,
    UnreadCountResponse,
)
from app.services.notifications import get_unread_count

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/notifications", tags=["notifications"])


def _require_owned(client, notification_id: str, user_id: str) -> dict:
    try:
        result = (
            client.table("notifications")
            .select("id, user_id, is_read")
            .eq("id", notification_id)
            .eq("user_id", user_id)
            .execute()
        )
    except Exception as exc:
        logger.error("Failed to look up notification %s: %s", notification_id, exc)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to look up notification: {exc}",
        )
    if not result.data:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Notification not found.",
        )
    return result.data[0]


@router.get(
    "",
    status_code=status.HTTP_200_OK,
    response_model=NotificationListResponse,
)
async def list_notifications(
    limit: int = Query(50, ge=1, le=100),
    offset: int = Query(0, ge=0),
    unread_only: bool = Query(False),
    user_id: str = Depends(get_current_user_id),
) -> NotificationListResponse:
    """List the caller's notifications, newest first."""
    client = get_service_client()

    try:
        query = (
            client.table("notifications")
            .select("*", count="exact")
            .eq("user_id", user_id)
        )
        if unread_only:
            query = query.eq("is_read", False)
        result = (
            query.order("created_at", desc=True)
            .range(offset, offset + limit - 1)
            .execute()
        )
    except Exception as exc:
        logger.error("Failed to list notifications for %s: %s", user_id[:8], exc)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to load notifications: {exc}",
        )

    items = [NotificationItem(**row) for row in (result.data or [])]
    return NotificationListResponse(
        notifications=items,
        total=result.count if result.count is not None else len(items),
        unread_count=get_unread_count(client, user_id),
    )


@router.get(
    "/unread-count",
    status_code=status.HTTP_200_OK,
    response_model=UnreadCountResponse,
)
async def unread_count(
    user_id: str = Depends(get_current_user_id),
) -> UnreadCountResponse:
    return UnreadCountResponse(count=get_unread_count(get_service_client(), user_id))


@router.post(
    "/read-all",
    status_code=status.HTTP_200_OK,
    response_model=MarkAllReadResponse,
)
async def mark_all_read(
    user_id: str = Depends(get_current_user_id),
) -> MarkAllReadResponse:
    """Mark every unread notification of the caller as read."""
    client = get_service_client()
    try:
        result = (
            client.table("notifications")
            .update({"is_read": True})
            .eq("user_id", user_id)
            .eq("is_read", False)
            .execute()
        )
    except Exception as exc:
        logger.error("Failed to mark notifications read for %s: %s", user_id[:8], exc)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to update notifications: {exc}",
        )
    return MarkAllReadResponse(updated=len(result.data or []))


@router.post(
    "/{notification_id}/read",
    status_code=status.HTTP_200_OK,
    response_model=MarkReadResponse,
)
async def mark_read(
    notification_id: str,
    user_id: str = Depends(get_current_user_id),
) -> MarkReadResponse:
    client = get_service_client()
    _require_owned(client, notification_id, user_id)
    try:
        (
            client.table("notifications")
            .update({"is_read": True})
            .eq("id", notification_id)
            .eq("user_id", user_id)
            .execute()
        )
    except Exception as exc:
        logger.error("Failed to mark notification %s read: %s", notification_id, exc)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to update notification: {exc}",
        )
    return MarkReadResponse(notification_id=notification_id)


@router.delete(
    "/{notification_id}",
    status_code=status.HTTP_200_OK,
    response_model=NotificationDeleteResponse,
)
async def delete_notification(
    notification_id: str,
    user_id: str = Depends(get_current_user_id),
) -> NotificationDeleteResponse:
    client = get_service_client()
    _require_owned(client, notification_id, user_id)
    try:
        (
            client.table("notifications")
            .delete()
            .eq("id", notification_id)
            .eq("user_id", user_id)
            .execute()
        )
    except Exception as exc:
        logger.error("Failed to delete notification %s: %s", notification_id, exc)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to delete notification: {exc}",
        )
    logger.info("Notification %s deleted by user %s", notification_id, user_id[:8])
    return NotificationDeleteResponse(notification_id=notification_id)
