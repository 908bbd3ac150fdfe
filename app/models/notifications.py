"""
Notification Models — Pydantic schemas for the in-app notification endpoints.

Defines request/response models for:
- GET    /api/v1/notifications              — list the caller's notifications
- GET    /api/v1/notifications/unread-count — unread badge count
- POST   /api/v1/notifications/{id}/read    — mark one read
- POST   /api/v1/notifications/read-all     — mark all read
- DELETE /api/v1/notifications/{id}         — delete one
"""

from typing import Any, Optional

from pydantic import BaseModel, Field


class NotificationItem(BaseModel):
    """A single row from the notifications table."""

    id: str
    user_id: str
    title: str
    message: str
    type: str = Field(
        default="info",
        description="info, success, warning, error, match, group, message or system.",
    )
    link: Optional[str] = None
    metadata: Optional[dict[str, Any]] = None
    is_read: bool = False
    is_urgent: Optional[bool] = False
    created_at: Optional[str] = None


class NotificationListResponse(BaseModel):
    """Response for GET /api/v1/notifications."""

    notifications: list[NotificationItem] = Field(default_factory=list)
    total: int = Field(default=0, description="Total notifications matching the filter.")
    unread_count: int = Field(default=0, description="Unread notifications for the user.")


class UnreadCountResponse(BaseModel):
    count: int = 0


class MarkReadResponse(BaseModel):
    status: str = "read"
    notification_id: str


class MarkAllReadResponse(BaseModel):
    status: str = "read"
    updated: int = Field(default=0, description="How many notifications were marked read.")


class NotificationDeleteResponse(BaseModel):
    status: str = "deleted"
    notification_id: str
