"""
Notification Service — In-app notifications stored in the notifications table.

Provides the generic create call plus one row builder per notification
the product sends (see Templates). The dashboard and admin console read
these rows; scheduled jobs and match acceptance write them in bulk.

Creation failures are logged and reported as None rather than raised:
a notification is always a side effect of some other operation and must
never fail it.
"""

import logging
from typing import Any, Literal, Optional

logger = logging.getLogger(__name__)

NotificationType = Literal[
    "info", "success", "warning", "error", "match", "group", "message", "system",
]


def build_notification(
    user_id: str,
    title: str,
    message: str,
    type: NotificationType = "info",
    link: Optional[str] = None,
    metadata: Optional[dict[str, Any]] = None,
) -> dict:
    """Row dict for the notifications table (unread on creation)."""
    return {
        "user_id": user_id,
        "title": title,
        "message": message,
        "type": type,
        "link": link,
        "metadata": metadata or {},
        "is_read": False,
    }


def create_notification(client, row: dict) -> Optional[dict]:
    """Insert one built notification row. Returns the stored row, or None on failure."""
    try:
        result = client.table("notifications").insert(row).execute()
    except Exception as exc:
        logger.warning(
            "Failed to create %s notification for user %s: %s",
            row.get("type"), row["user_id"][:8], exc,
            exc_info=True,
        )
        return None
    return result.data[0] if result.data else row


def create_notifications_bulk(client, rows: list[dict]) -> int:
    """
    Insert many notification rows in one request.

    Unlike create_notification this raises on failure; job endpoints
    report the error in their response.
    """
    if not rows:
        return 0
    client.table("notifications").insert(rows).execute()
    return len(rows)


def get_unread_count(client, user_id: str) -> int:
    """Number of unread notifications for the user (0 on error)."""
    try:
        result = (
            client.table("notifications")
            .select("id", count="exact")
            .eq("user_id", user_id)
            .eq("is_read", False)
            .execute()
        )
    except Exception as exc:
        logger.warning("Failed to count unread notifications for %s: %s", user_id[:8], exc)
        return 0
    return result.count or 0


# ======================================================================
# Templates
# ======================================================================
# Row builders for every notification the product sends. Jobs insert
# them in bulk; single sends go through create_notification.

def profile_complete_notification(user_id: str) -> dict:
    return build_notification(
        user_id,
        title="✅ Profile Complete",
        message="Your profile is complete! You are now in the matching queue.",
        type="success",
        link="/dashboard",
        metadata={"type": "profile_complete"},
    )


def matching_day_notification(user_id: str, sent_at: str) -> dict:
    return build_notification(
        user_id,
        title="Matching Day Reminder! 🎯",
        message="Groups will be created soon. Make sure your profile is up to date!",
        type="system",
        link="/dashboard/profile",
        metadata={"type": "matching_day", "reminder_type": "weekly_matching", "sent_at": sent_at},
    )


def feedback_request_notification(user_id: str, group_name: str, group_id: str) -> dict:
    return build_notification(
        user_id,
        title="How was your weekend meetup? 💭",
        message=f"Please share feedback about your experience with {group_name}",
        type="system",
        link=f"/dashboard/groups/{group_id}",
        metadata={
            "type": "feedback_request",
            "group_id": group_id,
            "group_name": group_name,
            "action_required": True,
            "feedback_request": True,
        },
    )


def group_matched_notification(user_id: str, group_name: str, group_id: str) -> dict:
    return build_notification(
        user_id,
        title="🎉 You've been matched!",
        message=f"You've been added to {group_name}. Check it out and start connecting!",
        type="group",
        link=f"/dashboard/groups/{group_id}",
        metadata={"type": "group_matched", "group_id": group_id, "group_name": group_name},
    )


def notify_profile_complete(client, user_id: str) -> Optional[dict]:
    return create_notification(client, profile_complete_notification(user_id))
