"""
Admin API — Back-office endpoints for the admin console.

Reads mirror the console pages: the user list and stats are open to any
admin, everything else to super admins. Every mutation requires super_admin,
and the role is re-read from admin_roles on each request.

GET    /api/v1/admin/me
GET    /api/v1/admin/stats
GET    /api/v1/admin/users
PATCH  /api/v1/admin/users/{user_id}
DELETE /api/v1/admin/users/{user_id}
GET    /api/v1/admin/admins
POST   /api/v1/admin/admins
PATCH  /api/v1/admin/admins/{admin_id}
DELETE /api/v1/admin/admins/{admin_id}
GET    /api/v1/admin/notifications
DELETE /api/v1/admin/notifications/{notification_id}
"""

import asyncio
import logging
import math
import re
from typing import Literal, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from app.core.config import ADMIN_PAGE_SIZE
from app.core.permissions import get_admin_role, require_admin, require_super_admin
from app.core.security import get_current_user_id
from app.db.supabase_client import get_service_client
from app.models.admin import (
    AdminDeleteResponse,
    AdminMeResponse,
    AdminNotificationItem,
    AdminNotificationListResponse,
    AdminRoleCreateRequest,
    AdminRoleItem,
    AdminRoleListResponse,
    AdminRoleUpdateRequest,
    AdminStatsResponse,
    AdminUserItem,
    AdminUserListResponse,
    AdminUserUpdateRequest,
)
from app.services.profile_tables import utc_now_iso

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/admin", tags=["admin"])

# Characters with meaning inside a PostgREST or=(...) filter.
_FILTER_SPECIAL_CHARS = re.compile(r"[,()%*\\]")


# ===================================================================
# Helpers
# ===================================================================

def _search_term(search: Optional[str]) -> Optional[str]:
    if not search:
        return None
    cleaned = _FILTER_SPECIAL_CHARS.sub(" ", search).strip()
    return cleaned or None


def _page_range(page: int, page_size: int) -> tuple[int, int]:
    start = (page - 1) * page_size
    return start, start + page_size - 1


def _total_pages(total: int, page_size: int) -> int:
    return math.ceil(total / page_size) if total else 0


def _server_error(action: str, exc: Exception) -> HTTPException:
    logger.error("Admin: failed to %s: %s", action, exc)
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail=f"Failed to {action}: {exc}",
    )


def _count(client, table: str, **filters) -> int:
    query = client.table(table).select("id", count="exact")
    for column, value in filters.items():
        query = query.eq(column, value)
    result = query.limit(1).execute()
    return result.count or 0


# ===================================================================
# Role / dashboard
# ===================================================================

@router.get("/me", response_model=AdminMeResponse)
async def admin_me(user_id: str = Depends(get_current_user_id)) -> AdminMeResponse:
    """Report the caller's admin role (None for regular users)."""
    try:
        role = get_admin_role(get_service_client(), user_id)
    except Exception as exc:
        raise _server_error("look up admin role", exc)
    return AdminMeResponse(
        user_id=user_id,
        role=role,
        is_admin=role is not None,
        is_super_admin=role == "super_admin",
    )


@router.get("/stats", response_model=AdminStatsResponse)
async def admin_stats(_: str = Depends(require_admin)) -> AdminStatsResponse:
    """Dashboard counters, fetched concurrently."""
    client = get_service_client()
    try:
        counts = await asyncio.gather(
            asyncio.to_thread(_count, client, "profiles"),
            asyncio.to_thread(_count, client, "profiles", is_onboarding_complete=True),
            asyncio.to_thread(_count, client, "profiles", is_matchable=True),
            asyncio.to_thread(_count, client, "groups"),
            asyncio.to_thread(_count, client, "matches"),
            asyncio.to_thread(_count, client, "notifications"),
            asyncio.to_thread(_count, client, "notifications", is_read=False),
            asyncio.to_thread(_count, client, "admin_roles"),
        )
    except Exception as exc:
        raise _server_error("load dashboard stats", exc)

    return AdminStatsResponse(
        total_users=counts[0],
        onboarded_users=counts[1],
        matchable_users=counts[2],
        total_groups=counts[3],
        total_matches=counts[4],
        total_notifications=counts[5],
        unread_notifications=counts[6],
        total_admins=counts[7],
    )


# ===================================================================
# Users
# ===================================================================

@router.get("/users", response_model=AdminUserListResponse)
async def list_users(
    page: int = Query(1, ge=1),
    page_size: int = Query(ADMIN_PAGE_SIZE, ge=1, le=100, alias="pageSize"),
    search: Optional[str] = Query(None),
    status_filter: Literal["all", "active", "inactive", "matchable"] = Query("all", alias="status"),
    _: str = Depends(require_admin),
) -> AdminUserListResponse:
    """
    Paginated user list, newest first.

    status: active = onboarding complete, inactive = not complete,
    matchable = in the matching pool. search matches email or full name
    (case-insensitive substring).
    """
    client = get_service_client()
    start, end = _page_range(page, page_size)

    try:
        query = (
            client.table("profiles_with_email")
            .select(
                "id, email, full_name, avatar_url, is_onboarding_complete, "
                "is_matchable, created_at",
                count="exact",
            )
        )
        if status_filter == "active":
            query = query.eq("is_onboarding_complete", True)
        elif status_filter == "inactive":
            query = query.eq("is_onboarding_complete", False)
        elif status_filter == "matchable":
            query = query.eq("is_matchable", True)

        term = _search_term(search)
        if term:
            query = query.or_(f"email.ilike.%{term}%,full_name.ilike.%{term}%")

        result = query.order("created_at", desc=True).range(start, end).execute()
    except Exception as exc:
        raise _server_error("load users", exc)

    total = result.count or 0
    return AdminUserListResponse(
        items=[AdminUserItem(**row) for row in (result.data or [])],
        total=total,
        page=page,
        page_size=page_size,
        total_pages=_total_pages(total, page_size),
    )


@router.patch("/users/{user_id}", response_model=AdminUserItem)
async def update_user(
    user_id: str,
    payload: AdminUserUpdateRequest,
    admin_id: str = Depends(require_super_admin),
) -> AdminUserItem:
    """Edit a user's profile columns (super admin only)."""
    changes = payload.model_dump(exclude_none=True)
    if not changes:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="No fields to update.",
        )
    changes["updated_at"] = utc_now_iso()

    client = get_service_client()
    try:
        result = client.table("profiles").update(changes).eq("id", user_id).execute()
    except Exception as exc:
        raise _server_error("update user", exc)

    if not result.data:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found.")

    logger.info("Admin %s updated user %s (%s)", admin_id[:8], user_id[:8], ", ".join(changes))
    return AdminUserItem(**result.data[0])


@router.delete("/users/{user_id}", response_model=AdminDeleteResponse)
async def delete_user(
    user_id: str,
    admin_id: str = Depends(require_super_admin),
) -> AdminDeleteResponse:
    """
    Remove a user's profile row (super admin only).

    The auth identity is left in place; the user can sign in again and
    will be sent back through onboarding.
    """
    client = get_service_client()
    try:
        result = client.table("profiles").delete().eq("id", user_id).execute()
    except Exception as exc:
        raise _server_error("delete user", exc)

    if not result.data:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found.")

    logger.info("Admin %s deleted profile of user %s", admin_id[:8], user_id[:8])
    return AdminDeleteResponse(id=user_id)


# ===================================================================
# Admin roles
# ===================================================================

@router.get("/admins", response_model=AdminRoleListResponse)
async def list_admins(
    page: int = Query(1, ge=1),
    page_size: int = Query(ADMIN_PAGE_SIZE, ge=1, le=100, alias="pageSize"),
    search: Optional[str] = Query(None),
    _: str = Depends(require_super_admin),
) -> AdminRoleListResponse:
    client = get_service_client()
    start, end = _page_range(page, page_size)

    try:
        query = client.table("admin_roles").select(
            "id, user_id, role, created_at, updated_at", count="exact"
        )
        term = _search_term(search)
        if term:
            query = query.ilike("user_id", f"%{term}%")
        result = query.order("created_at", desc=True).range(start, end).execute()
    except Exception as exc:
        raise _server_error("load admins", exc)

    total = result.count or 0
    return AdminRoleListResponse(
        items=[AdminRoleItem(**row) for row in (result.data or [])],
        total=total,
        page=page,
        page_size=page_size,
        total_pages=_total_pages(total, page_size),
    )


@router.post("/admins", status_code=status.HTTP_201_CREATED, response_model=AdminRoleItem)
async def create_admin(
    payload: AdminRoleCreateRequest,
    admin_id: str = Depends(require_super_admin),
) -> AdminRoleItem:
    """Grant an admin role. 409 if the user already has one."""
    client = get_service_client()
    try:
        existing = (
            client.table("admin_roles")
            .select("id")
            .eq("user_id", payload.user_id)
            .execute()
        )
    except Exception as exc:
        raise _server_error("look up admin role", exc)

    if existing.data:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="This user already has an admin role.",
        )

    try:
        result = (
            client.table("admin_roles")
            .insert({"user_id": payload.user_id, "role": payload.role})
            .execute()
        )
    except Exception as exc:
        raise _server_error("create admin role", exc)

    if not result.data:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to create admin role — no data returned from database.",
        )

    logger.info("Admin %s granted %s to user %s", admin_id[:8], payload.role, payload.user_id[:8])
    return AdminRoleItem(**result.data[0])


@router.patch("/admins/{role_id}", response_model=AdminRoleItem)
async def update_admin(
    role_id: str,
    payload: AdminRoleUpdateRequest,
    admin_id: str = Depends(require_super_admin),
) -> AdminRoleItem:
    """Change an admin's role. A super admin cannot change their own role."""
    client = get_service_client()
    try:
        existing = (
            client.table("admin_roles")
            .select("id, user_id")
            .eq("id", role_id)
            .execute()
        )
    except Exception as exc:
        raise _server_error("look up admin role", exc)

    if not existing.data:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Admin role not found.")
    if existing.data[0]["user_id"] == admin_id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="You cannot change your own admin role.",
        )

    try:
        result = (
            client.table("admin_roles")
            .update({"role": payload.role, "updated_at": utc_now_iso()})
            .eq("id", role_id)
            .execute()
        )
    except Exception as exc:
        raise _server_error("update admin role", exc)

    if not result.data:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Admin role not found.")

    logger.info("Admin %s set role %s to %s", admin_id[:8], role_id, payload.role)
    return AdminRoleItem(**result.data[0])


@router.delete("/admins/{role_id}", response_model=AdminDeleteResponse)
async def delete_admin(
    role_id: str,
    admin_id: str = Depends(require_super_admin),
) -> AdminDeleteResponse:
    """Revoke an admin role. A super admin cannot revoke their own role."""
    client = get_service_client()
    try:
        existing = (
            client.table("admin_roles")
            .select("id, user_id")
            .eq("id", role_id)
            .execute()
        )
    except Exception as exc:
        raise _server_error("look up admin role", exc)

    if not existing.data:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Admin role not found.")
    if existing.data[0]["user_id"] == admin_id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="You cannot remove your own admin role.",
        )

    try:
        client.table("admin_roles").delete().eq("id", role_id).execute()
    except Exception as exc:
        raise _server_error("delete admin role", exc)

    logger.info("Admin %s revoked role %s", admin_id[:8], role_id)
    return AdminDeleteResponse(id=role_id)


# ===================================================================
# Notifications
# ===================================================================

@router.get("/notifications", response_model=AdminNotificationListResponse)
async def list_all_notifications(
    page: int = Query(1, ge=1),
    page_size: int = Query(ADMIN_PAGE_SIZE, ge=1, le=100, alias="pageSize"),
    search: Optional[str] = Query(None),
    filter_by: Literal["all", "read", "unread", "urgent"] = Query("all", alias="filter"),
    notification_type: Optional[str] = Query(None, alias="type"),
    _: str = Depends(require_super_admin),
) -> AdminNotificationListResponse:
    """Every user's notifications, newest first, with user email and name."""
    client = get_service_client()
    start, end = _page_range(page, page_size)

    try:
        query = client.table("notifications_view").select("*", count="exact")
        if filter_by == "read":
            query = query.eq("is_read", True)
        elif filter_by == "unread":
            query = query.eq("is_read", False)
        elif filter_by == "urgent":
            query = query.eq("is_urgent", True)

        if notification_type and notification_type != "all":
            query = query.eq("type", notification_type)

        term = _search_term(search)
        if term:
            query = query.or_(
                f"title.ilike.%{term}%,message.ilike.%{term}%,"
                f"user_full_name.ilike.%{term}%,user_email.ilike.%{term}%"
            )

        result = query.order("created_at", desc=True).range(start, end).execute()
    except Exception as exc:
        raise _server_error("load notifications", exc)

    total = result.count or 0
    return AdminNotificationListResponse(
        items=[AdminNotificationItem(**row) for row in (result.data or [])],
        total=total,
        page=page,
        page_size=page_size,
        total_pages=_total_pages(total, page_size),
    )


@router.delete("/notifications/{notification_id}", response_model=AdminDeleteResponse)
async def delete_any_notification(
    notification_id: str,
    admin_id: str = Depends(require_super_admin),
) -> AdminDeleteResponse:
    client = get_service_client()
    try:
        result = client.table("notifications").delete().eq("id", notification_id).execute()
    except Exception as exc:
        raise _server_error("delete notification", exc)

    if not result.data:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Notification not found.")

    logger.info("Admin %s deleted notification %s", admin_id[:8], notification_id)
    return AdminDeleteResponse(id=notification_id)
