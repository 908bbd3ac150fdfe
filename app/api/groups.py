"""
Groups API — The groups the caller has been placed in.

GET /api/v1/groups       — the caller's groups, newest first
                           (?filter=all lists every group; admins only)
GET /api/v1/groups/{id}  — one group with its members

Groups are written by the weekly-matches job and by accepting a match.
A group the caller is not a member of behaves like a missing one (404)
unless the caller holds an admin role.
"""

import logging
from collections import Counter

from fastapi import APIRouter, Depends, HTTPException, Query, status

from app.core.permissions import get_admin_role
from app.core.security import get_current_user_id
from app.db.supabase_client import get_service_client
from app.models.groups import (
    GroupDetailResponse,
    GroupFilter,
    GroupItem,
    GroupListResponse,
    GroupMember,
)
from app.services.groups import load_member_profiles

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/groups", tags=["groups"])


def _server_error(action: str, exc: Exception) -> HTTPException:
    logger.error("Failed to %s: %s", action, exc)
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail=f"Failed to {action}.",
    )


def _member_counts(client, group_ids: list[str]) -> Counter:
    if not group_ids:
        return Counter()
    rows = (
        client.table("group_members")
        .select("group_id")
        .in_("group_id", group_ids)
        .execute()
    ).data or []
    return Counter(r["group_id"] for r in rows)


@router.get(
    "",
    status_code=status.HTTP_200_OK,
    response_model=GroupListResponse,
)
async def list_groups(
    filter_by: GroupFilter = Query("my-groups", alias="filter"),
    user_id: str = Depends(get_current_user_id),
) -> GroupListResponse:
    """List the caller's groups, or every group for an admin."""
    client = get_service_client()

    try:
        if filter_by == "all":
            if get_admin_role(client, user_id) is None:
                raise HTTPException(
                    status_code=status.HTTP_403_FORBIDDEN,
                    detail="Access denied: admin role required.",
                )
            query = client.table("groups").select("*")
        else:
            memberships = (
                client.table("group_members")
                .select("group_id")
                .eq("user_id", user_id)
                .execute()
            ).data or []
            group_ids = sorted({m["group_id"] for m in memberships})
            if not group_ids:
                return GroupListResponse()
            query = client.table("groups").select("*").in_("id", group_ids)

        groups = query.order("created_at", desc=True).execute().data or []
        counts = _member_counts(client, [g["id"] for g in groups])
    except HTTPException:
        raise
    except Exception as exc:
        raise _server_error("load groups", exc)

    items = [GroupItem(**{**g, "member_count": counts[g["id"]]}) for g in groups]
    return GroupListResponse(groups=items, total=len(items))


@router.get(
    "/{group_id}",
    status_code=status.HTTP_200_OK,
    response_model=GroupDetailResponse,
)
async def get_group(
    group_id: str,
    user_id: str = Depends(get_current_user_id),
) -> GroupDetailResponse:
    """One group and its members. Non-members get 404 unless they are admins."""
    client = get_service_client()

    try:
        result = client.table("groups").select("*").eq("id", group_id).limit(1).execute()
        group = result.data[0] if result.data else None
        members = load_member_profiles(client, [group_id])[group_id] if group else []
        is_member = any(m["user_id"] == user_id for m in members)
        if group and not is_member and get_admin_role(client, user_id) is None:
            logger.warning("User %s requested group %s without membership", user_id[:8], group_id)
            group = None
    except Exception as exc:
        raise _server_error("load group", exc)

    if group is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Group not found.")

    return GroupDetailResponse(
        **{**group, "member_count": len(members)},
        members=[GroupMember(**m) for m in members],
    )
