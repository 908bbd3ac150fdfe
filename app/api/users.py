"""
Users API — Account deletion and data export.

DELETE /api/v1/users/me        — Permanently delete the account.
GET    /api/v1/users/me/export — Export all of the user's data as JSON.
"""

import logging
from datetime import datetime, timezone

import httpx
from fastapi import APIRouter, Depends, HTTPException, status

from app.core.permissions import get_admin_role
from app.core.security import get_current_user_id
from app.db.supabase_client import get_service_client
from app.models.users import AccountDeleteResponse, DataExportResponse
from app.services.auth_admin import AuthAdminError
from app.services.auth_admin import delete_user as delete_auth_user
from app.services.profile_reconciler import load_onboarding_record

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/users", tags=["users"])


@router.delete(
    "/me",
    status_code=status.HTTP_200_OK,
    response_model=AccountDeleteResponse,
)
async def delete_account(
    user_id: str = Depends(get_current_user_id),
) -> AccountDeleteResponse:
    """
    Permanently delete the authenticated user's account.

    Deletes the auth.users record via the Supabase Admin API; profiles
    and every onboarding table cascade from it.

    Returns:
        200: Account deleted.
        401: Missing or invalid authentication token.
        404: Auth user no longer exists.
        500: Admin API unreachable or returned an error.
    """
    try:
        async with httpx.AsyncClient() as http_client:
            await delete_auth_user(http_client, user_id)
    except httpx.RequestError as exc:
        logger.error("Network error deleting auth user %s: %s", user_id[:8], exc)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to connect to authentication service.",
        )
    except AuthAdminError as exc:
        if exc.status_code == 404:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found.")
        logger.error(
            "Supabase Admin API returned %d for user %s deletion: %s",
            exc.status_code, user_id[:8], exc.message,
        )
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to delete authentication record (status {exc.status_code}).",
        )

    logger.info("Account deleted for user %s", user_id[:8])
    return AccountDeleteResponse()


@router.get(
    "/me/export",
    status_code=status.HTTP_200_OK,
    response_model=DataExportResponse,
)
async def export_user_data(
    user_id: str = Depends(get_current_user_id),
) -> DataExportResponse:
    """
    Export the user's profile, onboarding answers, notifications, group
    memberships and admin role.

    A user with no rows still gets a 200 with defaults and empty lists.
    """
    client = get_service_client()

    try:
        record, is_complete = await load_onboarding_record(client, user_id)
        profile_result = client.table("profiles").select("*").eq("id", user_id).execute()
        notifications_result = (
            client.table("notifications")
            .select("id, title, message, type, link, is_read, created_at")
            .eq("user_id", user_id)
            .order("created_at", desc=True)
            .execute()
        )
        memberships_result = (
            client.table("group_members")
            .select("group_id, role, created_at")
            .eq("user_id", user_id)
            .execute()
        )
        admin_role = get_admin_role(client, user_id)
    except Exception as exc:
        logger.error("Export failed for user %s: %s", user_id[:8], exc)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to export user data.",
        )

    notifications = notifications_result.data or []
    memberships = memberships_result.data or []
    logger.info(
        "Data export completed for user %s — notifications=%d, groups=%d",
        user_id[:8], len(notifications), len(memberships),
    )

    return DataExportResponse(
        exported_at=datetime.now(timezone.utc).isoformat(),
        profile=profile_result.data[0] if profile_result.data else None,
        onboarding=record.model_dump(by_alias=True),
        is_onboarding_complete=is_complete,
        notifications=notifications,
        group_memberships=memberships,
        admin_role=admin_role,
    )
