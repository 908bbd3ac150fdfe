"""
Permissions — Admin role checks for the admin console endpoints.

Roles live in the admin_roles table (one row per admin, role is
'admin' or 'super_admin'). The role is looked up on every request;
it is never taken from the client or cached across requests.
"""

import logging
from typing import Optional

from fastapi import Depends, HTTPException, status

from app.core.security import get_current_user_id
from app.db.supabase_client import get_service_client

logger = logging.getLogger(__name__)

ADMIN_ROLES = ("admin", "super_admin")


def get_admin_role(client, user_id: str) -> Optional[str]:
    """
    Return 'admin', 'super_admin' or None for the given user.

    Database errors propagate; a missing row means "not an admin".
    """
    result = (
        client.table("admin_roles")
        .select("role")
        .eq("user_id", user_id)
        .limit(1)
        .execute()
    )
    if not result.data:
        return None
    role = result.data[0].get("role")
    return role if role in ADMIN_ROLES else None


def _lookup_role(user_id: str) -> Optional[str]:
    try:
        return get_admin_role(get_service_client(), user_id)
    except Exception as exc:
        logger.error("Admin role lookup failed for user %s: %s", user_id[:8], exc)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to verify admin role.",
        )


async def require_admin(user_id: str = Depends(get_current_user_id)) -> str:
    """Dependency: caller must hold any admin role. Returns the user id."""
    if _lookup_role(user_id) is None:
        logger.warning("Non-admin user %s attempted admin access", user_id[:8])
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Access denied: admin role required.",
        )
    return user_id


async def require_super_admin(user_id: str = Depends(get_current_user_id)) -> str:
    """Dependency: caller must be a super admin. Used by every mutation."""
    if _lookup_role(user_id) != "super_admin":
        logger.warning("User %s attempted a super-admin operation", user_id[:8])
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Access denied: super admin role required.",
        )
    return user_id
