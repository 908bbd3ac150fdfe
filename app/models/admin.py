"""
Admin Models — Pydantic schemas for the admin console endpoints.

Defines request/response models for:
- GET    /api/v1/admin/me                 — caller's admin role
- GET    /api/v1/admin/stats              — dashboard counters
- GET    /api/v1/admin/users              — paginated user search
- PATCH  /api/v1/admin/users/{id}         — edit profile flags
- DELETE /api/v1/admin/users/{id}         — remove profile row
- GET/POST/PATCH/DELETE /api/v1/admin/admins[/{id}] — admin role CRUD
- GET    /api/v1/admin/notifications      — paginated notification search
- DELETE /api/v1/admin/notifications/{id} — delete a notification

Paginated responses share the {items, total, page, pageSize, totalPages}
envelope.
"""

from typing import Literal, Optional

from pydantic import Field, field_validator

from app.models.onboarding import CamelModel

AdminRole = Literal["admin", "super_admin"]


class AdminMeResponse(CamelModel):
    user_id: str
    role: Optional[AdminRole] = None
    is_admin: bool = False
    is_super_admin: bool = False


class AdminStatsResponse(CamelModel):
    total_users: int = 0
    onboarded_users: int = 0
    matchable_users: int = 0
    total_groups: int = 0
    total_matches: int = 0
    total_notifications: int = 0
    unread_notifications: int = 0
    total_admins: int = 0


# ======================================================================
# Users
# ======================================================================

class AdminUserItem(CamelModel):
    id: str
    email: Optional[str] = None
    full_name: Optional[str] = None
    avatar_url: Optional[str] = None
    is_onboarding_complete: Optional[bool] = False
    is_matchable: Optional[bool] = False
    created_at: Optional[str] = None


class AdminUserListResponse(CamelModel):
    items: list[AdminUserItem] = Field(default_factory=list)
    total: int = 0
    page: int = 1
    page_size: int = 10
    total_pages: int = 0


class AdminUserUpdateRequest(CamelModel):
    """Editable profile columns. Omitted fields are left unchanged."""

    full_name: Optional[str] = None
    avatar_url: Optional[str] = None
    is_onboarding_complete: Optional[bool] = None
    is_matchable: Optional[bool] = None


# ======================================================================
# Admin roles
# ======================================================================

class AdminRoleItem(CamelModel):
    id: str
    user_id: str
    role: AdminRole
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


class AdminRoleListResponse(CamelModel):
    items: list[AdminRoleItem] = Field(default_factory=list)
    total: int = 0
    page: int = 1
    page_size: int = 10
    total_pages: int = 0


class AdminRoleCreateRequest(CamelModel):
    user_id: str
    role: AdminRole = "admin"

    @field_validator("user_id")
    @classmethod
    def validate_user_id(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("user_id cannot be empty")
        return v


class AdminRoleUpdateRequest(CamelModel):
    role: AdminRole


# ======================================================================
# Notifications
# ======================================================================

class AdminNotificationItem(CamelModel):
    id: str
    user_id: str
    title: str
    message: str
    type: str = "info"
    link: Optional[str] = None
    is_read: Optional[bool] = False
    is_urgent: Optional[bool] = False
    created_at: Optional[str] = None
    user_email: Optional[str] = None
    user_full_name: Optional[str] = None


class AdminNotificationListResponse(CamelModel):
    items: list[AdminNotificationItem] = Field(default_factory=list)
    total: int = 0
    page: int = 1
    page_size: int = 10
    total_pages: int = 0


class AdminDeleteResponse(CamelModel):
    status: str = "deleted"
    id: str
