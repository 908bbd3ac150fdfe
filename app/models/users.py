"""
User Models — Pydantic schemas for account-level endpoints.

- DELETE /api/v1/users/me        — Account deletion
- GET    /api/v1/users/me/export — Data export
"""

from typing import Optional

from pydantic import BaseModel, Field


class AccountDeleteResponse(BaseModel):
    """
    Response from DELETE /api/v1/users/me.

    Returned after the auth identity has been deleted; profile and
    onboarding rows go with it through ON DELETE CASCADE.
    """

    status: str = Field(
        default="deleted",
        description="Always 'deleted' on success.",
    )
    message: str = Field(
        default="Account and all associated data have been permanently deleted.",
        description="Human-readable confirmation message.",
    )


class DataExportResponse(BaseModel):
    """
    Complete user data export returned by GET /api/v1/users/me/export.

    Nested sections are plain dicts/lists: the export is meant to be
    downloaded and read, not consumed by another API.
    """

    exported_at: str = Field(
        ...,
        description="ISO 8601 timestamp of when the export was generated.",
    )
    profile: Optional[dict] = Field(
        default=None,
        description="The profiles row, or None if it does not exist.",
    )
    onboarding: dict = Field(
        ...,
        description="The eight-step onboarding record in its wire (camelCase) form.",
    )
    is_onboarding_complete: bool = False
    notifications: list[dict] = Field(default_factory=list)
    group_memberships: list[dict] = Field(default_factory=list)
    admin_role: Optional[str] = None
