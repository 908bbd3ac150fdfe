"""
Group Models — Pydantic schemas for the caller's groups.

Defines response models for:
- GET /api/v1/groups      — the caller's groups (or every group, admins only)
- GET /api/v1/groups/{id} — one group with its members
"""

from typing import Literal, Optional

from pydantic import BaseModel, Field

GroupFilter = Literal["my-groups", "all"]


class GroupMember(BaseModel):
    user_id: str
    role: str = "member"
    full_name: Optional[str] = None
    avatar_url: Optional[str] = None
    city: Optional[str] = None


class GroupItem(BaseModel):
    """A single row from the groups table."""

    id: str
    name: str
    description: Optional[str] = None
    avatar_url: Optional[str] = None
    created_by: Optional[str] = None
    created_at: Optional[str] = None
    member_count: int = 0


class GroupListResponse(BaseModel):
    """Response for GET /api/v1/groups."""

    groups: list[GroupItem] = Field(default_factory=list)
    total: int = 0


class GroupDetailResponse(GroupItem):
    """Response for GET /api/v1/groups/{id}."""

    members: list[GroupMember] = Field(default_factory=list)
