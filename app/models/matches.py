"""
Match Models — Pydantic schemas for the caller's pairwise matches.

Defines request/response models for:
- GET  /api/v1/matches      — the caller's matches with the other user's profile
- GET  /api/v1/matches/{id} — one match with both users' profiles
- POST /api/v1/matches      — accept or reject a match
"""

from typing import Literal, Optional

from pydantic import BaseModel, Field, field_validator

from app.models.onboarding import CamelModel

MatchAction = Literal["accept", "reject"]


class MatchProfileSummary(BaseModel):
    """Public profile fields shown on a match card."""

    id: str
    full_name: Optional[str] = None
    avatar_url: Optional[str] = None
    city: Optional[str] = None
    nationality: Optional[str] = None
    bio: Optional[str] = None


class MatchItem(BaseModel):
    id: str
    user1_id: str
    user2_id: str
    status: Optional[str] = "pending"
    compatibility_score: Optional[float] = None
    viewed_by_user1: Optional[bool] = False
    viewed_by_user2: Optional[bool] = False
    created_at: Optional[str] = None
    profile: Optional[MatchProfileSummary] = Field(
        default=None,
        description="The other user's profile (null if it no longer exists).",
    )


class MatchListResponse(BaseModel):
    """Response for GET /api/v1/matches."""

    matches: list[MatchItem] = Field(default_factory=list)
    total: int = 0


class MatchDetailResponse(BaseModel):
    """Response for GET /api/v1/matches/{id}."""

    id: str
    status: str = "pending"
    compatibility_score: Optional[float] = None
    created_at: Optional[str] = None
    user1: Optional[MatchProfileSummary] = None
    user2: Optional[MatchProfileSummary] = None


class MatchActionRequest(CamelModel):
    """Body for POST /api/v1/matches: {"matchId": ..., "action": "accept"}."""

    match_id: str
    action: MatchAction

    @field_validator("match_id")
    @classmethod
    def validate_match_id(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("matchId is required")
        return v


class MatchActionResponse(BaseModel):
    message: str
    status: str
    group_id: Optional[str] = None
