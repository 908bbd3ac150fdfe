"""
Matches API — Pairwise matches and the accept/reject decision.

GET  /api/v1/matches       — the caller's matches with the other user's profile
GET  /api/v1/matches/{id}  — one match with both users' profiles
POST /api/v1/matches       — {"matchId", "action": "accept" | "reject"}

Accepting a match forms a group of the two users plus one or two other
matchable users, and notifies every member. A match the caller is not
part of behaves like a missing one on read (404) and is refused on
write (403).
"""

import logging
import random
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, status

from app.core.security import get_current_user_id
from app.db.supabase_client import get_service_client
from app.models.matches import (
    MatchActionRequest,
    MatchActionResponse,
    MatchDetailResponse,
    MatchItem,
    MatchListResponse,
    MatchProfileSummary,
)
from app.services.groups import GroupCreateError, create_group, delete_group
from app.services.notifications import create_notifications_bulk, group_matched_notification

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/matches", tags=["matches"])

PROFILE_COLUMNS = "id, full_name, avatar_url, city, nationality, bio"
EXTRA_CANDIDATES = 10
MAX_EXTRA_MEMBERS = 2

_rng = random.Random()


def _server_error(action: str, exc: Exception) -> HTTPException:
    logger.error("Failed to %s: %s", action, exc)
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail=f"Failed to {action}.",
    )


def _load_profiles(client, user_ids: list[str]) -> dict[str, dict]:
    if not user_ids:
        return {}
    rows = (
        client.table("profiles")
        .select(PROFILE_COLUMNS)
        .in_("id", user_ids)
        .execute()
    ).data or []
    return {p["id"]: p for p in rows}


def _fetch_match(client, match_id: str) -> Optional[dict]:
    result = client.table("matches").select("*").eq("id", match_id).limit(1).execute()
    return result.data[0] if result.data else None


def _other_user(match: dict, user_id: str) -> str:
    return match["user2_id"] if match["user1_id"] == user_id else match["user1_id"]


def _pick_extra_members(client, match: dict) -> list[str]:
    """One or two random matchable users who are not part of the match."""
    candidates = (
        client.table("profiles")
        .select("id")
        .eq("is_matchable", True)
        .neq("id", match["user1_id"])
        .neq("id", match["user2_id"])
        .limit(EXTRA_CANDIDATES)
        .execute()
    ).data or []
    if not candidates:
        return []
    count = min(_rng.randint(1, MAX_EXTRA_MEMBERS), len(candidates))
    return [c["id"] for c in _rng.sample(candidates, count)]


# ===================================================================
# Reads
# ===================================================================

@router.get(
    "",
    status_code=status.HTTP_200_OK,
    response_model=MatchListResponse,
)
async def list_matches(
    user_id: str = Depends(get_current_user_id),
) -> MatchListResponse:
    """The caller's matches, best score first, each with the other user's profile."""
    client = get_service_client()
    try:
        matches = (
            client.table("matches")
            .select("*")
            .or_(f"user1_id.eq.{user_id},user2_id.eq.{user_id}")
            .order("compatibility_score", desc=True)
            .execute()
        ).data or []
        profiles = _load_profiles(
            client, sorted({_other_user(m, user_id) for m in matches}),
        )
    except Exception as exc:
        raise _server_error("load matches", exc)

    items = []
    for match in matches:
        profile = profiles.get(_other_user(match, user_id))
        items.append(MatchItem(
            **match,
            profile=MatchProfileSummary(**profile) if profile else None,
        ))
    return MatchListResponse(matches=items, total=len(items))


@router.get(
    "/{match_id}",
    status_code=status.HTTP_200_OK,
    response_model=MatchDetailResponse,
)
async def get_match(
    match_id: str,
    user_id: str = Depends(get_current_user_id),
) -> MatchDetailResponse:
    client = get_service_client()
    try:
        match = _fetch_match(client, match_id)
        if match is not None and user_id not in (match["user1_id"], match["user2_id"]):
            match = None
        profiles = _load_profiles(client, [match["user1_id"], match["user2_id"]]) if match else {}
    except Exception as exc:
        raise _server_error("load match", exc)

    if match is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Match not found.")

    user1 = profiles.get(match["user1_id"])
    user2 = profiles.get(match["user2_id"])
    return MatchDetailResponse(
        id=match["id"],
        status=match.get("status") or "pending",
        compatibility_score=match.get("compatibility_score"),
        created_at=match.get("created_at"),
        user1=MatchProfileSummary(**user1) if user1 else None,
        user2=MatchProfileSummary(**user2) if user2 else None,
    )


# ===================================================================
# POST /api/v1/matches
# ===================================================================

@router.post(
    "",
    status_code=status.HTTP_200_OK,
    response_model=MatchActionResponse,
)
async def respond_to_match(
    payload: MatchActionRequest,
    user_id: str = Depends(get_current_user_id),
) -> MatchActionResponse:
    """
    Accept or reject a match on behalf of one of its two users.

    Accepting creates the group first; if the match update then fails,
    the group is removed again so a retry starts clean.
    """
    client = get_service_client()
    match_id = payload.match_id

    try:
        match = _fetch_match(client, match_id)
    except Exception as exc:
        raise _server_error("load match", exc)
    if match is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Match not found.")

    if match["user1_id"] == user_id:
        viewed_flag = "viewed_by_user1"
    elif match["user2_id"] == user_id:
        viewed_flag = "viewed_by_user2"
    else:
        logger.warning("User %s tried to %s match %s", user_id[:8], payload.action, match_id)
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="User not part of this match.",
        )

    if match.get("status") in ("accepted", "rejected"):
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"Match already {match['status']}.",
        )

    new_status = "accepted" if payload.action == "accept" else "rejected"
    group_id = None
    member_ids: list[str] = []
    group_name = ""

    if payload.action == "accept":
        try:
            names = _load_profiles(client, [match["user1_id"], match["user2_id"]])
            extra = _pick_extra_members(client, match)
        except Exception as exc:
            raise _server_error("get user profiles", exc)

        first = (names.get(match["user1_id"]) or {}).get("full_name") or "Member"
        second = (names.get(match["user2_id"]) or {}).get("full_name") or "Member"
        group_name = f"Match: {first} and {second}"
        member_ids = [match["user1_id"], match["user2_id"], *extra]
        try:
            group_id = create_group(client, group_name, member_ids, created_by=user_id)
        except GroupCreateError as exc:
            logger.error("Accepting match %s failed: %s", match_id, exc)
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="Failed to create group.",
            )

    try:
        (
            client.table("matches")
            .update({"status": new_status, viewed_flag: True})
            .eq("id", match_id)
            .execute()
        )
    except Exception as exc:
        if group_id is not None:
            delete_group(client, group_id)
        raise _server_error("update match status", exc)

    if group_id is not None:
        # Best-effort: the group exists whether or not members are told.
        try:
            create_notifications_bulk(client, [
                group_matched_notification(uid, group_name, group_id) for uid in member_ids
            ])
        except Exception as exc:
            logger.warning("Notifications for group %s failed: %s", group_id, exc)

    logger.info("User %s %sed match %s", user_id[:8], payload.action, match_id)
    return MatchActionResponse(
        message=f"Match {match_id} {payload.action}ed successfully",
        status=new_status,
        group_id=group_id,
    )
