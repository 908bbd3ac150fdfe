"""
Compatibility — Pairwise scoring and group formation for matchable users.

Scores are integers in [0, 100] built from simple profile overlaps:

    same city                                     +10
    ages within 5 years                           +10
    user1's specialty preference satisfied        +15
    user1's gender preference satisfied           +15
    same activity level                           +10
    same life stage                               +10
    each shared meeting activity                  +5
    each shared "looking for" item                +5

Preferences are read from the first user, so the score is not symmetric;
group formation uses the mean of both directions.
"""

import logging
import random
from typing import Iterable, Optional

from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)

MAX_SCORE = 100
DEFAULT_MATCH_THRESHOLD = 50


class MatchProfile(BaseModel):
    """The slice of a user's profile the matcher looks at (storage codes)."""

    id: str
    city: Optional[str] = None
    age: Optional[int] = None
    gender: Optional[str] = None
    specialties: list[str] = Field(default_factory=list)
    specialty_preference: Optional[str] = None
    gender_preference: Optional[str] = None
    activity_level: Optional[str] = None
    life_stage: Optional[str] = None
    meeting_activities: list[str] = Field(default_factory=list)
    looking_for: list[str] = Field(default_factory=list)


def _shares_specialty(a: MatchProfile, b: MatchProfile) -> bool:
    return bool(set(a.specialties) & set(b.specialties))


def calculate_compatibility_score(a: MatchProfile, b: MatchProfile) -> int:
    """Score how well b fits a's preferences and shared traits (0-100)."""
    score = 0

    if a.city and a.city == b.city:
        score += 10
    if a.age is not None and b.age is not None and abs(a.age - b.age) <= 5:
        score += 10

    if a.specialty_preference == "same" and _shares_specialty(a, b):
        score += 15
    elif a.specialty_preference == "different" and not _shares_specialty(a, b):
        score += 15

    if a.gender and b.gender:
        same_gender = a.gender == b.gender
        if a.gender_preference in ("same_only", "same_preferred_mixed_ok") and same_gender:
            score += 15
        elif a.gender_preference == "mixed_preferred" and not same_gender:
            score += 15

    if a.activity_level and a.activity_level == b.activity_level:
        score += 10
    if a.life_stage and a.life_stage == b.life_stage:
        score += 10

    score += 5 * len(set(a.meeting_activities) & set(b.meeting_activities))
    score += 5 * len(set(a.looking_for) & set(b.looking_for))

    return min(MAX_SCORE, score)


def mutual_score(a: MatchProfile, b: MatchProfile) -> float:
    return (calculate_compatibility_score(a, b) + calculate_compatibility_score(b, a)) / 2


def select_top_matches(
    profiles: list[MatchProfile],
    threshold: int = DEFAULT_MATCH_THRESHOLD,
    limit: Optional[int] = None,
) -> list[dict]:
    """
    Score every pair once and keep those strictly above threshold.

    Returns match rows sorted by score descending, at most limit of them
    (defaults to twice the number of profiles).
    """
    matches: list[dict] = []
    for i, first in enumerate(profiles):
        for second in profiles[i + 1:]:
            score = calculate_compatibility_score(first, second)
            if score > threshold:
                matches.append({
                    "user1_id": first.id,
                    "user2_id": second.id,
                    "compatibility_score": score,
                    "score_breakdown": {},
                })

    matches.sort(key=lambda m: m["compatibility_score"], reverse=True)
    if limit is None:
        limit = len(profiles) * 2
    return matches[:limit]


def form_groups(
    profiles: list[MatchProfile],
    group_size: int = 4,
    min_size: int = 2,
) -> list[list[str]]:
    """
    Greedily partition profiles into groups of group_size.

    Each group is seeded with the first unassigned profile and filled with
    whichever remaining profile has the best mean mutual score against the
    members so far. A trailing group smaller than min_size is dropped.
    """
    remaining = list(profiles)
    groups: list[list[str]] = []

    while remaining:
        group = [remaining.pop(0)]
        while len(group) < group_size and remaining:
            best_index = max(
                range(len(remaining)),
                key=lambda idx: sum(mutual_score(m, remaining[idx]) for m in group),
            )
            group.append(remaining.pop(best_index))
        if len(group) >= min_size:
            groups.append([member.id for member in group])
        else:
            logger.info("Leaving %d user(s) ungrouped this round", len(group))

    return groups


def partition_into_groups(
    user_ids: list[str],
    min_size: int = 3,
    max_size: int = 4,
    rng: Optional[random.Random] = None,
) -> list[list[str]]:
    """
    Split user_ids, in order, into consecutive groups of min_size-max_size.

    Each group takes a random size in range; the last group gets whatever
    is left, so it can be smaller than min_size.
    """
    rng = rng or random.Random()
    groups: list[list[str]] = []
    index = 0
    while index < len(user_ids):
        size = rng.randint(min_size, max_size)
        groups.append(list(user_ids[index:index + size]))
        index += size
    return groups


def _rows_by_user(rows: Iterable[dict]) -> dict[str, dict]:
    by_user: dict[str, dict] = {}
    for row in rows:
        by_user.setdefault(row.get("user_id"), row)
    return by_user


def load_matchable_profiles(client) -> list[MatchProfile]:
    """Load every matchable user with the columns the scorer needs."""
    profiles = (
        client.table("profiles")
        .select("id, city, age, gender")
        .eq("is_matchable", True)
        .order("created_at")
        .execute()
    ).data or []
    if not profiles:
        return []

    ids = [p["id"] for p in profiles]
    medical = _rows_by_user(
        client.table("medical_profiles")
        .select("user_id, specialties, specialty_preference, gender_preference")
        .in_("user_id", ids)
        .execute()
        .data or []
    )
    activity = _rows_by_user(
        client.table("activity_levels").select("user_id, level").in_("user_id", ids).execute().data
        or []
    )
    lifestyle = _rows_by_user(
        client.table("lifestyle").select("user_id, life_stage").in_("user_id", ids).execute().data
        or []
    )
    social = _rows_by_user(
        client.table("social_preferences")
        .select("user_id, meeting_activities, looking_for")
        .in_("user_id", ids)
        .execute()
        .data or []
    )

    result: list[MatchProfile] = []
    for p in profiles:
        uid = p["id"]
        med = medical.get(uid, {})
        soc = social.get(uid, {})
        result.append(MatchProfile(
            id=uid,
            city=p.get("city"),
            age=p.get("age"),
            gender=p.get("gender"),
            specialties=med.get("specialties") or [],
            specialty_preference=med.get("specialty_preference"),
            gender_preference=med.get("gender_preference"),
            activity_level=activity.get(uid, {}).get("level"),
            life_stage=lifestyle.get(uid, {}).get("life_stage"),
            meeting_activities=soc.get("meeting_activities") or [],
            looking_for=soc.get("looking_for") or [],
        ))
    return result
