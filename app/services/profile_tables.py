"""
Profile Tables — Storage vocabulary shared by onboarding submit and profile edits.

A user's onboarding answers are spread across eight tables:

    profiles            (keyed by id)       gender, city, nationality, flags
    medical_profiles    (singleton)         specialties, career stage, prefs
    activity_levels     (singleton)         level
    user_activities     (multi-row)         sport + interest_level
    user_interests      (multi-row)         category + interest
    social_preferences  (singleton)         meeting activities, energy, ...
    availability        (singleton)         preferred times, frequency
    lifestyle           (singleton)         dietary restrictions, life stage

Singletons are written with an upsert on user_id. Multi-row tables are
fully replaced (delete all rows for the user, then insert). Every write
failure is raised as CollectionWriteError naming the collection, so the
caller can compensate from a snapshot taken before the first write.
"""

import logging
from datetime import datetime, timezone
from typing import Iterable, Optional

from app.core.exceptions import CollectionWriteError
from app.services import field_codec

logger = logging.getLogger(__name__)

PROFILES = "profiles"
MEDICAL_PROFILES = "medical_profiles"
ACTIVITY_LEVELS = "activity_levels"
USER_ACTIVITIES = "user_activities"
USER_INTERESTS = "user_interests"
SOCIAL_PREFERENCES = "social_preferences"
AVAILABILITY = "availability"
LIFESTYLE = "lifestyle"

SINGLETON_TABLES = (
    MEDICAL_PROFILES,
    ACTIVITY_LEVELS,
    SOCIAL_PREFERENCES,
    AVAILABILITY,
    LIFESTYLE,
)
MULTI_ROW_TABLES = (USER_ACTIVITIES, USER_INTERESTS)
ALL_TABLES = (PROFILES,) + SINGLETON_TABLES + MULTI_ROW_TABLES

# Names used in "Failed to save <collection>" errors.
COLLECTION_LABELS: dict[str, str] = {
    PROFILES: "profile",
    MEDICAL_PROFILES: "medical profile",
    ACTIVITY_LEVELS: "activity level",
    USER_ACTIVITIES: "sports activities",
    USER_INTERESTS: "interests",
    SOCIAL_PREFERENCES: "social preferences",
    AVAILABILITY: "availability",
    LIFESTYLE: "lifestyle",
}

# Columns captured before a write and re-applied on compensation.
_SNAPSHOT_COLUMNS: dict[str, str] = {
    PROFILES: "gender, city, nationality, is_onboarding_complete, is_matchable, updated_at",
    MEDICAL_PROFILES: "user_id, specialties, career_stage, specialty_preference, "
                      "gender_preference, updated_at",
    ACTIVITY_LEVELS: "user_id, level",
    USER_ACTIVITIES: "user_id, sport, interest_level",
    USER_INTERESTS: "user_id, category, interest",
    SOCIAL_PREFERENCES: "user_id, meeting_activities, social_energy, conversation_style, "
                        "ideal_weekend, looking_for, updated_at",
    AVAILABILITY: "user_id, preferred_times, frequency, updated_at",
    LIFESTYLE: "user_id, dietary_restrictions, life_stage, updated_at",
}

# user_interests.category -> Step4 attribute
INTEREST_CATEGORIES: dict[str, str] = {
    "music": "music_preferences",
    "movies_tv": "movie_preferences",
    "other": "other_interests",
}


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


# ======================================================================
# Row builders
# ======================================================================

def profile_values(step1, now: str) -> dict:
    """Columns of the profiles row derived from step 1 (flags excluded)."""
    return {
        "gender": field_codec.encode("gender", step1.gender),
        "city": step1.city,
        "nationality": step1.nationality or None,
        "updated_at": now,
    }


def medical_values(step1, step2, now: str) -> dict:
    # genderPreference is collected on step 1 but stored with the medical profile.
    return {
        "specialties": list(step2.medical_specialties),
        "career_stage": field_codec.encode("career_stage", step2.career_stage),
        "specialty_preference": field_codec.encode(
            "specialty_preference", step2.specialty_preference
        ),
        "gender_preference": field_codec.encode(
            "gender_preference", step1.gender_preference
        ),
        "updated_at": now,
    }


def activity_level_values(step3) -> dict:
    return {"level": field_codec.encode("activity_level", step3.activity_level)}


def sport_rows(user_id: str, sports) -> list[dict]:
    return [
        {"user_id": user_id, "sport": s.sport, "interest_level": s.interest}
        for s in sports
    ]


def interest_rows(user_id: str, step4) -> list[dict]:
    """Flatten the three step-4 lists into category-tagged rows."""
    rows: list[dict] = []
    for category, attr in INTEREST_CATEGORIES.items():
        for interest in getattr(step4, attr) or []:
            rows.append({"user_id": user_id, "category": category, "interest": interest})
    return rows


def social_values(step5, step7, step8, now: str) -> dict:
    return {
        "meeting_activities": list(step5.meeting_activities),
        "social_energy": field_codec.encode("social_energy", step5.social_energy_level),
        "conversation_style": field_codec.encode(
            "conversation_style", step5.conversation_style
        ),
        # Stored as the display string; there is no code table for it.
        "ideal_weekend": step8.ideal_weekend,
        "looking_for": list(step7.looking_for),
        "updated_at": now,
    }


def availability_values(step6, now: str) -> dict:
    return {
        "preferred_times": list(step6.meeting_times),
        "frequency": field_codec.encode("meeting_frequency", step6.meeting_frequency),
        "updated_at": now,
    }


def lifestyle_values(step7, now: str) -> dict:
    return {
        "dietary_restrictions": [step7.dietary_preferences],
        "life_stage": field_codec.encode("life_stage", step7.life_stage),
        "updated_at": now,
    }


# ======================================================================
# Writes
# ======================================================================

def _write_failed(table: str, exc: Exception) -> CollectionWriteError:
    return CollectionWriteError(COLLECTION_LABELS.get(table, table), str(exc))


def update_profile(client, user_id: str, values: dict) -> None:
    """Update columns of the user's profiles row."""
    try:
        client.table(PROFILES).update(values).eq("id", user_id).execute()
    except Exception as exc:
        logger.error("Profile update failed for user %s: %s", user_id[:8], exc)
        raise _write_failed(PROFILES, exc) from exc


def upsert_singleton(client, table: str, user_id: str, values: dict) -> None:
    """Insert or update the user's single row in a singleton table."""
    try:
        client.table(table).upsert(
            {"user_id": user_id, **values}, on_conflict="user_id"
        ).execute()
    except Exception as exc:
        logger.error("Upsert into %s failed for user %s: %s", table, user_id[:8], exc)
        raise _write_failed(table, exc) from exc


def replace_rows(client, table: str, user_id: str, rows: list[dict]) -> None:
    """Delete every row the user has in table, then insert rows (if any)."""
    try:
        client.table(table).delete().eq("user_id", user_id).execute()
        if rows:
            client.table(table).insert(rows).execute()
    except Exception as exc:
        logger.error("Replace of %s failed for user %s: %s", table, user_id[:8], exc)
        raise _write_failed(table, exc) from exc


# ======================================================================
# Snapshot / compensation
# ======================================================================

def snapshot_tables(client, user_id: str, tables: Iterable[str]) -> dict[str, list[dict]]:
    """
    Capture the user's current rows in each table before any mutation.

    Returns a dict keyed by table name. For profiles the list holds the
    single row (or is empty if the row does not exist yet).
    """
    snapshot: dict[str, list[dict]] = {}
    for table in tables:
        key = "id" if table == PROFILES else "user_id"
        result = (
            client.table(table)
            .select(_SNAPSHOT_COLUMNS[table])
            .eq(key, user_id)
            .execute()
        )
        snapshot[table] = result.data or []
    return snapshot


def restore_from_snapshot(client, user_id: str, snapshot: dict[str, list[dict]]) -> list[str]:
    """
    Best-effort restore of the user's rows from a pre-write snapshot.

    Every table is attempted even if an earlier one fails. Failures are
    logged and returned (as table names), never raised, so the original
    write error is what the caller reports.
    """
    failed: list[str] = []
    for table, rows in snapshot.items():
        try:
            if table == PROFILES:
                if rows:
                    client.table(PROFILES).update(rows[0]).eq("id", user_id).execute()
                continue
            client.table(table).delete().eq("user_id", user_id).execute()
            if rows:
                client.table(table).insert(rows).execute()
        except Exception:
            failed.append(table)
            logger.error(
                "CRITICAL: Failed to restore %s for user %s from snapshot. "
                "Profile data may be inconsistent.",
                table,
                user_id[:8],
                exc_info=True,
            )
    if not failed:
        logger.info("Restored %d tables for user %s after failed write", len(snapshot), user_id[:8])
    return failed


def first_row(result) -> Optional[dict]:
    """First row of a query result, or None."""
    return result.data[0] if result.data else None
