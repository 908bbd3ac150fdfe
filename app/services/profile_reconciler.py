"""
Profile Reconciler — Read the onboarding record back and apply partial edits.

Reading is a fan-out of eight independent point queries run concurrently
(asyncio.gather over asyncio.to_thread, since the Supabase client is
synchronous). A missing row is never an error: every field falls back
to its documented default on its own.

Editing accepts any subset of the eight steps. Only supplied steps are
written, and inside a supplied step only supplied fields. Sports and
interests are the exception: when supplied they replace the user's
whole list.
"""

import asyncio
import logging
from typing import Optional

from app.core.exceptions import CollectionWriteError
from app.models.onboarding import (
    OnboardingRecord,
    ProfileUpdateRequest,
    SportInterest,
    Step1Record,
    Step2Record,
    Step3Record,
    Step4Record,
    Step5Record,
    Step6Record,
    Step7Record,
    Step8Record,
)
from app.services import field_codec
from app.services import profile_tables as tables

logger = logging.getLogger(__name__)

DEFAULT_DIETARY_PREFERENCE = "No restrictions"
DEFAULT_IDEAL_WEEKEND = "Mix of active and relaxing"


# ======================================================================
# Read side
# ======================================================================

def _fetch_single(client, table: str, key: str, user_id: str) -> Optional[dict]:
    # limit(1) rather than .single(): zero rows is a normal state here.
    result = client.table(table).select("*").eq(key, user_id).limit(1).execute()
    return tables.first_row(result)


def _fetch_many(client, table: str, user_id: str) -> list[dict]:
    result = client.table(table).select("*").eq("user_id", user_id).execute()
    return result.data or []


def _sports_from_rows(rows: list[dict]) -> list[SportInterest]:
    sports: list[SportInterest] = []
    for row in rows:
        level = row.get("interest_level")
        if not row.get("sport") or not isinstance(level, int) or not 1 <= level <= 5:
            logger.warning("Skipping malformed user_activities row: %s", row)
            continue
        sports.append(SportInterest(sport=row["sport"], interest=level))
    return sports


def build_record(
    profile: Optional[dict],
    medical: Optional[dict],
    activity_level: Optional[dict],
    activities: list[dict],
    interests: list[dict],
    social: Optional[dict],
    availability: Optional[dict],
    lifestyle: Optional[dict],
) -> OnboardingRecord:
    """Assemble the eight-step record from raw rows, defaulting per field."""
    profile = profile or {}
    medical = medical or {}
    activity_level = activity_level or {}
    social = social or {}
    availability = availability or {}
    lifestyle = lifestyle or {}

    by_category: dict[str, list[str]] = {c: [] for c in tables.INTEREST_CATEGORIES}
    for row in interests:
        if row.get("category") in by_category and row.get("interest"):
            by_category[row["category"]].append(row["interest"])

    dietary = lifestyle.get("dietary_restrictions") or []

    return OnboardingRecord(
        step1=Step1Record(
            gender=field_codec.decode("gender", profile.get("gender")),
            gender_preference=field_codec.decode(
                "gender_preference", medical.get("gender_preference")
            ),
            city=profile.get("city") or "",
            nationality=profile.get("nationality") or "",
        ),
        step2=Step2Record(
            medical_specialties=medical.get("specialties") or [],
            specialty_preference=field_codec.decode(
                "specialty_preference", medical.get("specialty_preference")
            ),
            career_stage=field_codec.decode("career_stage", medical.get("career_stage")),
        ),
        step3=Step3Record(
            sports=_sports_from_rows(activities),
            activity_level=field_codec.decode("activity_level", activity_level.get("level")),
        ),
        step4=Step4Record(
            music_preferences=by_category["music"],
            movie_preferences=by_category["movies_tv"],
            other_interests=by_category["other"],
        ),
        step5=Step5Record(
            meeting_activities=social.get("meeting_activities") or [],
            social_energy_level=field_codec.decode("social_energy", social.get("social_energy")),
            conversation_style=field_codec.decode(
                "conversation_style", social.get("conversation_style")
            ),
        ),
        step6=Step6Record(
            meeting_times=availability.get("preferred_times") or [],
            meeting_frequency=field_codec.decode(
                "meeting_frequency", availability.get("frequency")
            ),
        ),
        step7=Step7Record(
            dietary_preferences=dietary[0] if dietary else DEFAULT_DIETARY_PREFERENCE,
            life_stage=field_codec.decode("life_stage", lifestyle.get("life_stage")),
            looking_for=social.get("looking_for") or [],
        ),
        step8=Step8Record(
            ideal_weekend=social.get("ideal_weekend") or DEFAULT_IDEAL_WEEKEND,
        ),
    )


async def load_onboarding_record(client, user_id: str) -> tuple[OnboardingRecord, bool]:
    """
    Load the user's onboarding record with all eight queries in flight at once.

    Returns:
        (record, is_onboarding_complete)

    Raises:
        Exception: A query failed at the driver level. Missing rows do not raise.
    """
    (
        profile,
        medical,
        activity_level,
        activities,
        interests,
        social,
        availability,
        lifestyle,
    ) = await asyncio.gather(
        asyncio.to_thread(_fetch_single, client, tables.PROFILES, "id", user_id),
        asyncio.to_thread(_fetch_single, client, tables.MEDICAL_PROFILES, "user_id", user_id),
        asyncio.to_thread(_fetch_single, client, tables.ACTIVITY_LEVELS, "user_id", user_id),
        asyncio.to_thread(_fetch_many, client, tables.USER_ACTIVITIES, user_id),
        asyncio.to_thread(_fetch_many, client, tables.USER_INTERESTS, user_id),
        asyncio.to_thread(_fetch_single, client, tables.SOCIAL_PREFERENCES, "user_id", user_id),
        asyncio.to_thread(_fetch_single, client, tables.AVAILABILITY, "user_id", user_id),
        asyncio.to_thread(_fetch_single, client, tables.LIFESTYLE, "user_id", user_id),
    )

    record = build_record(
        profile, medical, activity_level, activities,
        interests, social, availability, lifestyle,
    )
    is_complete = bool((profile or {}).get("is_onboarding_complete"))
    return record, is_complete


# ======================================================================
# Write side
# ======================================================================

def _profile_changes(update: ProfileUpdateRequest) -> dict:
    step1 = update.step1
    if step1 is None:
        return {}
    changes: dict = {}
    if step1.gender is not None:
        changes["gender"] = field_codec.encode("gender", step1.gender)
    if step1.city is not None:
        changes["city"] = step1.city
    if step1.nationality is not None:
        changes["nationality"] = step1.nationality or None
    return changes


def _medical_changes(update: ProfileUpdateRequest) -> dict:
    changes: dict = {}
    step2 = update.step2
    if step2 is not None:
        if step2.medical_specialties is not None:
            changes["specialties"] = list(step2.medical_specialties)
        if step2.specialty_preference is not None:
            changes["specialty_preference"] = field_codec.encode(
                "specialty_preference", step2.specialty_preference
            )
        if step2.career_stage is not None:
            changes["career_stage"] = field_codec.encode("career_stage", step2.career_stage)
    # Stored on medical_profiles even when step 2 is absent.
    if update.step1 is not None and update.step1.gender_preference is not None:
        changes["gender_preference"] = field_codec.encode(
            "gender_preference", update.step1.gender_preference
        )
    return changes


def _social_changes(update: ProfileUpdateRequest) -> dict:
    changes: dict = {}
    if update.step5 is not None:
        if update.step5.meeting_activities is not None:
            changes["meeting_activities"] = list(update.step5.meeting_activities)
        if update.step5.social_energy_level is not None:
            changes["social_energy"] = field_codec.encode(
                "social_energy", update.step5.social_energy_level
            )
        if update.step5.conversation_style is not None:
            changes["conversation_style"] = field_codec.encode(
                "conversation_style", update.step5.conversation_style
            )
    if update.step7 is not None and update.step7.looking_for is not None:
        changes["looking_for"] = list(update.step7.looking_for)
    if update.step8 is not None and update.step8.ideal_weekend is not None:
        changes["ideal_weekend"] = update.step8.ideal_weekend
    return changes


def _availability_changes(update: ProfileUpdateRequest) -> dict:
    step6 = update.step6
    if step6 is None:
        return {}
    changes: dict = {}
    if step6.meeting_times is not None:
        changes["preferred_times"] = list(step6.meeting_times)
    if step6.meeting_frequency is not None:
        changes["frequency"] = field_codec.encode("meeting_frequency", step6.meeting_frequency)
    return changes


def _lifestyle_changes(update: ProfileUpdateRequest) -> dict:
    step7 = update.step7
    if step7 is None:
        return {}
    changes: dict = {}
    if step7.dietary_preferences is not None:
        changes["dietary_restrictions"] = [step7.dietary_preferences]
    if step7.life_stage is not None:
        changes["life_stage"] = field_codec.encode("life_stage", step7.life_stage)
    return changes


def plan_profile_update(user_id: str, update: ProfileUpdateRequest) -> dict:
    """
    Work out which tables a partial update touches and with what.

    Returns a dict with keys:
      "profile":   column changes for profiles (may be empty)
      "singletons": {table: column changes} for singleton tables
      "replace":   {table: full replacement rows} for multi-row tables
    """
    singletons: dict[str, dict] = {}
    for table, changes in (
        (tables.MEDICAL_PROFILES, _medical_changes(update)),
        (tables.SOCIAL_PREFERENCES, _social_changes(update)),
        (tables.AVAILABILITY, _availability_changes(update)),
        (tables.LIFESTYLE, _lifestyle_changes(update)),
    ):
        if changes:
            singletons[table] = changes

    if update.step3 is not None and update.step3.activity_level is not None:
        singletons[tables.ACTIVITY_LEVELS] = {
            "level": field_codec.encode("activity_level", update.step3.activity_level),
        }

    replace: dict[str, list[dict]] = {}
    if update.step3 is not None and update.step3.sports is not None:
        replace[tables.USER_ACTIVITIES] = tables.sport_rows(user_id, update.step3.sports)
    if update.step4 is not None:
        replace[tables.USER_INTERESTS] = tables.interest_rows(user_id, update.step4)

    return {
        "profile": _profile_changes(update),
        "singletons": singletons,
        "replace": replace,
    }


def apply_profile_update(client, user_id: str, update: ProfileUpdateRequest) -> list[str]:
    """
    Apply a partial profile update.

    Returns the list of tables written. Tables not named by the payload
    are neither read for write nor modified.

    Raises:
        CollectionWriteError: A write failed; touched tables have been
            restored from a snapshot (best effort).
    """
    plan = plan_profile_update(user_id, update)
    touched = list(plan["singletons"]) + list(plan["replace"])
    if plan["profile"]:
        touched.insert(0, tables.PROFILES)
    if not touched:
        return []

    snapshot = tables.snapshot_tables(client, user_id, touched)
    now = tables.utc_now_iso()

    try:
        if plan["profile"]:
            tables.update_profile(client, user_id, {**plan["profile"], "updated_at": now})
        for table, changes in plan["singletons"].items():
            if table != tables.ACTIVITY_LEVELS:
                changes = {**changes, "updated_at": now}
            existing = snapshot[table][0] if snapshot[table] else {}
            # Upsert merges onto the existing row so omitted columns keep their value.
            merged = {k: v for k, v in existing.items() if k != "user_id"}
            merged.update(changes)
            tables.upsert_singleton(client, table, user_id, merged)
        for table, rows in plan["replace"].items():
            tables.replace_rows(client, table, user_id, rows)
    except CollectionWriteError as exc:
        logger.error(
            "Profile update failed for user %s at %s; restoring snapshot",
            user_id[:8], exc.collection,
        )
        tables.restore_from_snapshot(client, user_id, snapshot)
        raise

    logger.info("Profile updated for user %s (tables=%s)", user_id[:8], ", ".join(touched))
    return touched
