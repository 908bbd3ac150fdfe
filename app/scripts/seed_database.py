#!/usr/bin/env python3
"""
Seed Database Script

Wipes every non-admin account and fills the database with synthetic,
fully onboarded users, groups of 3-4 and scored matches. Intended for
local and staging projects only.

Usage:
    python -m app.scripts.seed_database                 # 50 users
    python -m app.scripts.seed_database --users 20      # 20 users
    python -m app.scripts.seed_database --seed 7        # reproducible run
"""

import argparse
import asyncio
import logging
import random
import sys
from typing import get_args

import httpx

from app.core.config import validate_supabase_config
from app.db.supabase_client import get_service_client
from app.models import onboarding as schemas
from app.services import auth_admin, field_codec, profile_tables
from app.services.compatibility import (
    MatchProfile,
    partition_into_groups,
    select_top_matches,
)
from app.services.groups import GroupCreateError, create_group

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

DEFAULT_USERS = 50
DEFAULT_PASSWORD = "123456789"
NIL_UUID = "00000000-0000-0000-0000-000000000000"

CITIES = ["New York", "Los Angeles", "Chicago", "Houston", "Phoenix"]
SPECIALTIES = [
    "Internal Medicine", "Pediatrics", "Cardiology", "Emergency Medicine",
    "Surgery", "Psychiatry", "Radiology", "Family Medicine",
]
SPORTS = ["Running", "Tennis", "Swimming", "Cycling", "Yoga", "Hiking", "Soccer"]
MUSIC = ["Pop", "Rock", "Jazz", "Classical", "Hip-hop", "Electronic"]
MOVIES = ["Drama", "Comedy", "Documentary", "Sci-fi", "Thriller"]
OTHER_INTERESTS = ["Reading", "Cooking", "Photography", "Travel", "Board games"]
MEETING_ACTIVITIES = ["Coffee", "Drinks", "Hiking", "Board games", "Dinner", "Movies"]
MEETING_TIMES = ["Weekday evenings", "Weekend mornings", "Weekend afternoons", "Weekend evenings"]
LOOKING_FOR = ["Friendship", "Mentorship", "Activity partners", "Professional networking"]

# Cleared wholesale on every run, children before parents.
GROUP_TABLES = ("group_members", "matches", "groups")


def _subset(rng: random.Random, values: list[str]) -> list[str]:
    return rng.sample(values, rng.randint(1, len(values)))


def random_submission(rng: random.Random) -> schemas.OnboardingSubmitRequest:
    """A valid eight-step submission drawn from the form vocabularies."""
    return schemas.OnboardingSubmitRequest(
        step1=schemas.Step1(
            gender=rng.choice(["Male", "Female"]),
            gender_preference=rng.choice(field_codec.display_values("gender_preference")),
            city=rng.choice(CITIES),
        ),
        step2=schemas.Step2(
            medical_specialties=rng.sample(SPECIALTIES, rng.randint(1, 2)),
            specialty_preference=rng.choice(field_codec.display_values("specialty_preference")),
            career_stage=rng.choice(field_codec.display_values("career_stage")),
        ),
        step3=schemas.Step3(
            sports=[
                schemas.SportInterest(sport=sport, interest=rng.randint(1, 5))
                for sport in rng.sample(SPORTS, rng.randint(0, 3))
            ],
            activity_level=rng.choice(field_codec.display_values("activity_level")),
        ),
        step4=schemas.Step4(
            music_preferences=_subset(rng, MUSIC),
            movie_preferences=_subset(rng, MOVIES),
            other_interests=_subset(rng, OTHER_INTERESTS),
        ),
        step5=schemas.Step5(
            meeting_activities=_subset(rng, MEETING_ACTIVITIES),
            social_energy_level=rng.choice(field_codec.display_values("social_energy")),
            conversation_style=rng.choice(field_codec.display_values("conversation_style")),
        ),
        step6=schemas.Step6(
            meeting_times=_subset(rng, MEETING_TIMES),
            meeting_frequency=rng.choice(field_codec.display_values("meeting_frequency")),
        ),
        step7=schemas.Step7(
            dietary_preferences=rng.choice(get_args(schemas.DietaryPreference)),
            life_stage=rng.choice(field_codec.display_values("life_stage")),
            looking_for=_subset(rng, LOOKING_FOR),
        ),
        step8=schemas.Step8(ideal_weekend=rng.choice(get_args(schemas.IdealWeekend))),
    )


def write_seed_user(client, user: dict, age: int, submission) -> MatchProfile:
    """Write one user's profile and onboarding rows; return what the matcher sees."""
    user_id = user["id"]
    now = profile_tables.utc_now_iso()
    full_name = (user.get("user_metadata") or {}).get("full_name") or user.get("email")

    client.table(profile_tables.PROFILES).upsert({
        "id": user_id,
        "email": user.get("email"),
        "full_name": full_name,
        "age": age,
        "bio": f"Hello, I'm {full_name}. I'm a seed user interested in professional "
               f"connections and hobbies.",
        **profile_tables.profile_values(submission.step1, now),
        "is_onboarding_complete": True,
        "is_matchable": True,
    }, on_conflict="id").execute()

    medical = profile_tables.medical_values(submission.step1, submission.step2, now)
    activity = profile_tables.activity_level_values(submission.step3)
    social = profile_tables.social_values(submission.step5, submission.step7, submission.step8, now)
    lifestyle = profile_tables.lifestyle_values(submission.step7, now)

    profile_tables.upsert_singleton(client, profile_tables.MEDICAL_PROFILES, user_id, medical)
    profile_tables.upsert_singleton(client, profile_tables.ACTIVITY_LEVELS, user_id, activity)
    profile_tables.upsert_singleton(client, profile_tables.SOCIAL_PREFERENCES, user_id, social)
    profile_tables.upsert_singleton(
        client, profile_tables.AVAILABILITY, user_id,
        profile_tables.availability_values(submission.step6, now),
    )
    profile_tables.upsert_singleton(client, profile_tables.LIFESTYLE, user_id, lifestyle)
    profile_tables.replace_rows(
        client, profile_tables.USER_ACTIVITIES, user_id,
        profile_tables.sport_rows(user_id, submission.step3.sports),
    )
    profile_tables.replace_rows(
        client, profile_tables.USER_INTERESTS, user_id,
        profile_tables.interest_rows(user_id, submission.step4),
    )

    return MatchProfile(
        id=user_id,
        city=submission.step1.city,
        age=age,
        gender=field_codec.encode("gender", submission.step1.gender),
        specialties=medical["specialties"],
        specialty_preference=medical["specialty_preference"],
        gender_preference=medical["gender_preference"],
        activity_level=activity["level"],
        life_stage=lifestyle["life_stage"],
        meeting_activities=social["meeting_activities"],
        looking_for=social["looking_for"],
    )


async def clear_database(client, http_client: httpx.AsyncClient) -> int:
    """Delete groups, matches and every non-admin identity. Returns users deleted."""
    logger.info("Clearing database...")
    for table in GROUP_TABLES:
        try:
            client.table(table).delete().neq("id", NIL_UUID).execute()
        except Exception as exc:
            logger.warning("Could not clear %s: %s", table, exc)

    admin_ids = {
        row["user_id"]
        for row in client.table("admin_roles").select("user_id").execute().data or []
    }
    users = await auth_admin.list_users(http_client)
    deleted = 0
    for user in users:
        if user["id"] in admin_ids:
            logger.info("Keeping admin account %s", user.get("email"))
            continue
        for table in profile_tables.SINGLETON_TABLES + profile_tables.MULTI_ROW_TABLES:
            client.table(table).delete().eq("user_id", user["id"]).execute()
        try:
            await auth_admin.delete_user(http_client, user["id"])
            deleted += 1
        except auth_admin.AuthAdminError as exc:
            logger.warning("Could not delete user %s: %s", user.get("email"), exc.message)
    logger.info("Database cleared: %d users deleted", deleted)
    return deleted


async def seed(users: int, password: str, rng: random.Random) -> dict:
    client = get_service_client()

    async with httpx.AsyncClient() as http_client:
        await clear_database(client, http_client)

        logger.info("Seeding %d users...", users)
        created: list[dict] = []
        for i in range(1, users + 1):
            email = f"seed_user_{i}@example.com"
            try:
                user = await auth_admin.create_user(
                    http_client, email, password, {"full_name": f"Seed User {i}"},
                )
            except auth_admin.AuthAdminError as exc:
                logger.warning("Skipping %s: %s", email, exc.message)
                continue
            created.append(user)

    if not created:
        raise RuntimeError("No users were created")

    profiles = [
        write_seed_user(client, user, rng.randint(25, 55), random_submission(rng))
        for user in created
    ]

    groups_created = 0
    for index, member_ids in enumerate(partition_into_groups([p.id for p in profiles], rng=rng), 1):
        name = f"Group {index}"
        try:
            create_group(
                client, name, member_ids,
                description=f"A seed generated group {index} with multiple members",
            )
        except GroupCreateError as exc:
            logger.error("Error creating %s: %s", name, exc)
            continue
        groups_created += 1

    matches = select_top_matches(profiles)
    if matches:
        client.table("matches").insert(matches).execute()

    return {"users": len(created), "groups": groups_created, "matches": len(matches)}


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Reset and seed the Medmatch database")
    parser.add_argument(
        "--users",
        type=int,
        default=DEFAULT_USERS,
        help=f"Number of synthetic users to create (default: {DEFAULT_USERS})",
    )
    parser.add_argument(
        "--password",
        default=DEFAULT_PASSWORD,
        help="Password given to every seeded account",
    )
    parser.add_argument("--seed", type=int, default=None, help="Random seed")
    args = parser.parse_args(argv)

    if args.users < 1:
        parser.error("--users must be at least 1")

    try:
        validate_supabase_config()
        stats = asyncio.run(seed(args.users, args.password, random.Random(args.seed)))
    except Exception as exc:
        logger.error("Seeding failed: %s", exc)
        return 1

    print("\n=== Seeding Complete ===")
    print(f"Users: {stats['users']}")
    print(f"Groups: {stats['groups']}")
    print(f"Matches: {stats['matches']}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
