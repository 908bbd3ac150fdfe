"""
Profile Reconciler Unit Tests

Tests that:
1. build_record() fills every missing field with its own default
2. Malformed sports rows are skipped rather than failing the read
3. load_onboarding_record() fans out one query per table
4. plan_profile_update() names exactly the tables a payload touches

Run with: pytest tests/test_profile_reconciler.py -v
"""

import pytest

from conftest import FakeSupabase, TEST_USER_ID
from app.models.onboarding import ProfileUpdateRequest
from app.services import profile_tables
from app.services.profile_reconciler import (
    DEFAULT_DIETARY_PREFERENCE,
    DEFAULT_IDEAL_WEEKEND,
    build_record,
    load_onboarding_record,
    plan_profile_update,
)


class TestBuildRecord:
    def test_all_missing(self):
        record = build_record(None, None, None, [], [], None, None, None)
        assert record.step1.city == ""
        assert record.step1.gender == "Prefer not to say"
        assert record.step2.specialty_preference == "No preference"
        assert record.step4.music_preferences == []
        assert record.step5.conversation_style == "Mix of everything"
        assert record.step7.dietary_preferences == DEFAULT_DIETARY_PREFERENCE
        assert record.step8.ideal_weekend == DEFAULT_IDEAL_WEEKEND

    def test_decodes_codes(self):
        record = build_record(
            {"gender": "non_binary", "city": "Austin", "nationality": None},
            {"specialties": ["Surgery"], "career_stage": "attending_5+",
             "specialty_preference": "same", "gender_preference": "same_only"},
            {"level": "very_active"},
            [], [], None, None,
            {"dietary_restrictions": ["Halal"], "life_stage": "empty_nester"},
        )
        assert record.step1.gender == "Non-binary"
        assert record.step1.gender_preference == "Same gender only"
        assert record.step1.nationality == ""
        assert record.step2.career_stage == "Attending/Consultant (5+ years)"
        assert record.step3.activity_level == "Very active (5+ times/week)"
        assert record.step7.dietary_preferences == "Halal"
        assert record.step7.life_stage == "Empty nester"

    def test_interests_grouped_by_category(self):
        rows = [
            {"category": "music", "interest": "Jazz"},
            {"category": "other", "interest": "Chess"},
            {"category": "music", "interest": "Rock"},
            {"category": "podcasts", "interest": "ignored"},
        ]
        record = build_record(None, None, None, [], rows, None, None, None)
        assert record.step4.music_preferences == ["Jazz", "Rock"]
        assert record.step4.movie_preferences == []
        assert record.step4.other_interests == ["Chess"]

    def test_malformed_sports_rows_skipped(self):
        rows = [
            {"sport": "Tennis", "interest_level": 3},
            {"sport": "", "interest_level": 2},
            {"sport": "Golf", "interest_level": 9},
            {"sport": "Rowing", "interest_level": None},
        ]
        record = build_record(None, None, None, rows, [], None, None, None)
        assert [(s.sport, s.interest) for s in record.step3.sports] == [("Tennis", 3)]


class TestLoadOnboardingRecord:
    @pytest.mark.asyncio
    async def test_one_query_per_table(self):
        db = FakeSupabase()
        db.seed("profiles", {"id": TEST_USER_ID, "is_onboarding_complete": True})

        record, complete = await load_onboarding_record(db, TEST_USER_ID)

        assert complete is True
        queried = sorted(t for t, op in db.calls if op == "select")
        assert queried == sorted(profile_tables.ALL_TABLES)

    @pytest.mark.asyncio
    async def test_missing_profile_is_not_complete(self):
        record, complete = await load_onboarding_record(FakeSupabase(), TEST_USER_ID)
        assert complete is False
        assert record.step6.meeting_frequency == "Monthly"

    @pytest.mark.asyncio
    async def test_only_reads_callers_rows(self):
        db = FakeSupabase()
        db.seed("lifestyle", {"user_id": "someone-else", "dietary_restrictions": ["Vegan"]})
        record, _ = await load_onboarding_record(db, TEST_USER_ID)
        assert record.step7.dietary_preferences == DEFAULT_DIETARY_PREFERENCE


class TestPlanProfileUpdate:
    def _plan(self, payload: dict) -> dict:
        return plan_profile_update(TEST_USER_ID, ProfileUpdateRequest.model_validate(payload))

    def test_empty(self):
        assert self._plan({}) == {"profile": {}, "singletons": {}, "replace": {}}

    def test_step7_splits_across_tables(self):
        plan = self._plan({"step7": {"lookingFor": ["Mentorship"], "lifeStage": "Empty nester"}})
        assert plan["singletons"] == {
            "social_preferences": {"looking_for": ["Mentorship"]},
            "lifestyle": {"life_stage": "empty_nester"},
        }

    def test_step1_split(self):
        plan = self._plan({"step1": {"gender": "Female", "genderPreference": "No preference"}})
        assert plan["profile"] == {"gender": "female"}
        assert plan["singletons"] == {"medical_profiles": {"gender_preference": "no_preference"}}

    def test_step4_always_replaces_interests(self):
        plan = self._plan({"step4": {}})
        assert plan["replace"] == {"user_interests": []}

    def test_step3_sports_and_level(self):
        plan = self._plan({
            "step3": {
                "sports": [{"sport": "Tennis", "interest": 5}],
                "activityLevel": "Active (3-4 times/week)",
            },
        })
        assert plan["singletons"] == {"activity_levels": {"level": "active"}}
        assert plan["replace"] == {
            "user_activities": [
                {"user_id": TEST_USER_ID, "sport": "Tennis", "interest_level": 5},
            ],
        }
