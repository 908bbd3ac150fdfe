"""
Profile API Verification

Tests that:
1. POST /api/v1/profile writes only the steps (and fields) supplied
2. genderPreference is stored on medical_profiles even without step 2
3. Sports and interests are replaced as whole lists when supplied
4. Supplied multi-selects must still be non-empty (400)
5. A failed write restores every touched table and names the collection
6. GET /api/v1/profile returns the same record as GET /api/v1/onboarding

Run with: pytest tests/test_profile_api.py -v
"""

from conftest import TEST_USER_ID, valid_onboarding_payload


def _onboarded(client, db):
    db.seed("profiles", {"id": TEST_USER_ID, "is_onboarding_complete": False})
    resp = client.post("/api/v1/onboarding", json=valid_onboarding_payload())
    assert resp.status_code == 200, resp.text
    db.calls.clear()


class TestPartialUpdate:
    def test_single_step_only_touches_its_table(self, client, patched_db):
        _onboarded(client, patched_db)

        resp = client.post("/api/v1/profile", json={
            "step6": {"meetingFrequency": "Weekly"},
        })
        assert resp.status_code == 200, resp.text
        assert resp.json() == {
            "success": True,
            "message": "Profile updated successfully",
            "updatedSteps": ["step6"],
        }
        assert {t for t, _ in patched_db.writes()} == {"availability"}

        availability = patched_db.rows("availability", user_id=TEST_USER_ID)[0]
        assert availability["frequency"] == "weekly"
        # Omitted field keeps its value.
        assert availability["preferred_times"] == ["Weekend mornings"]

    def test_omitted_fields_survive_in_shared_table(self, client, patched_db):
        _onboarded(client, patched_db)

        client.post("/api/v1/profile", json={"step8": {"idealWeekend": "Sports and fitness"}})

        social = patched_db.rows("social_preferences", user_id=TEST_USER_ID)[0]
        assert social["ideal_weekend"] == "Sports and fitness"
        assert social["meeting_activities"] == ["Coffee", "Hiking"]
        assert social["looking_for"] == ["Friendship", "Mentorship"]
        assert social["social_energy"] == "moderate_energy"

    def test_gender_preference_without_step2(self, client, patched_db):
        _onboarded(client, patched_db)

        resp = client.post("/api/v1/profile", json={
            "step1": {"genderPreference": "Same gender only"},
        })
        assert resp.status_code == 200

        medical = patched_db.rows("medical_profiles", user_id=TEST_USER_ID)[0]
        assert medical["gender_preference"] == "same_only"
        assert medical["career_stage"] == "resident_3+"
        # No profiles column changed, so profiles is not written.
        assert "profiles" not in {t for t, _ in patched_db.writes()}

    def test_step1_profile_columns(self, client, patched_db):
        _onboarded(client, patched_db)

        client.post("/api/v1/profile", json={"step1": {"city": " Denver ", "gender": "Male"}})
        profile = patched_db.rows("profiles", id=TEST_USER_ID)[0]
        assert profile["city"] == "Denver"
        assert profile["gender"] == "male"
        assert profile["nationality"] == "Canadian"
        assert profile["is_onboarding_complete"] is True

    def test_empty_payload_writes_nothing(self, client, patched_db):
        _onboarded(client, patched_db)

        resp = client.post("/api/v1/profile", json={})
        assert resp.status_code == 200
        assert resp.json()["updatedSteps"] == []
        assert patched_db.writes() == []

    def test_update_then_read(self, client, patched_db):
        _onboarded(client, patched_db)

        client.post("/api/v1/profile", json={
            "step2": {"careerStage": "Fellow"},
            "step7": {"lookingFor": ["Activity partners"]},
        })
        data = client.get("/api/v1/profile").json()["data"]

        expected = valid_onboarding_payload()
        expected["step2"]["careerStage"] = "Fellow"
        expected["step7"]["lookingFor"] = ["Activity partners"]
        assert data == expected


class TestListReplacement:
    def test_sports_replaced(self, client, patched_db):
        _onboarded(client, patched_db)

        client.post("/api/v1/profile", json={
            "step3": {"sports": [{"sport": "Yoga", "interest": 3}]},
        })
        sports = patched_db.rows("user_activities", user_id=TEST_USER_ID)
        assert [(r["sport"], r["interest_level"]) for r in sports] == [("Yoga", 3)]
        # activityLevel omitted: activity_levels untouched.
        assert "activity_levels" not in {t for t, _ in patched_db.writes()}

    def test_sports_cleared_with_empty_list(self, client, patched_db):
        _onboarded(client, patched_db)

        resp = client.post("/api/v1/profile", json={"step3": {"sports": []}})
        assert resp.status_code == 200
        assert patched_db.rows("user_activities", user_id=TEST_USER_ID) == []

    def test_activity_level_only_keeps_sports(self, client, patched_db):
        _onboarded(client, patched_db)

        client.post("/api/v1/profile", json={"step3": {"activityLevel": "Occasionally active"}})
        assert len(patched_db.rows("user_activities", user_id=TEST_USER_ID)) == 2
        level = patched_db.rows("activity_levels", user_id=TEST_USER_ID)[0]["level"]
        assert level == "occasionally_active"

    def test_interests_replaced_as_whole(self, client, patched_db):
        _onboarded(client, patched_db)

        client.post("/api/v1/profile", json={"step4": {"otherInterests": ["Chess"]}})
        interests = patched_db.rows("user_interests", user_id=TEST_USER_ID)
        assert [(r["category"], r["interest"]) for r in interests] == [("other", "Chess")]


class TestUpdateValidation:
    def test_empty_required_array(self, client, patched_db):
        _onboarded(client, patched_db)

        resp = client.post("/api/v1/profile", json={"step6": {"meetingTimes": []}})
        assert resp.status_code == 400
        body = resp.json()
        assert body["error"] == "Invalid data format"
        assert any("Please select at least one preferred meeting time" in d for d in body["details"])
        assert patched_db.writes() == []

    def test_bad_enum(self, client, patched_db):
        resp = client.post("/api/v1/profile", json={"step5": {"conversationStyle": "Shouting"}})
        assert resp.status_code == 400


class TestUpdateFailure:
    def test_touched_tables_restored(self, client, patched_db):
        _onboarded(client, patched_db)
        patched_db.fail("availability", "upsert")

        resp = client.post("/api/v1/profile", json={
            "step1": {"city": "Seattle"},
            "step2": {"careerStage": "Fellow"},
            "step6": {"meetingFrequency": "Weekly"},
        })
        assert resp.status_code == 500
        assert resp.json() == {
            "error": "Failed to save availability",
            "details": "simulated database error",
        }

        assert patched_db.rows("profiles", id=TEST_USER_ID)[0]["city"] == "Chicago"
        medical = patched_db.rows("medical_profiles", user_id=TEST_USER_ID)
        assert len(medical) == 1
        assert medical[0]["career_stage"] == "resident_3+"


class TestGetProfile:
    def test_matches_onboarding_endpoint(self, client, patched_db):
        _onboarded(client, patched_db)
        assert client.get("/api/v1/profile").json() == client.get("/api/v1/onboarding").json()

    def test_requires_auth(self, anon_client):
        assert anon_client.get("/api/v1/profile").status_code == 401
        assert anon_client.post("/api/v1/profile", json={}).status_code == 401
