"""
Onboarding Wizard Verification

Tests that:
1. Next requires the current step to be completed; Previous never does
2. Jump-to is limited to completed or already-visited steps
3. Every update persists a draft that restores step index and completed set
4. A corrupt draft is discarded
5. Submit validation reports missing required steps and empty multi-selects
6. The draft is cleared only after the server answers {"success": true}
7. Skipped optional steps are sent with their defaults, so a wizard with
   only the required steps completes against the real app

Run with: pytest tests/test_onboarding_wizard.py -v
"""

import json

import httpx
import pytest
from pydantic import ValidationError

from conftest import TEST_USER_ID, valid_onboarding_payload
from app.main import app
from app.services.onboarding_wizard import (
    OPTIONAL_STEP_DEFAULTS,
    REQUIRED_STEPS,
    STEPS,
    DraftStore,
    OnboardingWizard,
    WizardError,
)


def _fill_all(wizard: OnboardingWizard) -> None:
    payload = valid_onboarding_payload()
    for n in range(1, 9):
        wizard.update({"step": n, "data": payload[f"step{n}"]})


@pytest.fixture
def store(tmp_path):
    return DraftStore(tmp_path / "onboarding-draft.json")


class TestSteps:
    def test_step_table(self):
        assert [s.id for s in STEPS] == list(range(1, 9))
        assert REQUIRED_STEPS == [1, 2, 5, 6, 7]
        assert STEPS[0].title == "Basic Info"


class TestNavigation:
    def test_next_requires_completed_step(self, store):
        wizard = OnboardingWizard(store)
        with pytest.raises(WizardError, match="Please complete this step before proceeding"):
            wizard.next()
        assert wizard.state == "error"
        assert wizard.current_step == 1

    def test_update_then_next(self, store):
        wizard = OnboardingWizard(store)
        wizard.update({"step": 1, "data": valid_onboarding_payload()["step1"]})
        assert wizard.next() == 2
        assert wizard.state == "step"
        assert wizard.error is None

    def test_previous_always_allowed(self, store):
        wizard = OnboardingWizard(store)
        assert wizard.previous() == 1
        wizard.update({"step": 1, "data": valid_onboarding_payload()["step1"]})
        wizard.next()
        assert wizard.previous() == 1

    def test_jump_to_completed_or_visited(self, store):
        wizard = OnboardingWizard(store)
        payload = valid_onboarding_payload()
        wizard.update({"step": 1, "data": payload["step1"]})
        wizard.next()
        wizard.update({"step": 2, "data": payload["step2"]})
        wizard.next()

        assert wizard.jump_to(1) == 1
        # Step 3 was visited (not completed) before jumping back.
        assert wizard.jump_to(3) == 3
        with pytest.raises(WizardError):
            wizard.jump_to(5)

    def test_invalid_step_data_rejected(self, store):
        wizard = OnboardingWizard(store)
        with pytest.raises(ValidationError):
            wizard.update({"step": 2, "data": {"medicalSpecialties": []}})
        assert 2 not in wizard.completed_steps


class TestDraft:
    def test_update_writes_draft(self, store):
        wizard = OnboardingWizard(store)
        wizard.update({"step": 1, "data": valid_onboarding_payload()["step1"]})

        draft = json.loads(store.path.read_text())
        assert set(draft) == {"data", "currentStep", "completedSteps", "timestamp"}
        assert draft["data"]["step1"]["city"] == "Chicago"
        assert draft["completedSteps"] == [1]

    def test_restore_resumes_position(self, store):
        wizard = OnboardingWizard(store)
        payload = valid_onboarding_payload()
        for n in (1, 2, 3):
            wizard.update({"step": n, "data": payload[f"step{n}"]})
            wizard.next()

        restored = OnboardingWizard.restore(store)
        assert restored.current_step == 4
        assert restored.completed_steps == {1, 2, 3}
        assert restored.data["step2"]["medicalSpecialties"] == ["Cardiology", "Internal Medicine"]

    def test_restore_without_draft(self, store):
        wizard = OnboardingWizard.restore(store)
        assert wizard.current_step == 1
        assert wizard.completed_steps == set()

    def test_corrupt_draft_is_discarded(self, store):
        store.path.write_text("{not json")
        wizard = OnboardingWizard.restore(store)
        assert wizard.current_step == 1
        assert not store.path.exists()


class TestSubmitValidation:
    def test_missing_required_steps_listed(self, store):
        wizard = OnboardingWizard(store)
        wizard.update({"step": 1, "data": valid_onboarding_payload()["step1"]})
        assert wizard.validate_for_submit() == (
            "Please complete all required steps: "
            "Medical Background, Social Preferences, Availability, Lifestyle & Values"
        )

    def test_optional_steps_not_required(self, store):
        wizard = OnboardingWizard(store)
        payload = valid_onboarding_payload()
        for n in REQUIRED_STEPS:
            wizard.update({"step": n, "data": payload[f"step{n}"]})
        assert wizard.validate_for_submit() is None

    def test_empty_arrays_reported(self, store):
        wizard = OnboardingWizard(store)
        _fill_all(wizard)
        wizard.data["step5"]["meetingActivities"] = []
        wizard.data["step7"]["lookingFor"] = []
        assert wizard.validate_for_submit() == (
            "Please select at least one meeting activity, "
            "Please select what you are looking for"
        )


class TestSubmit:
    @pytest.mark.asyncio
    async def test_success_clears_draft(self, store):
        received = {}

        def handler(request: httpx.Request) -> httpx.Response:
            received["path"] = request.url.path
            received["body"] = json.loads(request.content)
            return httpx.Response(200, json={"success": True})

        wizard = OnboardingWizard(store)
        _fill_all(wizard)
        assert store.path.exists()

        async with httpx.AsyncClient(
            transport=httpx.MockTransport(handler), base_url="http://test",
        ) as http_client:
            assert await wizard.submit(http_client) is True

        assert wizard.state == "complete"
        assert not store.path.exists()
        assert received["path"] == "/api/v1/onboarding"
        assert received["body"]["step2"]["careerStage"] == "Resident (3rd+ year)"

    @pytest.mark.asyncio
    async def test_server_error_keeps_draft(self, store):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(500, json={"error": "Failed to save lifestyle"})

        wizard = OnboardingWizard(store)
        _fill_all(wizard)
        step_before = wizard.current_step

        async with httpx.AsyncClient(
            transport=httpx.MockTransport(handler), base_url="http://test",
        ) as http_client:
            assert await wizard.submit(http_client) is False

        assert wizard.state == "error"
        assert wizard.error == "Failed to save lifestyle"
        assert wizard.current_step == step_before
        assert store.path.exists()

    @pytest.mark.asyncio
    async def test_unexpected_body_is_not_success(self, store):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"ok": True})

        wizard = OnboardingWizard(store)
        _fill_all(wizard)

        async with httpx.AsyncClient(
            transport=httpx.MockTransport(handler), base_url="http://test",
        ) as http_client:
            assert await wizard.submit(http_client) is False
        assert wizard.error == "Unexpected response format"
        assert store.path.exists()

    @pytest.mark.asyncio
    async def test_network_error_allows_retry(self, store):
        calls = {"n": 0}

        def handler(request: httpx.Request) -> httpx.Response:
            calls["n"] += 1
            if calls["n"] == 1:
                raise httpx.ConnectError("connection refused")
            return httpx.Response(200, json={"success": True})

        wizard = OnboardingWizard(store)
        _fill_all(wizard)

        async with httpx.AsyncClient(
            transport=httpx.MockTransport(handler), base_url="http://test",
        ) as http_client:
            assert await wizard.submit(http_client) is False
            assert wizard.state == "error"
            assert await wizard.submit(http_client) is True
        assert wizard.state == "complete"

    @pytest.mark.asyncio
    async def test_invalid_wizard_never_posts(self, store):
        def handler(request: httpx.Request) -> httpx.Response:
            raise AssertionError("should not be called")

        wizard = OnboardingWizard(store)
        async with httpx.AsyncClient(
            transport=httpx.MockTransport(handler), base_url="http://test",
        ) as http_client:
            with pytest.raises(WizardError, match="Please complete all required steps"):
                await wizard.submit(http_client)

    @pytest.mark.asyncio
    async def test_skipped_optional_steps_sent_as_defaults(self, store):
        received = {}

        def handler(request: httpx.Request) -> httpx.Response:
            received["body"] = json.loads(request.content)
            return httpx.Response(200, json={"success": True})

        wizard = OnboardingWizard(store)
        payload = valid_onboarding_payload()
        for n in REQUIRED_STEPS:
            wizard.update({"step": n, "data": payload[f"step{n}"]})

        async with httpx.AsyncClient(
            transport=httpx.MockTransport(handler), base_url="http://test",
        ) as http_client:
            assert await wizard.submit(http_client) is True

        body = received["body"]
        assert sorted(body) == [f"step{n}" for n in range(1, 9)]
        assert body["step3"] == OPTIONAL_STEP_DEFAULTS["step3"]
        assert body["step4"] == OPTIONAL_STEP_DEFAULTS["step4"]
        assert body["step8"] == {"idealWeekend": "Mix of active and relaxing"}
        assert body["step2"] == payload["step2"]
        # Defaults are only sent, never written into the draft data.
        assert "step3" not in wizard.data


class TestSubmitAgainstApp:
    @pytest.mark.asyncio
    async def test_required_steps_only_completes(self, store, patched_db, auth_as):
        auth_as(TEST_USER_ID)
        patched_db.seed("profiles", {"id": TEST_USER_ID, "is_onboarding_complete": False})
        wizard = OnboardingWizard(store)
        payload = valid_onboarding_payload()
        for n in REQUIRED_STEPS:
            wizard.update({"step": n, "data": payload[f"step{n}"]})

        async with httpx.AsyncClient(
            transport=httpx.ASGITransport(app=app), base_url="http://test",
        ) as http_client:
            assert await wizard.submit(http_client) is True

        assert wizard.state == "complete"
        assert not store.path.exists()
        assert patched_db.rows("profiles", id=TEST_USER_ID)[0]["is_onboarding_complete"] is True
        (activity,) = patched_db.rows("activity_levels", user_id=TEST_USER_ID)
        assert activity["level"] == "moderately_active"
        assert patched_db.rows("user_activities", user_id=TEST_USER_ID) == []
