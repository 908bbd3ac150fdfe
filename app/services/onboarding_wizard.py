"""
Onboarding Wizard — Client-side state machine for the 8-step flow.

Mirrors what the web wizard does: collect one step at a time, keep a
resumable draft on disk after every change, validate that the required
steps are filled, and submit everything to POST /api/v1/onboarding in
one request. The draft is removed only after the server answers
{"success": true}.

States:
    step        — editing current_step (1-8)
    submitting  — submit request in flight
    complete    — server confirmed the submit (terminal)
    error       — last action failed; `error` holds the message
"""

import json
import logging
import os
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Literal, Optional, Union

import httpx
from pydantic import BaseModel

from app.models.onboarding import parse_step_payload

logger = logging.getLogger(__name__)

WizardState = Literal["step", "submitting", "complete", "error"]

SUBMIT_PATH = "/api/v1/onboarding"


@dataclass(frozen=True)
class WizardStep:
    id: int
    title: str
    description: str
    required: bool


STEPS: tuple[WizardStep, ...] = (
    WizardStep(1, "Basic Info", "Tell us about yourself", True),
    WizardStep(2, "Medical Background", "Your medical specialty and career stage", True),
    WizardStep(3, "Sports & Activities", "Your physical activity preferences", False),
    WizardStep(4, "Entertainment & Culture", "Your interests and hobbies", False),
    WizardStep(5, "Social Preferences", "How you like to socialize", True),
    WizardStep(6, "Availability", "When you're available to meet", True),
    WizardStep(7, "Lifestyle & Values", "Your lifestyle and what you're looking for", True),
    WizardStep(8, "Personality", "Describe your ideal weekend", False),
)

TOTAL_STEPS = len(STEPS)
REQUIRED_STEPS = [s.id for s in STEPS if s.required]

# (step key, field, message) checked after the required-step pass.
_REQUIRED_ARRAYS = (
    ("step2", "medicalSpecialties", "Please select at least one medical specialty"),
    ("step5", "meetingActivities", "Please select at least one meeting activity"),
    ("step6", "meetingTimes", "Please select at least one preferred meeting time"),
    ("step7", "lookingFor", "Please select what you are looking for"),
)

# Sent in place of an optional step the user skipped; the server expects all eight.
OPTIONAL_STEP_DEFAULTS: dict[str, dict] = {
    "step3": {"sports": [], "activityLevel": "Moderately active (1-2 times/week)"},
    "step4": {"musicPreferences": [], "moviePreferences": [], "otherInterests": []},
    "step8": {"idealWeekend": "Mix of active and relaxing"},
}


class WizardError(ValueError):
    """A wizard transition was refused. The message is user-facing."""


# ======================================================================
# Draft persistence
# ======================================================================

class DraftStore:
    """
    One JSON file holding {data, currentStep, completedSteps, timestamp}.

    Overwritten on every change (last write wins across processes).
    """

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)

    def save(self, data: dict, current_step: int, completed_steps: set[int]) -> None:
        draft = {
            "data": data,
            "currentStep": current_step,
            "completedSteps": sorted(completed_steps),
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }
        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        tmp_path.write_text(json.dumps(draft), encoding="utf-8")
        os.replace(tmp_path, self.path)

    def load(self) -> Optional[dict]:
        """
        Return the saved draft, or None if there is none.

        A draft that cannot be parsed is deleted and treated as absent.
        """
        if not self.path.exists():
            return None
        try:
            draft = json.loads(self.path.read_text(encoding="utf-8"))
            if not isinstance(draft, dict) or not isinstance(draft.get("data", {}), dict):
                raise ValueError("draft is not an object")
        except (OSError, ValueError) as exc:
            logger.warning("Discarding unreadable onboarding draft %s: %s", self.path, exc)
            self.clear()
            return None
        return draft

    def clear(self) -> None:
        try:
            self.path.unlink()
        except FileNotFoundError:
            pass


# ======================================================================
# Wizard
# ======================================================================

class OnboardingWizard:
    def __init__(self, store: Optional[DraftStore] = None):
        self.store = store
        self.current_step: int = 1
        self.furthest_step: int = 1
        self.completed_steps: set[int] = set()
        self.data: dict[str, dict] = {}
        self.state: WizardState = "step"
        self.error: Optional[str] = None

    @classmethod
    def restore(cls, store: DraftStore) -> "OnboardingWizard":
        """Build a wizard from the saved draft, or a fresh one if none exists."""
        wizard = cls(store)
        draft = store.load()
        if draft is None:
            return wizard

        wizard.data = dict(draft.get("data") or {})
        step = draft.get("currentStep") or 1
        wizard.current_step = step if isinstance(step, int) and 1 <= step <= TOTAL_STEPS else 1
        wizard.completed_steps = {
            s for s in draft.get("completedSteps") or []
            if isinstance(s, int) and 1 <= s <= TOTAL_STEPS
        }
        wizard.furthest_step = max([wizard.current_step, *wizard.completed_steps])
        logger.info(
            "Restored onboarding draft at step %d (%d steps completed)",
            wizard.current_step, len(wizard.completed_steps),
        )
        return wizard

    @property
    def step_info(self) -> WizardStep:
        return STEPS[self.current_step - 1]

    @property
    def progress(self) -> float:
        return self.current_step / TOTAL_STEPS * 100

    def _fail(self, message: str) -> None:
        self.state = "error"
        self.error = message
        raise WizardError(message)

    def _persist(self) -> None:
        if self.store is not None:
            self.store.save(self.data, self.current_step, self.completed_steps)

    def _ensure_editable(self) -> None:
        if self.state in ("submitting", "complete"):
            raise WizardError(f"Onboarding is {self.state}")

    # --- Transitions --------------------------------------------------

    def update(self, payload: Union[dict, BaseModel]) -> None:
        """
        Store one step's answers and mark the step completed.

        Accepts {"step": n, "data": {...}} or an already-parsed step
        payload. Raises pydantic.ValidationError on invalid data.
        """
        self._ensure_editable()
        if isinstance(payload, dict):
            payload = parse_step_payload(payload)
        self.data[f"step{payload.step}"] = payload.data.model_dump(by_alias=True)
        self.completed_steps.add(payload.step)
        self.state = "step"
        self.error = None
        self._persist()

    def next(self) -> int:
        self._ensure_editable()
        if self.current_step not in self.completed_steps:
            self._fail("Please complete this step before proceeding")
        if self.current_step < TOTAL_STEPS:
            self.current_step += 1
            self.furthest_step = max(self.furthest_step, self.current_step)
        self.state = "step"
        self.error = None
        self._persist()
        return self.current_step

    def previous(self) -> int:
        self._ensure_editable()
        if self.current_step > 1:
            self.current_step -= 1
        self.state = "step"
        self.error = None
        self._persist()
        return self.current_step

    def jump_to(self, step: int) -> int:
        """Go to a step that was already completed or visited."""
        self._ensure_editable()
        if not 1 <= step <= TOTAL_STEPS:
            self._fail(f"Unknown step {step}")
        if step not in self.completed_steps and step > self.furthest_step:
            self._fail("Please complete this step before proceeding")
        self.current_step = step
        self.state = "step"
        self.error = None
        self._persist()
        return self.current_step

    # --- Submit -------------------------------------------------------

    def validate_for_submit(self) -> Optional[str]:
        """Return the first blocking message, or None when ready to submit."""
        missing = [s for s in REQUIRED_STEPS if s not in self.completed_steps]
        if missing:
            titles = ", ".join(STEPS[s - 1].title for s in missing)
            return f"Please complete all required steps: {titles}"

        problems = [
            message
            for step_key, field, message in _REQUIRED_ARRAYS
            if not (self.data.get(step_key) or {}).get(field)
        ]
        if problems:
            return ", ".join(problems)
        return None

    def submission(self) -> dict:
        """The POST body: collected steps plus defaults for skipped optional ones."""
        body = {key: dict(value) for key, value in OPTIONAL_STEP_DEFAULTS.items()}
        body.update(self.data)
        return body

    async def submit(self, http_client: httpx.AsyncClient) -> bool:
        """
        Validate and POST the collected steps.

        The http_client carries the base URL and the session's bearer
        token. Returns True once the server confirms; on failure the
        wizard stays on its step in the "error" state so the user can
        retry.
        """
        self._ensure_editable()
        problem = self.validate_for_submit()
        if problem:
            self._fail(problem)

        self.state = "submitting"
        self.error = None
        try:
            resp = await http_client.post(SUBMIT_PATH, json=self.submission())
        except httpx.HTTPError as exc:
            logger.error("Onboarding submit failed: %s", exc)
            self.state = "error"
            self.error = str(exc) or "An unexpected error occurred"
            return False

        try:
            body = resp.json()
        except ValueError:
            body = {}

        if resp.status_code >= 400:
            message = body.get("error") if isinstance(body, dict) else None
            self.state = "error"
            self.error = message if isinstance(message, str) else "Failed to save onboarding data"
            logger.warning("Onboarding submit rejected (%d): %s", resp.status_code, self.error)
            return False

        if not (isinstance(body, dict) and body.get("success") is True):
            self.state = "error"
            self.error = "Unexpected response format"
            return False

        if self.store is not None:
            self.store.clear()
        self.state = "complete"
        logger.info("Onboarding submitted successfully")
        return True
