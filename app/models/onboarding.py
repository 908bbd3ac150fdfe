"""
Onboarding Models — Pydantic schemas for the 8-step onboarding payload.

Defines request/response models for:
- POST /api/v1/onboarding — full submit (all eight steps required)
- GET  /api/v1/onboarding — reconstructed record
- POST /api/v1/profile    — partial update (every step and field optional)

Field names are snake_case in Python and camelCase on the wire
(step1.genderPreference), matching what the web client sends.
"""

from __future__ import annotations

from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, field_validator
from pydantic.alias_generators import to_camel

from app.services.field_codec import canonical_display


# ======================================================================
# Enumerations (canonical display wording)
# ======================================================================

Gender = Literal["Male", "Female", "Non-binary", "Prefer not to say"]

GenderPreference = Literal[
    "No preference",
    "Mixed groups preferred",
    "Same gender only",
    "Same gender preferred but mixed okay",
]

SpecialtyPreference = Literal[
    "Same specialty preferred",
    "Different specialties preferred",
    "No preference",
]

CareerStage = Literal[
    "Medical Student",
    "Resident (1st-2nd year)",
    "Resident (3rd+ year)",
    "Fellow",
    "Attending/Consultant (0-5 years)",
    "Attending/Consultant (5+ years)",
    "Private Practice",
    "Academic Medicine",
    "Other",
]

ActivityLevel = Literal[
    "Very active (5+ times/week)",
    "Active (3-4 times/week)",
    "Moderately active (1-2 times/week)",
    "Occasionally active",
    "Prefer non-physical activities",
]

SocialEnergy = Literal[
    "High energy, love big groups",
    "Moderate energy, prefer small groups",
    "Low key, intimate settings preferred",
    "Varies by mood",
]

ConversationStyle = Literal[
    "Deep, meaningful conversations",
    "Light, fun, casual chat",
    "Hobby-focused discussions",
    "Professional/career topics",
    "Mix of everything",
]

MeetingFrequency = Literal["Weekly", "Bi-weekly", "Monthly", "As schedules allow"]

DietaryPreference = Literal[
    "No restrictions",
    "Vegetarian",
    "Vegan",
    "Halal",
    "Kosher",
    "Gluten-free",
    "Other allergies/restrictions",
]

LifeStage = Literal[
    "Single, no kids",
    "In a relationship, no kids",
    "Married, no kids",
    "Have young children",
    "Have older children",
    "Empty nester",
    "Prefer not to say",
]

IdealWeekend = Literal[
    "Adventure and exploration",
    "Relaxation and self-care",
    "Social activities with friends",
    "Cultural activities (museums, shows)",
    "Sports and fitness",
    "Home projects and hobbies",
    "Mix of active and relaxing",
]

# Messages shown by the client for the four required multi-selects.
REQUIRED_ARRAY_MESSAGES: dict[str, str] = {
    "medical_specialties": "Please select at least one specialty",
    "meeting_activities": "Please select at least one preferred meeting activity",
    "meeting_times": "Please select at least one preferred meeting time",
    "looking_for": "Please select what you are looking for",
}


class CamelModel(BaseModel):
    """Base model: snake_case attributes, camelCase JSON."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


def _require_items(values: Optional[list[str]], field_name: str) -> Optional[list[str]]:
    if values is not None and len(values) == 0:
        raise ValueError(REQUIRED_ARRAY_MESSAGES[field_name])
    return values


def _canonical(domain: str, value):
    if isinstance(value, str):
        return canonical_display(domain, value)
    return value


# ======================================================================
# Sub-models
# ======================================================================

class SportInterest(CamelModel):
    """A sport and how interested the user is in it (1-5)."""

    sport: str = Field(..., min_length=1)
    interest: int = Field(..., ge=1, le=5)


# ======================================================================
# Full step shapes (POST /api/v1/onboarding)
# ======================================================================

class Step1(CamelModel):
    """Basic info."""

    gender: Gender
    gender_preference: GenderPreference
    city: str
    nationality: Optional[str] = None

    @field_validator("city")
    @classmethod
    def validate_city(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("City is required")
        return v


class Step2(CamelModel):
    """Medical background."""

    medical_specialties: list[str]
    specialty_preference: SpecialtyPreference
    career_stage: CareerStage

    @field_validator("medical_specialties")
    @classmethod
    def validate_specialties(cls, v: list[str]) -> list[str]:
        return _require_items(v, "medical_specialties")

    @field_validator("specialty_preference", mode="before")
    @classmethod
    def normalize_specialty_preference(cls, v):
        return _canonical("specialty_preference", v)


class Step3(CamelModel):
    """Sports and activities."""

    sports: list[SportInterest] = Field(default_factory=list)
    activity_level: ActivityLevel

    @field_validator("activity_level", mode="before")
    @classmethod
    def normalize_activity_level(cls, v):
        return _canonical("activity_level", v)


class Step4(CamelModel):
    """Entertainment and culture."""

    music_preferences: list[str] = Field(default_factory=list)
    movie_preferences: list[str] = Field(default_factory=list)
    other_interests: list[str] = Field(default_factory=list)


class Step5(CamelModel):
    """Social preferences."""

    meeting_activities: list[str]
    social_energy_level: SocialEnergy
    conversation_style: ConversationStyle

    @field_validator("meeting_activities")
    @classmethod
    def validate_meeting_activities(cls, v: list[str]) -> list[str]:
        return _require_items(v, "meeting_activities")


class Step6(CamelModel):
    """Availability."""

    meeting_times: list[str]
    meeting_frequency: MeetingFrequency

    @field_validator("meeting_times")
    @classmethod
    def validate_meeting_times(cls, v: list[str]) -> list[str]:
        return _require_items(v, "meeting_times")

    @field_validator("meeting_frequency", mode="before")
    @classmethod
    def normalize_meeting_frequency(cls, v):
        return _canonical("meeting_frequency", v)


class Step7(CamelModel):
    """Lifestyle and values."""

    dietary_preferences: DietaryPreference
    life_stage: LifeStage
    looking_for: list[str]

    @field_validator("looking_for")
    @classmethod
    def validate_looking_for(cls, v: list[str]) -> list[str]:
        return _require_items(v, "looking_for")

    @field_validator("life_stage", mode="before")
    @classmethod
    def normalize_life_stage(cls, v):
        return _canonical("life_stage", v)


class Step8(CamelModel):
    """Personality."""

    ideal_weekend: IdealWeekend


class OnboardingSubmitRequest(CamelModel):
    """Payload for POST /api/v1/onboarding. All eight steps are required."""

    step1: Step1
    step2: Step2
    step3: Step3
    step4: Step4
    step5: Step5
    step6: Step6
    step7: Step7
    step8: Step8


# ======================================================================
# Partial step shapes (POST /api/v1/profile)
# ======================================================================
# Every field is optional. A supplied multi-select must still be non-empty.

class Step1Update(CamelModel):
    gender: Optional[Gender] = None
    gender_preference: Optional[GenderPreference] = None
    city: Optional[str] = None
    nationality: Optional[str] = None

    @field_validator("city")
    @classmethod
    def validate_city(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        v = v.strip()
        if not v:
            raise ValueError("City is required")
        return v


class Step2Update(CamelModel):
    medical_specialties: Optional[list[str]] = None
    specialty_preference: Optional[SpecialtyPreference] = None
    career_stage: Optional[CareerStage] = None

    @field_validator("medical_specialties")
    @classmethod
    def validate_specialties(cls, v: Optional[list[str]]) -> Optional[list[str]]:
        return _require_items(v, "medical_specialties")

    @field_validator("specialty_preference", mode="before")
    @classmethod
    def normalize_specialty_preference(cls, v):
        return _canonical("specialty_preference", v)


class Step3Update(CamelModel):
    sports: Optional[list[SportInterest]] = None
    activity_level: Optional[ActivityLevel] = None

    @field_validator("activity_level", mode="before")
    @classmethod
    def normalize_activity_level(cls, v):
        return _canonical("activity_level", v)


class Step4Update(CamelModel):
    music_preferences: Optional[list[str]] = None
    movie_preferences: Optional[list[str]] = None
    other_interests: Optional[list[str]] = None


class Step5Update(CamelModel):
    meeting_activities: Optional[list[str]] = None
    social_energy_level: Optional[SocialEnergy] = None
    conversation_style: Optional[ConversationStyle] = None

    @field_validator("meeting_activities")
    @classmethod
    def validate_meeting_activities(cls, v: Optional[list[str]]) -> Optional[list[str]]:
        return _require_items(v, "meeting_activities")


class Step6Update(CamelModel):
    meeting_times: Optional[list[str]] = None
    meeting_frequency: Optional[MeetingFrequency] = None

    @field_validator("meeting_times")
    @classmethod
    def validate_meeting_times(cls, v: Optional[list[str]]) -> Optional[list[str]]:
        return _require_items(v, "meeting_times")

    @field_validator("meeting_frequency", mode="before")
    @classmethod
    def normalize_meeting_frequency(cls, v):
        return _canonical("meeting_frequency", v)


class Step7Update(CamelModel):
    dietary_preferences: Optional[DietaryPreference] = None
    life_stage: Optional[LifeStage] = None
    looking_for: Optional[list[str]] = None

    @field_validator("looking_for")
    @classmethod
    def validate_looking_for(cls, v: Optional[list[str]]) -> Optional[list[str]]:
        return _require_items(v, "looking_for")

    @field_validator("life_stage", mode="before")
    @classmethod
    def normalize_life_stage(cls, v):
        return _canonical("life_stage", v)


class Step8Update(CamelModel):
    ideal_weekend: Optional[IdealWeekend] = None


class ProfileUpdateRequest(CamelModel):
    """
    Payload for POST /api/v1/profile.

    Only the steps present in the payload are written; inside a present
    step only the fields present are written.
    """

    step1: Optional[Step1Update] = None
    step2: Optional[Step2Update] = None
    step3: Optional[Step3Update] = None
    step4: Optional[Step4Update] = None
    step5: Optional[Step5Update] = None
    step6: Optional[Step6Update] = None
    step7: Optional[Step7Update] = None
    step8: Optional[Step8Update] = None

    def supplied_steps(self) -> list[str]:
        """Names of the steps present in the payload, in step order."""
        return [f"step{n}" for n in range(1, 9) if getattr(self, f"step{n}") is not None]


# ======================================================================
# Reconstructed record (GET endpoints)
# ======================================================================
# Stored data may predate the current vocabulary (e.g. free-text ideal
# weekend from seed data), so the read side uses plain strings.

class Step1Record(CamelModel):
    gender: str
    gender_preference: str
    city: str
    nationality: str


class Step2Record(CamelModel):
    medical_specialties: list[str]
    specialty_preference: str
    career_stage: str


class Step3Record(CamelModel):
    sports: list[SportInterest]
    activity_level: str


class Step4Record(CamelModel):
    music_preferences: list[str]
    movie_preferences: list[str]
    other_interests: list[str]


class Step5Record(CamelModel):
    meeting_activities: list[str]
    social_energy_level: str
    conversation_style: str


class Step6Record(CamelModel):
    meeting_times: list[str]
    meeting_frequency: str


class Step7Record(CamelModel):
    dietary_preferences: str
    life_stage: str
    looking_for: list[str]


class Step8Record(CamelModel):
    ideal_weekend: str


class OnboardingRecord(CamelModel):
    """All eight steps, every field populated (defaults fill gaps)."""

    step1: Step1Record
    step2: Step2Record
    step3: Step3Record
    step4: Step4Record
    step5: Step5Record
    step6: Step6Record
    step7: Step7Record
    step8: Step8Record


# ======================================================================
# Responses
# ======================================================================

class OnboardingSubmitResponse(CamelModel):
    success: bool = True


class OnboardingGetResponse(CamelModel):
    """Response from GET /api/v1/onboarding and GET /api/v1/profile."""

    data: OnboardingRecord
    is_onboarding_complete: bool = False


class ProfileUpdateResponse(CamelModel):
    success: bool = True
    message: str = "Profile updated successfully"
    updated_steps: list[str] = Field(default_factory=list)


# ======================================================================
# Step payloads exchanged by the wizard (tagged by step number)
# ======================================================================

class Step1Payload(BaseModel):
    step: Literal[1] = 1
    data: Step1


class Step2Payload(BaseModel):
    step: Literal[2] = 2
    data: Step2


class Step3Payload(BaseModel):
    step: Literal[3] = 3
    data: Step3


class Step4Payload(BaseModel):
    step: Literal[4] = 4
    data: Step4


class Step5Payload(BaseModel):
    step: Literal[5] = 5
    data: Step5


class Step6Payload(BaseModel):
    step: Literal[6] = 6
    data: Step6


class Step7Payload(BaseModel):
    step: Literal[7] = 7
    data: Step7


class Step8Payload(BaseModel):
    step: Literal[8] = 8
    data: Step8


StepPayload = Annotated[
    Union[
        Step1Payload, Step2Payload, Step3Payload, Step4Payload,
        Step5Payload, Step6Payload, Step7Payload, Step8Payload,
    ],
    Field(discriminator="step"),
]

_step_payload_adapter: TypeAdapter = TypeAdapter(StepPayload)


def parse_step_payload(raw: dict) -> BaseModel:
    """
    Validate a {"step": n, "data": {...}} dict against step n's shape.

    Raises pydantic.ValidationError on an unknown step number or bad data.
    """
    return _step_payload_adapter.validate_python(raw)
