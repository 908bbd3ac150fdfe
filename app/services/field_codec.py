"""
Field Codec — Display strings <-> storage codes for enumerated profile fields.

The onboarding forms show human-readable choices ("Resident (3rd+ year)")
while the database stores compact slugs ("resident_3+"). This module is the
single table of record for both directions, shared by the onboarding
submit, the profile reconciler, the seed script and the matcher.

Both directions are total: an unknown display string encodes to the
domain's default code, and an unknown (or missing) code decodes to the
domain's default display string. Neither direction ever raises for bad
data. Asking for a domain that does not exist is a programming error and
raises CodecError (a KeyError).
"""

from typing import Literal, Optional

from app.core.exceptions import CodecError

CodecDomain = Literal[
    "career_stage",
    "specialty_preference",
    "gender_preference",
    "social_energy",
    "conversation_style",
    "activity_level",
    "meeting_frequency",
    "life_stage",
    "gender",
]


# ======================================================================
# Canonical tables: (display, code) pairs, first entry order = form order
# ======================================================================

_TABLES: dict[str, list[tuple[str, str]]] = {
    "career_stage": [
        ("Medical Student", "medical_student"),
        ("Resident (1st-2nd year)", "resident_1-2"),
        ("Resident (3rd+ year)", "resident_3+"),
        ("Fellow", "fellow"),
        ("Attending/Consultant (0-5 years)", "attending_0-5"),
        ("Attending/Consultant (5+ years)", "attending_5+"),
        ("Private Practice", "private_practice"),
        ("Academic Medicine", "academic"),
        ("Other", "other"),
    ],
    "specialty_preference": [
        ("Same specialty preferred", "same"),
        ("Different specialties preferred", "different"),
        ("No preference", "no_preference"),
    ],
    "gender_preference": [
        ("No preference", "no_preference"),
        ("Mixed groups preferred", "mixed_preferred"),
        ("Same gender only", "same_only"),
        ("Same gender preferred but mixed okay", "same_preferred_mixed_ok"),
    ],
    "social_energy": [
        ("High energy, love big groups", "high_energy"),
        ("Moderate energy, prefer small groups", "moderate_energy"),
        ("Low key, intimate settings preferred", "low_key"),
        ("Varies by mood", "varies"),
    ],
    "conversation_style": [
        ("Deep, meaningful conversations", "deep_meaningful"),
        ("Light, fun, casual chat", "light_fun"),
        ("Hobby-focused discussions", "hobby_focused"),
        ("Professional/career topics", "professional"),
        ("Mix of everything", "mix"),
    ],
    "activity_level": [
        ("Very active (5+ times/week)", "very_active"),
        ("Active (3-4 times/week)", "active"),
        ("Moderately active (1-2 times/week)", "moderately_active"),
        ("Occasionally active", "occasionally_active"),
        ("Prefer non-physical activities", "prefer_non_physical"),
    ],
    "meeting_frequency": [
        ("Weekly", "weekly"),
        ("Bi-weekly", "bi-weekly"),
        ("Monthly", "monthly"),
        ("As schedules allow", "flexible"),
    ],
    "life_stage": [
        ("Single, no kids", "single_no_kids"),
        ("In a relationship, no kids", "relationship_no_kids"),
        ("Married, no kids", "married_no_kids"),
        ("Have young children", "young_children"),
        ("Have older children", "older_children"),
        ("Empty nester", "empty_nester"),
        ("Prefer not to say", "prefer_not_to_say"),
    ],
    "gender": [
        ("Male", "male"),
        ("Female", "female"),
        ("Non-binary", "non_binary"),
        ("Prefer not to say", "prefer_not_to_say"),
    ],
}

# Default code per domain; also the value shown when a row is missing.
_DEFAULT_CODES: dict[str, str] = {
    "career_stage": "medical_student",
    "specialty_preference": "no_preference",
    "gender_preference": "no_preference",
    "social_energy": "moderate_energy",
    "conversation_style": "mix",
    "activity_level": "moderately_active",
    "meeting_frequency": "monthly",
    "life_stage": "single_no_kids",
    "gender": "prefer_not_to_say",
}

# Older wordings still sent by cached clients. Accepted on encode only;
# decode always yields the canonical wording.
_LEGACY_DISPLAY: dict[str, dict[str, str]] = {
    "specialty_preference": {"Different specialty preferred": "different"},
    "activity_level": {"Very active (daily exercise)": "very_active"},
    "meeting_frequency": {"Flexible": "flexible"},
    "life_stage": {
        "Young children (0-12)": "young_children",
        "Older children (13+)": "older_children",
    },
}

# Codes written by earlier releases that still exist in stored rows.
_LEGACY_CODES: dict[str, dict[str, str]] = {
    "gender": {"non-binary": "Non-binary"},
}

_ENCODE: dict[str, dict[str, str]] = {
    domain: {display: code for display, code in pairs}
    for domain, pairs in _TABLES.items()
}
_DECODE: dict[str, dict[str, str]] = {
    domain: {code: display for display, code in pairs}
    for domain, pairs in _TABLES.items()
}


def _require_domain(domain: str) -> None:
    if domain not in _TABLES:
        raise CodecError(f"Unknown codec domain: {domain!r}")


def encode(domain: CodecDomain, display: Optional[str]) -> str:
    """Map a display string to its storage code (default code if unknown)."""
    _require_domain(domain)
    if display is None:
        return _DEFAULT_CODES[domain]
    code = _ENCODE[domain].get(display)
    if code is None:
        code = _LEGACY_DISPLAY.get(domain, {}).get(display)
    return code or _DEFAULT_CODES[domain]


def decode(domain: CodecDomain, code: Optional[str]) -> str:
    """Map a storage code to its display string (default display if unknown)."""
    _require_domain(domain)
    display = None
    if code is not None:
        display = _DECODE[domain].get(code) or _LEGACY_CODES.get(domain, {}).get(code)
    if display is None:
        return _DECODE[domain][_DEFAULT_CODES[domain]]
    return display


def default_code(domain: CodecDomain) -> str:
    _require_domain(domain)
    return _DEFAULT_CODES[domain]


def default_display(domain: CodecDomain) -> str:
    _require_domain(domain)
    return _DECODE[domain][_DEFAULT_CODES[domain]]


def display_values(domain: CodecDomain) -> list[str]:
    """Documented display strings for a domain, in form order."""
    _require_domain(domain)
    return [display for display, _ in _TABLES[domain]]


def codes(domain: CodecDomain) -> list[str]:
    """Documented storage codes for a domain, in form order."""
    _require_domain(domain)
    return [code for _, code in _TABLES[domain]]


def domains() -> list[str]:
    return list(_TABLES)


def canonical_display(domain: CodecDomain, display: str) -> str:
    """
    Rewrite a legacy display wording to the canonical one.

    Values that are neither canonical nor legacy are returned unchanged
    so request validation can still reject them.
    """
    _require_domain(domain)
    code = _LEGACY_DISPLAY.get(domain, {}).get(display)
    if code is None:
        return display
    return _DECODE[domain][code]
