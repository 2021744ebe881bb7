"""
models/profile_scorer.py
════════════════════════
Profile scores for a manufacturer record.

Three scores
────────────
  Initial profile score   — computed at registration, before the record is
                            persisted. Point allocations per populated field.
  Profile (quality) score — the same allocations plus verification,
                            certificates and a long-form description bonus.
  Profile completeness    — share of a fixed checklist of fields that are
                            populated, as an integer percentage.

The point tables deliberately sum to more than 100: any sufficiently rich
subset of fields reaches full marks, and the total is clamped afterwards.

All functions accept a ManufacturerProfile or a plain mapping and never raise
on partial or empty records.
"""

from __future__ import annotations

from typing import Any, Mapping, Union

from models.schemas import ManufacturerProfile, as_profile

Record = Union[ManufacturerProfile, Mapping[str, Any]]

MAX_SCORE = 100

INITIAL_POINTS: dict[str, int] = {
    "name":             10,
    "description":      25,
    "industry":         20,
    "contact_email":    15,
    "services_offered": 30,
    "moq":              20,
    "country":          20,
}

CERTIFICATION_BASE_POINTS  = 15
CERTIFICATION_EXTRA_POINTS = 5     # per certificate beyond the first
CERTIFICATION_MAX_POINTS   = 25
EMAIL_VERIFIED_POINTS      = 15
LONG_DESCRIPTION_POINTS    = 10
LONG_DESCRIPTION_MIN_CHARS = 50

COMPLETENESS_CHECKLIST: tuple[str, ...] = (
    "name",
    "description",
    "industry",
    "contact_email",
    "services_offered",
    "moq",
    "country",
    "city",
    "certifications",
    "is_email_verified",
)


def _clamp(score: float) -> int:
    return int(min(max(score, 0), MAX_SCORE))


def _filled(text: str | None) -> bool:
    return bool(text and text.strip())


def _initial_points(profile: ManufacturerProfile) -> int:
    points = 0
    if _filled(profile.name):
        points += INITIAL_POINTS["name"]
    if _filled(profile.description):
        points += INITIAL_POINTS["description"]
    if _filled(profile.industry):
        points += INITIAL_POINTS["industry"]
    if _filled(profile.contact_email):
        points += INITIAL_POINTS["contact_email"]
    if profile.services_offered:
        points += INITIAL_POINTS["services_offered"]
    if profile.moq is not None and profile.moq > 0:
        points += INITIAL_POINTS["moq"]
    if profile.country:
        points += INITIAL_POINTS["country"]
    return points


def certification_points(count: int) -> int:
    """15 for the first certificate, 5 for each further one, at most 25."""
    if count <= 0:
        return 0
    return min(
        CERTIFICATION_BASE_POINTS + CERTIFICATION_EXTRA_POINTS * (count - 1),
        CERTIFICATION_MAX_POINTS,
    )


def calculate_initial_profile_score(registration_data: Record) -> int:
    """
    Score a registration payload. Credentials and other unknown keys are
    ignored, so `{name, email, password}` scores exactly 10.
    """
    return _clamp(_initial_points(as_profile(registration_data)))


def calculate_profile_score(manufacturer_data: Record) -> int:
    """Quality score of an existing (possibly partially updated) record."""
    profile = as_profile(manufacturer_data)
    points = _initial_points(profile)
    points += certification_points(len(profile.certifications))
    if profile.is_email_verified:
        points += EMAIL_VERIFIED_POINTS
    if _filled(profile.description) and len(profile.description.strip()) > LONG_DESCRIPTION_MIN_CHARS:
        points += LONG_DESCRIPTION_POINTS
    return _clamp(points)


def _present(profile: ManufacturerProfile, field: str) -> bool:
    if field == "country":
        return profile.country is not None
    if field == "city":
        return profile.city is not None
    if field == "moq":
        return profile.moq is not None
    if field == "is_email_verified":
        return profile.is_email_verified
    value = getattr(profile, field)
    if isinstance(value, list):
        return len(value) > 0
    return _filled(value)


def calculate_profile_completeness(manufacturer_data: Record) -> int:
    """Percentage of the checklist that is populated, rounded once at the end."""
    profile = as_profile(manufacturer_data)
    present = sum(1 for field in COMPLETENESS_CHECKLIST if _present(profile, field))
    return _clamp(round(present * 100 / len(COMPLETENESS_CHECKLIST)))


def score_card(manufacturer_data: Record) -> dict[str, int]:
    """All three scores at once, as stored on a profile."""
    profile = as_profile(manufacturer_data)
    return {
        "initial_profile_score": calculate_initial_profile_score(profile),
        "profile_score":         calculate_profile_score(profile),
        "profile_completeness":  calculate_profile_completeness(profile),
    }
