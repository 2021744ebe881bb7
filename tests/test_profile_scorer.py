"""
Tests for models.profile_scorer.
"""

import pytest

from models.errors import InvalidInputError
from models.profile_scorer import (
    calculate_initial_profile_score,
    calculate_profile_completeness,
    calculate_profile_score,
    certification_points,
    score_card,
)


def test_registration_with_credentials_only_scores_name_points():
    """Credentials are not scored; only the name earns points."""
    data = {"name": "Acme", "email": "a@acme.test", "password": "secret"}
    assert calculate_initial_profile_score(data) == 10


def test_full_registration_reaches_maximum(full_registration):
    assert calculate_initial_profile_score(full_registration) == 100


def test_empty_record_scores_zero_everywhere():
    assert calculate_initial_profile_score({}) == 0
    assert calculate_profile_score({}) == 0
    assert calculate_profile_completeness({}) == 0


def test_camel_and_snake_case_keys_are_equivalent():
    assert calculate_initial_profile_score({"contactEmail": "x@y.test"}) == 15
    assert calculate_initial_profile_score({"contact_email": "x@y.test"}) == 15


def test_blank_strings_do_not_earn_points():
    assert calculate_initial_profile_score({"name": "   ", "industry": ""}) == 0


def test_zero_moq_earns_no_points_but_counts_as_present():
    assert calculate_initial_profile_score({"moq": 0}) == 0
    assert calculate_profile_completeness({"moq": 0}) == 10


def test_country_from_plain_string_headquarters():
    assert calculate_initial_profile_score({"headquarters": "US"}) == 20


def test_certification_points_are_capped():
    assert certification_points(0) == 0
    assert certification_points(1) == 15
    assert certification_points(2) == 20
    assert certification_points(3) == 25
    assert certification_points(10) == 25


def test_email_verification_adds_points():
    assert calculate_profile_score({"name": "Acme"}) == 10
    assert calculate_profile_score({"name": "Acme", "isEmailVerified": True}) == 25


def test_long_description_bonus():
    short = {"name": "Acme", "description": "Short text"}
    long = {"name": "Acme", "description": "Precision machining and assembly for aerospace parts"}
    assert len(long["description"]) > 50
    assert calculate_profile_score(short) == 35
    assert calculate_profile_score(long) == 45


def test_certificate_objects_are_counted():
    data = {"certifications": [{"name": "ISO 9001"}, {"name": "ISO 14001"}]}
    assert calculate_profile_score(data) == 20


def test_profile_score_is_clamped(full_registration):
    data = dict(full_registration, certifications=["A", "B", "C"], isEmailVerified=True)
    assert calculate_profile_score(data) == 100


def test_completeness_of_fully_populated_record():
    data = {
        "name": "Acme",
        "description": "Contract manufacturer",
        "industry": "Technology",
        "contactEmail": "sales@acme.test",
        "servicesOffered": ["Production"],
        "moq": 100,
        "headquarters": {"country": "US", "city": "Austin"},
        "certifications": ["ISO 9001"],
        "isEmailVerified": True,
    }
    assert calculate_profile_completeness(data) == 100


def test_completeness_counts_checklist_fields():
    data = {"name": "Acme", "industry": "Technology", "servicesOffered": []}
    assert calculate_profile_completeness(data) == 20


def test_scores_never_decrease_as_fields_are_added():
    steps = [
        ("name", "Acme"),
        ("description", "Precision machining and assembly for aerospace customers"),
        ("industry", "Aerospace"),
        ("contactEmail", "sales@acme.test"),
        ("servicesOffered", ["Machining"]),
        ("moq", 25),
        ("headquarters", {"country": "US", "city": "Seattle"}),
        ("certifications", ["AS9100"]),
        ("isEmailVerified", True),
    ]
    record: dict = {}
    previous = (0, 0, 0)
    for key, value in steps:
        record[key] = value
        current = (
            calculate_initial_profile_score(record),
            calculate_profile_score(record),
            calculate_profile_completeness(record),
        )
        assert all(c >= p for c, p in zip(current, previous)), key
        assert all(0 <= c <= 100 for c in current)
        previous = current


def test_invalid_record_raises():
    with pytest.raises(InvalidInputError):
        calculate_profile_score({"moq": -5})
    with pytest.raises(InvalidInputError):
        calculate_initial_profile_score(["not", "a", "mapping"])


def test_score_card_returns_all_three_scores(full_registration):
    card = score_card(full_registration)
    assert card == {
        "initial_profile_score": 100,
        "profile_score": 100,
        "profile_completeness": 70,
    }
