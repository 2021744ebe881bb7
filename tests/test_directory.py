"""
Tests for services.directory.ManufacturerDirectory.
"""

import json

import pytest

from config.settings import Settings
from models.errors import InvalidInputError
from models.schemas import SearchOptions
from services.context import RequestContext
from services.directory import ManufacturerDirectory, text_relevance


def _ids(result):
    return [hit.profile.id for hit in result.manufacturers]


# ── collection ────────────────────────────────────────────────────────────────

def test_directory_keeps_insertion_order(directory):
    assert len(directory) == 4
    assert [p.id for p in directory] == ["mfg-a", "mfg-b", "mfg-c", "mfg-d"]
    assert "mfg-a" in directory
    assert directory.get_profile("missing") is None


def test_require_unknown_id_raises_key_error(directory):
    with pytest.raises(KeyError):
        directory.require("missing")


def test_records_without_id_get_one(settings):
    directory = ManufacturerDirectory([{"name": "Anon"}], settings=settings)
    (profile,) = directory.profiles()
    assert profile.id


def test_duplicate_ids_are_rejected(directory_records, settings):
    with pytest.raises(InvalidInputError):
        ManufacturerDirectory(directory_records + [directory_records[0]], settings=settings)


# ── register / update ─────────────────────────────────────────────────────────

def test_register_scores_the_registration(directory):
    profile = directory.register({"name": "New Co", "email": "n@new.test", "password": "pw"})
    assert profile.id in directory
    assert profile.profile_score == 10.0
    assert profile.profile_completeness == 10


def test_register_full_profile(directory, full_registration):
    profile = directory.register(full_registration)
    assert profile.profile_score == 100.0
    assert profile.profile_completeness == 70


def test_register_duplicate_id_raises(directory):
    with pytest.raises(InvalidInputError):
        directory.register({"_id": "mfg-a", "name": "Copycat"})


def test_update_recalculates_scores(directory):
    created = directory.register({"name": "New Co"})
    updated = directory.update_profile(created.id, {
        "isEmailVerified": True,
        "description": "Small batch sewing",
        "profileScore": 5,
    })
    assert updated.profile_score == 50.0
    assert updated.profile_completeness == 30
    assert directory.get_profile(created.id) == updated


def test_update_unknown_id_raises(directory):
    with pytest.raises(KeyError):
        directory.update_profile("missing", {"name": "x"})


def test_update_invalidates_search_frame(directory):
    directory.search()
    directory.update_profile("mfg-d", {"isEmailVerified": True})
    assert "mfg-d" in _ids(directory.search())


# ── search ────────────────────────────────────────────────────────────────────

def test_default_search_returns_verified_by_profile_score(directory):
    result = directory.search()
    assert _ids(result) == ["mfg-b", "mfg-a", "mfg-c"]
    assert result.total == 3
    assert all(hit.match_score is None for hit in result.manufacturers)


def test_search_can_include_unverified(directory):
    result = directory.search({"verifiedOnly": False})
    assert result.total == 4


def test_text_query_scores_relevance(directory):
    result = directory.search({"query": "cotton", "sortBy": "relevance"})
    assert _ids(result) == ["mfg-c", "mfg-a"]
    # name 50 + description 15 + 10 % of 60
    assert result.manufacturers[0].match_score == 71
    # description 15 + 10 % of 80
    assert result.manufacturers[1].match_score == 23


def test_text_relevance_counts_each_matching_service(directory):
    profile = directory.require("mfg-b")
    # one service and the description mention "pcb"
    assert text_relevance(profile, "pcb", profile_score=0) == 20 + 15


def test_industry_and_service_filters(directory):
    assert _ids(directory.search({"industry": "textile"})) == ["mfg-a", "mfg-c"]
    assert _ids(directory.search({"services": ["dyeing"]})) == ["mfg-a", "mfg-c"]


def test_moq_filters(directory):
    result = directory.search(SearchOptions(min_moq=100, max_moq=600))
    assert _ids(result) == ["mfg-b", "mfg-a"]


def test_sort_by_field_and_order(directory):
    assert _ids(directory.search({"sortBy": "moq"})) == ["mfg-b", "mfg-a", "mfg-c"]
    assert _ids(directory.search({"sortBy": "name", "sortOrder": "desc"})) == [
        "mfg-c", "mfg-b", "mfg-a"
    ]


def test_pagination(directory):
    result = directory.search({"limit": 2, "offset": 1})
    assert _ids(result) == ["mfg-a", "mfg-c"]
    assert result.total == 3


def test_limit_is_capped_by_settings(directory_records, tmp_path):
    settings = Settings(data_dir=tmp_path, search_max_limit=1)
    directory = ManufacturerDirectory(directory_records, settings=settings)
    result = directory.search({"limit": 50})
    assert len(result.manufacturers) == 1
    assert result.total == 3


def test_aggregations_cover_all_hits(directory):
    aggregations = directory.search({"limit": 1}).aggregations
    assert set(aggregations.industries) == {"Electronics", "Textiles"}
    assert "Dyeing" in aggregations.services
    assert aggregations.average_score == 77
    assert aggregations.verified_count == 1


def test_empty_search_result(directory):
    result = directory.search({"query": "no such thing"})
    assert result.total == 0
    assert result.manufacturers == []
    assert result.aggregations.average_score == 0


def test_applied_filters_echo_the_request(directory):
    result = directory.search({"industry": "Textiles", "limit": 5})
    assert result.applied_filters == {"industry": "Textiles", "verified_only": True}


@pytest.mark.parametrize("options", [
    {"limit": 0},
    {"offset": -1},
    {"sortBy": "bogus"},
    {"minMoq": -10},
    {"industy": "Textiles"},
])
def test_invalid_search_options_raise(directory, options):
    with pytest.raises(InvalidInputError):
        directory.search(options)


def test_search_records_timing_on_context(directory):
    ctx = RequestContext()
    directory.search(ctx=ctx)
    assert "directory.search" in ctx.timings_ms
    assert ctx.request_id in ctx.summary()


# ── industry views ────────────────────────────────────────────────────────────

def test_manufacturers_by_industry(directory):
    overview = directory.manufacturers_by_industry("textiles")
    assert [p.id for p in overview.manufacturers] == ["mfg-a", "mfg-c"]
    assert overview.average_completeness == 85
    assert overview.top_services == ["Dyeing", "Weaving", "Knitting"]


def test_available_industries_and_services(directory):
    assert directory.available_industries() == ["Electronics", "Textiles"]
    assert directory.available_services() == [
        "Dyeing", "Knitting", "PCB Assembly", "Testing", "Weaving"
    ]


def test_from_file(tmp_path, directory_records, settings):
    path = tmp_path / "manufacturers.json"
    path.write_text(json.dumps(directory_records), encoding="utf-8")
    directory = ManufacturerDirectory.from_file(path, settings=settings)
    assert len(directory) == 4
    assert _ids(directory.search()) == ["mfg-b", "mfg-a", "mfg-c"]
