"""
models/schemas.py
─────────────────
Pydantic v2 models shared by the scorers, the comparison engine and the
manufacturer directory.

Sections
────────
  1. Manufacturer records      — Headquarters, ManufacturerProfile
  2. Criteria & results        — MoqRange, MatchCriteria, MatchResult,
                                 SimilarManufacturer, RankedEntry
  3. Weight configuration      — RankingWeights, SimilarityWeights
  4. Search models             — SearchOptions, SearchAggregations, SearchResult,
                                 IndustryOverview

Records accept both the camelCase keys used by the marketplace API
(servicesOffered, isEmailVerified, _id …) and snake_case field names.
"""

from __future__ import annotations

import math
import re
from typing import Any, Literal, Mapping, Optional, Union

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    PrivateAttr,
    ValidationError,
    field_validator,
    model_validator,
)
from pydantic.alias_generators import to_camel

from models.errors import InvalidInputError

_LIST_SPLIT = re.compile(r"\s*[;,|]\s*")

_RECORD_CONFIG = ConfigDict(
    alias_generator=to_camel,
    populate_by_name=True,
    extra="ignore",
)

# Caller-built queries and weights: an unknown key is a typo, not extra data
_STRICT_CONFIG = ConfigDict(
    alias_generator=to_camel,
    populate_by_name=True,
    extra="forbid",
)


def _is_nan(value: Any) -> bool:
    return isinstance(value, float) and math.isnan(value)


def norm_key(text: Optional[str]) -> str:
    """Case- and whitespace-insensitive key used for every equality check."""
    return " ".join(str(text).split()).lower() if text is not None else ""


# ─────────────────────────────────────────────────────────────────────────────
#  1. Manufacturer records
# ─────────────────────────────────────────────────────────────────────────────

class Headquarters(BaseModel):
    model_config = _RECORD_CONFIG

    country: Optional[str] = None
    city:    Optional[str] = None
    address: Optional[str] = None

    @model_validator(mode="before")
    @classmethod
    def _from_plain_string(cls, data: Any) -> Any:
        # "US" is shorthand for {"country": "US"}
        if isinstance(data, str):
            return {"country": data}
        if isinstance(data, Mapping):
            return {k: v for k, v in data.items() if v is not None and not _is_nan(v)}
        return data


class ManufacturerProfile(BaseModel):
    """A manufacturer record as handed over by the data-access layer."""

    model_config = _RECORD_CONFIG

    id: Optional[str] = Field(None, validation_alias=AliasChoices("_id", "id"))
    name:          Optional[str] = None
    description:   Optional[str] = None
    industry:      Optional[str] = None
    contact_email: Optional[str] = None
    website:       Optional[str] = None
    services_offered: list[str] = Field(default_factory=list)
    moq: Optional[int] = Field(None, ge=0)
    headquarters: Optional[Headquarters] = None
    certifications: list[str] = Field(default_factory=list)
    is_email_verified: bool = False
    is_verified:       bool = False
    profile_completeness: Optional[int] = Field(None, ge=0, le=100)
    profile_score: Optional[float] = Field(None, ge=0, le=100, allow_inf_nan=False)
    match_score:   Optional[float] = Field(None, ge=0, le=100, allow_inf_nan=False)

    @model_validator(mode="before")
    @classmethod
    def _drop_missing(cls, data: Any) -> Any:
        """pandas hands over NaN for empty cells; treat them as absent."""
        if isinstance(data, Mapping):
            return {k: v for k, v in data.items() if v is not None and not _is_nan(v)}
        return data

    @field_validator("id", mode="before")
    @classmethod
    def _stringify_id(cls, value: Any) -> Any:
        return None if value is None else str(value)

    @field_validator("services_offered", mode="before")
    @classmethod
    def _split_services(cls, value: Any) -> Any:
        if isinstance(value, str):
            value = _LIST_SPLIT.split(value)
        if isinstance(value, (list, tuple)):
            return [str(s).strip() for s in value if s is not None and str(s).strip()]
        return value

    @field_validator("certifications", mode="before")
    @classmethod
    def _certificate_names(cls, value: Any) -> Any:
        if isinstance(value, str):
            value = _LIST_SPLIT.split(value)
        if isinstance(value, (list, tuple)):
            names = []
            for cert in value:
                if isinstance(cert, Mapping):
                    cert = cert.get("name")
                if cert is not None and str(cert).strip():
                    names.append(str(cert).strip())
            return names
        return value

    # ── derived views ─────────────────────────────────────────────────────────

    @property
    def country(self) -> Optional[str]:
        hq = self.headquarters
        return hq.country.strip() if hq and hq.country and hq.country.strip() else None

    @property
    def city(self) -> Optional[str]:
        hq = self.headquarters
        return hq.city.strip() if hq and hq.city and hq.city.strip() else None

    def service_keys(self) -> frozenset[str]:
        return frozenset(norm_key(s) for s in self.services_offered if norm_key(s))

    def certification_keys(self) -> frozenset[str]:
        return frozenset(norm_key(c) for c in self.certifications if norm_key(c))

    def merged(self, updates: Mapping[str, Any]) -> "ManufacturerProfile":
        """Return a copy with `updates` (camelCase or snake_case keys) applied."""
        data = self.model_dump()
        data.update(canonical_keys(updates))
        return as_profile(data)


_FIELD_FOR_KEY: dict[str, str] = {"_id": "id"}
for _name in ManufacturerProfile.model_fields:
    _FIELD_FOR_KEY[_name] = _name
    _FIELD_FOR_KEY[to_camel(_name)] = _name


def canonical_keys(data: Mapping[str, Any]) -> dict[str, Any]:
    """Map camelCase / `_id` keys onto ManufacturerProfile field names."""
    return {_FIELD_FOR_KEY.get(k, k): v for k, v in data.items()}


def as_profile(data: Union[ManufacturerProfile, Mapping[str, Any]]) -> ManufacturerProfile:
    """Validate a raw record once at the boundary."""
    if isinstance(data, ManufacturerProfile):
        return data
    if not isinstance(data, Mapping):
        raise InvalidInputError(
            f"manufacturer record must be a mapping, got {type(data).__name__}"
        )
    try:
        return ManufacturerProfile.model_validate(dict(data))
    except ValidationError as exc:
        raise InvalidInputError(f"invalid manufacturer record: {exc}") from exc


# ─────────────────────────────────────────────────────────────────────────────
#  2. Criteria & results
# ─────────────────────────────────────────────────────────────────────────────

class MoqRange(BaseModel):
    """Inclusive MOQ bounds; either side may be open."""
    model_config = ConfigDict(extra="forbid")

    min: Optional[float] = Field(None, allow_inf_nan=False)
    max: Optional[float] = Field(None, allow_inf_nan=False)

    @property
    def satisfiable(self) -> bool:
        return self.min is None or self.max is None or self.min <= self.max

    def contains(self, value: Optional[float]) -> bool:
        if value is None or not self.satisfiable:
            return False
        if self.min is not None and value < self.min:
            return False
        if self.max is not None and value > self.max:
            return False
        return True


class MatchCriteria(BaseModel):
    """
    Requirements a buyer puts on a manufacturer. Only criteria that are set
    count; `declared()` lists them in the order the caller declared them.
    """

    model_config = _STRICT_CONFIG

    industry:       Optional[Union[str, list[str]]] = None
    services:       Optional[list[str]] = None
    moq_range:      Optional[MoqRange] = None
    location:       Optional[str] = None
    certifications: Optional[list[str]] = None

    _order: list[str] = PrivateAttr(default_factory=list)

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "MatchCriteria":
        try:
            criteria = cls.model_validate(dict(data))
        except ValidationError as exc:
            raise InvalidInputError(f"invalid match criteria: {exc}") from exc
        fields = cls.model_fields
        order: list[str] = []
        for key in data:
            name = key if key in fields else next(
                (n for n in fields if to_camel(n) == key), None
            )
            if name is not None and name not in order:
                order.append(name)
        criteria._order = order
        return criteria

    def declared(self) -> list[str]:
        specified = [n for n in type(self).model_fields if getattr(self, n) is not None]
        if not self._order:
            return specified
        return [n for n in self._order if n in specified]


class MatchResult(BaseModel):
    matches: bool
    score: float = Field(..., ge=0.0, le=1.0, description="Fraction of criteria passed")
    matched_criteria: list[str] = Field(default_factory=list)


class SimilarManufacturer(BaseModel):
    id: str
    name: Optional[str] = None
    similarity:  float = Field(..., ge=0.0, le=1.0)
    match_score: float = Field(..., ge=0.0, le=100.0, description="similarity on a 0–100 scale")
    match_reasons: list[str] = Field(default_factory=list)
    differences:   list[str] = Field(default_factory=list)


class RankedEntry(BaseModel):
    id: str
    rank: int = Field(..., ge=1)
    score: float = Field(..., description="Weighted composite score out of 100")
    profile_score: float
    match_score: float
    certification_count: int
    services_count: int


# ─────────────────────────────────────────────────────────────────────────────
#  3. Weight configuration
# ─────────────────────────────────────────────────────────────────────────────

class _WeightSet(BaseModel):
    """
    A set of weights for a weighted sum. Every weight must be finite and
    non-negative; a set that does not sum to 1.0 is rescaled so that it does.
    Keys missing from a mapping keep their default.
    """

    model_config = _STRICT_CONFIG

    @model_validator(mode="after")
    def _normalise(self):
        names = list(type(self).model_fields)
        total = sum(getattr(self, n) for n in names)
        if total <= 0:
            raise ValueError("at least one weight must be positive")
        if not math.isclose(total, 1.0, rel_tol=1e-9, abs_tol=1e-12):
            for n in names:
                setattr(self, n, getattr(self, n) / total)
        return self

    @classmethod
    def coerce(cls, weights: Union["_WeightSet", Mapping[str, Any], None]):
        if weights is None:
            return cls()
        if isinstance(weights, cls):
            return weights
        try:
            return cls.model_validate(dict(weights))
        except (ValidationError, TypeError, ValueError) as exc:
            raise InvalidInputError(f"invalid {cls.__name__}: {exc}") from exc

    def as_tuple(self) -> tuple[float, ...]:
        return tuple(getattr(self, n) for n in type(self).model_fields)


class RankingWeights(_WeightSet):
    """Composite ranking weights, in ranking column order."""

    profile_score:       float = Field(0.4, ge=0.0, allow_inf_nan=False)
    match_score:         float = Field(0.3, ge=0.0, allow_inf_nan=False)
    certification_count: float = Field(0.2, ge=0.0, allow_inf_nan=False)
    services_count:      float = Field(0.1, ge=0.0, allow_inf_nan=False)


class SimilarityWeights(_WeightSet):
    """Pillar weights for pairwise similarity."""

    industry:       float = Field(0.25, ge=0.0, allow_inf_nan=False)
    services:       float = Field(0.25, ge=0.0, allow_inf_nan=False)
    certifications: float = Field(0.15, ge=0.0, allow_inf_nan=False)
    moq:            float = Field(0.15, ge=0.0, allow_inf_nan=False)
    location:       float = Field(0.20, ge=0.0, allow_inf_nan=False)


# ─────────────────────────────────────────────────────────────────────────────
#  4. Search models
# ─────────────────────────────────────────────────────────────────────────────

SortField = Literal[
    "name", "industry", "moq", "profile_completeness", "profile_score", "relevance"
]


class SearchOptions(BaseModel):
    model_config = _STRICT_CONFIG

    query:    Optional[str] = None
    industry: Optional[str] = None
    services: Optional[list[str]] = None
    min_moq:  Optional[int] = Field(None, ge=0)
    max_moq:  Optional[int] = Field(None, ge=0)
    verified_only: bool = True
    sort_by:    Optional[SortField] = None
    sort_order: Optional[Literal["asc", "desc"]] = None
    limit:  int = Field(20, ge=1)
    offset: int = Field(0, ge=0)


class SearchAggregations(BaseModel):
    industries: list[str] = Field(default_factory=list)
    services:   list[str] = Field(default_factory=list)
    average_score: int = 0
    verified_count: int = 0


class SearchHit(BaseModel):
    profile: ManufacturerProfile
    match_score: Optional[int] = None


class SearchResult(BaseModel):
    manufacturers: list[SearchHit]
    total: int
    aggregations: SearchAggregations
    applied_filters: dict[str, Any] = Field(default_factory=dict)


class IndustryOverview(BaseModel):
    industry: str
    manufacturers: list[ManufacturerProfile]
    average_completeness: int = 0
    top_services: list[str] = Field(default_factory=list)
