"""
services/directory.py
─────────────────────
ManufacturerDirectory — in-memory data-access layer over the manufacturer
collection. Profiles are kept in insertion order; a pandas DataFrame view is
built lazily for filtering, sorting and aggregation and dropped on every
mutation.

Operations
──────────
  from_file                      — load a JSON / CSV / Excel export
  register / update_profile      — persist a record with recalculated scores
  get_profile                    — single record by id
  search                         — text query + filters + sort + pagination
  manufacturers_by_industry      — industry overview with top services
  available_industries / _services
"""

from __future__ import annotations

import uuid
from collections import Counter
from pathlib import Path
from typing import Any, Iterable, Iterator, Mapping, Optional, Union

import pandas as pd
from pydantic import ValidationError

from config.settings import Settings, get_settings
from models.errors import InvalidInputError
from models.profile_scorer import (
    calculate_profile_completeness,
    calculate_profile_score,
    score_card,
)
from models.schemas import (
    IndustryOverview,
    ManufacturerProfile,
    SearchAggregations,
    SearchHit,
    SearchOptions,
    SearchResult,
    as_profile,
    canonical_keys,
    norm_key,
)
from services.context import RequestContext
from utils.data_loader import load_manufacturers
from utils.logger import logger

_FRAME_COLUMNS = [
    "id", "name", "industry", "description", "services", "moq",
    "country", "city", "is_verified", "is_email_verified",
    "profile_score", "profile_completeness",
]

# Text relevance points for a free-text query hit
_RELEVANCE_POINTS = {
    "name":        50,
    "service":     20,   # per matching service
    "industry":    30,
    "description": 15,
}
_RELEVANCE_PROFILE_SHARE = 0.1

_DEFAULT_DESCENDING = {"profile_completeness", "profile_score", "relevance"}

# Fields the directory maintains itself
_DERIVED_FIELDS = {"id", "profile_score", "profile_completeness"}


def text_relevance(
    profile: ManufacturerProfile, query: str, profile_score: Optional[float] = None
) -> int:
    """Points for every field that contains `query`, plus 10 % of the profile score."""
    if profile_score is None:
        profile_score = profile.profile_score or 0
    q = query.lower()
    score = 0.0
    if profile.name and q in profile.name.lower():
        score += _RELEVANCE_POINTS["name"]
    score += _RELEVANCE_POINTS["service"] * sum(
        1 for s in profile.services_offered if q in s.lower()
    )
    if profile.industry and q in profile.industry.lower():
        score += _RELEVANCE_POINTS["industry"]
    if profile.description and q in profile.description.lower():
        score += _RELEVANCE_POINTS["description"]
    score += profile_score * _RELEVANCE_PROFILE_SHARE
    return round(score)


class ManufacturerDirectory:
    """
    Parameters
    ----------
    profiles : initial records (ManufacturerProfile or raw mappings); records
               without an id get a generated one
    settings : search limits; defaults to get_settings()
    """

    def __init__(
        self,
        profiles: Iterable[Union[ManufacturerProfile, Mapping[str, Any]]] = (),
        settings: Optional[Settings] = None,
    ) -> None:
        self.settings = settings or get_settings()
        self._profiles: dict[str, ManufacturerProfile] = {}
        self._frame: Optional[pd.DataFrame] = None
        for record in profiles:
            profile = as_profile(record)
            if profile.id is None:
                profile = profile.model_copy(update={"id": uuid.uuid4().hex})
            if profile.id in self._profiles:
                raise InvalidInputError(f"Duplicate manufacturer id '{profile.id}'")
            self._profiles[profile.id] = profile

    @classmethod
    def from_file(
        cls, path: Union[str, Path, None] = None, settings: Optional[Settings] = None
    ) -> "ManufacturerDirectory":
        """Load a JSON / CSV / Excel export; defaults to settings.manufacturers_path."""
        settings = settings or get_settings()
        directory = cls(load_manufacturers(path or settings.manufacturers_path), settings)
        logger.info(f"Directory loaded with {len(directory)} manufacturers")
        return directory

    # ── collection protocol ───────────────────────────────────────────────────

    def __len__(self) -> int:
        return len(self._profiles)

    def __contains__(self, manufacturer_id: object) -> bool:
        return manufacturer_id in self._profiles

    def __iter__(self) -> Iterator[ManufacturerProfile]:
        return iter(list(self._profiles.values()))

    def profiles(self) -> list[ManufacturerProfile]:
        return list(self._profiles.values())

    def get_profile(self, manufacturer_id: str) -> Optional[ManufacturerProfile]:
        return self._profiles.get(manufacturer_id)

    def require(self, manufacturer_id: str) -> ManufacturerProfile:
        profile = self._profiles.get(manufacturer_id)
        if profile is None:
            raise KeyError(f"Manufacturer '{manufacturer_id}' not found")
        return profile

    # ── writes ────────────────────────────────────────────────────────────────

    def register(self, data: Union[ManufacturerProfile, Mapping[str, Any]]) -> ManufacturerProfile:
        """Store a new manufacturer scored with the registration-time table."""
        profile = as_profile(data)
        manufacturer_id = profile.id or uuid.uuid4().hex
        if manufacturer_id in self._profiles:
            raise InvalidInputError(f"Duplicate manufacturer id '{manufacturer_id}'")

        card = score_card(profile)
        profile = profile.model_copy(update={
            "id":                   manufacturer_id,
            "profile_score":        float(card["initial_profile_score"]),
            "profile_completeness": card["profile_completeness"],
        })
        self._profiles[manufacturer_id] = profile
        self._frame = None
        logger.info(
            f"Manufacturer registered: id={manufacturer_id} "
            f"score={profile.profile_score:.0f} completeness={profile.profile_completeness}"
        )
        return profile

    def update_profile(
        self, manufacturer_id: str, updates: Mapping[str, Any]
    ) -> ManufacturerProfile:
        """Merge `updates` into the stored record and recalculate its scores."""
        current = self.require(manufacturer_id)
        changes = {
            k: v for k, v in canonical_keys(updates).items() if k not in _DERIVED_FIELDS
        }
        merged = current.merged(changes)
        profile = merged.model_copy(update={
            "profile_score":        float(calculate_profile_score(merged)),
            "profile_completeness": calculate_profile_completeness(merged),
        })
        self._profiles[manufacturer_id] = profile
        self._frame = None
        logger.info(
            f"Manufacturer profile updated: id={manufacturer_id} "
            f"new_score={profile.profile_score:.0f}"
        )
        return profile

    # ── DataFrame view ────────────────────────────────────────────────────────

    @property
    def frame(self) -> pd.DataFrame:
        if self._frame is None:
            self._frame = self._build_frame()
        return self._frame

    def _build_frame(self) -> pd.DataFrame:
        rows = []
        for p in self._profiles.values():
            rows.append({
                "id":                p.id,
                "name":              p.name or "",
                "industry":          p.industry or "",
                "description":       p.description or "",
                "services":          list(p.services_offered),
                "moq":               p.moq,
                "country":           p.country or "",
                "city":              p.city or "",
                "is_verified":       bool(p.is_verified),
                "is_email_verified": bool(p.is_email_verified),
                "profile_score": float(
                    p.profile_score if p.profile_score is not None
                    else calculate_profile_score(p)
                ),
                "profile_completeness": int(
                    p.profile_completeness if p.profile_completeness is not None
                    else calculate_profile_completeness(p)
                ),
            })
        df = pd.DataFrame(rows, columns=_FRAME_COLUMNS)
        df["moq"] = pd.to_numeric(df["moq"], errors="coerce")
        return df

    # ── search ────────────────────────────────────────────────────────────────

    def search(
        self,
        options: Union[SearchOptions, Mapping[str, Any], None] = None,
        ctx: Optional[RequestContext] = None,
    ) -> SearchResult:
        """Filter, sort and paginate the directory; aggregations cover every hit."""
        opts = self._coerce_options(options)
        ctx = ctx or RequestContext()
        with ctx.timed("directory.search"):
            result = self._search(opts)
        ctx.log.info(
            f"Search returned {len(result.manufacturers)}/{result.total} "
            f"manufacturers {ctx.summary()}"
        )
        return result

    def _coerce_options(
        self, options: Union[SearchOptions, Mapping[str, Any], None]
    ) -> SearchOptions:
        if options is None:
            return SearchOptions(limit=self.settings.search_default_limit)
        if isinstance(options, SearchOptions):
            return options
        data = dict(options)
        if "limit" not in data:
            data["limit"] = self.settings.search_default_limit
        try:
            return SearchOptions.model_validate(data)
        except ValidationError as exc:
            raise InvalidInputError(f"invalid search options: {exc}") from exc

    def _search(self, opts: SearchOptions) -> SearchResult:
        df = self.frame
        mask = pd.Series(True, index=df.index)

        if opts.verified_only:
            mask &= df["is_email_verified"].astype(bool)

        if opts.query:
            q = opts.query.lower()
            mask &= (
                df["name"].str.lower().str.contains(q, regex=False)
                | df["description"].str.lower().str.contains(q, regex=False)
                | df["industry"].str.lower().str.contains(q, regex=False)
                | df["services"].map(lambda svcs: any(q in s.lower() for s in svcs)).astype(bool)
            )

        if opts.industry:
            mask &= df["industry"].str.lower().str.contains(opts.industry.lower(), regex=False)

        if opts.services:
            wanted = [norm_key(s) for s in opts.services if norm_key(s)]
            mask &= df["services"].map(
                lambda svcs: any(w in norm_key(s) for s in svcs for w in wanted)
            ).astype(bool)

        if opts.min_moq is not None:
            mask &= df["moq"] >= opts.min_moq
        if opts.max_moq is not None:
            mask &= df["moq"] <= opts.max_moq

        filtered = df[mask].copy()
        if opts.query:
            filtered["relevance"] = [
                text_relevance(self._profiles[i], opts.query, score)
                for i, score in zip(filtered["id"], filtered["profile_score"])
            ]

        filtered = self._sort(filtered, opts)
        limit = min(opts.limit, self.settings.search_max_limit)
        page = filtered.iloc[opts.offset: opts.offset + limit]

        hits = [
            SearchHit(
                profile=self._profiles[row_id],
                match_score=int(relevance) if opts.query else None,
            )
            for row_id, relevance in zip(
                page["id"],
                page["relevance"] if opts.query else [None] * len(page),
            )
        ]
        return SearchResult(
            manufacturers=hits,
            total=len(filtered),
            aggregations=self._aggregate(filtered),
            applied_filters=opts.model_dump(
                exclude_none=True, exclude={"limit", "offset", "sort_by", "sort_order"}
            ),
        )

    @staticmethod
    def _sort(df: pd.DataFrame, opts: SearchOptions) -> pd.DataFrame:
        sort_by = opts.sort_by
        if sort_by == "relevance" and "relevance" not in df.columns:
            sort_by = None

        if sort_by is None:
            # Default ordering: best profiles first, then alphabetical
            return df.sort_values(
                ["profile_score", "name"], ascending=[False, True], kind="mergesort"
            )

        order = opts.sort_order or ("desc" if sort_by in _DEFAULT_DESCENDING else "asc")
        ascending = order == "asc"
        if sort_by in ("name", "industry"):
            return df.sort_values(
                sort_by, ascending=ascending, kind="mergesort",
                key=lambda col: col.str.lower(),
            )
        return df.sort_values(
            sort_by, ascending=ascending, kind="mergesort", na_position="last"
        )

    @staticmethod
    def _aggregate(df: pd.DataFrame) -> SearchAggregations:
        if df.empty:
            return SearchAggregations()
        industries = list(dict.fromkeys(i for i in df["industry"] if i))
        services = list(dict.fromkeys(s for svcs in df["services"] for s in svcs if s))
        return SearchAggregations(
            industries=industries,
            services=services,
            average_score=int(round(float(df["profile_score"].mean()))),
            verified_count=int(df["is_verified"].astype(bool).sum()),
        )

    # ── industry views ────────────────────────────────────────────────────────

    def manufacturers_by_industry(self, industry: str, top_services: int = 5) -> IndustryOverview:
        df = self.frame
        mask = df["is_email_verified"].astype(bool) & df["industry"].str.lower().str.contains(
            industry.lower(), regex=False
        )
        hits = df[mask].sort_values(
            ["profile_score", "name"], ascending=[False, True], kind="mergesort"
        )
        completeness = [c for c in hits["profile_completeness"] if c > 0]
        average = round(sum(completeness) / len(completeness)) if completeness else 0
        counts = Counter(s for svcs in hits["services"] for s in svcs)
        return IndustryOverview(
            industry=industry,
            manufacturers=[self._profiles[i] for i in hits["id"]],
            average_completeness=int(average),
            top_services=[s for s, _ in counts.most_common(top_services)],
        )

    def available_industries(self) -> list[str]:
        return sorted({p.industry.strip() for p in self._profiles.values()
                       if p.industry and p.industry.strip()})

    def available_services(self) -> list[str]:
        return sorted({s for p in self._profiles.values() for s in p.services_offered if s})
