"""
models/comparison.py
════════════════════
ComparisonEngine — pairwise similarity, criteria matching and weighted
ranking of manufacturer profiles for the discovery features.

Similarity Pillars (default SimilarityWeights)
─────────────────────────────────────────────
  Industry          0.25   case-insensitive exact match
  Services          0.25   Jaccard overlap of servicesOffered
  Certifications    0.15   Jaccard overlap of certificate names
  MOQ proximity     0.15   min(moq_a, moq_b) / max(moq_a, moq_b)
  Location          0.20   country match; differing cities keep 0.75 of it

  A pillar only earns credit when both records carry the data, so two empty
  records compare at 0.  Every pillar is symmetric, hence
  compare(a, b) == compare(b, a).

Ranking
───────
  composite = 100 × ( w_profile  · profile_score / 100
                    + w_match    · match_score   / 100
                    + w_certs    · min(certs    / certification_cap, 1)
                    + w_services · min(services / services_cap,      1) )

  Sorted descending with a stable sort, so equal composites keep input order
  and receive consecutive ranks.

Usage
─────
  from models.comparison import ComparisonEngine

  engine = ComparisonEngine()
  engine.compare_manufacturers(a, b)                 # 0.0 … 1.0
  engine.find_similar_manufacturers(a, candidates)   # threshold on 0–100
  engine.match_against_criteria(a, {"industry": "Textiles"})
  engine.rank_manufacturers(profiles)
"""

from __future__ import annotations

import math
from typing import Any, Iterable, Mapping, Optional, Sequence, Union

import numpy as np

from models.errors import InvalidInputError
from models.profile_scorer import calculate_profile_score
from models.schemas import (
    ManufacturerProfile,
    MatchCriteria,
    MatchResult,
    RankedEntry,
    RankingWeights,
    SimilarityWeights,
    SimilarManufacturer,
    as_profile,
    norm_key,
)
from utils.logger import logger

Record = Union[ManufacturerProfile, Mapping[str, Any]]


# ─────────────────────────────────────────────────────────────────────────────
#  Constants
# ─────────────────────────────────────────────────────────────────────────────

# Share of the location pillar kept when countries match but cities differ
CITY_MISMATCH_CREDIT = 0.75

DEFAULT_THRESHOLD = 50.0


def _jaccard(a: frozenset[str], b: frozenset[str]) -> float:
    """Intersection over union; an empty union is defined as 0."""
    union = a | b
    if not union:
        return 0.0
    return len(a & b) / len(union)


def _moq_proximity(a: Optional[int], b: Optional[int]) -> float:
    if a is None or b is None:
        return 0.0
    high = max(a, b)
    if high == 0:
        return 1.0
    return min(a, b) / high


def _location_fit(a: ManufacturerProfile, b: ManufacturerProfile) -> float:
    if not a.country or not b.country or norm_key(a.country) != norm_key(b.country):
        return 0.0
    if a.city and b.city and norm_key(a.city) != norm_key(b.city):
        return CITY_MISMATCH_CREDIT
    return 1.0


def _record_id(profile: ManufacturerProfile, position: int) -> str:
    return profile.id if profile.id else str(position)


def _weighted_total(pillars: dict[str, float], weights: SimilarityWeights) -> float:
    total = sum(pillars[name] * getattr(weights, name) for name in pillars)
    return min(max(total, 0.0), 1.0)


# ─────────────────────────────────────────────────────────────────────────────
#  Main Engine
# ─────────────────────────────────────────────────────────────────────────────

class ComparisonEngine:
    """
    Parameters
    ----------
    weights           : similarity pillar weights (SimilarityWeights or mapping)
    certification_cap : certificate count at which the ranking pillar saturates
    services_cap      : service count at which the ranking pillar saturates
    """

    def __init__(
        self,
        weights: Union[SimilarityWeights, Mapping[str, Any], None] = None,
        certification_cap: int = 10,
        services_cap: int = 10,
    ) -> None:
        for label, cap in (("certification_cap", certification_cap),
                           ("services_cap", services_cap)):
            if not isinstance(cap, (int, float)) or not math.isfinite(cap) or cap <= 0:
                raise InvalidInputError(f"{label} must be a positive number, got {cap!r}")
        self.weights = SimilarityWeights.coerce(weights)
        self.certification_cap = certification_cap
        self.services_cap = services_cap

    # ── pairwise similarity ───────────────────────────────────────────────────

    def pillar_scores(self, a: Record, b: Record) -> dict[str, float]:
        """Un-weighted pillar scores (each 0–1) for a pair of records."""
        pa, pb = as_profile(a), as_profile(b)
        industry = (
            1.0 if pa.industry and pb.industry and norm_key(pa.industry) == norm_key(pb.industry)
            else 0.0
        )
        return {
            "industry":       industry,
            "services":       _jaccard(pa.service_keys(), pb.service_keys()),
            "certifications": _jaccard(pa.certification_keys(), pb.certification_keys()),
            "moq":            _moq_proximity(pa.moq, pb.moq),
            "location":       _location_fit(pa, pb),
        }

    def compare_manufacturers(self, a: Record, b: Record) -> float:
        """Weighted similarity in [0, 1]; symmetric in its arguments."""
        return _weighted_total(self.pillar_scores(a, b), self.weights)

    # ── similar manufacturers ─────────────────────────────────────────────────

    def find_similar_manufacturers(
        self,
        source: Record,
        candidates: Iterable[Record],
        threshold: float = DEFAULT_THRESHOLD,
        limit: Optional[int] = None,
    ) -> list[SimilarManufacturer]:
        """
        Candidates whose similarity to `source`, on a 0–100 scale, reaches
        `threshold`. Sorted by similarity, descending; equal scores keep
        their input order.
        """
        if (
            not isinstance(threshold, (int, float))
            or not math.isfinite(threshold)
            or not 0 <= threshold <= 100
        ):
            raise InvalidInputError(f"threshold must be within 0–100, got {threshold!r}")
        if limit is not None and limit < 0:
            raise InvalidInputError(f"limit must be non-negative, got {limit!r}")

        src = as_profile(source)
        results: list[SimilarManufacturer] = []
        for position, candidate in enumerate(candidates):
            cand = as_profile(candidate)
            if src.id is not None and cand.id == src.id:
                continue
            pillars = self.pillar_scores(src, cand)
            similarity = _weighted_total(pillars, self.weights)
            match_score = similarity * 100.0
            if match_score < threshold:
                continue
            reasons, differences = self._explain(src, cand, pillars)
            results.append(SimilarManufacturer(
                id=_record_id(cand, position),
                name=cand.name,
                similarity=similarity,
                match_score=match_score,
                match_reasons=reasons,
                differences=differences,
            ))

        # list.sort is stable: ties keep candidate order
        results.sort(key=lambda r: r.similarity, reverse=True)
        if limit is not None:
            results = results[:limit]
        logger.debug(
            f"find_similar_manufacturers: {len(results)} candidates ≥ {threshold}"
        )
        return results

    @staticmethod
    def _explain(
        src: ManufacturerProfile,
        cand: ManufacturerProfile,
        pillars: dict[str, float],
    ) -> tuple[list[str], list[str]]:
        reasons: list[str] = []
        differences: list[str] = []

        if pillars["industry"] == 1.0:
            reasons.append(f"Same industry: {cand.industry}")
        elif src.industry and cand.industry:
            differences.append(f"Industry differs: {src.industry} vs {cand.industry}")

        shared = sorted(src.service_keys() & cand.service_keys())
        if shared:
            reasons.append(f"Shared services: {', '.join(shared)}")
        extra = sorted(cand.service_keys() - src.service_keys())
        if extra:
            differences.append(f"Additional services: {', '.join(extra)}")

        shared_certs = sorted(src.certification_keys() & cand.certification_keys())
        if shared_certs:
            reasons.append(f"Shared certifications: {', '.join(shared_certs)}")

        if src.moq is not None and cand.moq is not None:
            if pillars["moq"] >= 0.8:
                reasons.append(f"Similar MOQ ({src.moq} vs {cand.moq})")
            else:
                differences.append(f"MOQ differs: {src.moq} vs {cand.moq}")

        if pillars["location"] > 0:
            reasons.append(f"Same country: {cand.country}")
        elif src.country and cand.country:
            differences.append(f"Different location: {cand.country}")

        return reasons, differences

    # ── criteria matching ─────────────────────────────────────────────────────

    def match_against_criteria(
        self,
        manufacturer: Record,
        criteria: Union[MatchCriteria, Mapping[str, Any], None],
    ) -> MatchResult:
        """
        Check every specified criterion. `score` is the fraction that passed,
        so partial credit stays visible when `matches` is False.
        """
        profile = as_profile(manufacturer)
        if criteria is None:
            criteria = MatchCriteria()
        elif not isinstance(criteria, MatchCriteria):
            criteria = MatchCriteria.from_mapping(criteria)

        declared = criteria.declared()
        if not declared:
            return MatchResult(matches=True, score=1.0, matched_criteria=[])

        passed = [name for name in declared if self._criterion_passes(profile, criteria, name)]
        return MatchResult(
            matches=len(passed) == len(declared),
            score=len(passed) / len(declared),
            matched_criteria=passed,
        )

    @staticmethod
    def _criterion_passes(
        profile: ManufacturerProfile, criteria: MatchCriteria, name: str
    ) -> bool:
        if name == "industry":
            wanted = criteria.industry
            options = [wanted] if isinstance(wanted, str) else list(wanted)
            return bool(profile.industry) and norm_key(profile.industry) in {
                norm_key(o) for o in options
            }
        if name == "services":
            return {norm_key(s) for s in criteria.services} <= profile.service_keys()
        if name == "moq_range":
            moq_range = criteria.moq_range
            if not moq_range.satisfiable:
                logger.warning(
                    f"moq_range min={moq_range.min} > max={moq_range.max}; "
                    "criterion cannot be satisfied"
                )
                return False
            return moq_range.contains(profile.moq)
        if name == "location":
            wanted = norm_key(criteria.location)
            return bool(wanted) and wanted in {norm_key(profile.country), norm_key(profile.city)}
        if name == "certifications":
            return {norm_key(c) for c in criteria.certifications} <= profile.certification_keys()
        raise InvalidInputError(f"unknown criterion {name!r}")

    # ── ranking ───────────────────────────────────────────────────────────────

    def rank_manufacturers(
        self,
        manufacturers: Sequence[Record],
        weights: Union[RankingWeights, Mapping[str, Any], None] = None,
    ) -> list[RankedEntry]:
        """Rank by the weighted composite score; rank 1 is the best."""
        w = RankingWeights.coerce(weights)
        profiles = [as_profile(m) for m in manufacturers]
        if not profiles:
            return []

        profile_scores = np.array([
            p.profile_score if p.profile_score is not None else calculate_profile_score(p)
            for p in profiles
        ], dtype=np.float64)
        match_scores = np.array(
            [p.match_score or 0.0 for p in profiles], dtype=np.float64
        )
        cert_counts = np.array([len(p.certifications) for p in profiles], dtype=np.float64)
        svc_counts  = np.array([len(p.services_offered) for p in profiles], dtype=np.float64)

        # Columns follow RankingWeights field order; each value is in [0, 1]
        components = np.column_stack([
            np.clip(profile_scores / 100.0, 0, 1),
            np.clip(match_scores / 100.0, 0, 1),
            np.clip(cert_counts / self.certification_cap, 0, 1),
            np.clip(svc_counts / self.services_cap, 0, 1),
        ])
        composite = np.clip(components @ np.array(w.as_tuple()) * 100.0, 0, 100)

        order = np.argsort(-composite, kind="stable")
        ranked = [
            RankedEntry(
                id=_record_id(profiles[i], int(i)),
                rank=position + 1,
                score=round(float(composite[i]), 4),
                profile_score=float(profile_scores[i]),
                match_score=float(match_scores[i]),
                certification_count=int(cert_counts[i]),
                services_count=int(svc_counts[i]),
            )
            for position, i in enumerate(order)
        ]
        logger.debug(f"rank_manufacturers: ranked {len(ranked)} profiles")
        return ranked
