"""
services/discovery.py
─────────────────────
DiscoveryService — connects the ManufacturerDirectory to the
ComparisonEngine for the discovery features:

  similar_to        — manufacturers similar to a stored one
  compare           — similarity between two stored manufacturers
  match_directory   — every manufacturer checked against buyer criteria
  rank              — weighted ranking of the directory (or a subset)

Default threshold, caps and ranking weights come from config.settings.
"""

from __future__ import annotations

from typing import Any, Iterable, Mapping, Optional, Union

from config.settings import Settings, get_settings
from models.comparison import ComparisonEngine
from models.schemas import (
    ManufacturerProfile,
    MatchCriteria,
    MatchResult,
    RankedEntry,
    RankingWeights,
    SimilarManufacturer,
)
from services.context import RequestContext
from services.directory import ManufacturerDirectory


class DiscoveryService:
    """
    Parameters
    ----------
    directory : ManufacturerDirectory the discovery calls read from
    engine    : ComparisonEngine; built from the settings caps when omitted
    settings  : default threshold, caps and ranking weights; defaults to get_settings()
    """

    def __init__(
        self,
        directory: ManufacturerDirectory,
        engine: Optional[ComparisonEngine] = None,
        settings: Optional[Settings] = None,
    ) -> None:
        self.settings = settings or get_settings()
        self.directory = directory
        self.engine = engine or ComparisonEngine(
            certification_cap=self.settings.certification_cap,
            services_cap=self.settings.services_cap,
        )

    def similar_to(
        self,
        manufacturer_id: str,
        threshold: Optional[float] = None,
        limit: Optional[int] = None,
        ctx: Optional[RequestContext] = None,
    ) -> list[SimilarManufacturer]:
        ctx = ctx or RequestContext()
        source = self.directory.require(manufacturer_id)
        if threshold is None:
            threshold = self.settings.similarity_threshold
        with ctx.timed("discovery.similar_to"):
            results = self.engine.find_similar_manufacturers(
                source, self.directory.profiles(), threshold=threshold, limit=limit
            )
        ctx.log.info(
            f"{len(results)} manufacturers similar to '{manufacturer_id}' "
            f"(threshold={threshold}) {ctx.summary()}"
        )
        return results

    def compare(self, id_a: str, id_b: str) -> float:
        return self.engine.compare_manufacturers(
            self.directory.require(id_a), self.directory.require(id_b)
        )

    def match_directory(
        self,
        criteria: Union[MatchCriteria, Mapping[str, Any]],
        only_matching: bool = True,
        ctx: Optional[RequestContext] = None,
    ) -> list[tuple[ManufacturerProfile, MatchResult]]:
        """Criteria results for the whole directory, best score first."""
        ctx = ctx or RequestContext()
        if not isinstance(criteria, MatchCriteria):
            criteria = MatchCriteria.from_mapping(criteria)
        with ctx.timed("discovery.match_directory"):
            results = [
                (profile, self.engine.match_against_criteria(profile, criteria))
                for profile in self.directory.profiles()
            ]
            if only_matching:
                results = [(p, r) for p, r in results if r.matches]
            results.sort(key=lambda pair: pair[1].score, reverse=True)
        ctx.log.info(
            f"Criteria {criteria.declared()} matched {len(results)} manufacturers "
            f"{ctx.summary()}"
        )
        return results

    def rank(
        self,
        ids: Optional[Iterable[str]] = None,
        weights: Union[RankingWeights, Mapping[str, Any], None] = None,
        ctx: Optional[RequestContext] = None,
    ) -> list[RankedEntry]:
        """Rank the given manufacturers (default: the whole directory)."""
        ctx = ctx or RequestContext()
        profiles = (
            self.directory.profiles() if ids is None
            else [self.directory.require(i) for i in ids]
        )
        if weights is None:
            weights = self.settings.ranking_weights()
        with ctx.timed("discovery.rank"):
            ranked = self.engine.rank_manufacturers(profiles, weights)
        ctx.log.info(f"Ranked {len(ranked)} manufacturers {ctx.summary()}")
        return ranked
