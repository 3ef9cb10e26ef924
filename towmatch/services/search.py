"""
Nearest search use case: geo pre-step -> tiered resolver -> enrichment.
"""

from __future__ import annotations

import logging
from typing import Optional, Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from towmatch.domain.assembler import RatingSource, ResultAssembler
from towmatch.domain.entities import EnrichedResult, GeoPoint, SearchContext
from towmatch.domain.enums import CandidateKind
from towmatch.domain.matching import CandidateProvider, TieredMatchResolver
from towmatch.infrastructure.geocoding import ResolvedArea
from towmatch.infrastructure.repositories import (
    CompanyCandidateProvider,
    CompanyRatingSource,
    CompanyRepository,
    TowTruckCandidateProvider,
    TowTruckRatingSource,
)

logger = logging.getLogger(__name__)


class AreaResolver(Protocol):
    async def resolve(self, point: GeoPoint) -> ResolvedArea: ...


class NearestSearchService:
    def __init__(self, session: AsyncSession, geo: Optional[AreaResolver] = None):
        self.session = session
        self.geo = geo

    def _sources(self, kind: CandidateKind) -> tuple[CandidateProvider, RatingSource]:
        if kind is CandidateKind.COMPANY:
            return (
                CompanyCandidateProvider(self.session),
                CompanyRatingSource(self.session),
            )
        return (
            TowTruckCandidateProvider(self.session),
            TowTruckRatingSource(self.session),
        )

    async def build_context(
        self,
        origin: Optional[GeoPoint],
        limit: int,
        province_id: Optional[int] = None,
        district_id: Optional[int] = None,
    ) -> SearchContext:
        """Fill missing province/district from the coordinates when possible."""
        if origin is not None and self.geo is not None and (
            province_id is None or district_id is None
        ):
            area = await self.geo.resolve(origin)
            if area.is_empty:
                logger.info("Geo resolution empty; searching without area")
            # a resolved district is only usable inside the resolved province
            same_province = province_id is None or area.province_id == province_id
            if district_id is None and same_province:
                district_id = area.district_id
            if province_id is None:
                province_id = area.province_id

        return SearchContext(
            origin=origin,
            province_id=province_id,
            district_id=district_id,
            limit=limit,
        )

    async def search(
        self,
        kind: CandidateKind,
        origin: Optional[GeoPoint],
        limit: int,
        province_id: Optional[int] = None,
        district_id: Optional[int] = None,
    ) -> list[EnrichedResult]:
        context = await self.build_context(origin, limit, province_id, district_id)
        provider, ratings = self._sources(kind)

        results = await TieredMatchResolver(provider).resolve(context)
        logger.info(
            "Nearest %s search: province=%s district=%s geo=%s -> %d results",
            kind.value.lower(),
            context.province_id,
            context.district_id,
            context.has_geo,
            len(results),
        )
        return await ResultAssembler(CompanyRepository(self.session), ratings).enrich(
            results
        )
