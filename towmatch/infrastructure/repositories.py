"""
Repository Pattern -- abstracts DB access so domain logic stays DB-agnostic.

Each repository receives an ``AsyncSession`` (unit-of-work) and exposes
domain-relevant queries only.  The candidate providers fetch whole
batches into memory and leave ranking to the resolver; a spatial index
could replace them without touching the ``CandidateProvider`` contract.
"""

from __future__ import annotations

from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from .models import (
    CompanyModel,
    DistrictModel,
    ProvinceModel,
    ReviewModel,
    TowTruckAreaModel,
    TowTruckModel,
)
from towmatch.domain.entities import (
    Candidate,
    CompanyInfo,
    GeoPoint,
    OperatingArea,
    RatingSummary,
)


def _point(lat: Optional[float], lng: Optional[float]) -> Optional[GeoPoint]:
    if lat is None or lng is None:
        return None
    return GeoPoint(lat, lng)


def truck_to_candidate(truck: TowTruckModel) -> Candidate:
    """A truck is ranked by its company's yard location."""
    company = truck.company
    return Candidate(
        id=truck.id,
        is_active=bool(truck.is_active and company is not None and company.is_active),
        operating_areas=frozenset(
            OperatingArea(a.province_id, a.district_id) for a in truck.operating_areas
        ),
        location=_point(company.latitude, company.longitude) if company else None,
        company_id=truck.company_id,
    )


def company_to_candidate(company: CompanyModel) -> Candidate:
    return Candidate(
        id=company.id,
        is_active=bool(company.is_active),
        operating_areas=frozenset(
            {OperatingArea(company.province_id, company.district_id)}
        ),
        location=_point(company.latitude, company.longitude),
        company_id=company.id,
    )


def company_to_info(company: CompanyModel) -> CompanyInfo:
    return CompanyInfo(
        id=company.id,
        company_name=company.company_name,
        phone_number=company.phone_number,
        city=company.city,
        district=company.district,
        full_address=company.full_address,
        location=_point(company.latitude, company.longitude),
    )


# ── Candidate providers ───────────────────────────────────────────────


class TowTruckCandidateProvider:
    """Active tow trucks of active companies."""

    def __init__(self, session: AsyncSession):
        self.session = session

    def _active(self, exclude: set[int]):
        query = (
            select(TowTruckModel)
            .join(TowTruckModel.company)
            .where(TowTruckModel.is_active.is_(True))
            .where(CompanyModel.is_active.is_(True))
            .options(
                selectinload(TowTruckModel.company),
                selectinload(TowTruckModel.operating_areas),
            )
        )
        if exclude:
            query = query.where(TowTruckModel.id.not_in(exclude))
        return query

    async def _fetch(self, query) -> list[Candidate]:
        result = await self.session.execute(query)
        return [truck_to_candidate(t) for t in result.scalars().unique().all()]

    async def by_district(self, district_id: int, exclude: set[int]) -> list[Candidate]:
        return await self._fetch(
            self._active(exclude).where(
                TowTruckModel.operating_areas.any(
                    TowTruckAreaModel.district_id == district_id
                )
            )
        )

    async def by_province(self, province_id: int, exclude: set[int]) -> list[Candidate]:
        return await self._fetch(
            self._active(exclude).where(
                TowTruckModel.operating_areas.any(
                    TowTruckAreaModel.province_id == province_id
                )
            )
        )

    async def all(self, exclude: set[int]) -> list[Candidate]:
        return await self._fetch(self._active(exclude))

    async def random_sample(self, n: int, exclude: set[int]) -> list[Candidate]:
        if n <= 0:
            return []
        return await self._fetch(
            self._active(exclude).order_by(func.random()).limit(n)
        )


class CompanyCandidateProvider:
    """Active companies; the operating area is the company's own address."""

    def __init__(self, session: AsyncSession):
        self.session = session

    @staticmethod
    def _active(exclude: set[int]):
        query = select(CompanyModel).where(CompanyModel.is_active.is_(True))
        if exclude:
            query = query.where(CompanyModel.id.not_in(exclude))
        return query

    async def _fetch(self, query) -> list[Candidate]:
        result = await self.session.execute(query)
        return [company_to_candidate(c) for c in result.scalars().all()]

    async def by_district(self, district_id: int, exclude: set[int]) -> list[Candidate]:
        return await self._fetch(
            self._active(exclude).where(CompanyModel.district_id == district_id)
        )

    async def by_province(self, province_id: int, exclude: set[int]) -> list[Candidate]:
        return await self._fetch(
            self._active(exclude).where(CompanyModel.province_id == province_id)
        )

    async def all(self, exclude: set[int]) -> list[Candidate]:
        return await self._fetch(self._active(exclude))

    async def random_sample(self, n: int, exclude: set[int]) -> list[Candidate]:
        if n <= 0:
            return []
        return await self._fetch(
            self._active(exclude).order_by(func.random()).limit(n)
        )


# ── Enrichment sources ────────────────────────────────────────────────


class CompanyRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_id(self, company_id: int) -> Optional[CompanyModel]:
        return await self.session.get(CompanyModel, company_id)

    async def get_many(self, company_ids: set[int]) -> dict[int, CompanyInfo]:
        if not company_ids:
            return {}
        result = await self.session.execute(
            select(CompanyModel).where(CompanyModel.id.in_(company_ids))
        )
        return {c.id: company_to_info(c) for c in result.scalars().all()}


class TowTruckRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_id(self, tow_truck_id: int) -> Optional[TowTruckModel]:
        return await self.session.get(TowTruckModel, tow_truck_id)

    async def get_many(self, tow_truck_ids: set[int]) -> dict[int, TowTruckModel]:
        if not tow_truck_ids:
            return {}
        result = await self.session.execute(
            select(TowTruckModel)
            .where(TowTruckModel.id.in_(tow_truck_ids))
            .options(selectinload(TowTruckModel.operating_areas))
        )
        return {t.id: t for t in result.scalars().all()}

    async def list_active(self) -> list[TowTruckModel]:
        """Active trucks of active companies, most recently updated first."""
        result = await self.session.execute(
            select(TowTruckModel)
            .join(TowTruckModel.company)
            .where(TowTruckModel.is_active.is_(True))
            .where(CompanyModel.is_active.is_(True))
            .options(
                selectinload(TowTruckModel.company),
                selectinload(TowTruckModel.operating_areas),
            )
            .order_by(TowTruckModel.updated_at.desc(), TowTruckModel.id.desc())
        )
        return list(result.scalars().unique().all())


def _summary(avg: Optional[float], count: Optional[int]) -> RatingSummary:
    if not count:
        return RatingSummary()
    return RatingSummary(round(float(avg), 1), int(count))


class TowTruckRatingSource:
    """Visible, approved reviews aggregated per tow truck."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def summaries(self, candidate_ids: set[int]) -> dict[int, RatingSummary]:
        if not candidate_ids:
            return {}
        result = await self.session.execute(
            select(
                ReviewModel.tow_truck_id,
                func.avg(ReviewModel.rating),
                func.count(ReviewModel.id),
            )
            .where(ReviewModel.tow_truck_id.in_(candidate_ids))
            .where(ReviewModel.is_visible.is_(True))
            .where(ReviewModel.is_approved.is_(True))
            .group_by(ReviewModel.tow_truck_id)
        )
        return {row[0]: _summary(row[1], row[2]) for row in result.all()}

    async def summary(self, tow_truck_id: int) -> RatingSummary:
        return (await self.summaries({tow_truck_id})).get(tow_truck_id, RatingSummary())


class CompanyRatingSource:
    """Visible, approved reviews of every truck a company owns."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def summaries(self, candidate_ids: set[int]) -> dict[int, RatingSummary]:
        if not candidate_ids:
            return {}
        result = await self.session.execute(
            select(
                TowTruckModel.company_id,
                func.avg(ReviewModel.rating),
                func.count(ReviewModel.id),
            )
            .join(ReviewModel, ReviewModel.tow_truck_id == TowTruckModel.id)
            .where(TowTruckModel.company_id.in_(candidate_ids))
            .where(ReviewModel.is_visible.is_(True))
            .where(ReviewModel.is_approved.is_(True))
            .group_by(TowTruckModel.company_id)
        )
        return {row[0]: _summary(row[1], row[2]) for row in result.all()}


# ── Reference data ────────────────────────────────────────────────────


class ReferenceDataRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def list_provinces(self) -> list[ProvinceModel]:
        result = await self.session.execute(select(ProvinceModel))
        return list(result.scalars().all())

    async def list_districts(self, province_id: int) -> list[DistrictModel]:
        result = await self.session.execute(
            select(DistrictModel).where(DistrictModel.province_id == province_id)
        )
        return list(result.scalars().all())

    async def upsert_province(self, province_id: int, name: str) -> ProvinceModel:
        province = await self.session.get(ProvinceModel, province_id)
        if province is None:
            province = ProvinceModel(id=province_id, name=name)
            self.session.add(province)
        else:
            province.name = name
        return province

    async def upsert_district(
        self, district_id: int, province_id: int, name: str
    ) -> DistrictModel:
        district = await self.session.get(DistrictModel, district_id)
        if district is None:
            district = DistrictModel(id=district_id, province_id=province_id, name=name)
            self.session.add(district)
        else:
            district.name = name
            district.province_id = province_id
        return district

    async def counts(self) -> tuple[int, int]:
        provinces = await self.session.execute(
            select(func.count()).select_from(ProvinceModel)
        )
        districts = await self.session.execute(
            select(func.count()).select_from(DistrictModel)
        )
        return provinces.scalar() or 0, districts.scalar() or 0
