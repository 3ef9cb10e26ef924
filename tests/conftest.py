"""
Shared test fixtures.

Uses an in-memory SQLite database (via aiosqlite) so tests run without
Docker / PostgreSQL / Redis.  The production models use plain columns
only, so the same metadata is created on SQLite.
"""

from typing import AsyncGenerator, Optional

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from towmatch.domain.entities import Candidate, GeoPoint, OperatingArea
from towmatch.infrastructure.database import Base, build_engine, build_session_factory
from towmatch.infrastructure.models import (
    CompanyModel,
    DistrictModel,
    ProvinceModel,
    ReviewModel,
    TowTruckAreaModel,
    TowTruckModel,
)

TEST_DB_URL = "sqlite+aiosqlite://"

# Istanbul, Kadıköy pier -- used as the user's position in most tests
USER_LAT, USER_LNG = 40.9909, 29.0250


# ── In-memory candidate provider ──────────────────────────────────────


class InMemoryProvider:
    """``CandidateProvider`` over a list; records every call it receives."""

    def __init__(self, candidates: list[Candidate], honour_exclude: bool = True):
        self.candidates = candidates
        self.honour_exclude = honour_exclude
        self.calls: list[tuple[str, object]] = []

    def _pool(self, exclude: set[int]) -> list[Candidate]:
        return [
            c
            for c in self.candidates
            if c.is_active and not (self.honour_exclude and c.id in exclude)
        ]

    async def by_district(self, district_id, exclude):
        self.calls.append(("district", district_id))
        return [
            c
            for c in self._pool(exclude)
            if any(a.district_id == district_id for a in c.operating_areas)
        ]

    async def by_province(self, province_id, exclude):
        self.calls.append(("province", province_id))
        return [
            c
            for c in self._pool(exclude)
            if any(a.province_id == province_id for a in c.operating_areas)
        ]

    async def all(self, exclude):
        self.calls.append(("all", None))
        return self._pool(exclude)

    async def random_sample(self, n, exclude):
        self.calls.append(("random", n))
        return self._pool(exclude)[:n]


def candidate(
    cid: int,
    lat: Optional[float] = None,
    lng: Optional[float] = None,
    areas: tuple[tuple[int, int], ...] = (),
    active: bool = True,
) -> Candidate:
    return Candidate(
        id=cid,
        is_active=active,
        operating_areas=frozenset(OperatingArea(p, d) for p, d in areas),
        location=GeoPoint(lat, lng) if lat is not None and lng is not None else None,
        company_id=cid,
    )


@pytest.fixture
def make_candidate():
    return candidate


@pytest.fixture
def provider_factory():
    return InMemoryProvider


# ── Test DB (SQLite in-memory) ────────────────────────────────────────


@pytest_asyncio.fixture
async def session_factory() -> AsyncGenerator[async_sessionmaker, None]:
    """Fresh in-memory schema per test; the StaticPool shares one connection."""
    engine = build_engine(TEST_DB_URL)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield build_session_factory(engine)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


class Seeder:
    """Small helpers for inserting companies, trucks and reviews."""

    def __init__(self, session: AsyncSession):
        self.session = session
        self._seq = 0

    async def province(self, province_id: int, name: str, districts: dict[int, str]):
        self.session.add(ProvinceModel(id=province_id, name=name))
        for district_id, district_name in districts.items():
            self.session.add(
                DistrictModel(id=district_id, province_id=province_id, name=district_name)
            )
        await self.session.flush()

    async def company(
        self,
        lat: Optional[float] = USER_LAT,
        lng: Optional[float] = USER_LNG,
        province_id: int = 34,
        district_id: int = 1421,
        active: bool = True,
        name: Optional[str] = None,
    ) -> CompanyModel:
        self._seq += 1
        company = CompanyModel(
            first_name="Test",
            last_name=f"Owner {self._seq}",
            company_name=name or f"Company {self._seq}",
            phone_number=f"0532{self._seq:07d}",
            email=f"company{self._seq}@example.com",
            province_id=province_id,
            city="İstanbul",
            district_id=district_id,
            district="Kadıköy",
            full_address="Test address",
            latitude=lat,
            longitude=lng,
            service_city="İstanbul",
            is_active=active,
        )
        self.session.add(company)
        await self.session.flush()
        return company

    async def truck(
        self,
        company: CompanyModel,
        areas: tuple[tuple[int, int], ...] = ((34, 1421),),
        active: bool = True,
    ) -> TowTruckModel:
        self._seq += 1
        truck = TowTruckModel(
            company_id=company.id,
            license_plate=f"34TST{self._seq:03d}",
            driver_name=f"Driver {self._seq}",
            is_active=active,
            operating_areas=[
                TowTruckAreaModel(province_id=p, district_id=d) for p, d in areas
            ],
        )
        self.session.add(truck)
        await self.session.flush()
        return truck

    async def review(
        self,
        truck: TowTruckModel,
        rating: int,
        visible: bool = True,
        approved: bool = True,
    ) -> ReviewModel:
        self._seq += 1
        review = ReviewModel(
            tow_truck_id=truck.id,
            reviewer_name="Reviewer",
            reviewer_phone=f"0555{self._seq:07d}",
            rating=rating,
            is_visible=visible,
            is_approved=approved,
        )
        self.session.add(review)
        await self.session.flush()
        return review


@pytest.fixture
def seeder(db_session) -> Seeder:
    return Seeder(db_session)
