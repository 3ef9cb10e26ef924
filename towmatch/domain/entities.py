"""
Domain entities consumed by the nearest-match resolver.

All of these are per-request, read-only views materialised from the
persistence layer.  ``Optional`` fields mean "absent"; sentinel values
(NaN, 0/0 coordinates) are translated to ``None`` at the HTTP boundary
and never reach the domain.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

from .enums import SearchStage


# ── Value Objects ─────────────────────────────────────────────────────


@dataclass(frozen=True)
class GeoPoint:
    latitude: float
    longitude: float


@dataclass(frozen=True)
class OperatingArea:
    province_id: int
    district_id: int


@dataclass(frozen=True)
class RatingSummary:
    average_rating: float = 0.0
    review_count: int = 0


# ── Entities ──────────────────────────────────────────────────────────


@dataclass
class Candidate:
    """One matchable unit: a tow truck, or a company in the company search."""

    id: int
    is_active: bool = True
    operating_areas: frozenset[OperatingArea] = frozenset()
    location: Optional[GeoPoint] = None
    company_id: Optional[int] = None


@dataclass
class SearchContext:
    origin: Optional[GeoPoint] = None
    province_id: Optional[int] = None
    district_id: Optional[int] = None
    limit: int = 20

    @property
    def has_geo(self) -> bool:
        return self.origin is not None


@dataclass
class RankedResult:
    candidate: Candidate
    distance_km: Optional[float] = None
    stage: Optional[SearchStage] = None

    @property
    def sort_key(self) -> float:
        """Ascending distance; unranked candidates go last."""
        return self.distance_km if self.distance_km is not None else float("inf")


@dataclass
class CompanyInfo:
    id: int
    company_name: str = ""
    phone_number: str = ""
    city: str = ""
    district: str = ""
    full_address: str = ""
    location: Optional[GeoPoint] = None


@dataclass
class EnrichedResult:
    result: RankedResult
    company: Optional[CompanyInfo] = None
    rating: RatingSummary = field(default_factory=RatingSummary)

    @property
    def company_name(self) -> str:
        return self.company.company_name if self.company else ""

    @property
    def company_phone(self) -> str:
        return self.company.phone_number if self.company else ""

    @property
    def average_rating(self) -> float:
        return self.rating.average_rating

    @property
    def review_count(self) -> int:
        return self.rating.review_count
