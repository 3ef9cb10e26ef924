"""
Tow truck endpoints
===================

GET /api/v1/tow-trucks                -- all active tow trucks
GET /api/v1/tow-trucks/nearest        -- tiered nearest search
GET /api/v1/tow-trucks/{id}/rating    -- rating summary of one truck
"""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from towmatch.api.dependencies import (
    check_limit,
    get_db,
    get_geo_resolver,
    parse_origin,
)
from towmatch.api.middleware import limiter
from towmatch.api.schemas import (
    ErrorResponse,
    OperatingAreaResponse,
    RatingSummaryResponse,
    TowTruckResult,
)
from towmatch.config import settings
from towmatch.domain.assembler import ResultAssembler
from towmatch.domain.entities import EnrichedResult, RankedResult
from towmatch.domain.enums import CandidateKind
from towmatch.infrastructure.geocoding import GeoResolver
from towmatch.infrastructure.models import TowTruckModel
from towmatch.infrastructure.repositories import (
    CompanyRepository,
    TowTruckRatingSource,
    TowTruckRepository,
    truck_to_candidate,
)
from towmatch.services.search import NearestSearchService

router = APIRouter(prefix="/tow-trucks", tags=["tow-trucks"])


def _to_response(
    item: EnrichedResult, truck: Optional[TowTruckModel]
) -> TowTruckResult:
    ranked = item.result
    return TowTruckResult(
        id=ranked.candidate.id,
        distance=(
            round(ranked.distance_km, 2) if ranked.distance_km is not None else None
        ),
        stage=ranked.stage.value if ranked.stage else None,
        company_id=ranked.candidate.company_id,
        company_name=item.company_name,
        company_phone=item.company_phone,
        average_rating=item.average_rating,
        review_count=item.review_count,
        license_plate=truck.license_plate if truck else "",
        driver_name=truck.driver_name if truck else "",
        driver_photo_url=truck.driver_photo_url if truck else None,
        operating_areas=[
            OperatingAreaResponse(
                province_id=a.province_id,
                district_id=a.district_id,
                city=a.city,
                district=a.district,
            )
            for a in truck.operating_areas
        ]
        if truck
        else [],
    )


@router.get(
    "",
    response_model=list[TowTruckResult],
    summary="List all active tow trucks",
)
@limiter.limit(settings.rate_limit)
async def list_tow_trucks(
    request: Request,
    db: AsyncSession = Depends(get_db),
):
    trucks = await TowTruckRepository(db).list_active()
    ranked = [RankedResult(truck_to_candidate(t)) for t in trucks]
    enriched = await ResultAssembler(
        CompanyRepository(db), TowTruckRatingSource(db)
    ).enrich(ranked)
    by_id = {t.id: t for t in trucks}
    return [
        _to_response(item, by_id.get(item.result.candidate.id))
        for item in enriched
    ]


@router.get(
    "/nearest",
    response_model=list[TowTruckResult],
    summary="Find the nearest tow trucks",
    description=(
        "Widens the search district -> province -> nationwide until `limit` "
        "trucks are found.  Missing province/district ids are resolved from "
        "the coordinates.  Without coordinates a random sample is returned."
    ),
    responses={
        400: {"model": ErrorResponse, "description": "Limit or coordinates out of range."}
    },
)
@limiter.limit(settings.rate_limit)
async def nearest_tow_trucks(
    request: Request,
    latitude: Optional[float] = Query(None),
    longitude: Optional[float] = Query(None),
    limit: int = Query(settings.tow_truck_search_limit),
    province_id: Optional[int] = Query(None, alias="provinceId"),
    district_id: Optional[int] = Query(None, alias="districtId"),
    db: AsyncSession = Depends(get_db),
    geo: GeoResolver = Depends(get_geo_resolver),
):
    limit = check_limit(limit)
    origin = parse_origin(latitude, longitude)

    results = await NearestSearchService(db, geo).search(
        CandidateKind.TOW_TRUCK, origin, limit, province_id, district_id
    )
    trucks = await TowTruckRepository(db).get_many(
        {r.result.candidate.id for r in results}
    )
    return [_to_response(r, trucks.get(r.result.candidate.id)) for r in results]


@router.get(
    "/{tow_truck_id}/rating",
    response_model=RatingSummaryResponse,
    summary="Rating summary of a tow truck",
    responses={404: {"model": ErrorResponse, "description": "Unknown tow truck."}},
)
@limiter.limit(settings.rate_limit)
async def tow_truck_rating(
    request: Request,
    tow_truck_id: int,
    db: AsyncSession = Depends(get_db),
):
    truck = await TowTruckRepository(db).get_by_id(tow_truck_id)
    if not truck:
        raise HTTPException(status_code=404, detail="Tow truck not found")
    summary = await TowTruckRatingSource(db).summary(tow_truck_id)
    return RatingSummaryResponse(
        average_rating=summary.average_rating,
        review_count=summary.review_count,
    )
