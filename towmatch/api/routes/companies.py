"""
Company endpoints
=================

GET /api/v1/companies/nearest -- tiered nearest search over companies
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from towmatch.api.dependencies import (
    check_limit,
    get_db,
    get_geo_resolver,
    parse_origin,
)
from towmatch.api.middleware import limiter
from towmatch.api.schemas import CompanyResult, ErrorResponse
from towmatch.config import settings
from towmatch.domain.enums import CandidateKind
from towmatch.infrastructure.geocoding import GeoResolver
from towmatch.services.search import NearestSearchService

router = APIRouter(prefix="/companies", tags=["companies"])


@router.get(
    "/nearest",
    response_model=list[CompanyResult],
    summary="Find the nearest towing companies",
    responses={
        400: {"model": ErrorResponse, "description": "Limit or coordinates out of range."}
    },
)
@limiter.limit(settings.rate_limit)
async def nearest_companies(
    request: Request,
    latitude: Optional[float] = Query(None),
    longitude: Optional[float] = Query(None),
    limit: int = Query(settings.company_search_limit),
    province_id: Optional[int] = Query(None, alias="provinceId"),
    district_id: Optional[int] = Query(None, alias="districtId"),
    db: AsyncSession = Depends(get_db),
    geo: GeoResolver = Depends(get_geo_resolver),
):
    limit = check_limit(limit)
    origin = parse_origin(latitude, longitude)

    results = await NearestSearchService(db, geo).search(
        CandidateKind.COMPANY, origin, limit, province_id, district_id
    )

    response: list[CompanyResult] = []
    for item in results:
        ranked = item.result
        company = item.company
        location = company.location if company else None
        response.append(
            CompanyResult(
                id=ranked.candidate.id,
                distance=(
                    round(ranked.distance_km, 2)
                    if ranked.distance_km is not None
                    else None
                ),
                stage=ranked.stage.value if ranked.stage else None,
                company_id=ranked.candidate.company_id,
                company_name=item.company_name,
                company_phone=item.company_phone,
                average_rating=item.average_rating,
                review_count=item.review_count,
                city=company.city if company else "",
                district=company.district if company else "",
                full_address=company.full_address if company else "",
                latitude=location.latitude if location else None,
                longitude=location.longitude if location else None,
            )
        )
    return response
