"""
Admin / observability endpoints
===============================

GET /api/v1/admin/health          -- simple health check
GET /api/v1/admin/reference-data  -- province / district counts
"""

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from towmatch.api.dependencies import get_db
from towmatch.api.middleware import limiter
from towmatch.api.schemas import HealthResponse, ReferenceDataStatus
from towmatch.config import settings
from towmatch.infrastructure.repositories import ReferenceDataRepository

router = APIRouter(prefix="/admin", tags=["admin"])


@router.get(
    "/reference-data",
    response_model=ReferenceDataStatus,
    summary="Count the imported provinces and districts",
)
@limiter.limit(settings.rate_limit)
async def reference_data_status(
    request: Request,
    db: AsyncSession = Depends(get_db),
):
    provinces, districts = await ReferenceDataRepository(db).counts()
    return ReferenceDataStatus(provinces=provinces, districts=districts)


@router.get("/health", response_model=HealthResponse, summary="Health check")
async def health():
    return HealthResponse()
