"""FastAPI dependency injection helpers."""

from __future__ import annotations

import math
from typing import AsyncIterator, Optional

import httpx
import redis.asyncio as aioredis
from fastapi import Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from towmatch.config import settings
from towmatch.domain.entities import GeoPoint
from towmatch.infrastructure.database import async_session_factory
from towmatch.infrastructure.geocoding import GeoResolver
from towmatch.infrastructure.redis_client import get_redis
from towmatch.infrastructure.repositories import ReferenceDataRepository


async def get_db() -> AsyncSession:  # type: ignore[misc]
    """Yield an async DB session; commit on success, rollback on error."""
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def get_http_client() -> AsyncIterator[httpx.AsyncClient]:
    async with httpx.AsyncClient() as client:
        yield client


async def get_geo_resolver(
    db: AsyncSession = Depends(get_db),
    client: httpx.AsyncClient = Depends(get_http_client),
    redis: aioredis.Redis = Depends(get_redis),
) -> GeoResolver:
    return GeoResolver(ReferenceDataRepository(db), client, redis)


# ── Query-parameter guards ────────────────────────────────────────────


def check_limit(limit: int) -> int:
    if limit < 1 or limit > settings.max_search_limit:
        raise HTTPException(
            status_code=400,
            detail=f"Limit must be between 1 and {settings.max_search_limit}.",
        )
    return limit


def parse_origin(
    latitude: Optional[float], longitude: Optional[float]
) -> Optional[GeoPoint]:
    """Translate the wire sentinels (missing, NaN, 0/0) into ``None``."""
    if latitude is None or longitude is None:
        return None
    if math.isnan(latitude) or math.isnan(longitude):
        return None
    if settings.treat_zero_coordinates_as_missing and latitude == 0 and longitude == 0:
        return None
    if not (-90 <= latitude <= 90) or not (-180 <= longitude <= 180):
        raise HTTPException(
            status_code=400,
            detail="Latitude must be within [-90, 90] and longitude within [-180, 180].",
        )
    return GeoPoint(latitude, longitude)
