"""
Reverse geocoding: coordinates -> (province_id, district_id)
============================================================

1. Map the point to an H3 cell and check the Redis cache.
2. On a miss, ask a Nominatim-compatible ``/reverse`` endpoint for the
   administrative names of the point.
3. Match those names against the local ``provinces`` / ``districts``
   reference tables (Turkish-aware, accent-insensitive).
4. Cache successful matches per H3 cell.

Resolution is best-effort: network errors, bad payloads and unknown
names all produce an empty ``ResolvedArea`` and the search falls
through to the nationwide stage.
"""

from __future__ import annotations

import json
import logging
import unicodedata
from dataclasses import dataclass
from typing import Any, Optional

import h3
import httpx
import redis.asyncio as aioredis
from redis.exceptions import RedisError

from towmatch.config import settings
from towmatch.domain.entities import GeoPoint
from .repositories import ReferenceDataRepository

logger = logging.getLogger(__name__)

# Nominatim address keys, most specific first
PROVINCE_KEYS = ("province", "state", "city")
DISTRICT_KEYS = ("town", "county", "city_district", "municipality", "district", "suburb", "city")

_NAME_SUFFIXES = (" ilcesi", " ili", " province", " district")
_TURKISH_FOLD = str.maketrans({"ı": "i", "ğ": "g", "ü": "u", "ş": "s", "ö": "o", "ç": "c"})


@dataclass(frozen=True)
class ResolvedArea:
    province_id: Optional[int] = None
    district_id: Optional[int] = None

    @property
    def is_empty(self) -> bool:
        return self.province_id is None and self.district_id is None


def normalize_place_name(name: str) -> str:
    """``"İSTANBUL İli"`` -> ``"istanbul"``; ``"Çankaya"`` -> ``"cankaya"``."""
    # Turkish dotted/dotless capitals lower-case differently from str.lower()
    text = name.strip().replace("İ", "i").replace("I", "ı").lower()
    text = text.translate(_TURKISH_FOLD)
    text = "".join(
        ch for ch in unicodedata.normalize("NFKD", text)
        if not unicodedata.combining(ch)
    )
    text = " ".join(text.split())
    for suffix in _NAME_SUFFIXES:
        if text.endswith(suffix):
            text = text[: -len(suffix)].strip()
    return text


def geo_cell(point: GeoPoint, resolution: int = 7) -> str:
    """H3 cell used as the cache key.  O(1)."""
    return h3.latlng_to_cell(point.latitude, point.longitude, resolution)


class GeoResolver:
    def __init__(
        self,
        reference: ReferenceDataRepository,
        client: httpx.AsyncClient,
        redis: Optional[aioredis.Redis] = None,
    ):
        self.reference = reference
        self.client = client
        self.redis = redis

    async def resolve(self, point: GeoPoint) -> ResolvedArea:
        cache_key = f"towmatch:geo:{geo_cell(point, settings.h3_resolution)}"

        cached = await self._cache_get(cache_key)
        if cached is not None:
            return cached

        address = await self._reverse(point)
        if address is None:
            return ResolvedArea()

        area = await self._match(address)
        if area.is_empty:
            logger.warning(
                "No reference match for (%.5f, %.5f): %s",
                point.latitude, point.longitude, address,
            )
            return area

        await self._cache_set(cache_key, area)
        return area

    # ── HTTP ──────────────────────────────────────────────────────────

    async def _reverse(self, point: GeoPoint) -> Optional[dict[str, Any]]:
        try:
            response = await self.client.get(
                settings.geocoder_url,
                params={
                    "lat": point.latitude,
                    "lon": point.longitude,
                    "format": "jsonv2",
                    "zoom": 10,
                    "accept-language": "tr",
                },
                headers={"User-Agent": settings.geocoder_user_agent},
                timeout=settings.geocoder_timeout_seconds,
            )
            response.raise_for_status()
            payload = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            logger.warning("Reverse geocoding failed: %s", exc)
            return None

        address = payload.get("address") if isinstance(payload, dict) else None
        if not isinstance(address, dict):
            logger.warning("Reverse geocoding returned no address: %s", payload)
            return None
        return address

    # ── Reference matching ────────────────────────────────────────────

    async def _match(self, address: dict[str, Any]) -> ResolvedArea:
        provinces = {
            normalize_place_name(p.name): p.id
            for p in await self.reference.list_provinces()
        }
        province_id = None
        for key in PROVINCE_KEYS:
            value = address.get(key)
            if isinstance(value, str) and normalize_place_name(value) in provinces:
                province_id = provinces[normalize_place_name(value)]
                break
        if province_id is None:
            return ResolvedArea()

        districts = {
            normalize_place_name(d.name): d.id
            for d in await self.reference.list_districts(province_id)
        }
        for key in DISTRICT_KEYS:
            value = address.get(key)
            if isinstance(value, str) and normalize_place_name(value) in districts:
                return ResolvedArea(province_id, districts[normalize_place_name(value)])

        # Province-level match still narrows the search
        return ResolvedArea(province_id, None)

    # ── Cache ─────────────────────────────────────────────────────────

    async def _cache_get(self, key: str) -> Optional[ResolvedArea]:
        if self.redis is None:
            return None
        try:
            raw = await self.redis.get(key)
        except RedisError as exc:
            logger.warning("Geo cache read failed: %s", exc)
            return None
        if not raw:
            return None
        try:
            data = json.loads(raw)
            return ResolvedArea(data.get("province_id"), data.get("district_id"))
        except (ValueError, AttributeError, TypeError) as exc:
            logger.warning("Ignoring malformed geo cache entry %s: %s", key, exc)
            return None

    async def _cache_set(self, key: str, area: ResolvedArea) -> None:
        if self.redis is None:
            return
        try:
            await self.redis.set(
                key,
                json.dumps(
                    {"province_id": area.province_id, "district_id": area.district_id}
                ),
                ex=settings.geo_cache_ttl_seconds,
            )
        except RedisError as exc:
            logger.warning("Geo cache write failed: %s", exc)
