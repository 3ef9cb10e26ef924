"""
Province / district reference-data import.

The remote API returns::

    {"data": [{"id": 34, "name": "İstanbul",
               "districts": [{"id": 1421, "name": "Kadıköy"}, ...]}, ...]}

Provinces and districts are upserted by their public ids, which are the
same ids tow trucks declare in their operating areas.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

import httpx
from sqlalchemy.ext.asyncio import AsyncSession

from towmatch.config import settings
from .repositories import ReferenceDataRepository

logger = logging.getLogger(__name__)


class ReferenceDataError(Exception):
    """Raised when the remote payload cannot be fetched or understood."""


@dataclass(frozen=True)
class ImportStats:
    provinces: int = 0
    districts: int = 0


def parse_provinces(payload: Any) -> list[dict[str, Any]]:
    data = payload.get("data") if isinstance(payload, dict) else None
    if not isinstance(data, list):
        raise ReferenceDataError("Payload has no 'data' list")
    return data


class ReferenceDataImporter:
    def __init__(self, session: AsyncSession, client: httpx.AsyncClient):
        self.session = session
        self.client = client
        self.repo = ReferenceDataRepository(session)

    async def fetch(self) -> list[dict[str, Any]]:
        try:
            response = await self.client.get(settings.reference_data_url, timeout=30.0)
            response.raise_for_status()
            payload = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            raise ReferenceDataError(f"Could not fetch reference data: {exc}") from exc
        return parse_provinces(payload)

    async def sync(self) -> ImportStats:
        """Fetch and upsert everything; the caller commits."""
        provinces = await self.fetch()
        return await self.load(provinces)

    async def load(self, provinces: list[dict[str, Any]]) -> ImportStats:
        province_count = district_count = 0
        for item in provinces:
            try:
                province_id = int(item["id"])
                name = str(item["name"])
            except (KeyError, TypeError, ValueError):
                logger.warning("Skipping malformed province entry: %r", item)
                continue

            await self.repo.upsert_province(province_id, name)
            province_count += 1

            for district in item.get("districts") or []:
                try:
                    await self.repo.upsert_district(
                        int(district["id"]), province_id, str(district["name"])
                    )
                except (KeyError, TypeError, ValueError):
                    logger.warning("Skipping malformed district entry: %r", district)
                    continue
                district_count += 1

        await self.session.flush()
        return ImportStats(province_count, district_count)
