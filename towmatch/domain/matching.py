"""
Tiered Nearest-Match Resolver
=============================

Locality-first, quota-filling search.  Scope widens only while the
result list is short of ``limit``:

1. **District**   -- candidates operating in the user's district.
2. **Province**   -- candidates operating anywhere in the user's province.
3. **Nationwide** -- every active candidate, ranked by distance
   (only when the user's coordinates are known).
4. **Random**     -- a random sample of active candidates
   (only when the user's coordinates are unknown).

Distance is used for ordering only, never as a radius filter.
Candidates without coordinates stay eligible but rank after every
candidate that has a distance.  A candidate collected by one stage is
never collected again by a later one.

Complexity
----------
Let N = active candidates and k = ``limit``.

* Per stage:  O(n_s log n_s) for the distance sort of that stage's batch
* Worst-case: O(N log N) -- nationwide stage with an empty district/province
* Best-case:  one district query when the district alone fills the quota
"""

from __future__ import annotations

import logging
from typing import Iterable, Protocol

from .distance import haversine_km
from .entities import Candidate, RankedResult, SearchContext
from .enums import SearchStage

logger = logging.getLogger(__name__)


class CandidateProvider(Protocol):
    """Store-backed source of *active* candidates, excluding ``exclude`` ids."""

    async def by_district(
        self, district_id: int, exclude: set[int]
    ) -> list[Candidate]: ...

    async def by_province(
        self, province_id: int, exclude: set[int]
    ) -> list[Candidate]: ...

    async def all(self, exclude: set[int]) -> list[Candidate]: ...

    async def random_sample(self, n: int, exclude: set[int]) -> list[Candidate]: ...


def rank_candidates(
    candidates: Iterable[Candidate],
    context: SearchContext,
    stage: SearchStage,
) -> list[RankedResult]:
    """Attach distances and, when the origin is known, sort ascending."""
    ranked: list[RankedResult] = []
    origin = context.origin
    for candidate in candidates:
        distance = None
        if origin is not None and candidate.location is not None:
            distance = haversine_km(
                origin.latitude,
                origin.longitude,
                candidate.location.latitude,
                candidate.location.longitude,
            )
        ranked.append(RankedResult(candidate, distance, stage))

    if context.has_geo:
        ranked.sort(key=lambda r: r.sort_key)
    return ranked


class TieredMatchResolver:
    """Runs the widening stages against a ``CandidateProvider``."""

    def __init__(self, provider: CandidateProvider):
        self.provider = provider

    async def resolve(self, context: SearchContext) -> list[RankedResult]:
        if context.limit <= 0:
            raise ValueError(f"limit must be positive, got {context.limit}")

        results: list[RankedResult] = []
        seen: set[int] = set()

        if context.district_id is not None:
            batch = await self.provider.by_district(context.district_id, set(seen))
            self._collect(results, seen, batch, context, SearchStage.DISTRICT)

        if context.province_id is not None and len(results) < context.limit:
            batch = await self.provider.by_province(context.province_id, set(seen))
            self._collect(results, seen, batch, context, SearchStage.PROVINCE)

        if context.has_geo and len(results) < context.limit:
            batch = await self.provider.all(set(seen))
            self._collect(results, seen, batch, context, SearchStage.NATIONWIDE)

        if not context.has_geo and len(results) < context.limit:
            batch = await self.provider.random_sample(
                context.limit - len(results), set(seen)
            )
            self._collect(results, seen, batch, context, SearchStage.RANDOM)

        if context.has_geo:
            # stable: equal distances keep their stage order
            results.sort(key=lambda r: r.sort_key)
        return results[: context.limit]

    @staticmethod
    def _collect(
        results: list[RankedResult],
        seen: set[int],
        batch: list[Candidate],
        context: SearchContext,
        stage: SearchStage,
    ) -> None:
        """Append ranked, unseen, active candidates up to the remaining quota."""
        fresh = [c for c in batch if c.is_active and c.id not in seen]
        for ranked in rank_candidates(fresh, context, stage):
            if len(results) >= context.limit:
                break
            if ranked.candidate.id in seen:
                continue
            results.append(ranked)
            seen.add(ranked.candidate.id)

        logger.info(
            "Stage %s: %d candidates fetched, %d collected so far",
            stage.value,
            len(batch),
            len(results),
        )
