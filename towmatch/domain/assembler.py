"""
Result Assembler
================

Attaches company display fields and a rating summary to every ranked
result.  Lookups are batched (one company query, one rating query per
request) and the input order is preserved.
"""

from __future__ import annotations

from typing import Protocol

from .entities import CompanyInfo, EnrichedResult, RankedResult, RatingSummary


class CompanyDirectory(Protocol):
    async def get_many(self, company_ids: set[int]) -> dict[int, CompanyInfo]: ...


class RatingSource(Protocol):
    async def summaries(self, candidate_ids: set[int]) -> dict[int, RatingSummary]: ...


class ResultAssembler:
    def __init__(self, companies: CompanyDirectory, ratings: RatingSource):
        self.companies = companies
        self.ratings = ratings

    async def enrich(self, results: list[RankedResult]) -> list[EnrichedResult]:
        if not results:
            return []

        company_ids = {
            r.candidate.company_id
            for r in results
            if r.candidate.company_id is not None
        }
        candidate_ids = {r.candidate.id for r in results}

        companies = await self.companies.get_many(company_ids) if company_ids else {}
        ratings = await self.ratings.summaries(candidate_ids)

        return [
            EnrichedResult(
                result=r,
                company=companies.get(r.candidate.company_id),
                rating=ratings.get(r.candidate.id, RatingSummary()),
            )
            for r in results
        ]
