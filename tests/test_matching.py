"""Unit tests for the tiered nearest-match resolver."""

import math
import random

import pytest

from towmatch.domain.distance import haversine_km
from towmatch.domain.entities import GeoPoint, SearchContext
from towmatch.domain.enums import SearchStage
from towmatch.domain.matching import TieredMatchResolver, rank_candidates

USER = GeoPoint(41.0, 29.0)

# One degree of latitude is ~111.19 km; offsets below give the listed distances
KM_PER_DEG_LAT = math.pi * 6371.0 / 180


def north_of_user(km: float) -> tuple[float, float]:
    return USER.latitude + km / KM_PER_DEG_LAT, USER.longitude


def ids(results):
    return [r.candidate.id for r in results]


def distances(results):
    return [r.distance_km for r in results]


def assert_distance_ordered(results):
    keys = [r.sort_key for r in results]
    assert keys == sorted(keys)


# ── Scenarios ─────────────────────────────────────────────────────────


class TestScenarios:
    @pytest.mark.asyncio
    async def test_district_fills_quota_nearest_first(
        self, make_candidate, provider_factory
    ):
        """3 in district 101 at 2/5/1 km, 10 further away in province 10."""
        pool = [
            make_candidate(1, *north_of_user(2), areas=((10, 101),)),
            make_candidate(2, *north_of_user(5), areas=((10, 101),)),
            make_candidate(3, *north_of_user(1), areas=((10, 101),)),
        ] + [
            make_candidate(100 + i, *north_of_user(20 + i), areas=((10, 102),))
            for i in range(10)
        ]
        provider = provider_factory(pool)
        context = SearchContext(origin=USER, province_id=10, district_id=101, limit=2)

        results = await TieredMatchResolver(provider).resolve(context)

        assert ids(results) == [3, 1]
        assert distances(results)[0] == pytest.approx(1.0, abs=0.01)
        assert distances(results)[1] == pytest.approx(2.0, abs=0.01)
        assert all(r.stage is SearchStage.DISTRICT for r in results)
        # district alone satisfied the quota: no wider query was issued
        assert provider.calls == [("district", 101)]

    @pytest.mark.asyncio
    async def test_falls_through_to_single_nationwide_candidate(
        self, make_candidate, provider_factory
    ):
        pool = [make_candidate(7, *north_of_user(50), areas=((6, 600),))]
        provider = provider_factory(pool)
        context = SearchContext(origin=USER, province_id=10, district_id=101, limit=5)

        results = await TieredMatchResolver(provider).resolve(context)

        assert ids(results) == [7]
        assert results[0].stage is SearchStage.NATIONWIDE
        assert results[0].distance_km == pytest.approx(50.0, abs=0.05)
        assert [c[0] for c in provider.calls] == ["district", "province", "all"]

    @pytest.mark.asyncio
    async def test_no_coordinates_random_fill(self, make_candidate, provider_factory):
        pool = [make_candidate(i, areas=((10, 101),)) for i in range(1, 31)]
        provider = provider_factory(pool)
        context = SearchContext(limit=20)

        results = await TieredMatchResolver(provider).resolve(context)

        assert len(results) == 20
        assert len(set(ids(results))) == 20
        assert all(r.candidate.is_active for r in results)
        assert all(r.distance_km is None for r in results)
        assert provider.calls == [("random", 20)]


# ── Tier behaviour ────────────────────────────────────────────────────


class TestTiers:
    @pytest.mark.asyncio
    async def test_empty_district_province_fills_sorted(
        self, make_candidate, provider_factory
    ):
        pool = [
            make_candidate(i, *north_of_user(d), areas=((10, 102),))
            for i, d in [(1, 9), (2, 3), (3, 7), (4, 1)]
        ] + [make_candidate(50, *north_of_user(0.5), areas=((20, 201),))]
        provider = provider_factory(pool)
        context = SearchContext(origin=USER, province_id=10, district_id=101, limit=3)

        results = await TieredMatchResolver(provider).resolve(context)

        assert ids(results) == [4, 2, 3]
        assert all(r.stage is SearchStage.PROVINCE for r in results)
        assert ("all", None) not in provider.calls

    @pytest.mark.asyncio
    async def test_district_without_province_skips_province_stage(
        self, make_candidate, provider_factory
    ):
        pool = [
            make_candidate(1, *north_of_user(4), areas=((10, 101),)),
            make_candidate(2, *north_of_user(2), areas=((10, 102),)),
        ]
        provider = provider_factory(pool)
        context = SearchContext(origin=USER, district_id=101, limit=5)

        results = await TieredMatchResolver(provider).resolve(context)

        assert [c[0] for c in provider.calls] == ["district", "all"]
        assert set(ids(results)) == {1, 2}

    @pytest.mark.asyncio
    async def test_no_area_starts_nationwide(self, make_candidate, provider_factory):
        pool = [make_candidate(i, *north_of_user(i), areas=((10, 101),)) for i in (3, 1, 2)]
        provider = provider_factory(pool)

        results = await TieredMatchResolver(provider).resolve(
            SearchContext(origin=USER, limit=10)
        )

        assert provider.calls == [("all", None)]
        assert ids(results) == [1, 2, 3]

    @pytest.mark.asyncio
    async def test_no_geo_with_area_tops_up_randomly(
        self, make_candidate, provider_factory
    ):
        pool = [make_candidate(1, areas=((10, 101),))] + [
            make_candidate(i, areas=((20, 201),)) for i in range(2, 10)
        ]
        provider = provider_factory(pool)
        context = SearchContext(province_id=10, district_id=101, limit=4)

        results = await TieredMatchResolver(provider).resolve(context)

        assert ids(results)[0] == 1
        assert results[0].stage is SearchStage.DISTRICT
        assert len(results) == 4
        assert provider.calls[-1] == ("random", 3)
        assert all(r.stage is SearchStage.RANDOM for r in results[1:])

    @pytest.mark.asyncio
    async def test_locality_preference(self, make_candidate, provider_factory):
        """A far district candidate beats a nearer non-district one when the
        district alone satisfies the quota."""
        pool = [
            make_candidate(1, *north_of_user(30), areas=((10, 101),)),
            make_candidate(2, *north_of_user(1), areas=((10, 102),)),
        ]
        provider = provider_factory(pool)
        context = SearchContext(origin=USER, province_id=10, district_id=101, limit=1)

        results = await TieredMatchResolver(provider).resolve(context)

        assert ids(results) == [1]


# ── Invariants ────────────────────────────────────────────────────────


class TestInvariants:
    @pytest.mark.asyncio
    async def test_dedup_across_stages(self, make_candidate, provider_factory):
        """A candidate in the district is never re-added by province/nationwide."""
        pool = [
            make_candidate(1, *north_of_user(1), areas=((10, 101), (10, 102))),
            make_candidate(2, *north_of_user(2), areas=((10, 102),)),
            make_candidate(3, *north_of_user(3), areas=((20, 201),)),
        ]
        # provider ignores ``exclude``: the resolver must still dedup
        provider = provider_factory(pool, honour_exclude=False)
        context = SearchContext(origin=USER, province_id=10, district_id=101, limit=10)

        results = await TieredMatchResolver(provider).resolve(context)

        assert ids(results) == [1, 2, 3]
        assert [r.stage for r in results] == [
            SearchStage.DISTRICT,
            SearchStage.PROVINCE,
            SearchStage.NATIONWIDE,
        ]

    @pytest.mark.asyncio
    async def test_exclude_set_passed_to_provider(self, make_candidate):
        seen_excludes = []

        class RecordingProvider:
            async def by_district(self, district_id, exclude):
                seen_excludes.append(set(exclude))
                return [make_candidate(1, *north_of_user(1), areas=((10, 101),))]

            async def by_province(self, province_id, exclude):
                seen_excludes.append(set(exclude))
                return []

            async def all(self, exclude):
                seen_excludes.append(set(exclude))
                return []

            async def random_sample(self, n, exclude):
                raise AssertionError("random stage must not run with coordinates")

        context = SearchContext(origin=USER, province_id=10, district_id=101, limit=5)
        await TieredMatchResolver(RecordingProvider()).resolve(context)

        assert seen_excludes == [set(), {1}, {1}]

    @pytest.mark.asyncio
    async def test_inactive_candidates_never_returned(
        self, make_candidate, provider_factory
    ):
        pool = [
            make_candidate(1, *north_of_user(1), areas=((10, 101),), active=False),
            make_candidate(2, *north_of_user(2), areas=((10, 101),)),
        ]
        # leaky provider that returns inactive rows too
        provider = provider_factory(pool)
        provider._pool = lambda exclude: list(pool)

        results = await TieredMatchResolver(provider).resolve(
            SearchContext(origin=USER, district_id=101, limit=5)
        )

        assert ids(results) == [2]

    @pytest.mark.asyncio
    async def test_missing_coordinates_sorted_last(
        self, make_candidate, provider_factory
    ):
        pool = [
            make_candidate(1, areas=((10, 101),)),  # no location
            make_candidate(2, *north_of_user(8), areas=((10, 101),)),
            make_candidate(3, *north_of_user(3), areas=((20, 201),)),
        ]
        provider = provider_factory(pool)
        context = SearchContext(origin=USER, province_id=10, district_id=101, limit=3)

        results = await TieredMatchResolver(provider).resolve(context)

        assert ids(results) == [3, 2, 1]
        assert results[-1].distance_km is None
        assert_distance_ordered(results)

    @pytest.mark.asyncio
    async def test_no_radius_filter(self, make_candidate, provider_factory):
        pool = [make_candidate(1, -41.0, -151.0, areas=((99, 999),))]
        provider = provider_factory(pool)

        results = await TieredMatchResolver(provider).resolve(
            SearchContext(origin=USER, limit=3)
        )

        assert ids(results) == [1]
        assert results[0].distance_km > 15_000

    @pytest.mark.asyncio
    async def test_empty_pool_returns_empty(self, provider_factory):
        provider = provider_factory([])
        for context in (
            SearchContext(origin=USER, province_id=1, district_id=2, limit=5),
            SearchContext(limit=5),
        ):
            assert await TieredMatchResolver(provider).resolve(context) == []

    @pytest.mark.asyncio
    async def test_store_failure_propagates_without_partial_results(
        self, make_candidate, provider_factory
    ):
        pool = [make_candidate(1, *north_of_user(1), areas=((10, 101),))]
        provider = provider_factory(pool)

        async def broken_by_province(province_id, exclude):
            raise ConnectionError("store unavailable")

        provider.by_province = broken_by_province
        context = SearchContext(origin=USER, province_id=10, district_id=101, limit=5)

        with pytest.raises(ConnectionError):
            await TieredMatchResolver(provider).resolve(context)
        # the district stage ran, but nothing wider was attempted
        assert provider.calls == [("district", 101)]

    @pytest.mark.asyncio
    async def test_non_positive_limit_rejected(self, provider_factory):
        with pytest.raises(ValueError):
            await TieredMatchResolver(provider_factory([])).resolve(
                SearchContext(limit=0)
            )

    @pytest.mark.asyncio
    @pytest.mark.parametrize("seed", range(5))
    async def test_random_pools_respect_quota_order_and_uniqueness(
        self, seed, make_candidate, provider_factory
    ):
        rng = random.Random(seed)
        pool = []
        for i in range(1, 41):
            has_location = rng.random() > 0.2
            lat, lng = (
                (rng.uniform(36, 42), rng.uniform(26, 45)) if has_location else (None, None)
            )
            areas = tuple(
                (p, p * 100 + rng.randint(1, 3))
                for p in rng.sample([10, 20, 30], rng.randint(0, 2))
            )
            pool.append(make_candidate(i, lat, lng, areas, active=rng.random() > 0.1))
        active = {c.id for c in pool if c.is_active}
        limit = rng.randint(1, 50)
        context = SearchContext(origin=USER, province_id=10, district_id=1001, limit=limit)

        results = await TieredMatchResolver(provider_factory(pool)).resolve(context)

        assert len(results) == min(limit, len(active))
        assert len(set(ids(results))) == len(results)
        assert set(ids(results)) <= active
        assert_distance_ordered(results)


class TestRankCandidates:
    def test_distances_attached_and_sorted(self, make_candidate):
        ranked = rank_candidates(
            [
                make_candidate(1, *north_of_user(5)),
                make_candidate(2),
                make_candidate(3, *north_of_user(1)),
            ],
            SearchContext(origin=USER),
            SearchStage.PROVINCE,
        )
        assert ids(ranked) == [3, 1, 2]
        expected = haversine_km(USER.latitude, USER.longitude, *north_of_user(1))
        assert ranked[0].distance_km == pytest.approx(expected)

    def test_without_origin_keeps_order_and_no_distance(self, make_candidate):
        ranked = rank_candidates(
            [make_candidate(2, 40.0, 29.0), make_candidate(1, 41.0, 29.0)],
            SearchContext(),
            SearchStage.RANDOM,
        )
        assert ids(ranked) == [2, 1]
        assert distances(ranked) == [None, None]
