"""
Test suite for the report cache.

Uses a controllable clock so TTL boundaries are exact.
"""

import asyncio

import pytest

from crm_reporting.models.enums import CacheScope, ExportKind
from crm_reporting.services.report_cache import (
    CacheKeys,
    CacheTTL,
    ReportCache,
    invalidate_reporting_cache,
)


class FakeClock:

    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class CountingProducer:

    def __init__(self, value="report"):
        self.value = value
        self.calls = 0

    async def __call__(self):
        self.calls += 1
        return f"{self.value}-{self.calls}"


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def cache(clock) -> ReportCache:
    return ReportCache(max_entries=3, clock=clock)


class TestFetch:

    @pytest.mark.asyncio
    async def test_hit_within_ttl(self, cache, clock):
        producer = CountingProducer()

        first = await cache.fetch("k", producer, ttl=60)
        clock.advance(59.9)
        second = await cache.fetch("k", producer, ttl=60)

        assert first == second == "report-1"
        assert producer.calls == 1

    @pytest.mark.asyncio
    async def test_expires_at_ttl(self, cache, clock):
        producer = CountingProducer()

        await cache.fetch("k", producer, ttl=60)
        clock.advance(60)
        value = await cache.fetch("k", producer, ttl=60)

        assert value == "report-2"
        assert producer.calls == 2

    @pytest.mark.asyncio
    async def test_force_recomputes(self, cache):
        producer = CountingProducer()

        await cache.fetch("k", producer, ttl=60)
        value = await cache.fetch("k", producer, ttl=60, force=True)

        assert value == "report-2"
        assert await cache.fetch("k", producer, ttl=60) == "report-2"

    @pytest.mark.asyncio
    async def test_failure_leaves_previous_value(self, cache, clock):
        await cache.fetch("k", CountingProducer("old"), ttl=60)

        async def failing():
            raise RuntimeError("producer failed")

        with pytest.raises(RuntimeError):
            await cache.fetch("k", failing, ttl=60, force=True)

        assert cache.get("k") == "old-1"

    @pytest.mark.asyncio
    async def test_failure_on_empty_cache_stores_nothing(self, cache):
        async def failing():
            raise RuntimeError("producer failed")

        with pytest.raises(RuntimeError):
            await cache.fetch("k", failing, ttl=60)

        assert "k" not in cache
        assert len(cache) == 0

    @pytest.mark.asyncio
    async def test_none_is_a_cacheable_value(self, cache):
        calls = []

        async def producer():
            calls.append(1)
            return None

        await cache.fetch("k", producer, ttl=60)
        await cache.fetch("k", producer, ttl=60)
        assert len(calls) == 1

    @pytest.mark.asyncio
    async def test_concurrent_misses_each_run_the_producer(self, cache):
        started = []
        release = asyncio.Event()

        async def producer():
            started.append(1)
            await release.wait()
            return len(started)

        first = asyncio.create_task(cache.fetch("k", producer, ttl=60))
        second = asyncio.create_task(cache.fetch("k", producer, ttl=60))
        await asyncio.sleep(0)
        release.set()
        await asyncio.gather(first, second)

        assert len(started) == 2


class TestMaintenance:

    @pytest.mark.asyncio
    async def test_invalidate(self, cache):
        producer = CountingProducer()
        await cache.fetch("k", producer, ttl=60)

        cache.invalidate("k")
        cache.invalidate("missing")

        assert await cache.fetch("k", producer, ttl=60) == "report-2"

    def test_oldest_entry_evicted_when_full(self, cache):
        for key in ("a", "b", "c"):
            cache.set(key, key, ttl=60)
        cache.set("d", "d", ttl=60)

        assert "a" not in cache
        assert all(key in cache for key in ("b", "c", "d"))
        assert len(cache) == 3

    def test_rewriting_a_key_does_not_evict(self, cache):
        for key in ("a", "b", "c"):
            cache.set(key, key, ttl=60)
        cache.set("a", "a2", ttl=60)

        assert len(cache) == 3
        assert cache.get("a") == "a2"

    def test_invalidate_pattern(self, cache):
        cache.set("interactions-x", 1, ttl=60)
        cache.set("interactions-y", 2, ttl=60)
        cache.set("dashboard-summary", 3, ttl=60)

        assert cache.invalidate_pattern(r"^interactions-") == 2
        assert "dashboard-summary" in cache
        assert len(cache) == 1

    def test_cleanup_and_stats(self, cache, clock):
        cache.set("short", 1, ttl=10)
        cache.set("long", 2, ttl=100)
        clock.advance(50)

        stats = cache.stats()
        assert stats["totalEntries"] == 2
        assert stats["validEntries"] == 1
        assert stats["expiredEntries"] == 1
        assert stats["hitRate"] == 0.5

        assert cache.cleanup() == 1
        assert len(cache) == 1

    def test_stats_on_empty_cache(self, cache):
        assert cache.stats()["hitRate"] == 0.0

    def test_expired_get_returns_default(self, cache, clock):
        cache.set("k", 1, ttl=5)
        clock.advance(5)
        assert cache.get("k", "gone") == "gone"


class TestReportingKeys:

    def test_keys(self):
        assert CacheKeys.dashboard() == "dashboard-summary"
        assert CacheKeys.needs_visit() == "organizations-needs-visit"
        assert CacheKeys.interactions() == "interactions-"
        assert CacheKeys.interactions({"b": 2, "a": 1}) == CacheKeys.interactions({"a": 1, "b": 2})
        assert CacheKeys.export(ExportKind.CONTACTS).startswith("export-contacts-")

    def test_ttls_from_settings(self, test_settings):
        ttl = CacheTTL.from_settings(test_settings)
        assert (ttl.dashboard, ttl.interactions, ttl.needs_visit, ttl.export) == (300, 600, 900, 60)

    def _populate(self, cache):
        cache.set(CacheKeys.dashboard(), 1, ttl=60)
        cache.set(CacheKeys.needs_visit(), 2, ttl=60)
        cache.set(CacheKeys.interactions({"typeId": 1}), 3, ttl=60)

    def test_invalidate_interactions_scope(self, cache):
        self._populate(cache)
        invalidate_reporting_cache(cache, CacheScope.INTERACTIONS)
        assert list(cache._entries) == [CacheKeys.needs_visit()]

    def test_invalidate_organizations_scope(self, cache):
        self._populate(cache)
        invalidate_reporting_cache(cache, CacheScope.ORGANIZATIONS)
        assert list(cache._entries) == [CacheKeys.interactions({"typeId": 1})]

    def test_invalidate_dashboard_and_all_scopes(self, cache):
        self._populate(cache)
        invalidate_reporting_cache(cache, CacheScope.DASHBOARD)
        assert len(cache) == 0

        self._populate(cache)
        invalidate_reporting_cache(cache)
        assert len(cache) == 0
