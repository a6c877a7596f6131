"""
Tests for the cache modules.
"""

import pytest

from animescraper.cache.durable import DiskDocumentStore, DurableCache, sanitize_doc_id
from animescraper.cache.memory import MemoryCache
from animescraper.cache.tiered import ResourceClass, TieredCache
from animescraper.models import CacheEntry, SearchResult

from conftest import BrokenStore, DictStore, FakeClock


TTLS = {
    ResourceClass.SEARCH: 60,
    ResourceClass.EPISODES: 3600,
    ResourceClass.STREAMS: 600,
}


class TestCacheEntry:
    """Tests for the freshness rule."""

    def test_fresh_just_before_ttl(self):
        entry = CacheEntry(payload="x", cached_at=100.0)
        assert entry.is_fresh(ttl=60, now=159.999) is True

    def test_expired_at_and_after_ttl(self):
        entry = CacheEntry(payload="x", cached_at=100.0)
        assert entry.is_fresh(ttl=60, now=160.0) is False
        assert entry.is_fresh(ttl=60, now=160.001) is False


class TestMemoryCache:
    """Tests for the volatile tier."""

    def test_get_evicts_expired_entry(self):
        clock = FakeClock(100.0)
        cache = MemoryCache(clock=clock)
        cache.set("k", CacheEntry("v", cached_at=clock()), ttl=10)

        assert cache.get("k").payload == "v"

        clock.advance(11)
        assert cache.get("k") is None
        assert cache.size == 0

    def test_prune_removes_only_expired(self):
        clock = FakeClock(100.0)
        cache = MemoryCache(clock=clock)
        cache.set("short", CacheEntry(1, cached_at=clock()), ttl=5)
        cache.set("long", CacheEntry(2, cached_at=clock()), ttl=500)

        clock.advance(10)
        removed = cache.prune()

        assert removed == 1
        assert cache.size == 1
        assert cache.get("long").payload == 2


class TestSanitizeDocId:
    """Tests for document id sanitizing."""

    def test_encodes_separators(self):
        assert sanitize_doc_id("streams:a/b.c", max_length=100) == "streams:a%2Fb.c"
        assert sanitize_doc_id("x\\y", max_length=100) == "x%5Cy"
        assert sanitize_doc_id("search:k on", max_length=100) == "search:k%20on"

    def test_distinct_keys_stay_distinct(self):
        keys = ["search:k.on", "search:k-on", "search:k_on", "search:k/on", "search:k%2Fon"]

        assert len({sanitize_doc_id(k, max_length=100) for k in keys}) == len(keys)

    def test_caps_length(self):
        assert len(sanitize_doc_id("q" * 2000, max_length=1500)) == 1500


class TestDurableCache:
    """Tests for the durable tier."""

    def test_documents_have_data_and_cached_at(self):
        store = DictStore()
        durable = DurableCache(store)

        durable.set("anime_search", "search:a.b", CacheEntry(["x"], cached_at=42.0))

        assert store.documents[("anime_search", "search:a.b")] == {
            "data": ["x"],
            "cached_at": 42.0,
        }
        entry = durable.get("anime_search", "search:a.b")
        assert entry.payload == ["x"]
        assert entry.cached_at == 42.0

    def test_malformed_document_is_a_miss(self):
        store = DictStore()
        store.set("anime_search", "k", {"unexpected": True})
        durable = DurableCache(store)

        assert durable.get("anime_search", "k") is None

    def test_store_errors_are_swallowed(self):
        durable = DurableCache(BrokenStore())

        durable.set("anime_search", "k", CacheEntry("v"))
        assert durable.get("anime_search", "k") is None

    def test_open_failure_degrades_to_noop(self):
        def failing_factory(directory):
            raise PermissionError("read-only filesystem")

        durable = DurableCache.open("/nonexistent", factory=failing_factory)

        assert durable.available is False
        durable.set("anime_search", "k", CacheEntry("v"))
        assert durable.get("anime_search", "k") is None

    def test_disk_store_round_trip(self, tmp_path):
        store = DiskDocumentStore(tmp_path / "cache")
        durable = DurableCache(store)
        result = SearchResult(external_id="1", session_id="abc", title="Frieren")

        durable.set("anime_search", "search:frieren", CacheEntry([result], cached_at=5.0))
        entry = durable.get("anime_search", "search:frieren")
        durable.close()

        assert entry.payload == [result]
        assert entry.cached_at == 5.0


class TestTieredCache:
    """Tests for the composed cache."""

    def test_ttl_boundary(self, clock):
        cache = TieredCache(durable=DurableCache(DictStore()), ttls=TTLS, clock=clock)
        cache.set(ResourceClass.SEARCH, "search:frieren", ["hit"])

        clock.advance(60 - 0.001)
        assert cache.get(ResourceClass.SEARCH, "search:frieren") == ["hit"]

        clock.advance(0.002)
        assert cache.get(ResourceClass.SEARCH, "search:frieren") is None

    def test_ttl_is_per_resource_class(self, clock):
        cache = TieredCache(durable=DurableCache(None), ttls=TTLS, clock=clock)
        cache.set(ResourceClass.SEARCH, "k", "search")
        cache.set(ResourceClass.EPISODES, "k", "episodes")

        clock.advance(120)

        assert cache.get(ResourceClass.SEARCH, "k") is None
        assert cache.get(ResourceClass.EPISODES, "k") == "episodes"

    def test_durable_hit_repopulates_memory(self, clock):
        store = DictStore()
        first = TieredCache(durable=DurableCache(store), ttls=TTLS, clock=clock)
        first.set(ResourceClass.STREAMS, "streams:abc:e1", ["stream"])

        # Simulated restart: new memory tier, same store
        clock.advance(30)
        second = TieredCache(durable=DurableCache(store), ttls=TTLS, clock=clock)

        assert second.get(ResourceClass.STREAMS, "streams:abc:e1") == ["stream"]
        assert second.get_stats()["durable_hits"] == 1

        store.documents.clear()
        assert second.get(ResourceClass.STREAMS, "streams:abc:e1") == ["stream"]
        assert second.get_stats()["memory_hits"] == 1

    def test_repopulated_entry_keeps_original_age(self, clock):
        store = DictStore()
        TieredCache(durable=DurableCache(store), ttls=TTLS, clock=clock).set(
            ResourceClass.STREAMS, "k", "v"
        )

        clock.advance(500)
        second = TieredCache(durable=DurableCache(store), ttls=TTLS, clock=clock)
        assert second.get(ResourceClass.STREAMS, "k") == "v"

        store.documents.clear()
        clock.advance(101)
        assert second.get(ResourceClass.STREAMS, "k") is None

    def test_expired_durable_document_is_a_miss(self, clock):
        store = DictStore()
        TieredCache(durable=DurableCache(store), ttls=TTLS, clock=clock).set(
            ResourceClass.SEARCH, "k", "v"
        )

        clock.advance(61)
        restarted = TieredCache(durable=DurableCache(store), ttls=TTLS, clock=clock)

        assert restarted.get(ResourceClass.SEARCH, "k") is None
        assert restarted.get_stats()["misses"] == 1

    def test_broken_durable_tier_never_raises(self, clock):
        cache = TieredCache(durable=DurableCache(BrokenStore()), ttls=TTLS, clock=clock)

        cache.set(ResourceClass.SEARCH, "k", "v")
        assert cache.get(ResourceClass.SEARCH, "k") == "v"
        assert cache.get(ResourceClass.SEARCH, "k") == "v"
        assert cache.get(ResourceClass.SEARCH, "missing") is None

    def test_unavailable_durable_tier_uses_memory(self, memory_only_cache):
        memory_only_cache.set(ResourceClass.EPISODES, "k", "v")

        assert memory_only_cache.durable_available is False
        assert memory_only_cache.get(ResourceClass.EPISODES, "k") == "v"

    def test_prune(self, clock):
        cache = TieredCache(durable=DurableCache(None), ttls=TTLS, clock=clock)
        cache.set(ResourceClass.SEARCH, "a", 1)
        cache.set(ResourceClass.EPISODES, "b", 2)

        clock.advance(61)

        assert cache.prune() == 1
        assert cache.get_stats()["memory_entries"] == 1

    @pytest.mark.asyncio
    async def test_async_read_through(self, clock):
        store = DictStore()
        await TieredCache(durable=DurableCache(store), ttls=TTLS, clock=clock).aset(
            ResourceClass.EPISODES, "episodes:abc:1", ["page"]
        )

        restarted = TieredCache(durable=DurableCache(store), ttls=TTLS, clock=clock)

        assert await restarted.aget(ResourceClass.EPISODES, "episodes:abc:1") == ["page"]
        assert await restarted.aget(ResourceClass.EPISODES, "episodes:abc:1") == ["page"]
        assert restarted.get_stats()["durable_hits"] == 1
        assert restarted.get_stats()["memory_hits"] == 1

    @pytest.mark.asyncio
    async def test_async_broken_durable_tier_never_raises(self, clock):
        cache = TieredCache(durable=DurableCache(BrokenStore()), ttls=TTLS, clock=clock)

        await cache.aset(ResourceClass.SEARCH, "k", "v")

        assert await cache.aget(ResourceClass.SEARCH, "k") == "v"
        assert await cache.aget(ResourceClass.SEARCH, "missing") is None
