"""Tests for caching system."""

import pytest

from imgbudget.api.config import CompressionConfig
from imgbudget.core.cache import CacheService, LRUCache
from imgbudget.core.watermark import Watermark


class TestLRUCache:
    """Test in-memory LRU cache."""

    def test_set_and_get(self) -> None:
        """Test basic set and get operations."""
        cache = LRUCache(max_size_mb=1)
        cache.set("key1", "value1")

        assert cache.get("key1") == "value1"

    def test_cache_miss(self) -> None:
        """Test cache miss returns None."""
        cache = LRUCache(max_size_mb=1)
        assert cache.get("nonexistent") is None

    def test_lru_eviction(self) -> None:
        """Test that LRU items are evicted when size limit reached."""
        cache = LRUCache(max_size_mb=0.0001)

        cache.set("key1", "a" * 50)
        cache.set("key2", "b" * 50)
        cache.set("key3", "c" * 50)

        assert cache.get("key1") is None
        assert cache.get("key3") == "c" * 50

    def test_get_refreshes_recency(self) -> None:
        """A read entry survives eviction of older ones."""
        cache = LRUCache(max_size_mb=0.0001)

        cache.set("key1", "a" * 40)
        cache.set("key2", "b" * 40)
        cache.get("key1")
        cache.set("key3", "c" * 40)

        assert cache.get("key2") is None
        assert cache.get("key1") == "a" * 40

    def test_oversized_value_not_stored(self) -> None:
        cache = LRUCache(max_size_mb=0.0001)
        cache.set("small", "x")
        cache.set("big", "y" * 1000)

        assert cache.get("big") is None
        assert cache.get("small") == "x"

    def test_clear(self) -> None:
        """Test cache clearing."""
        cache = LRUCache(max_size_mb=1)
        cache.set("key1", "value1")
        cache.clear()

        assert cache.get("key1") is None
        assert cache.current_size == 0


class TestCacheService:
    """Test response cache service."""

    @pytest.mark.asyncio
    async def test_hit(self, cache_service: CacheService) -> None:
        test_data = {"key": "value", "number": 123}

        await cache_service.set("test_key", test_data)

        assert await cache_service.get("test_key") == test_data

    @pytest.mark.asyncio
    async def test_miss(self, cache_service: CacheService) -> None:
        assert await cache_service.get("nonexistent_key") is None

    @pytest.mark.asyncio
    async def test_clear_all(self, cache_service: CacheService) -> None:
        await cache_service.set("test_key", {"a": 1})
        await cache_service.clear_all()

        assert await cache_service.get("test_key") is None

    def test_key_is_deterministic(self, cache_service: CacheService) -> None:
        config = CompressionConfig()

        key1 = cache_service.generate_cache_key(b"image", config)
        key2 = cache_service.generate_cache_key(b"image", CompressionConfig())

        assert key1 == key2
        assert key1.startswith("compress:")

    def test_key_depends_on_inputs(self, cache_service: CacheService) -> None:
        config = CompressionConfig()
        base = cache_service.generate_cache_key(b"image", config)

        assert cache_service.generate_cache_key(b"other", config) != base
        assert cache_service.generate_cache_key(b"image", config.with_changes(quality=60)) != base
        assert cache_service.generate_cache_key(b"image", config.with_changes(max_size_kb=50)) != base
        assert (
            cache_service.generate_cache_key(b"image", config, Watermark(text="w")) != base
        )
