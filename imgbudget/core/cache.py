"""In-memory cache of compression responses."""

import hashlib
import json
import logging
from collections import OrderedDict
from typing import Optional

from imgbudget.api.config import CACHE_L1_SIZE_MB, CompressionConfig
from imgbudget.core.watermark import Watermark

logger = logging.getLogger(__name__)


class LRUCache:
    """In-memory LRU cache with size limit."""

    def __init__(self, max_size_mb: float = CACHE_L1_SIZE_MB):
        """Initialize LRU cache with size limit in megabytes."""
        self.max_size_bytes = int(max_size_mb * 1024 * 1024)
        self.current_size = 0
        self.cache: OrderedDict[str, tuple[str, int]] = OrderedDict()

    def __len__(self) -> int:
        return len(self.cache)

    def get(self, key: str) -> Optional[str]:
        """Get value from cache, moving to end (most recently used)."""
        if key in self.cache:
            self.cache.move_to_end(key)
            logger.debug(f"L1 cache hit: {key}")
            return self.cache[key][0]
        logger.debug(f"L1 cache miss: {key}")
        return None

    def set(self, key: str, value: str) -> None:
        """Set value in cache, evicting LRU items if needed."""
        value_size = len(value.encode("utf-8"))

        if key in self.cache:
            _, old_size = self.cache.pop(key)
            self.current_size -= old_size

        if value_size > self.max_size_bytes:
            logger.warning(
                f"Value too large for L1 cache: {value_size / (1024 * 1024):.2f}MB"
            )
            return

        while self.current_size + value_size > self.max_size_bytes and self.cache:
            evicted_key, (_, evicted_size) = self.cache.popitem(last=False)
            self.current_size -= evicted_size
            logger.debug(f"L1 cache evicted: {evicted_key} ({evicted_size} bytes)")

        self.cache[key] = (value, value_size)
        self.current_size += value_size
        logger.debug(
            f"L1 cache set: {key} ({value_size} bytes, "
            f"total: {self.current_size / (1024 * 1024):.2f}MB)"
        )

    def clear(self) -> None:
        """Clear all items from cache."""
        self.cache.clear()
        self.current_size = 0
        logger.info("L1 cache cleared")


class CacheService:
    """
    Cache of compression responses.

    Encoding is deterministic, so a response depends only on the upload
    content and the effective parameters and can be reused verbatim.
    """

    def __init__(self, max_size_mb: float = CACHE_L1_SIZE_MB) -> None:
        """Initialize cache service with L1 LRU cache."""
        self.l1_cache = LRUCache(max_size_mb)

    async def get(self, key: str) -> Optional[dict[str, object]]:
        """
        Get cached response.

        Args:
            key: Cache key

        Returns:
            Cached data as dict, or None if not found
        """
        l1_value = self.l1_cache.get(key)
        if l1_value:
            result: dict[str, object] = json.loads(l1_value)
            return result
        return None

    async def set(self, key: str, value: dict[str, object]) -> None:
        """
        Store a response.

        Args:
            key: Cache key
            value: Data to cache (will be JSON serialized)
        """
        self.l1_cache.set(key, json.dumps(value))

    def generate_cache_key(
        self,
        content: bytes,
        config: CompressionConfig,
        watermark: Optional[Watermark] = None,
    ) -> str:
        """
        Generate a cache key from upload content and parameters.

        Args:
            content: Raw uploaded bytes
            config: Effective compression config
            watermark: Optional watermark

        Returns:
            Cache key string
        """
        spec = config.encoding_spec
        key_parts = [
            hashlib.sha256(content).hexdigest(),
            f"{config.max_width:g}",
            f"{config.max_height:g}",
            str(config.max_size_kb),
            spec.format.value,
            spec.pixel_config.value,
            str(spec.quality),
        ]
        if watermark is not None:
            key_parts.extend(
                [
                    watermark.text,
                    str(watermark.text_size),
                    f"{watermark.color:08x}",
                    str(watermark.left),
                    str(watermark.top),
                ]
            )
        key_string = "|".join(key_parts)

        key_hash = hashlib.sha256(key_string.encode()).hexdigest()[:16]

        return f"compress:{key_hash}"

    async def clear_all(self) -> None:
        """Clear L1 cache."""
        self.l1_cache.clear()
