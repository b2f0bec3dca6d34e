"""
Redis response cache for discovery endpoints.

Responses are memoized by a canonical serialization of the request (path
plus sorted query parameters) and invalidated by key pattern whenever the
catalog changes. The cache fails open: when Redis is slow or down, reads
miss and writes are skipped.
"""

import asyncio
import logging
from typing import Any, Iterable, List, Optional, Tuple
from urllib.parse import quote, urlencode

import redis.asyncio as redis
from redis.exceptions import RedisError

from discovery.error_handling.errors import CacheUnavailable

logger = logging.getLogger(__name__)

# Entry lifetime when set() is not given one (seconds)
DEFAULT_TTL_SECONDS = 300

# Prefix of every discovery endpoint path
CATALOG_PATH_PREFIX = "/catalog"

DELETE_BATCH_SIZE = 500


class ResponseCache:
    """Key/value response cache on Redis with pattern invalidation."""

    def __init__(
        self,
        redis_client: redis.Redis,
        key_prefix: str = "cache:",
        default_ttl: int = DEFAULT_TTL_SECONDS,
        timeout_seconds: float = 0.5,
        invalidate_timeout_seconds: float = 5.0
    ):
        """
        Args:
            redis_client: Shared Redis client (owned by the caller)
            key_prefix: Prefix of every cache key
            default_ttl: TTL used when ``set`` is not given one
            timeout_seconds: Bound on each get/set round trip
            invalidate_timeout_seconds: Bound on a whole invalidation sweep
        """
        self.redis = redis_client
        self.key_prefix = key_prefix
        self.default_ttl = default_ttl
        self.timeout_seconds = timeout_seconds
        self.invalidate_timeout_seconds = invalidate_timeout_seconds

    def build_key(self, path: str, params: Iterable[Tuple[str, str]] = ()) -> str:
        """
        Build a cache key from a request path and its query parameters.

        Parameters are sorted by name then value, so the same request always
        maps to the same key regardless of parameter order.

        Args:
            path: Request path, e.g. ``/catalog/search``
            params: Query parameter pairs (repeated names allowed)

        Returns:
            Cache key such as ``cache:/catalog/search?limit=10&q=haunted``
        """
        canonical = urlencode(sorted((str(k), str(v)) for k, v in params), quote_via=quote)
        if canonical:
            return f"{self.key_prefix}{path}?{canonical}"
        return f"{self.key_prefix}{path}"

    def catalog_pattern(self) -> str:
        """Pattern covering every discovery endpoint's cache entries."""
        return f"{self.key_prefix}{CATALOG_PATH_PREFIX}*"

    async def _call(self, command: str, *args: Any) -> Any:
        try:
            return await asyncio.wait_for(
                getattr(self.redis, command)(*args), timeout=self.timeout_seconds
            )
        except (RedisError, OSError, asyncio.TimeoutError) as e:
            raise CacheUnavailable(f"Redis {command} failed: {type(e).__name__}: {e}") from e

    async def get(self, key: str) -> Optional[str]:
        """
        Get a cached payload.

        Returns:
            The stored payload string, or None on a miss or store failure
        """
        try:
            cached = await self._call("get", key)
        except CacheUnavailable as e:
            logger.warning(f"Cache read failed, treating as miss: {e.message}")
            return None

        if cached is None:
            logger.debug(f"Cache MISS: {key}")
            return None
        logger.debug(f"Cache HIT: {key}")
        return cached

    async def set(self, key: str, payload: str, ttl: Optional[int] = None) -> bool:
        """
        Store a payload with a TTL. Concurrent writers of the same key are
        harmless; the last write wins.

        Returns:
            True if stored, False if the store was unavailable
        """
        try:
            await self._call("setex", key, ttl or self.default_ttl, payload)
            return True
        except CacheUnavailable as e:
            logger.warning(f"Cache write skipped: {e.message}")
            return False

    async def invalidate(self, pattern: str) -> int:
        """
        Remove every key matching a glob pattern.

        Iterates with SCAN rather than KEYS so large keyspaces do not block
        Redis.

        Args:
            pattern: Glob pattern, e.g. ``cache:/catalog*``

        Returns:
            Number of keys removed (0 if the store was unavailable)
        """
        try:
            deleted = await asyncio.wait_for(
                self._scan_and_delete(pattern), timeout=self.invalidate_timeout_seconds
            )
        except (RedisError, OSError, asyncio.TimeoutError) as e:
            error = CacheUnavailable(f"Invalidation of {pattern} failed: {type(e).__name__}: {e}")
            logger.error(error.message)
            return 0

        if deleted:
            logger.info(f"Invalidated {deleted} cache entries matching: {pattern}")
        return deleted

    async def invalidate_catalog(self) -> int:
        """
        Invalidate every cached discovery response.

        Called by the catalog mutation subsystem after any create, update or
        (soft) delete of a catalog item.
        """
        return await self.invalidate(self.catalog_pattern())

    async def _scan_and_delete(self, pattern: str) -> int:
        deleted = 0
        batch: List[str] = []
        async for key in self.redis.scan_iter(match=pattern, count=DELETE_BATCH_SIZE):
            batch.append(key)
            if len(batch) >= DELETE_BATCH_SIZE:
                deleted += await self.redis.delete(*batch)
                batch = []
        if batch:
            deleted += await self.redis.delete(*batch)
        return deleted
