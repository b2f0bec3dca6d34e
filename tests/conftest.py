"""Shared fixtures and test doubles for the discovery tests."""

import asyncio
import fnmatch
from typing import Dict, Optional

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from discovery.analytics import AnalyticsRecorder, InMemoryAnalyticsStore
from discovery.caching import ResponseCache
from discovery.catalog import InMemoryCatalogAccessor, load_sample_catalog
from discovery.config import DiscoverySettings
from discovery.db import Resources
from discovery.services import DiscoveryService


def run_async(coro):
    """Helper to run async functions in sync tests."""
    return asyncio.run(coro)


class FakeRedis:
    """
    In-process stand-in for a redis.asyncio client.

    Implements the commands the cache and rate limiter use. Time only moves
    through ``advance``. Setting ``fail`` makes every command raise a
    connection error.
    """

    def __init__(self):
        self.data: Dict[str, str] = {}
        self.ttls: Dict[str, int] = {}
        self.fail = False
        self.commands = []

    def _check(self, name: str) -> None:
        self.commands.append(name)
        if self.fail:
            raise RedisConnectionError("Connection refused")

    def advance(self, seconds: int) -> None:
        """Move time forward, expiring keys whose TTL runs out."""
        for key in list(self.ttls):
            self.ttls[key] -= seconds
            if self.ttls[key] <= 0:
                self.data.pop(key, None)
                self.ttls.pop(key, None)

    async def ping(self) -> bool:
        self._check("ping")
        return True

    async def get(self, key: str) -> Optional[str]:
        self._check("get")
        return self.data.get(key)

    async def setex(self, key: str, ttl: int, value: str) -> bool:
        self._check("setex")
        self.data[key] = value
        self.ttls[key] = ttl
        return True

    async def delete(self, *keys: str) -> int:
        self._check("delete")
        removed = 0
        for key in keys:
            if key in self.data:
                removed += 1
            self.data.pop(key, None)
            self.ttls.pop(key, None)
        return removed

    async def incr(self, key: str) -> int:
        self._check("incr")
        value = int(self.data.get(key, "0")) + 1
        self.data[key] = str(value)
        return value

    async def expire(self, key: str, seconds: int) -> bool:
        self._check("expire")
        if key not in self.data:
            return False
        self.ttls[key] = seconds
        return True

    async def ttl(self, key: str) -> int:
        self._check("ttl")
        if key not in self.data:
            return -2
        return self.ttls.get(key, -1)

    async def scan_iter(self, match: Optional[str] = None, count: Optional[int] = None):
        """
        Yield keys matching ``match``.

        Matching uses fnmatch, which agrees with Redis globs only for ``*``,
        ``?`` and plain ``[abc]`` classes. Negated classes (``[!x]`` here,
        ``[^x]`` in Redis) and backslash escapes differ, so tests stick to
        prefix-plus-star patterns.
        """
        self._check("scan")
        for key in list(self.data):
            if match is None or fnmatch.fnmatchcase(key, match):
                yield key

    async def aclose(self) -> None:
        return None


class FlakyAccessor(InMemoryCatalogAccessor):
    """Accessor whose queries fail or hang on demand."""

    def __init__(self, items=None, fail_times: int = 0, hang: bool = False):
        super().__init__(items)
        self.fail_times = fail_times
        self.hang = hang
        self.calls = 0

    async def _maybe_fail(self):
        self.calls += 1
        if self.hang:
            await asyncio.sleep(10)
        if self.fail_times > 0:
            self.fail_times -= 1
            raise ConnectionResetError("connection reset by peer")

    async def find(self, predicate, ordering, offset, limit):
        await self._maybe_fail()
        return await super().find(predicate, ordering, offset, limit)

    async def count(self, predicate):
        await self._maybe_fail()
        return await super().count(predicate)


@pytest.fixture
def sample_items():
    return load_sample_catalog()


@pytest.fixture
def fake_redis():
    return FakeRedis()


@pytest.fixture
def settings():
    discovery_settings = DiscoverySettings()
    discovery_settings.catalog.backend = "memory"
    discovery_settings.catalog.query_timeout_seconds = 0.2
    discovery_settings.catalog.max_retries = 2
    return discovery_settings


@pytest.fixture
def resources(sample_items, fake_redis):
    return Resources(
        accessor=InMemoryCatalogAccessor(sample_items),
        analytics_store=InMemoryAnalyticsStore(),
        redis_client=fake_redis,
    )


def make_service(items, redis_client=None, store=None, settings=None, accessor=None):
    """Build a DiscoveryService over in-memory collaborators."""
    settings = settings or DiscoverySettings()
    cache = ResponseCache(redis_client) if redis_client is not None else None
    return DiscoveryService(
        accessor=accessor or InMemoryCatalogAccessor(items),
        analytics=AnalyticsRecorder(store or InMemoryAnalyticsStore()),
        settings=settings,
        cache=cache,
    )
