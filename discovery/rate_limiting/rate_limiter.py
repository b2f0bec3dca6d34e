"""
Rate limiter for discovery endpoints.

Implements a fixed-window request quota per caller on Redis counters so the
limit holds across every API process sharing the store.
"""

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Callable, Optional, Tuple

import redis.asyncio as redis
from redis.exceptions import RedisError

from discovery.error_handling.errors import RateLimitUnavailable

logger = logging.getLogger(__name__)


@dataclass
class RateLimitResult:
    """
    Outcome of one quota check.

    Attributes:
        allowed: Whether the caller is within quota
        limit: Requests allowed per window
        remaining: Requests left in the current window
        reset_at: Epoch seconds when the window resets
        retry_after: Seconds until the window resets
    """
    allowed: bool
    limit: int
    remaining: int
    reset_at: int
    retry_after: int


class RateLimiter:
    """
    Rate limiter that enforces a per-identifier request quota.

    Each check atomically increments ``ratelimit:<identifier>``; the window
    expiry is set only on the first increment of a window. Attempts that end
    up rejected still count. On store failure the limiter fails open.

    Attributes:
        max_requests: Default maximum requests per window
        window_seconds: Default window length in seconds
    """

    def __init__(
        self,
        redis_client: redis.Redis,
        max_requests: int = 100,
        window_seconds: int = 60,
        key_prefix: str = "ratelimit:",
        timeout_seconds: float = 0.5,
        clock: Callable[[], float] = time.time
    ):
        """
        Initialize rate limiter with configuration.

        Args:
            redis_client: Shared Redis client (owned by the caller)
            max_requests: Requests allowed per window (default: 100)
            window_seconds: Window length in seconds (default: 60)
            key_prefix: Prefix of counter keys
            timeout_seconds: Bound on the store round trips of one check
            clock: Source of the current epoch time
        """
        self.redis = redis_client
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self.key_prefix = key_prefix
        self.timeout_seconds = timeout_seconds
        self.clock = clock

    async def check(
        self,
        identifier: str,
        max_requests: Optional[int] = None,
        window_seconds: Optional[int] = None
    ) -> RateLimitResult:
        """
        Count a request attempt and report whether it is within quota.

        Args:
            identifier: Caller identifier (user id or IP address)
            max_requests: Override of the per-window quota
            window_seconds: Override of the window length

        Returns:
            RateLimitResult with remaining allowance and reset time
        """
        limit = max_requests or self.max_requests
        window = window_seconds or self.window_seconds
        key = f"{self.key_prefix}{identifier}"
        now = self.clock()

        try:
            current, ttl = await self._increment(key, window)
        except RateLimitUnavailable as e:
            logger.warning(f"Rate limit check failed open for {identifier}: {e.message}")
            return RateLimitResult(
                allowed=True,
                limit=limit,
                remaining=limit,
                reset_at=int(now + window),
                retry_after=window,
            )

        allowed = current <= limit
        if not allowed:
            logger.info(f"Rate limit exceeded for {identifier}: {current}/{limit}")

        return RateLimitResult(
            allowed=allowed,
            limit=limit,
            remaining=max(0, limit - current),
            reset_at=int(now + ttl),
            retry_after=max(0, ttl),
        )

    async def _increment(self, key: str, window: int) -> Tuple[int, int]:
        try:
            return await asyncio.wait_for(
                self._incr_with_expiry(key, window), timeout=self.timeout_seconds
            )
        except (RedisError, OSError, asyncio.TimeoutError) as e:
            raise RateLimitUnavailable(f"{type(e).__name__}: {e}") from e

    async def _incr_with_expiry(self, key: str, window: int) -> Tuple[int, int]:
        current = await self.redis.incr(key)
        if current == 1:
            await self.redis.expire(key, window)

        ttl = await self.redis.ttl(key)
        if ttl < 0:
            # Counter survived without an expiry (e.g. a crash between INCR and EXPIRE)
            await self.redis.expire(key, window)
            ttl = window
        return current, ttl
