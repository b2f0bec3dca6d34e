"""Rate limiting module for discovery endpoints."""

from .rate_limiter import RateLimiter, RateLimitResult

__all__ = ['RateLimiter', 'RateLimitResult']
