"""Response caching"""

from .response_cache import ResponseCache, DEFAULT_TTL_SECONDS

__all__ = ["ResponseCache", "DEFAULT_TTL_SECONDS"]
