"""
Eerie Escapes catalog discovery engine.

Turns a free-text query plus structured filters into ranked, paginated
holiday listings, records search analytics, and shields the catalog store
behind a Redis response cache with rate limiting.
"""

__version__ = "0.1.0"
