"""Configuration module for the discovery engine."""

from .settings import (
    DISCOVERY_CONFIG,
    DiscoverySettings,
    CatalogConfig,
    CacheConfig,
    RateLimitConfig,
    PaginationConfig,
    AnalyticsConfig,
    get_discovery_settings,
)

__all__ = [
    'DISCOVERY_CONFIG',
    'DiscoverySettings',
    'CatalogConfig',
    'CacheConfig',
    'RateLimitConfig',
    'PaginationConfig',
    'AnalyticsConfig',
    'get_discovery_settings',
]
