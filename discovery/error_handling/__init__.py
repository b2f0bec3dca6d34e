"""
Error handling module for the discovery engine.

Provides the error taxonomy, upstream retry logic and HTTP error mapping.
"""

from .errors import (
    DiscoveryError,
    InvalidRequest,
    InvalidFilter,
    UpstreamUnavailable,
    QuotaExceeded,
    CacheUnavailable,
    RateLimitUnavailable,
    AnalyticsFailure,
)
from .error_handler import ErrorHandler, RetryConfig
from .exception_handlers import install_exception_handlers, rate_limit_headers

__all__ = [
    'DiscoveryError',
    'InvalidRequest',
    'InvalidFilter',
    'UpstreamUnavailable',
    'QuotaExceeded',
    'CacheUnavailable',
    'RateLimitUnavailable',
    'AnalyticsFailure',
    'ErrorHandler',
    'RetryConfig',
    'install_exception_handlers',
    'rate_limit_headers',
]
