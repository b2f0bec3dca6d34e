"""Search analytics"""

from .recorder import AnalyticsRecorder, normalize_term
from .stores import AnalyticsStore, InMemoryAnalyticsStore, PostgresAnalyticsStore

__all__ = [
    "AnalyticsRecorder",
    "normalize_term",
    "AnalyticsStore",
    "InMemoryAnalyticsStore",
    "PostgresAnalyticsStore",
]
