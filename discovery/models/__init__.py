"""Data models for the discovery engine"""

from .catalog import CatalogItem, HolidayTheme, DifficultyLevel, HolidayStatus
from .search import (
    FilterSet,
    SearchRequest,
    SortField,
    SortOrder,
    PaginationMeta,
    RankedResultPage,
    Suggestion,
    PopularTerm,
    SearchAnalyticsRecord,
    SuggestionList,
    PopularTermList,
)

__all__ = [
    "CatalogItem",
    "HolidayTheme",
    "DifficultyLevel",
    "HolidayStatus",
    "FilterSet",
    "SearchRequest",
    "SortField",
    "SortOrder",
    "PaginationMeta",
    "RankedResultPage",
    "Suggestion",
    "PopularTerm",
    "SearchAnalyticsRecord",
    "SuggestionList",
    "PopularTermList",
]
