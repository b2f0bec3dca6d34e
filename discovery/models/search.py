"""Search request and response models"""

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Literal, Optional, Union

from .catalog import CatalogItem


class SortField(str, Enum):
    """Supported orderings for discovery results"""
    RELEVANCE = "relevance"
    POPULARITY = "popularity"
    PRICE = "price"
    RATING = "rating"
    DATE = "date"
    DURATION = "duration"


class SortOrder(str, Enum):
    """Sort direction"""
    ASC = "asc"
    DESC = "desc"


class WireModel(BaseModel):
    """Base for response models serialized with camelCase keys"""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class FilterSet(BaseModel):
    """
    Raw structured filters as received from the caller.

    Values stay strings until the filter compiler validates them, so a
    malformed value produces a field-level error instead of a framework 422.
    """
    country: Optional[str] = None
    city: Optional[str] = None
    region: Optional[str] = None
    theme: Optional[str] = None
    difficulty: Optional[str] = None
    start_date: Optional[str] = None
    end_date: Optional[str] = None
    min_price: Optional[str] = None
    max_price: Optional[str] = None
    min_duration: Optional[str] = None
    max_duration: Optional[str] = None
    min_rating: Optional[str] = None
    status: Optional[str] = None


class SearchRequest(BaseModel):
    """Per-request discovery parameters (never persisted)"""
    query: Optional[str] = None
    filters: FilterSet = Field(default_factory=FilterSet)
    sort_by: Optional[str] = None
    sort_order: Optional[str] = None
    page: Optional[Union[int, str]] = None
    limit: Optional[Union[int, str]] = None
    caller_id: Optional[str] = None


class PaginationMeta(WireModel):
    """Page metadata"""
    page: int
    limit: int
    total: int
    total_pages: int
    has_next_page: bool
    has_prev_page: bool


class RankedResultPage(WireModel):
    """One page of ranked discovery results"""
    success: bool = True
    data: List[CatalogItem]
    pagination: PaginationMeta
    filters: Dict[str, Any] = Field(default_factory=dict)
    query: Optional[str] = None
    sort_by: SortField
    sort_order: SortOrder

    @property
    def ids(self) -> List[str]:
        """Identifier list of the items on this page, in rank order."""
        return [item.id for item in self.data]


class Suggestion(WireModel):
    """Autocomplete entry"""
    type: Literal["item", "location"]
    text: str
    slug: Optional[str] = None


class PopularTerm(WireModel):
    """Aggregated search term statistics"""
    term: str
    search_count: int
    avg_results: float


class SearchAnalyticsRecord(BaseModel):
    """One recorded search (append-only)"""
    term: str
    result_count: int
    filters: Dict[str, Any] = Field(default_factory=dict)
    user_id: Optional[str] = None
    searched_at: datetime = Field(default_factory=datetime.now)


class SuggestionList(WireModel):
    """Suggestions endpoint payload"""
    success: bool = True
    data: List[Suggestion] = Field(default_factory=list)


class PopularTermList(WireModel):
    """Popular searches endpoint payload"""
    success: bool = True
    data: List[PopularTerm] = Field(default_factory=list)
    window_days: int
