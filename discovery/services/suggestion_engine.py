"""
Suggestion engine - autocomplete over item titles and locations.
"""

import logging
from typing import List, Optional, Set, Tuple

from discovery.catalog import CatalogAccessor
from discovery.error_handling import ErrorHandler
from discovery.filtering import Contains, Equals, all_of, any_of
from discovery.models import HolidayStatus, Suggestion
from discovery.pagination import coerce_int
from discovery.ranking import Ordering, SortKey

logger = logging.getLogger(__name__)


class SuggestionEngine:
    """Completes partial queries from published item titles and locations."""

    MIN_QUERY_LENGTH = 2
    DEFAULT_LIMIT = 8
    MAX_LIMIT = 20

    def __init__(self, accessor: CatalogAccessor, error_handler: Optional[ErrorHandler] = None):
        self.accessor = accessor
        self.error_handler = error_handler or ErrorHandler()

    def clamp_limit(self, limit) -> int:
        return min(max(1, coerce_int(limit, self.DEFAULT_LIMIT)), self.MAX_LIMIT)

    async def suggest(self, fragment: Optional[str], limit=None) -> List[Suggestion]:
        """
        Suggestions for a partial query.

        Item titles come first (most booked first), then distinct
        "City, Country" locations. Fragments shorter than two characters
        give an empty list.

        Args:
            fragment: Partial query typed by the user
            limit: Maximum suggestions (default 8, at most 20)

        Returns:
            De-duplicated suggestions, at most ``limit``

        Raises:
            UpstreamUnavailable: If the catalog store is unavailable
        """
        text = " ".join((fragment or "").split())
        if len(text) < self.MIN_QUERY_LENGTH:
            return []
        limit = self.clamp_limit(limit)

        published = Equals("status", HolidayStatus.PUBLISHED)
        items = await self.error_handler.call_upstream(
            self.accessor.find,
            all_of(published, Contains("title", text)),
            Ordering((SortKey("booking_count", True),)),
            0,
            limit,
        )
        locations = await self.error_handler.call_upstream(
            self.accessor.distinct_locations,
            all_of(published, any_of(Contains("city", text), Contains("country", text))),
            limit,
        )
        return self._merge(items, locations, limit)

    @staticmethod
    def _merge(items, locations: List[Tuple[str, str]], limit: int) -> List[Suggestion]:
        suggestions: List[Suggestion] = []
        seen: Set[Tuple[str, str]] = set()

        for item in items:
            key = ("item", item.title.lower())
            if key not in seen:
                seen.add(key)
                suggestions.append(Suggestion(type="item", text=item.title, slug=item.slug))

        for city, country in locations:
            text = f"{city}, {country}"
            key = ("location", text.lower())
            if key not in seen:
                seen.add(key)
                suggestions.append(Suggestion(type="location", text=text))

        return suggestions[:limit]
