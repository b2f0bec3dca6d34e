"""
Catalog accessor boundary.

The discovery engine reads catalog items only through this interface:
predicate-filtered, ordered, offset/limit pages with a companion count.
"""

from abc import ABC, abstractmethod
from typing import List, Tuple

from discovery.filtering.predicates import Predicate
from discovery.models import CatalogItem
from discovery.ranking.relevance_ranker import Ordering


class CatalogAccessor(ABC):
    """Read-only query interface over catalog items."""

    @abstractmethod
    async def find(
        self,
        predicate: Predicate,
        ordering: Ordering,
        offset: int,
        limit: int
    ) -> List[CatalogItem]:
        """Items matching ``predicate`` in ``ordering``, sliced by offset/limit."""

    @abstractmethod
    async def count(self, predicate: Predicate) -> int:
        """Number of items matching ``predicate``."""

    @abstractmethod
    async def distinct_locations(self, predicate: Predicate, limit: int) -> List[Tuple[str, str]]:
        """Distinct (city, country) pairs of matching items, ordered by city."""

    async def close(self) -> None:
        """Release accessor resources. Pool-backed accessors do not own the pool."""
        return None
