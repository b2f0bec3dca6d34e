"""
In-memory catalog accessor.

Evaluates predicates directly against CatalogItem objects. Backs local runs
(``CATALOG_BACKEND=memory``) from the bundled sample catalog and the tests.
"""

import json
import logging
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Tuple

from discovery.filtering.predicates import Predicate
from discovery.models import CatalogItem
from discovery.ranking.relevance_ranker import Ordering
from .accessor import CatalogAccessor

logger = logging.getLogger(__name__)

# Bundled sample catalog
SAMPLE_CATALOG = Path(__file__).resolve().parents[1] / "data" / "sample_holidays.json"


def load_sample_catalog(path: Optional[str] = None) -> List[CatalogItem]:
    """Load catalog items from a JSON file.

    Args:
        path: JSON file holding a list of item objects; defaults to the
            bundled sample catalog

    Returns:
        List of CatalogItem instances

    Raises:
        OSError: If the file cannot be read
        ValueError: If the file is not valid JSON or an entry is malformed
    """
    data_file = Path(path) if path else SAMPLE_CATALOG
    with data_file.open("r", encoding="utf-8") as f:
        raw = json.load(f)
    items = [CatalogItem.model_validate(entry) for entry in raw]
    logger.info(f"Loaded {len(items)} catalog items from {data_file}")
    return items


class InMemoryCatalogAccessor(CatalogAccessor):
    """Catalog accessor over a list of items held in memory."""

    def __init__(self, items: Optional[Iterable[CatalogItem]] = None):
        self._items: Dict[str, CatalogItem] = {}
        for item in items or []:
            self._items[item.id] = item

    @property
    def items(self) -> List[CatalogItem]:
        return list(self._items.values())

    def upsert(self, item: CatalogItem) -> None:
        """Insert or replace an item (used when loading or refreshing data)."""
        self._items[item.id] = item

    def _matching(self, predicate: Predicate) -> List[CatalogItem]:
        return [item for item in self._items.values() if predicate.matches(item)]

    async def find(
        self,
        predicate: Predicate,
        ordering: Ordering,
        offset: int,
        limit: int
    ) -> List[CatalogItem]:
        ranked = ordering.sort(self._matching(predicate))
        return ranked[offset:offset + limit]

    async def count(self, predicate: Predicate) -> int:
        return len(self._matching(predicate))

    async def distinct_locations(self, predicate: Predicate, limit: int) -> List[Tuple[str, str]]:
        pairs = sorted({(item.city, item.country) for item in self._matching(predicate)})
        return pairs[:limit]
