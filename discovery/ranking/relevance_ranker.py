"""
Relevance ranking for catalog discovery.

Tokenizes free-text queries into a match predicate and resolves sort
parameters into a deterministic multi-key ordering.
"""

import logging
from dataclasses import dataclass
from typing import Any, Iterable, List, Optional, Tuple

from discovery.filtering.predicates import Contains, HasTag, MatchAll, Predicate, any_of
from discovery.models import SortField, SortOrder

logger = logging.getLogger(__name__)


# Fields the whole phrase is matched against
PHRASE_FIELDS = ("title", "description", "short_description", "city", "country", "region")

# Fields each individual word is matched against
WORD_FIELDS = ("title", "description", "short_description")

# Fields the accessors can order by
SORT_FIELDS = frozenset({
    "average_rating", "review_count", "booking_count", "view_count", "base_price",
    "published_at", "created_at", "duration_days", "id",
})


@dataclass(frozen=True)
class SortKey:
    """One ordering column."""
    field: str
    descending: bool = False

    def __post_init__(self):
        if self.field not in SORT_FIELDS:
            raise ValueError(f"Field '{self.field}' is not sortable")


@dataclass(frozen=True)
class Ordering:
    """Multi-key ordering; ties on every key are broken by id ascending.

    Missing values sort last in either direction.
    """
    keys: Tuple[SortKey, ...]

    def __post_init__(self):
        if not self.keys or self.keys[-1].field != "id":
            object.__setattr__(self, "keys", tuple(self.keys) + (SortKey("id"),))

    def sort(self, items: Iterable[Any]) -> List[Any]:
        """Sort items in memory. Applies stable sorts from the last key to the first."""
        ordered = list(items)
        for key in reversed(self.keys):
            present = [i for i in ordered if getattr(i, key.field, None) is not None]
            missing = [i for i in ordered if getattr(i, key.field, None) is None]
            present.sort(key=lambda i: getattr(i, key.field), reverse=key.descending)
            ordered = present + missing
        return ordered


@dataclass(frozen=True)
class RankingPlan:
    """Text-match predicate plus the resolved ordering."""
    predicate: Predicate
    ordering: Ordering
    sort_by: SortField
    sort_order: SortOrder


def tokenize(query: Optional[str]) -> List[str]:
    """Lower-case, trim and split a query on whitespace."""
    if not query:
        return []
    return query.strip().lower().split()


class RelevanceRanker:
    """Builds text-match predicates and orderings for discovery requests."""

    def text_match(self, query: Optional[str]) -> Predicate:
        """
        Compile a free-text query into a match predicate.

        The predicate holds when the whole phrase appears in any of the
        phrase fields, when any single word appears in the title or
        descriptions, or when any word equals one of the item's keyword tags.
        An empty query matches everything.

        Args:
            query: Free-text query, possibly empty

        Returns:
            Predicate over catalog items
        """
        words = tokenize(query)
        if not words:
            return MatchAll()

        phrase = " ".join(words)
        parts: List[Predicate] = [Contains(name, phrase) for name in PHRASE_FIELDS]

        seen = set()
        for word in words:
            if word in seen:
                continue
            seen.add(word)
            parts.extend(Contains(name, word) for name in WORD_FIELDS)
            parts.append(HasTag("keywords", word))

        return any_of(*parts)

    def resolve_sort(
        self,
        sort_by: Optional[str],
        sort_order: Optional[str],
        has_query: bool
    ) -> Tuple[SortField, SortOrder]:
        """
        Resolve raw sort parameters.

        An absent sort field means relevance when there is a text query and
        date otherwise. An unrecognised sort field degrades to date
        descending instead of failing.

        Args:
            sort_by: Raw sortBy parameter
            sort_order: Raw sortOrder parameter
            has_query: Whether the request carries a text query

        Returns:
            Tuple of (sort field, sort order)
        """
        order = self._parse_order(sort_order)
        raw = (sort_by or "").strip().lower()

        if not raw:
            field = SortField.RELEVANCE if has_query else SortField.DATE
        else:
            try:
                field = SortField(raw)
            except ValueError:
                logger.debug(f"Unknown sortBy {sort_by!r}, falling back to date desc")
                return SortField.DATE, SortOrder.DESC

        if field in (SortField.RELEVANCE, SortField.POPULARITY):
            order = SortOrder.DESC
        return field, order

    def ordering(self, sort_by: SortField, sort_order: SortOrder) -> Ordering:
        """
        Build the multi-key ordering for a resolved sort.

        Args:
            sort_by: Resolved sort field
            sort_order: Resolved sort direction

        Returns:
            Ordering with deterministic tiebreaks
        """
        desc = sort_order == SortOrder.DESC

        if sort_by == SortField.RELEVANCE:
            keys = (
                SortKey("average_rating", True),
                SortKey("review_count", True),
                SortKey("booking_count", True),
            )
        elif sort_by == SortField.POPULARITY:
            keys = (
                SortKey("booking_count", True),
                SortKey("view_count", True),
                SortKey("review_count", True),
            )
        elif sort_by == SortField.PRICE:
            keys = (SortKey("base_price", desc),)
        elif sort_by == SortField.RATING:
            keys = (SortKey("average_rating", desc), SortKey("review_count", True))
        elif sort_by == SortField.DURATION:
            keys = (SortKey("duration_days", desc),)
        else:
            keys = (SortKey("published_at", desc), SortKey("created_at", desc))

        return Ordering(keys)

    def plan(
        self,
        query: Optional[str],
        sort_by: Optional[str] = None,
        sort_order: Optional[str] = None
    ) -> RankingPlan:
        """Text predicate and ordering for one request."""
        field, order = self.resolve_sort(sort_by, sort_order, has_query=bool(tokenize(query)))
        return RankingPlan(
            predicate=self.text_match(query),
            ordering=self.ordering(field, order),
            sort_by=field,
            sort_order=order,
        )

    @staticmethod
    def _parse_order(raw: Optional[str]) -> SortOrder:
        try:
            return SortOrder((raw or "desc").strip().lower())
        except ValueError:
            return SortOrder.DESC
