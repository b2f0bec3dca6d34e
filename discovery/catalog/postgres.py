"""
Postgres catalog accessor.

Compiles predicates and orderings into parameterised SQL over the
``holidays`` table and runs them on an asyncpg pool.
"""

import logging
from enum import Enum
from typing import Any, List, Optional, Tuple

import asyncpg

from discovery.filtering.predicates import (
    AllOf,
    AnyOf,
    Contains,
    Equals,
    HasTag,
    MatchAll,
    Predicate,
    Range,
)
from discovery.models import CatalogItem
from discovery.ranking.relevance_ranker import Ordering
from .accessor import CatalogAccessor

logger = logging.getLogger(__name__)

TABLE = "holidays"

# Columns selected for CatalogItem rows (names match model fields)
ITEM_COLUMNS = (
    "id", "slug", "title", "subtitle", "description", "short_description", "theme",
    "difficulty", "country", "city", "region", "base_price", "discount_price",
    "currency", "duration_days", "duration_nights", "status", "view_count",
    "booking_count", "review_count", "average_rating", "published_at", "created_at",
    "start_date", "end_date", "is_year_round", "keywords", "cover_image",
)


def escape_like(value: str) -> str:
    """Escape LIKE wildcards so user input matches literally."""
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


class SqlCompiler:
    """Compiles a predicate tree into a WHERE clause with ``$n`` placeholders.

    Field names are validated by the predicate constructors and double as
    column names, so only values travel as parameters.
    """

    def __init__(self):
        self.params: List[Any] = []

    def param(self, value: Any) -> str:
        if isinstance(value, Enum):
            value = value.value
        self.params.append(value)
        return f"${len(self.params)}"

    def where(self, predicate: Predicate) -> str:
        if isinstance(predicate, MatchAll):
            return "TRUE"
        if isinstance(predicate, Contains):
            placeholder = self.param(f"%{escape_like(predicate.value)}%")
            return f"{predicate.field} ILIKE {placeholder} ESCAPE '\\'"
        if isinstance(predicate, HasTag):
            placeholder = self.param(predicate.value)
            return (
                f"EXISTS (SELECT 1 FROM unnest({predicate.field}) AS tag "
                f"WHERE lower(tag) = {placeholder})"
            )
        if isinstance(predicate, Equals):
            return f"{predicate.field} = {self.param(predicate.value)}"
        if isinstance(predicate, Range):
            bounds = []
            if predicate.lower is not None:
                bounds.append(f"{predicate.field} >= {self.param(predicate.lower)}")
            if predicate.upper is not None:
                bounds.append(f"{predicate.field} <= {self.param(predicate.upper)}")
            return "(" + " AND ".join(bounds) + ")"
        if isinstance(predicate, AnyOf):
            return "(" + " OR ".join(self.where(p) for p in predicate.parts) + ")"
        if isinstance(predicate, AllOf):
            return "(" + " AND ".join(self.where(p) for p in predicate.parts) + ")"
        raise TypeError(f"Unsupported predicate: {type(predicate).__name__}")

    @staticmethod
    def order_by(ordering: Ordering) -> str:
        return ", ".join(
            f"{key.field} {'DESC' if key.descending else 'ASC'} NULLS LAST"
            for key in ordering.keys
        )


def build_find_query(
    predicate: Predicate,
    ordering: Ordering,
    offset: int,
    limit: int
) -> Tuple[str, List[Any]]:
    """SQL and parameters for one ordered page of matching items."""
    compiler = SqlCompiler()
    where = compiler.where(predicate)
    limit_param = compiler.param(limit)
    offset_param = compiler.param(offset)
    sql = (
        f"SELECT {', '.join(ITEM_COLUMNS)} FROM {TABLE} "
        f"WHERE {where} "
        f"ORDER BY {compiler.order_by(ordering)} "
        f"LIMIT {limit_param} OFFSET {offset_param}"
    )
    return sql, compiler.params


def build_count_query(predicate: Predicate) -> Tuple[str, List[Any]]:
    """SQL and parameters counting matching items."""
    compiler = SqlCompiler()
    where = compiler.where(predicate)
    return f"SELECT COUNT(*) FROM {TABLE} WHERE {where}", compiler.params


def build_locations_query(predicate: Predicate, limit: int) -> Tuple[str, List[Any]]:
    """SQL and parameters for distinct (city, country) pairs."""
    compiler = SqlCompiler()
    where = compiler.where(predicate)
    limit_param = compiler.param(limit)
    sql = (
        f"SELECT city, country FROM {TABLE} WHERE {where} "
        f"GROUP BY city, country ORDER BY city ASC, country ASC LIMIT {limit_param}"
    )
    return sql, compiler.params


class PostgresCatalogAccessor(CatalogAccessor):
    """Catalog accessor backed by an asyncpg pool."""

    def __init__(self, pool: asyncpg.Pool, timeout: Optional[float] = 5.0):
        """
        Args:
            pool: Shared asyncpg pool (owned by the caller)
            timeout: Per-statement timeout in seconds
        """
        self.pool = pool
        self.timeout = timeout

    async def find(
        self,
        predicate: Predicate,
        ordering: Ordering,
        offset: int,
        limit: int
    ) -> List[CatalogItem]:
        sql, params = build_find_query(predicate, ordering, offset, limit)
        rows = await self.pool.fetch(sql, *params, timeout=self.timeout)
        return [CatalogItem.model_validate(dict(row)) for row in rows]

    async def count(self, predicate: Predicate) -> int:
        sql, params = build_count_query(predicate)
        return await self.pool.fetchval(sql, *params, timeout=self.timeout)

    async def distinct_locations(self, predicate: Predicate, limit: int) -> List[Tuple[str, str]]:
        sql, params = build_locations_query(predicate, limit)
        rows = await self.pool.fetch(sql, *params, timeout=self.timeout)
        return [(row["city"], row["country"]) for row in rows]
