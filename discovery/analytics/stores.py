"""
Search analytics stores.

Append-only persistence of SearchAnalyticsRecord rows plus the trailing
window rollup behind the popular-searches endpoint.
"""

import json
import logging
from abc import ABC, abstractmethod
from collections import defaultdict
from datetime import datetime
from typing import Dict, List, Optional

import asyncpg

from discovery.models import PopularTerm, SearchAnalyticsRecord

logger = logging.getLogger(__name__)


class AnalyticsStore(ABC):
    """Where search analytics records are written and aggregated."""

    @abstractmethod
    async def insert(self, record: SearchAnalyticsRecord) -> None:
        """Append one record."""

    @abstractmethod
    async def popular_terms(self, since: datetime, limit: int) -> List[PopularTerm]:
        """
        Terms searched since ``since`` whose searches returned results.

        Grouped by term, ordered by search count descending then term.
        """


class InMemoryAnalyticsStore(AnalyticsStore):
    """Analytics store held in process memory (local runs and tests)."""

    def __init__(self):
        self.records: List[SearchAnalyticsRecord] = []

    async def insert(self, record: SearchAnalyticsRecord) -> None:
        self.records.append(record)

    async def popular_terms(self, since: datetime, limit: int) -> List[PopularTerm]:
        grouped: Dict[str, List[int]] = defaultdict(list)
        for record in self.records:
            if record.result_count >= 1 and record.searched_at >= since:
                grouped[record.term].append(record.result_count)

        ranked = sorted(grouped.items(), key=lambda entry: (-len(entry[1]), entry[0]))
        return [
            PopularTerm(
                term=term,
                search_count=len(counts),
                avg_results=round(sum(counts) / len(counts), 2),
            )
            for term, counts in ranked[:limit]
        ]


class PostgresAnalyticsStore(AnalyticsStore):
    """Analytics store on the ``search_analytics`` table."""

    def __init__(self, pool: asyncpg.Pool, timeout: Optional[float] = 5.0):
        self.pool = pool
        self.timeout = timeout

    async def insert(self, record: SearchAnalyticsRecord) -> None:
        await self.pool.execute(
            """
            INSERT INTO search_analytics (term, result_count, filters, user_id, searched_at)
            VALUES ($1, $2, $3::jsonb, $4, $5)
            """,
            record.term,
            record.result_count,
            json.dumps(record.filters, default=str),
            record.user_id,
            record.searched_at,
            timeout=self.timeout,
        )

    async def popular_terms(self, since: datetime, limit: int) -> List[PopularTerm]:
        rows = await self.pool.fetch(
            """
            SELECT term,
                   COUNT(*) AS search_count,
                   ROUND(AVG(result_count)::numeric, 2)::float8 AS avg_results
            FROM search_analytics
            WHERE result_count >= 1 AND searched_at >= $1
            GROUP BY term
            ORDER BY search_count DESC, term ASC
            LIMIT $2
            """,
            since,
            limit,
            timeout=self.timeout,
        )
        return [
            PopularTerm(
                term=row["term"],
                search_count=row["search_count"],
                avg_results=row["avg_results"],
            )
            for row in rows
        ]
