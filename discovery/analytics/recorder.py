"""
Analytics recorder.

Records each search without making the caller wait for the write, and
serves trailing-window popular-search rollups.
"""

import asyncio
import logging
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, List, Optional, Set

from discovery.error_handling.errors import AnalyticsFailure
from discovery.models import PopularTerm, SearchAnalyticsRecord
from .stores import AnalyticsStore

logger = logging.getLogger(__name__)

MAX_POPULAR_LIMIT = 50


def normalize_term(term: Optional[str]) -> str:
    """Lower-case a search term and collapse its whitespace."""
    if not term:
        return ""
    return " ".join(term.lower().split())


class AnalyticsRecorder:
    """
    Fire-and-forget search analytics.

    ``record`` schedules the write as its own task and returns immediately.
    Write failures are logged as AnalyticsFailure and never reach the
    caller. Pending writes are tracked so shutdown can ``drain`` them.
    """

    def __init__(
        self,
        store: AnalyticsStore,
        window_days: int = 30,
        default_limit: int = 10,
        clock: Callable[[], datetime] = datetime.now
    ):
        """
        Args:
            store: Where records are written and aggregated
            window_days: Trailing window of popular-term rollups
            default_limit: Number of popular terms when no limit is given
            clock: Source of the current time
        """
        self.store = store
        self.window_days = window_days
        self.default_limit = default_limit
        self.clock = clock
        self._pending: Set[asyncio.Task] = set()

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    def record(
        self,
        term: str,
        result_count: int,
        filters: Optional[Dict[str, Any]] = None,
        user_id: Optional[str] = None
    ) -> Optional[asyncio.Task]:
        """
        Schedule one search analytics write.

        Must be called from a running event loop. Blank terms are not
        recorded.

        Args:
            term: Raw search term
            result_count: Total matches of the search
            filters: Snapshot of the applied filters
            user_id: Caller identity, if known

        Returns:
            The scheduled task, or None if nothing was recorded
        """
        normalized = normalize_term(term)
        if not normalized:
            return None

        record = SearchAnalyticsRecord(
            term=normalized,
            result_count=max(0, result_count),
            filters=dict(filters or {}),
            user_id=user_id,
            searched_at=self.clock(),
        )
        task = asyncio.create_task(self._write(record))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return task

    async def _write(self, record: SearchAnalyticsRecord) -> None:
        try:
            await self.store.insert(record)
            logger.debug(f"Recorded search '{record.term}' ({record.result_count} results)")
        except Exception as e:
            failure = AnalyticsFailure(f"{type(e).__name__}: {e}", term=record.term)
            logger.error(f"Failed to record search analytics for '{failure.term}': {failure.message}")

    async def drain(self) -> None:
        """Wait for every pending analytics write to finish."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    async def popular_terms(
        self,
        limit: Optional[int] = None,
        window_days: Optional[int] = None
    ) -> List[PopularTerm]:
        """
        Most searched terms over the trailing window.

        Only searches that returned at least one result count.

        Args:
            limit: Maximum number of terms (clamped to 1..50)
            window_days: Override of the trailing window length

        Returns:
            PopularTerm list ordered by search count descending
        """
        limit = min(max(1, limit or self.default_limit), MAX_POPULAR_LIMIT)
        since = self.clock() - timedelta(days=window_days or self.window_days)
        return await self.store.popular_terms(since, limit)
