"""
Discovery service - coordinates filter compilation, ranking, catalog access,
pagination, analytics and response caching for one discovery request.
"""

import asyncio
import logging
from typing import Awaitable, Callable, Iterable, List, Optional, Tuple

from pydantic import BaseModel

from discovery.analytics import AnalyticsRecorder
from discovery.caching import ResponseCache
from discovery.catalog import CatalogAccessor
from discovery.config import DiscoverySettings
from discovery.error_handling import ErrorHandler, InvalidRequest
from discovery.filtering import FilterCompiler, Predicate, all_of
from discovery.models import (
    CatalogItem,
    PopularTerm,
    RankedResultPage,
    SearchRequest,
    Suggestion,
)
from discovery.pagination import Pagination
from discovery.ranking import RankingPlan, RelevanceRanker
from .suggestion_engine import SuggestionEngine

logger = logging.getLogger(__name__)


class DiscoveryService:
    """Run the discovery pipeline against injected collaborators."""

    def __init__(
        self,
        accessor: CatalogAccessor,
        analytics: AnalyticsRecorder,
        settings: DiscoverySettings,
        cache: Optional[ResponseCache] = None,
        error_handler: Optional[ErrorHandler] = None
    ):
        """
        Args:
            accessor: Catalog store query interface
            analytics: Search analytics recorder
            settings: Discovery settings (page sizes, TTLs, retries)
            cache: Response cache; None disables caching
            error_handler: Upstream timeout/retry policy; built from
                settings when omitted
        """
        self.accessor = accessor
        self.analytics = analytics
        self.settings = settings
        self.cache = cache
        self.error_handler = error_handler or ErrorHandler(
            max_retries=settings.catalog.max_retries,
            timeout_seconds=settings.catalog.query_timeout_seconds,
        )
        self.filter_compiler = FilterCompiler()
        self.ranker = RelevanceRanker()
        self.suggestions = SuggestionEngine(accessor, self.error_handler)

    def paginate(self, request: SearchRequest) -> Pagination:
        return Pagination.clamp(
            request.page,
            request.limit,
            default_limit=self.settings.pagination.default_page_size,
            max_limit=self.settings.pagination.max_page_size,
        )

    async def list_catalog(self, request: SearchRequest) -> RankedResultPage:
        """
        Filtered, sorted, paginated catalog listing (no text query).

        Raises:
            InvalidFilter: If a filter value is malformed
            UpstreamUnavailable: If the catalog store is unavailable
        """
        compiled = self.filter_compiler.compile(request.filters)
        plan = self.ranker.plan(None, request.sort_by, request.sort_order)
        return await self._execute(compiled.predicate, plan, self.paginate(request), compiled.applied)

    async def search(self, request: SearchRequest) -> RankedResultPage:
        """
        Free-text search with structured filters.

        Every computed search is recorded in analytics, including searches
        with no results.

        Raises:
            InvalidRequest: If the query is missing or blank
            InvalidFilter: If a filter value is malformed
            UpstreamUnavailable: If the catalog store is unavailable
        """
        query = (request.query or "").strip()
        if not query:
            raise InvalidRequest("q", "Search query is required")

        compiled = self.filter_compiler.compile(request.filters)
        plan = self.ranker.plan(query, request.sort_by, request.sort_order)
        page = await self._execute(
            all_of(compiled.predicate, plan.predicate),
            plan,
            self.paginate(request),
            compiled.applied,
            query=query,
        )

        self.analytics.record(query, page.pagination.total, compiled.applied, request.caller_id)
        logger.info(f"Search '{query}' matched {page.pagination.total} items")
        return page

    async def suggest(self, fragment: Optional[str], limit=None) -> List[Suggestion]:
        """Autocomplete suggestions for a partial query."""
        return await self.suggestions.suggest(fragment, limit)

    async def popular_searches(self, limit=None) -> List[PopularTerm]:
        """Most searched terms over the configured trailing window."""
        try:
            limit = int(limit) if limit is not None else None
        except (TypeError, ValueError):
            limit = None
        return await self.analytics.popular_terms(limit=limit)

    async def _execute(
        self,
        predicate: Predicate,
        plan: RankingPlan,
        pagination: Pagination,
        applied: dict,
        query: Optional[str] = None
    ) -> RankedResultPage:
        count_task = asyncio.ensure_future(
            self.error_handler.call_upstream(self.accessor.count, predicate)
        )
        find_task = asyncio.ensure_future(
            self.error_handler.call_upstream(
                self.accessor.find, predicate, plan.ordering, pagination.offset, pagination.limit
            )
        )
        try:
            total, items = await asyncio.gather(count_task, find_task)
        except BaseException:
            # Stop the sibling query once the page cannot be built
            for task in (count_task, find_task):
                task.cancel()
            raise
        page_items: List[CatalogItem] = list(items)[:pagination.expected_count(total)]

        return RankedResultPage(
            data=page_items,
            pagination=pagination.meta(total),
            filters=applied,
            query=query,
            sort_by=plan.sort_by,
            sort_order=plan.sort_order,
        )

    # Response cache

    def cache_key(self, path: str, params: Iterable[Tuple[str, str]] = ()) -> Optional[str]:
        """Cache key of a request, or None when caching is disabled."""
        if self.cache is None:
            return None
        return self.cache.build_key(path, params)

    async def cached_payload(
        self,
        method: str,
        key: Optional[str],
        ttl: int,
        compute: Callable[[], Awaitable[BaseModel]]
    ) -> Tuple[str, bool]:
        """
        Serve a response payload from the cache or compute and store it.

        Only GET requests read or write the cache. A hit returns the stored
        string unchanged; a miss serializes the computed model once, stores
        that string and returns it. Errors from ``compute`` propagate and
        nothing is stored.

        Args:
            method: HTTP method of the request
            key: Cache key (None disables caching for this call)
            ttl: Entry time-to-live in seconds
            compute: Coroutine function producing the response model

        Returns:
            Tuple of (JSON payload, whether it came from the cache)
        """
        cacheable = method.upper() == "GET" and key is not None and self.cache is not None

        if cacheable:
            cached = await self.cache.get(key)
            if cached is not None:
                return cached, True

        model = await compute()
        payload = model.model_dump_json(by_alias=True)

        if cacheable:
            await self.cache.set(key, payload, ttl)
        return payload, False

    async def invalidate_cache(self, pattern: Optional[str] = None) -> int:
        """
        Drop cached discovery responses.

        Args:
            pattern: Key pattern; defaults to every discovery endpoint

        Returns:
            Number of entries removed
        """
        if self.cache is None:
            return 0
        if pattern:
            return await self.cache.invalidate(pattern)
        return await self.cache.invalidate_catalog()

    async def catalog_changed(self, item_id: Optional[str] = None) -> int:
        """Hook for the catalog mutation subsystem after any item change."""
        removed = await self.invalidate_cache()
        logger.info(f"Catalog changed ({item_id or 'bulk'}), invalidated {removed} cached responses")
        return removed
