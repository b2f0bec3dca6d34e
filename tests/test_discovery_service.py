"""
Tests for the discovery pipeline.
"""

import asyncio

import pytest
from hypothesis import given, settings, strategies as st

from discovery.analytics import InMemoryAnalyticsStore
from discovery.catalog import InMemoryCatalogAccessor, load_sample_catalog
from discovery.error_handling import InvalidFilter, InvalidRequest, UpstreamUnavailable
from discovery.models import FilterSet, SearchRequest, SortField

from conftest import FakeRedis, FlakyAccessor, make_service, run_async


ITEMS = load_sample_catalog()
PUBLISHED = [item for item in ITEMS if item.status.value == "PUBLISHED"]


@given(
    page=st.one_of(st.none(), st.integers(min_value=-5, max_value=10), st.text(max_size=4)),
    limit=st.one_of(st.none(), st.integers(min_value=-5, max_value=200), st.text(max_size=4)),
    sort_by=st.one_of(st.none(), st.sampled_from(["price", "rating", "date", "duration", "popularity", "nope"])),
)
@settings(max_examples=100, deadline=None)
def test_listing_pages_are_consistent(page, limit, sort_by):
    """
    **Feature: catalog-discovery, Property 2: Page shape**

    For any page and limit input, the listing never fails and returns at most
    ``limit`` items with metadata consistent with the total.
    """
    service = make_service(ITEMS)
    result = run_async(service.list_catalog(SearchRequest(page=page, limit=limit, sort_by=sort_by)))

    meta = result.pagination
    assert meta.total == len(PUBLISHED)
    assert len(result.data) <= meta.limit
    assert len(result.data) == max(0, min(meta.limit, meta.total - (meta.page - 1) * meta.limit))
    assert meta.has_prev_page == (meta.page > 1)
    assert meta.has_next_page == (meta.page < meta.total_pages)


def test_listing_defaults():
    service = make_service(ITEMS)
    result = run_async(service.list_catalog(SearchRequest()))

    assert result.sort_by == SortField.DATE
    assert result.sort_order.value == "desc"
    assert result.filters == {"status": "PUBLISHED"}
    published_at = [item.published_at for item in result.data]
    assert published_at == sorted(published_at, reverse=True)


def test_search_requires_query():
    service = make_service(ITEMS)

    with pytest.raises(InvalidRequest) as exc_info:
        run_async(service.search(SearchRequest(query="   ")))

    assert exc_info.value.field == "q"


def test_search_price_ascending():
    service = make_service(ITEMS)
    result = run_async(service.search(SearchRequest(query="haunted", sort_by="price", sort_order="asc")))

    prices = [item.base_price for item in result.data]
    assert prices == sorted(prices)
    assert result.pagination.total == 4


def test_search_is_stable_across_runs():
    service = make_service(ITEMS)
    request = SearchRequest(query="dark history", limit=3, page=1)

    first = run_async(service.search(request))
    second = run_async(service.search(request))

    assert first.ids == second.ids


def test_search_records_analytics_for_zero_results():
    store = InMemoryAnalyticsStore()
    service = make_service(ITEMS, store=store)

    async def scenario():
        result = await service.search(SearchRequest(query="xyznonexistentquery123", caller_id="u-7"))
        await service.analytics.drain()
        return result

    result = run_async(scenario())

    assert result.pagination.total == 0
    assert result.data == []
    assert len(store.records) == 1
    assert store.records[0].result_count == 0
    assert store.records[0].user_id == "u-7"


def test_invalid_filter_propagates():
    service = make_service(ITEMS)

    with pytest.raises(InvalidFilter):
        run_async(service.list_catalog(SearchRequest(filters=FilterSet(min_price="lots"))))


def test_failing_catalog_surfaces_upstream_unavailable(settings):
    accessor = FlakyAccessor(ITEMS, fail_times=100)
    service = make_service(ITEMS, settings=settings, accessor=accessor)

    with pytest.raises(UpstreamUnavailable):
        run_async(service.list_catalog(SearchRequest()))


def test_transient_catalog_failure_recovers(settings):
    accessor = FlakyAccessor(ITEMS, fail_times=1)
    service = make_service(ITEMS, settings=settings, accessor=accessor)

    result = run_async(service.list_catalog(SearchRequest()))

    assert result.pagination.total == len(PUBLISHED)


def test_cached_payload_round_trip():
    redis = FakeRedis()
    service = make_service(ITEMS, redis_client=redis)
    key = service.cache_key("/catalog", [("page", "1")])

    async def compute():
        return await service.list_catalog(SearchRequest(page=1))

    first, first_hit = run_async(service.cached_payload("GET", key, 60, compute))
    second, second_hit = run_async(service.cached_payload("GET", key, 60, compute))

    assert (first_hit, second_hit) == (False, True)
    assert first == second
    assert redis.data[key] == first


def test_non_get_requests_bypass_cache():
    redis = FakeRedis()
    service = make_service(ITEMS, redis_client=redis)
    key = service.cache_key("/catalog")

    async def compute():
        return await service.list_catalog(SearchRequest())

    _, hit = run_async(service.cached_payload("POST", key, 60, compute))

    assert hit is False
    assert redis.data == {}
    assert "get" not in redis.commands


def test_concurrent_misses_store_one_consistent_entry():
    """Two identical concurrent misses both compute and leave one valid entry."""
    redis = FakeRedis()
    service = make_service(ITEMS, redis_client=redis)
    key = service.cache_key("/catalog/search", [("q", "haunted")])

    async def compute():
        await asyncio.sleep(0.01)
        return await service.search(SearchRequest(query="haunted"))

    async def scenario():
        return await asyncio.gather(
            service.cached_payload("GET", key, 60, compute),
            service.cached_payload("GET", key, 60, compute),
        )

    (first, first_hit), (second, second_hit) = run_async(scenario())

    assert not first_hit and not second_hit
    assert first == second
    assert list(redis.data) == [key]
    assert redis.data[key] == first


def test_failed_compute_is_not_cached():
    redis = FakeRedis()
    service = make_service(ITEMS, redis_client=redis)
    key = service.cache_key("/catalog/search", [])

    async def compute():
        return await service.search(SearchRequest())

    with pytest.raises(InvalidRequest):
        run_async(service.cached_payload("GET", key, 60, compute))

    assert redis.data == {}


def test_catalog_change_invalidates_cached_responses():
    redis = FakeRedis()
    service = make_service(ITEMS, redis_client=redis)
    redis.data["cache:/catalog?page=1"] = "{}"
    redis.data["cache:/catalog/search?q=salem"] = "{}"

    assert run_async(service.catalog_changed("hol-salem-witch-trials")) == 2
    assert redis.data == {}


def test_popular_searches_after_recorded_searches():
    store = InMemoryAnalyticsStore()
    service = make_service(ITEMS, store=store)

    async def scenario():
        for query in ("haunted", "Haunted", "salem", "xyznonexistentquery123"):
            await service.search(SearchRequest(query=query))
        await service.analytics.drain()
        return await service.popular_searches("5")

    popular = run_async(scenario())

    assert [(p.term, p.search_count) for p in popular] == [("haunted", 2), ("salem", 1)]
    assert popular[0].avg_results == 4.0


def test_failed_count_cancels_pending_find(settings):
    """When one catalog query gives up, the other one is not left running."""

    class CountFailsAccessor(InMemoryCatalogAccessor):
        find_cancelled = False

        async def count(self, predicate):
            raise ConnectionResetError("connection reset by peer")

        async def find(self, predicate, ordering, offset, limit):
            try:
                await asyncio.sleep(10)
            except asyncio.CancelledError:
                self.find_cancelled = True
                raise

    accessor = CountFailsAccessor(ITEMS)
    service = make_service(ITEMS, settings=settings, accessor=accessor)

    async def scenario():
        with pytest.raises(UpstreamUnavailable):
            await service.list_catalog(SearchRequest())
        await asyncio.sleep(0.01)
        return accessor.find_cancelled

    assert run_async(scenario()) is True
