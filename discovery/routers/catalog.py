"""
Catalog discovery routes.
"""

import logging
from typing import Iterable, Optional

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import JSONResponse, Response

from discovery.config import DiscoverySettings
from discovery.error_handling import InvalidRequest, QuotaExceeded, rate_limit_headers
from discovery.models import FilterSet, PopularTermList, SearchRequest, SuggestionList
from discovery.rate_limiting import RateLimiter, RateLimitResult
from discovery.services import DiscoveryService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/catalog", tags=["catalog"])

# Mounted only when settings.cache.http_invalidation is on
cache_router = APIRouter(prefix="/catalog/cache", tags=["cache"])


def caller_identity(request: Request, trusted_proxies: Iterable[str] = ()) -> str:
    """
    Network identity a request's quota is charged to.

    The socket peer, unless the peer is a trusted proxy: then the nearest
    X-Forwarded-For hop that is not itself a trusted proxy. Client-supplied
    headers from untrusted peers are ignored.
    """
    trusted = set(trusted_proxies)
    peer = request.client.host if request.client and request.client.host else "anonymous"
    if peer not in trusted:
        return peer

    hops = [hop.strip() for hop in request.headers.get("x-forwarded-for", "").split(",")]
    for hop in reversed([hop for hop in hops if hop]):
        if hop not in trusted:
            return hop
    return peer


def get_service(request: Request) -> DiscoveryService:
    return request.app.state.discovery_service


def get_settings(request: Request) -> DiscoverySettings:
    return request.app.state.settings


async def enforce_rate_limit(request: Request) -> RateLimitResult:
    """Count the request against the caller's quota; reject when exhausted."""
    limiter: RateLimiter = request.app.state.rate_limiter
    trusted = request.app.state.settings.rate_limiting.trusted_proxies
    result = await limiter.check(caller_identity(request, trusted))
    if not result.allowed:
        raise QuotaExceeded(
            limit=result.limit,
            remaining=result.remaining,
            reset_at=result.reset_at,
            retry_after=result.retry_after,
        )
    return result


def payload_response(payload: str, cache_hit: bool, quota: RateLimitResult) -> Response:
    """Wrap a serialized payload with cache and quota headers."""
    headers = rate_limit_headers(quota.limit, quota.remaining, quota.reset_at)
    headers["X-Cache"] = "HIT" if cache_hit else "MISS"
    return Response(content=payload, media_type="application/json", headers=headers)


@router.get("")
async def list_catalog(
    request: Request,
    country: Optional[str] = None,
    city: Optional[str] = None,
    region: Optional[str] = None,
    theme: Optional[str] = None,
    difficulty: Optional[str] = None,
    start_date: Optional[str] = Query(None, alias="startDate"),
    end_date: Optional[str] = Query(None, alias="endDate"),
    min_price: Optional[str] = Query(None, alias="minPrice"),
    max_price: Optional[str] = Query(None, alias="maxPrice"),
    min_duration: Optional[str] = Query(None, alias="minDuration"),
    max_duration: Optional[str] = Query(None, alias="maxDuration"),
    status: Optional[str] = None,
    sort_by: Optional[str] = Query(None, alias="sortBy"),
    sort_order: Optional[str] = Query(None, alias="sortOrder"),
    page: Optional[str] = None,
    limit: Optional[str] = None,
    quota: RateLimitResult = Depends(enforce_rate_limit),
    service: DiscoveryService = Depends(get_service),
    settings: DiscoverySettings = Depends(get_settings),
):
    """
    Filtered, sorted, paginated catalog listing.

    Defaults: status=published, sortBy=date, sortOrder=desc, page=1, limit=10.
    """
    search_request = SearchRequest(
        filters=FilterSet(
            country=country,
            city=city,
            region=region,
            theme=theme,
            difficulty=difficulty,
            start_date=start_date,
            end_date=end_date,
            min_price=min_price,
            max_price=max_price,
            min_duration=min_duration,
            max_duration=max_duration,
            status=status,
        ),
        sort_by=sort_by,
        sort_order=sort_order,
        page=page,
        limit=limit,
        caller_id=request.headers.get("x-user-id"),
    )

    async def compute():
        return await service.list_catalog(search_request)

    key = service.cache_key(request.url.path, request.query_params.multi_items())
    payload, hit = await service.cached_payload(
        request.method, key, settings.cache.listing_ttl, compute
    )
    return payload_response(payload, hit, quota)


@router.get("/search")
async def search_catalog(
    request: Request,
    q: Optional[str] = None,
    theme: Optional[str] = None,
    difficulty: Optional[str] = None,
    country: Optional[str] = None,
    city: Optional[str] = None,
    region: Optional[str] = None,
    min_price: Optional[str] = Query(None, alias="minPrice"),
    max_price: Optional[str] = Query(None, alias="maxPrice"),
    min_duration: Optional[str] = Query(None, alias="minDuration"),
    max_duration: Optional[str] = Query(None, alias="maxDuration"),
    min_rating: Optional[str] = Query(None, alias="minRating"),
    sort_by: Optional[str] = Query(None, alias="sortBy"),
    sort_order: Optional[str] = Query(None, alias="sortOrder"),
    page: Optional[str] = None,
    limit: Optional[str] = None,
    quota: RateLimitResult = Depends(enforce_rate_limit),
    service: DiscoveryService = Depends(get_service),
    settings: DiscoverySettings = Depends(get_settings),
):
    """
    Free-text search over published items.

    1. Validates the query (missing or blank q is a 400)
    2. Serves a cached payload when one exists
    3. Otherwise compiles filters and text match, queries the catalog
    4. Records the search in analytics (without waiting for the write)
    5. Caches the serialized payload
    """
    if not (q or "").strip():
        raise InvalidRequest("q", "Search query is required")

    search_request = SearchRequest(
        query=q,
        filters=FilterSet(
            country=country,
            city=city,
            region=region,
            theme=theme,
            difficulty=difficulty,
            min_price=min_price,
            max_price=max_price,
            min_duration=min_duration,
            max_duration=max_duration,
            min_rating=min_rating,
        ),
        sort_by=sort_by,
        sort_order=sort_order,
        page=page,
        limit=limit,
        caller_id=request.headers.get("x-user-id"),
    )

    async def compute():
        return await service.search(search_request)

    key = service.cache_key(request.url.path, request.query_params.multi_items())
    payload, hit = await service.cached_payload(
        request.method, key, settings.cache.search_ttl, compute
    )
    if hit:
        logger.info(f"Cache hit for query: {q}")
    return payload_response(payload, hit, quota)


@router.get("/search/suggestions")
async def search_suggestions(
    request: Request,
    q: Optional[str] = None,
    limit: Optional[str] = None,
    quota: RateLimitResult = Depends(enforce_rate_limit),
    service: DiscoveryService = Depends(get_service),
    settings: DiscoverySettings = Depends(get_settings),
):
    """Autocomplete suggestions (item titles, then locations)."""

    async def compute():
        return SuggestionList(data=await service.suggest(q, limit))

    key = service.cache_key(request.url.path, request.query_params.multi_items())
    payload, hit = await service.cached_payload(
        request.method, key, settings.cache.suggestions_ttl, compute
    )
    return payload_response(payload, hit, quota)


@router.get("/search/popular")
async def popular_searches(
    request: Request,
    limit: Optional[str] = None,
    quota: RateLimitResult = Depends(enforce_rate_limit),
    service: DiscoveryService = Depends(get_service),
    settings: DiscoverySettings = Depends(get_settings),
):
    """Most searched terms over the trailing window."""

    async def compute():
        return PopularTermList(
            data=await service.popular_searches(limit),
            window_days=settings.analytics.popular_window_days,
        )

    key = service.cache_key(request.url.path, request.query_params.multi_items())
    payload, hit = await service.cached_payload(
        request.method, key, settings.cache.popular_ttl, compute
    )
    return payload_response(payload, hit, quota)


@cache_router.post("/invalidate")
async def invalidate_cache(
    pattern: Optional[str] = None,
    quota: RateLimitResult = Depends(enforce_rate_limit),
    service: DiscoveryService = Depends(get_service),
    settings: DiscoverySettings = Depends(get_settings),
):
    """Drop cached discovery responses (all of them unless a pattern is given)."""
    if pattern and not pattern.startswith(settings.cache.key_prefix):
        raise InvalidRequest(
            "pattern", f"Pattern must start with '{settings.cache.key_prefix}'"
        )

    removed = await service.invalidate_cache(pattern)
    return JSONResponse(
        content={"success": True, "invalidated": removed},
        headers=rate_limit_headers(quota.limit, quota.remaining, quota.reset_at),
    )
