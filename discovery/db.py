"""
Store connections and initialization.

Builds the process-wide resources (asyncpg pool, Redis client, catalog
accessor, analytics store) at startup and closes them at shutdown. They are
handed to the application explicitly rather than kept in module globals.
"""

import logging
from dataclasses import dataclass
from typing import Optional

import asyncpg
import redis.asyncio as redis
from redis.exceptions import RedisError

from discovery.analytics import (
    AnalyticsRecorder,
    AnalyticsStore,
    InMemoryAnalyticsStore,
    PostgresAnalyticsStore,
)
from discovery.caching import ResponseCache
from discovery.catalog import (
    CatalogAccessor,
    InMemoryCatalogAccessor,
    PostgresCatalogAccessor,
    load_sample_catalog,
)
from discovery.config import DiscoverySettings
from discovery.services import DiscoveryService

logger = logging.getLogger(__name__)


@dataclass
class Resources:
    """Shared connections and the adapters built on them."""
    accessor: CatalogAccessor
    analytics_store: AnalyticsStore
    redis_client: redis.Redis
    pg_pool: Optional[asyncpg.Pool] = None


async def init_resources(settings: DiscoverySettings) -> Resources:
    """Initialize store connections for the configured catalog backend"""
    catalog = settings.catalog
    pg_pool = None

    if catalog.backend == "memory":
        accessor = InMemoryCatalogAccessor(load_sample_catalog(catalog.sample_catalog_path or None))
        analytics_store = InMemoryAnalyticsStore()
        logger.info("Using in-memory catalog backend")
    else:
        try:
            pg_pool = await asyncpg.create_pool(
                catalog.database_url,
                min_size=catalog.min_pool_size,
                max_size=catalog.max_pool_size,
            )
            logger.info("PostgreSQL connection pool created")

            await create_tables(pg_pool)
        except Exception as e:
            logger.error(f"Failed to connect to PostgreSQL: {e}")
            raise
        accessor = PostgresCatalogAccessor(pg_pool, timeout=catalog.query_timeout_seconds)
        analytics_store = PostgresAnalyticsStore(pg_pool, timeout=catalog.query_timeout_seconds)

    # Redis (cache and rate limiting fail open, so an unreachable server is not fatal)
    redis_client = redis.from_url(settings.cache.redis_url, decode_responses=True)
    try:
        await redis_client.ping()
        logger.info("Redis connection established")
    except (RedisError, OSError) as e:
        logger.warning(f"Redis unavailable at startup, cache and rate limits will fail open: {e}")

    return Resources(
        accessor=accessor,
        analytics_store=analytics_store,
        redis_client=redis_client,
        pg_pool=pg_pool,
    )


async def close_resources(resources: Resources) -> None:
    """Close store connections"""
    await resources.accessor.close()

    if resources.pg_pool:
        await resources.pg_pool.close()
        logger.info("PostgreSQL connection pool closed")

    if resources.redis_client:
        await resources.redis_client.aclose()
        logger.info("Redis connection closed")


async def create_tables(pool: asyncpg.Pool) -> None:
    """Create database tables if they don't exist"""
    async with pool.acquire() as conn:
        # Holidays table (owned by the catalog CRUD subsystem; created here for local runs)
        await conn.execute("""
            CREATE TABLE IF NOT EXISTS holidays (
                id TEXT PRIMARY KEY,
                slug TEXT UNIQUE NOT NULL,
                title TEXT NOT NULL,
                subtitle TEXT,
                description TEXT NOT NULL DEFAULT '',
                short_description TEXT,
                theme TEXT NOT NULL,
                difficulty TEXT NOT NULL,
                country TEXT NOT NULL,
                city TEXT NOT NULL,
                region TEXT,
                base_price DOUBLE PRECISION NOT NULL,
                discount_price DOUBLE PRECISION,
                currency TEXT NOT NULL DEFAULT 'USD',
                duration_days INTEGER NOT NULL,
                duration_nights INTEGER NOT NULL DEFAULT 0,
                status TEXT NOT NULL DEFAULT 'DRAFT',
                view_count INTEGER NOT NULL DEFAULT 0,
                booking_count INTEGER NOT NULL DEFAULT 0,
                review_count INTEGER NOT NULL DEFAULT 0,
                average_rating DOUBLE PRECISION NOT NULL DEFAULT 0,
                published_at TIMESTAMP,
                created_at TIMESTAMP NOT NULL DEFAULT NOW(),
                start_date DATE,
                end_date DATE,
                is_year_round BOOLEAN NOT NULL DEFAULT FALSE,
                keywords TEXT[] NOT NULL DEFAULT '{}',
                cover_image TEXT
            )
        """)

        await conn.execute("""
            CREATE INDEX IF NOT EXISTS idx_holidays_status ON holidays(status);
        """)

        await conn.execute("""
            CREATE INDEX IF NOT EXISTS idx_holidays_base_price ON holidays(base_price);
        """)

        await conn.execute("""
            CREATE INDEX IF NOT EXISTS idx_holidays_published_at ON holidays(published_at);
        """)

        # Search analytics table
        await conn.execute("""
            CREATE TABLE IF NOT EXISTS search_analytics (
                id SERIAL PRIMARY KEY,
                term TEXT NOT NULL,
                result_count INTEGER NOT NULL,
                filters JSONB NOT NULL DEFAULT '{}',
                user_id TEXT,
                searched_at TIMESTAMP NOT NULL DEFAULT NOW()
            )
        """)

        await conn.execute("""
            CREATE INDEX IF NOT EXISTS idx_search_analytics_term_time
            ON search_analytics(term, searched_at);
        """)

        logger.info("Database tables created/verified")


def build_discovery_service(settings: DiscoverySettings, resources: Resources) -> DiscoveryService:
    """Wire the discovery service onto initialized resources"""
    cache = ResponseCache(
        resources.redis_client,
        key_prefix=settings.cache.key_prefix,
        default_ttl=settings.cache.listing_ttl,
        timeout_seconds=settings.cache.timeout_seconds,
    )
    analytics = AnalyticsRecorder(
        resources.analytics_store,
        window_days=settings.analytics.popular_window_days,
        default_limit=settings.analytics.popular_default_limit,
    )
    return DiscoveryService(
        accessor=resources.accessor,
        analytics=analytics,
        settings=settings,
        cache=cache,
    )
