"""
FastAPI main application for the Eerie Escapes catalog discovery engine.
"""

# Load environment variables from .env file
from dotenv import load_dotenv
load_dotenv()

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager
from typing import Optional
import logging

from discovery import __version__
from discovery.config import DISCOVERY_CONFIG, DiscoverySettings, get_discovery_settings
from discovery.db import Resources, build_discovery_service, close_resources, init_resources
from discovery.error_handling import install_exception_handlers
from discovery.rate_limiting import RateLimiter
from discovery.routers import catalog

# Configure logging
logging.basicConfig(
    level=getattr(logging, DISCOVERY_CONFIG["log_level"].upper(), logging.INFO),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


def attach_components(app: FastAPI, settings: DiscoverySettings, resources: Resources) -> None:
    """Build the service and rate limiter and expose them on ``app.state``."""
    service = build_discovery_service(settings, resources)
    app.state.settings = settings
    app.state.resources = resources
    app.state.discovery_service = service
    app.state.analytics = service.analytics
    app.state.rate_limiter = RateLimiter(
        resources.redis_client,
        max_requests=settings.rate_limiting.max_requests,
        window_seconds=settings.rate_limiting.window_seconds,
        timeout_seconds=settings.cache.timeout_seconds,
    )


def create_app(
    settings: Optional[DiscoverySettings] = None,
    resources: Optional[Resources] = None
) -> FastAPI:
    """
    Create the discovery API.

    Args:
        settings: Settings to use (read from the environment when omitted)
        resources: Pre-built resources; when given, the app uses them and
            leaves closing them to the caller

    Returns:
        Configured FastAPI application
    """
    settings = settings or get_discovery_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Startup and shutdown events"""
        # Startup
        logger.info("Starting Eerie Escapes discovery API...")
        owned = resources is None
        active = resources if resources is not None else await init_resources(settings)
        attach_components(app, settings, active)
        logger.info("Discovery resources initialized")

        yield

        # Shutdown
        logger.info("Shutting down Eerie Escapes discovery API...")
        await app.state.analytics.drain()
        if owned:
            await close_resources(active)

    app = FastAPI(
        title="Eerie Escapes Discovery API",
        description="Search, filtering, ranking and suggestions for the dark tourism holiday catalog",
        version=__version__,
        lifespan=lifespan
    )

    # CORS middleware - allow all origins for development
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    install_exception_handlers(app)
    app.include_router(catalog.router)
    if settings.cache.http_invalidation:
        app.include_router(catalog.cache_router)

    @app.get("/health")
    async def health_check():
        """Health check endpoint"""
        return {
            "status": "healthy",
            "version": __version__
        }

    @app.get("/")
    async def root():
        """Root endpoint"""
        return {
            "message": "Eerie Escapes Discovery API",
            "docs": "/docs",
            "health": "/health",
            "catalog": "/catalog"
        }

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("discovery.main:app", host="0.0.0.0", port=8000)
