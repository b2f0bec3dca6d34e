"""
FastAPI exception handlers mapping the discovery error taxonomy to HTTP.
"""

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from .errors import DiscoveryError, QuotaExceeded

logger = logging.getLogger(__name__)


def rate_limit_headers(limit: int, remaining: int, reset_at: int) -> dict:
    """Quota headers attached to every discovery response."""
    return {
        "X-RateLimit-Limit": str(limit),
        "X-RateLimit-Remaining": str(remaining),
        "X-RateLimit-Reset": str(reset_at),
    }


async def discovery_error_handler(request: Request, exc: DiscoveryError) -> JSONResponse:
    """Render a DiscoveryError as ``{"success": false, "error": {...}}``."""
    if exc.status_code >= 500:
        logger.error(f"{exc.code} on {request.method} {request.url.path}: {exc.message}")
    else:
        logger.info(f"{exc.code} on {request.method} {request.url.path}: {exc.message}")

    headers = {}
    if isinstance(exc, QuotaExceeded):
        headers = rate_limit_headers(exc.limit, exc.remaining, exc.reset_at)
        headers["Retry-After"] = str(exc.retry_after)

    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "error": exc.to_dict()},
        headers=headers,
    )


def install_exception_handlers(app: FastAPI) -> None:
    """Register the discovery error handlers on an application."""
    app.add_exception_handler(DiscoveryError, discovery_error_handler)
