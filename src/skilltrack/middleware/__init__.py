"""Middleware registration."""

from fastapi import FastAPI

from skilltrack.config import Settings
from skilltrack.middleware.cors import setup_cors
from skilltrack.middleware.error_handler import setup_error_handlers
from skilltrack.middleware.logging import setup_logging
from skilltrack.middleware.rate_limit import RateLimitMiddleware
from skilltrack.middleware.request_id import RequestIdMiddleware


def setup_middleware(app: FastAPI, settings: Settings) -> None:
    """Register all middleware.

    Starlette runs middleware in reverse-add order, so CORS (added last) is
    outermost and also wraps 429 responses from the rate limiter.
    """
    setup_logging(settings)
    setup_error_handlers(app, debug=settings.debug)
    app.add_middleware(
        RateLimitMiddleware,
        requests_per_window=settings.rate_limit_requests,
        window_seconds=settings.rate_limit_window_seconds,
    )
    app.add_middleware(RequestIdMiddleware)
    setup_cors(app, settings)
