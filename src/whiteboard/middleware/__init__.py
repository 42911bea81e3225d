"""Middleware registration."""

from fastapi import FastAPI

from whiteboard.config import Settings
from whiteboard.middleware.cors import setup_cors
from whiteboard.middleware.error_handler import setup_error_handlers
from whiteboard.middleware.logging import setup_logging
from whiteboard.middleware.rate_limit import RateLimitMiddleware
from whiteboard.middleware.request_id import RequestIdMiddleware


def setup_middleware(app: FastAPI, settings: Settings) -> None:
    """Register all middleware.

    Starlette runs middleware in reverse-add order, so CORS is added last to
    wrap the rate limiter's 429 responses.
    """
    setup_logging(settings)
    setup_error_handlers(app)
    app.add_middleware(
        RateLimitMiddleware,
        requests_per_window=settings.rate_limit_requests,
        window_seconds=settings.rate_limit_window_seconds,
    )
    app.add_middleware(RequestIdMiddleware)
    setup_cors(app, settings)
