"""Middleware registration."""

from fastapi import FastAPI

from commitquest.config import Settings
from commitquest.middleware.cors import setup_cors
from commitquest.middleware.error_handler import setup_error_handlers
from commitquest.middleware.logging import setup_logging
from commitquest.middleware.rate_limit import RateLimitMiddleware
from commitquest.middleware.request_id import RequestIdMiddleware


def setup_middleware(app: FastAPI, settings: Settings) -> None:
    """Install logging, error mapping and the middleware stack.

    Starlette runs middleware outermost-last-added, so the order below is
    CORS -> request id -> rate limit -> routes. A limit of 0 requests turns
    rate limiting off.
    """
    setup_logging(settings)
    setup_error_handlers(app)
    if settings.rate_limit_requests > 0:
        app.add_middleware(
            RateLimitMiddleware,
            requests_per_window=settings.rate_limit_requests,
            window_seconds=settings.rate_limit_window_seconds,
        )
    app.add_middleware(RequestIdMiddleware)
    # CORS outermost so 429s and error responses carry the headers too
    setup_cors(app, settings)
