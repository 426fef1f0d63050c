"""FastAPI application factory."""

from fastapi import FastAPI
from fastapi.middleware.gzip import GZipMiddleware

from .api import api_router
from .web import web_router
from .middleware.auth import AuthCookieMiddleware
from .middleware.headers import RealIPMiddleware
from .middleware.logging import LoggingMiddleware


def create_app(
    config,
    service_instance=None,
    deleter_instance=None,
    lifespan=None,
) -> FastAPI:
    """Create and configure FastAPI application.

    Service and deleter may be passed in directly (tests) or created by
    the lifespan handler, which stores them in ``app.state``.

    Args:
        config: Configuration instance
        service_instance: Service instance
        deleter_instance: URL deleter instance
        lifespan: Optional lifespan context manager

    Returns:
        Configured FastAPI app
    """
    app = FastAPI(
        title="URL Shortener",
        description="URL shortening service with batched background deletion",
        version="1.0.0",
        docs_url="/api/docs",
        redoc_url="/api/redoc",
        lifespan=lifespan,
    )

    app.state.config = config
    app.state.service = service_instance
    app.state.deleter = deleter_instance
    app.state.background_tasks = set()

    app.add_middleware(RealIPMiddleware)
    app.add_middleware(
        AuthCookieMiddleware,
        secret=config.auth_secret,
        token_ttl_seconds=config.auth_token_ttl_seconds,
    )
    app.add_middleware(LoggingMiddleware)
    app.add_middleware(GZipMiddleware, minimum_size=1000)

    app.include_router(api_router, prefix="/api", tags=["API"])
    app.include_router(web_router, tags=["Web"])

    return app
