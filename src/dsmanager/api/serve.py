"""API server for ``dsmanager serve``.

Builds the FastAPI app with CORS, the ``{error}`` exception handlers and the
versioned ``/api/v1/`` routers, and runs it under uvicorn.  A background task
sweeps idle clients out of the rate limiter once per window.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import AsyncIterator
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from fastapi import FastAPI

    from dsmanager.config import Settings
    from dsmanager.security.rate_limiter import SlidingWindowRateLimiter

logger = logging.getLogger(__name__)


async def _sweep_rate_limiter(limiter: SlidingWindowRateLimiter) -> None:
    while True:
        await asyncio.sleep(limiter.interval)
        removed = limiter.cleanup()
        if removed:
            logger.debug("Rate limiter sweep removed %d idle clients", removed)


def create_api_app(settings: Settings | None = None) -> FastAPI:
    """Build the FastAPI application."""
    from fastapi import FastAPI
    from fastapi.middleware.cors import CORSMiddleware

    from dsmanager import __version__
    from dsmanager.api.errors import install_error_handlers
    from dsmanager.api.v1 import mount_v1_routers
    from dsmanager.config import get_settings
    from dsmanager.security.rate_limiter import SlidingWindowRateLimiter

    settings = settings or get_settings()
    limiter = SlidingWindowRateLimiter(
        interval=settings.rate_limit_interval,
        limit=settings.rate_limit_limit,
        max_keys=settings.rate_limit_max_keys,
    )

    @contextlib.asynccontextmanager
    async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
        sweeper = asyncio.create_task(_sweep_rate_limiter(limiter))
        try:
            yield
        finally:
            sweeper.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await sweeper

    app = FastAPI(
        title="Datastore Manager API",
        description="Admin console backend for the Roblox Open Cloud Datastore API.",
        version=__version__,
        docs_url="/api/v1/docs",
        redoc_url="/api/v1/redoc",
        openapi_url="/api/v1/openapi.json",
        lifespan=lifespan,
    )
    # Read by the get_rate_limiter dependency.
    app.state.rate_limiter = limiter

    # Error handlers first: the catch-all middleware must sit inside CORS.
    install_error_handlers(app)

    # --- CORS -----------------------------------------------------------
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.api_cors_allowed_origins,
        allow_origin_regex=r"^https?://(localhost|127\.0\.0\.1)(:\d+)?$",
        allow_credentials=True,
        allow_methods=["GET", "POST", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "x-api-key"],
        expose_headers=[
            "X-RateLimit-Limit",
            "X-RateLimit-Remaining",
            "X-RateLimit-Reset",
            "Retry-After",
        ],
    )

    # --- Mount all /api/v1/ routers -------------------------------------
    mount_v1_routers(app)

    return app


def run_api_server(host: str = "127.0.0.1", port: int = 8888, dev: bool = False) -> None:
    """Start the API server."""
    import uvicorn

    logger.info("API docs: http://%s:%d/api/v1/docs", host, port)

    if dev:
        import pathlib

        src_dir = str(pathlib.Path(__file__).resolve().parent.parent)
        uvicorn.run(
            "dsmanager.api.serve:create_api_app",
            factory=True,
            host=host,
            port=port,
            reload=True,
            reload_dirs=[src_dir],
            reload_includes=["*.py"],
            log_level="debug",
        )
    else:
        app = create_api_app()
        uvicorn.run(app, host=host, port=port)
