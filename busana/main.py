"""FastAPI application entry point for Busana.

Run with ``uvicorn busana.main:create_app --factory``.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

from busana import __version__
from busana.config import BusanaConfig, StorageConfig, load_settings
from busana.database import close_db, init_db
from busana.routers import import_history, import_router
from busana.routers._common import (
    http_exception_handler,
    rate_limit_exceeded_handler,
    unhandled_exception_handler,
    validation_exception_handler,
)

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Middleware to add security headers to all responses."""

    def __init__(self, app, enforce_https: bool = False):
        super().__init__(app)
        self.enforce_https = enforce_https

    async def dispatch(self, request: Request, call_next) -> Response:
        response = await call_next(request)

        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        # JSON API only: nothing may be embedded or scripted
        response.headers["Content-Security-Policy"] = "default-src 'none'; frame-ancestors 'none'"

        if self.enforce_https:
            response.headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"

        return response


def configure_logging(storage: StorageConfig) -> None:
    """Send log records to stderr and to ``busana.log`` in the log directory."""
    storage.log_dir.mkdir(parents=True, exist_ok=True)
    logging.basicConfig(
        level=storage.log_level.upper(),
        format=LOG_FORMAT,
        handlers=[
            logging.StreamHandler(),
            logging.FileHandler(storage.log_dir / "busana.log"),
        ],
    )


def create_app(config: BusanaConfig | None = None, manage_db: bool = True) -> FastAPI:
    """Build the FastAPI application.

    Args:
        config: Application configuration. Loaded from config.toml,
            secrets.env and the environment when omitted.
        manage_db: Open and close the MongoDB connection in the app
            lifespan. Tests that set up Beanie themselves pass False.
    """
    if config is None:
        config = load_settings()
        configure_logging(config.storage)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        """Application lifespan manager."""
        if manage_db:
            config.storage.data_dir.mkdir(parents=True, exist_ok=True)
            await init_db(config.database)
            logger.info(
                "Connected to MongoDB database '%s'",
                config.database.mongodb_database,
            )

        yield

        if manage_db:
            await close_db()

    app = FastAPI(
        title=config.app_name,
        description="Bulk spreadsheet import service for the business dashboard",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.config = config

    # Upload endpoints are rate limited per client address
    app.state.limiter = import_router.limiter
    app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)

    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)

    # Only allow origins from the whitelist; empty list means same-origin only
    if config.server.cors_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=config.server.cors_origins,
            allow_credentials=True,
            allow_methods=["GET", "POST"],
            allow_headers=["Authorization", "Content-Type"],
            max_age=600,
        )

    app.add_middleware(SecurityHeadersMiddleware, enforce_https=config.server.enforce_https)

    @app.get("/health", tags=["Health"])
    async def health_check() -> JSONResponse:
        """Health check endpoint."""
        return JSONResponse(
            content={
                "status": "healthy",
                "version": __version__,
                "app_name": config.app_name,
            }
        )

    app.include_router(import_router.router, prefix="/api/import", tags=["Import"])
    app.include_router(import_history.router, prefix="/api/import-history", tags=["Import History"])

    return app
