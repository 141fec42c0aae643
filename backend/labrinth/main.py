"""
Labrinth Forum Backend Application.

FastAPI application serving a community forum backed by flat JSON files:
categories, posts, replies, user accounts and moderation.
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import ORJSONResponse
from loguru import logger
from starlette.exceptions import HTTPException as StarletteHTTPException

from labrinth.api.v1 import router as api_v1_router
from labrinth.core.config import Settings, settings as default_settings
from labrinth.core.errors import ForumError
from labrinth.core.logging import configure_logging
from labrinth.core.store import JsonStore
from labrinth.modules.forum.service import ForumService


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager."""
    settings: Settings = app.state.settings
    configure_logging(settings)
    logger.info(f"Starting {settings.app_name}...")

    # Initialize flat-file store
    store = JsonStore(settings.data_dir)
    await store.initialize()
    app.state.store = store
    logger.info(f"Data directory: {store.data_dir.resolve()}")

    if settings.reconcile_counters_on_startup:
        await ForumService(store).reconcile_counters()

    logger.info(f"{settings.app_name} started successfully")

    yield

    logger.info("Shutdown complete")


async def forum_error_handler(request: Request, exc: ForumError) -> ORJSONResponse:
    """Report service errors as {"error": message}."""
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    return ORJSONResponse({"error": exc.message}, status_code=exc.status_code)


async def validation_error_handler(
    request: Request,
    exc: RequestValidationError,
) -> ORJSONResponse:
    """Report malformed request bodies as 400."""
    errors = exc.errors()
    message = "Invalid request"
    if errors:
        first = errors[0]
        location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
        message = f"{location}: {first.get('msg')}" if location else str(first.get("msg"))
    return ORJSONResponse({"error": message}, status_code=400)


async def http_error_handler(
    request: Request,
    exc: StarletteHTTPException,
) -> ORJSONResponse:
    return ORJSONResponse({"error": str(exc.detail)}, status_code=exc.status_code)


async def unexpected_error_handler(request: Request, exc: Exception) -> ORJSONResponse:
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    return ORJSONResponse({"error": "An unexpected error occurred"}, status_code=500)


def create_app(settings: Settings | None = None) -> FastAPI:
    """Build the FastAPI application."""
    settings = settings or default_settings

    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="""
        Labrinth Forum Backend

        ## Features

        - **Forum**: Categories, posts and replies
        - **Accounts**: Registration, login, profile management
        - **Moderation**: Bans, mutes and a moderated section
        """,
        openapi_url=f"{settings.api_v1_prefix}/openapi.json",
        docs_url="/docs",
        redoc_url="/redoc",
        default_response_class=ORJSONResponse,
        debug=settings.debug,
        lifespan=lifespan,
    )
    app.state.settings = settings

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Error handlers
    app.add_exception_handler(ForumError, forum_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_error_handler)
    app.add_exception_handler(Exception, unexpected_error_handler)

    # Include API router
    app.include_router(api_v1_router, prefix=settings.api_v1_prefix)

    @app.get("/health", tags=["System"])
    async def health_check() -> dict:
        """Health check endpoint for monitoring."""
        return {
            "status": "healthy",
            "version": settings.app_version,
        }

    @app.get("/", tags=["System"])
    async def root() -> dict:
        """Root endpoint with API information."""
        return {
            "name": settings.app_name,
            "version": settings.app_version,
            "docs": "/docs",
            "api": settings.api_v1_prefix,
        }

    return app


app = create_app()
