"""
FastAPI Application Entry Point

This module creates and configures the FastAPI application.
It sets up all routes, middleware, and exception handlers.

Design Decisions:
- Use lifespan events to build storage and services, and to release them
- Services are constructed once and attached to app.state
- Each request gets an id bound into structlog context variables
- Expose health and readiness endpoints
"""

import time
import uuid
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

import structlog
from fastapi import FastAPI, HTTPException, Request, status
from fastapi.responses import JSONResponse

from pr_reviewer import __version__
from pr_reviewer.api import register_exception_handlers, routers
from pr_reviewer.config import Settings, get_settings
from pr_reviewer.logging_config import get_logger, setup_logging
from pr_reviewer.services import CandidateSelector, PRService, TeamService, UserService
from pr_reviewer.storage import Storage, create_storage
from pr_reviewer.storage.errors import StorageError

logger = get_logger(__name__)


def build_services(app: FastAPI, storage: Storage, settings: Settings) -> None:
    """Wire services onto app.state, each with its own logger handle."""
    selector = CandidateSelector(
        storage.users,
        logger=get_logger("pr_reviewer.services.selector")
    )
    app.state.storage = storage
    app.state.pr_service = PRService(
        storage.users,
        storage.prs,
        selector,
        logger=get_logger("pr_reviewer.services.pr_service"),
        operation_timeout=settings.operation_timeout
    )
    app.state.team_service = TeamService(
        storage.teams,
        storage.users,
        logger=get_logger("pr_reviewer.services.team_service"),
        operation_timeout=settings.operation_timeout
    )
    app.state.user_service = UserService(
        storage.users,
        storage.prs,
        logger=get_logger("pr_reviewer.services.user_service"),
        operation_timeout=settings.operation_timeout
    )


def create_app(
    settings: Optional[Settings] = None,
    storage: Optional[Storage] = None
) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        settings: Settings to use instead of the environment
        storage: Prebuilt storage (tests); otherwise built from settings at startup

    Returns:
        Configured FastAPI application instance
    """
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        """
        Application lifespan manager.

        Builds storage and services on startup and releases them on shutdown.
        """
        logger.info(
            "Starting PR Reviewer",
            host=settings.host,
            port=settings.port,
            storage_backend=settings.storage_backend
        )

        try:
            app_storage = storage or await create_storage(settings)
        except StorageError as e:
            logger.error(
                "Storage initialization failed",
                error=str(e),
                error_type=type(e).__name__
            )
            raise

        build_services(app, app_storage, settings)

        yield

        logger.info("Shutting down PR Reviewer")
        await app_storage.close()

    app = FastAPI(
        title="PR Reviewer",
        description="Assigns pull request reviewers from the author's team",
        version=__version__,
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json"
    )

    for router in routers:
        app.include_router(router)

    register_exception_handlers(app)

    @app.middleware("http")
    async def request_context(request: Request, call_next):
        """Bind a request id for every log line of the request and log the outcome."""
        request_id = request.headers.get("X-Request-ID") or uuid.uuid4().hex
        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(request_id=request_id)

        start = time.perf_counter()
        response = await call_next(request)
        latency_ms = round((time.perf_counter() - start) * 1000, 2)

        logger.info(
            "HTTP request",
            method=request.method,
            path=request.url.path,
            query=request.url.query,
            status=response.status_code,
            latency_ms=latency_ms
        )
        response.headers["X-Request-ID"] = request_id
        return response

    # Add global exception handler
    @app.exception_handler(Exception)
    async def global_exception_handler(
        request: Request,
        exc: Exception
    ) -> JSONResponse:
        """Handle unexpected exceptions."""
        logger.error(
            "Unhandled exception",
            path=request.url.path,
            method=request.method,
            error=str(exc),
            error_type=type(exc).__name__
        )

        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "error": {
                    "code": "INTERNAL_ERROR",
                    "message": "internal server error"
                }
            }
        )

    @app.get("/")
    async def root():
        """Root endpoint with basic info."""
        return {
            "name": "PR Reviewer",
            "version": __version__,
            "status": "running",
            "docs": "/docs"
        }

    @app.get("/health")
    async def health_check():
        """
        Health check endpoint.

        Returns basic health status for load balancers and monitors.
        """
        return {
            "status": "healthy",
            "service": "pr-reviewer",
            "version": __version__
        }

    @app.get("/ready")
    async def readiness_check(request: Request):
        """
        Readiness check endpoint.

        Verifies that the storage backend answers.
        """
        try:
            await request.app.state.storage.ping()
        except StorageError as e:
            logger.error("Readiness check failed", error=str(e))
            raise HTTPException(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                detail="storage unavailable"
            )

        return {
            "status": "ready",
            "service": "pr-reviewer"
        }

    return app


def get_app() -> FastAPI:
    """Application factory for uvicorn (``--factory``)."""
    settings = get_settings()
    setup_logging(settings)
    return create_app(settings)
