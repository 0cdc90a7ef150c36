"""FastAPI application for chargehook."""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from chargehook import __version__
from chargehook.config import Settings
from chargehook.exceptions import ChargehookError, NotFoundError, ValidationError
from chargehook.logging import configure_logging, get_logger
from chargehook.service import DeliveryService

from .router import router, set_service

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Manage application lifespan.

    Initializes the DeliveryService on startup. On shutdown pending
    retries are cancelled and storage is closed.
    """
    settings = Settings()

    # Configure structured logging
    configure_logging(level=settings.log_level, format=settings.log_format)
    logger.info(
        "Starting chargehook API",
        log_level=settings.log_level,
        log_format=settings.log_format,
        storage_backend=settings.storage_backend,
    )

    service = DeliveryService.create(settings)
    await service.initialize()
    set_service(service)

    yield

    await service.close()
    set_service(None)


def create_app(settings: Settings | None = None) -> FastAPI:
    """Create a FastAPI application.

    Args:
        settings: Optional settings. Uses environment if None.

    Returns:
        Configured FastAPI application.

    Example:
        ```python
        from chargehook.api import create_app

        app = create_app()
        # Run with: uvicorn chargehook.api:app --reload
        ```
    """
    if settings is None:
        settings = Settings()

    app = FastAPI(
        title="chargehook",
        description="Signed outbound event delivery with retries and delivery logs.",
        version=__version__,
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
    )

    if settings.cors_enabled:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=settings.cors_allow_origins,
            allow_methods=settings.cors_allow_methods,
            allow_headers=settings.cors_allow_headers,
        )

    @app.exception_handler(ValidationError)
    async def validation_error_handler(request: Request, exc: ValidationError) -> JSONResponse:
        """Handle validation errors with 400 status."""
        logger.warning(
            "Validation error", field=exc.field, error=exc.message, path=str(request.url)
        )
        return JSONResponse(status_code=400, content=exc.to_dict())

    @app.exception_handler(NotFoundError)
    async def not_found_error_handler(request: Request, exc: NotFoundError) -> JSONResponse:
        """Handle not found errors with 404 status."""
        logger.info(
            "Resource not found",
            resource_type=exc.resource_type,
            resource_id=exc.resource_id,
            path=str(request.url),
        )
        return JSONResponse(status_code=404, content=exc.to_dict())

    @app.exception_handler(ChargehookError)
    async def chargehook_error_handler(request: Request, exc: ChargehookError) -> JSONResponse:
        """Handle all other chargehook errors with 500 status."""
        logger.error("Chargehook error", error=exc.message, code=exc.code, path=str(request.url))
        return JSONResponse(status_code=500, content=exc.to_dict())

    app.include_router(router, prefix="/api/v1")

    return app


# Default app instance for uvicorn
app = create_app()
