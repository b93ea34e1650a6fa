from contextlib import asynccontextmanager
from typing import AsyncGenerator

import uvicorn
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from apodcache.app.api.health import router as health_router
from apodcache.app.api.pictures import router as pictures_router
from apodcache.app.core.config import settings
from apodcache.app.core.http_client import init_http_client
from apodcache.app.core.logging import get_logger, setup_logging
from apodcache.app.db.async_session import (
    close_async_engine,
    get_async_engine,
    get_async_session_maker,
)
from apodcache.app.db.init_db import create_all_tables, verify_connection
from apodcache.app.db.store import PictureStore
from apodcache.app.exceptions import ApodCacheException, RateLimitExceeded
from apodcache.app.middleware.request_id import RequestIdMiddleware, get_request_id
from apodcache.app.services.resolver import RangeResolver


def create_app() -> FastAPI:
    """Create and configure the FastAPI application.

    Returns:
        Configured FastAPI application instance
    """
    setup_logging()
    logger = get_logger(__name__)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        """Application lifespan context manager.

        Opens the shared HTTP client and the database, then builds the
        process-wide resolver (rate-limit tracker and concurrency gate).
        """
        # WARNING: shows api key, we assume the app stays below DEBUG in prod
        logger.debug(f"Config: {settings.model_dump()}")

        async with init_http_client() as http_client:
            engine = get_async_engine()
            if not await verify_connection(engine):
                logger.error("Database connection failed!")
                raise RuntimeError("Cannot connect to database")

            await create_all_tables(engine)

            app.state.store = PictureStore(get_async_session_maker(engine))
            app.state.resolver = RangeResolver.from_settings(http_client)

            logger.info(
                "Application startup complete",
                extra={
                    "concurrent_requests": settings.concurrent_requests,
                    "debug_mode": settings.debug,
                }
            )

            yield

        await close_async_engine(engine)
        logger.info("Application shutdown complete")

    app = FastAPI(
        title="APOD Cache",
        description="Read-through cache for NASA's Astronomy Picture of the Day",
        version="1.0.0",
        lifespan=lifespan
    )

    app.add_middleware(RequestIdMiddleware)

    app.include_router(pictures_router)
    app.include_router(health_router)

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        """Respond to bad GET queries with status 400 and a JSON error body."""
        details = "; ".join(
            f"{'.'.join(str(p) for p in err['loc'][1:])}: {err['msg']}"
            for err in exc.errors()
        )
        return JSONResponse(
            status_code=400,
            content={"error": "invalid_request", "message": details},
        )

    @app.exception_handler(ApodCacheException)
    async def apod_cache_error_handler(request: Request, exc: ApodCacheException) -> JSONResponse:
        """Map service exceptions to their HTTP status and JSON body."""
        if exc.status_code >= 500:
            logger.error(
                f"Could not serve {request.url.path}: {exc.message}",
                extra={"request_id": get_request_id(request), "status_code": exc.status_code},
            )
        headers = None
        if isinstance(exc, RateLimitExceeded):
            headers = {"Retry-After": str(exc.retry_after_seconds)}
        return JSONResponse(
            status_code=exc.status_code,
            content=exc.to_response(),
            headers=headers,
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        """Global exception handler for unhandled exceptions.

        Never returns a traceback to the client; debug mode adds the
        exception message and type.
        """
        request_id = get_request_id(request)

        logger.exception(
            f"Unhandled exception [request_id={request_id}]",
            extra={
                "request_id": request_id,
                "exception_type": type(exc).__name__,
            }
        )

        content = {
            "error": "internal_error",
            "message": "Internal server error",
            "request_id": request_id,
        }
        if settings.debug:
            content["message"] = str(exc)
            content["exception_type"] = type(exc).__name__
        return JSONResponse(status_code=500, content=content)

    return app


# Create the application instance
app = create_app()


def serve() -> None:
    """Run the service with uvicorn on the configured host and port."""
    uvicorn.run(
        "apodcache.app.main:app",
        host=settings.host,
        port=settings.port,
        log_config=None,
    )
