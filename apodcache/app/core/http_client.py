"""Shared HTTP client management for connection pooling.

One client is opened in the application lifespan and handed to the
APOD provider, so concurrent gap requests reuse connections.
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

import httpx

from apodcache.app.core.config import settings


def _build_timeout(total: float) -> httpx.Timeout:
    # Read/write bounded by the fixed upstream timeout, connect and pool kept short
    return httpx.Timeout(
        total,
        connect=min(settings.httpx_connect_timeout, total),
        pool=settings.httpx_pool_timeout,
    )


def _build_limits() -> httpx.Limits:
    return httpx.Limits(
        max_connections=settings.httpx_max_connections,
        max_keepalive_connections=settings.httpx_max_keepalive_connections,
        keepalive_expiry=settings.httpx_keepalive_expiry,
    )


@asynccontextmanager
async def init_http_client() -> AsyncGenerator[httpx.AsyncClient, None]:
    """Initialize and yield the shared HTTP client.

    This context manager should be used in the FastAPI lifespan:

        @asynccontextmanager
        async def lifespan(app: FastAPI):
            async with init_http_client() as client:
                app.state.resolver = RangeResolver.from_settings(client)
                yield
    """
    client = create_http_client()
    try:
        yield client
    finally:
        await client.aclose()


def create_http_client(timeout: float | None = None) -> httpx.AsyncClient:
    """Create a new HTTP client with default settings.

    The returned client should be closed when done:
        async with create_http_client() as client:
            ...

    Args:
        timeout: Overall timeout in seconds, defaults to settings.apod_timeout
    """
    return httpx.AsyncClient(
        timeout=_build_timeout(timeout or settings.apod_timeout),
        limits=_build_limits(),
    )
