"""HTTP middleware for the APOD cache service."""

from apodcache.app.middleware.request_id import RequestIdMiddleware, get_request_id

__all__ = ["RequestIdMiddleware", "get_request_id"]
