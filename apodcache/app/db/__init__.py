"""Database package for the APOD cache.

This package provides:
- The cached picture model (PictureUrl)
- Asynchronous engine and session management
- CRUD operations and the PictureStore used by the resolver
"""

from apodcache.app.db.base import Base
from apodcache.app.db.models import PictureUrl
from apodcache.app.db.async_session import (
    close_async_engine,
    get_async_engine,
    get_async_session_maker,
)
from apodcache.app.db.store import PictureStore

__all__ = [
    "Base",
    "PictureUrl",
    "close_async_engine",
    "get_async_engine",
    "get_async_session_maker",
    "PictureStore",
]
