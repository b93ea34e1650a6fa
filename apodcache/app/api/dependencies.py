"""FastAPI dependencies for the shared resolver and store.

Both objects are created once in the application lifespan and kept on
``app.state``; tests replace them through ``app.dependency_overrides``.
"""

from fastapi import Request

from apodcache.app.core.config import settings
from apodcache.app.db.store import PictureStore
from apodcache.app.services.resolver import RangeResolver


def get_resolver(request: Request) -> RangeResolver:
    return request.app.state.resolver


def get_store(request: Request) -> PictureStore:
    return request.app.state.store


def get_api_key() -> str:
    return settings.api_key
