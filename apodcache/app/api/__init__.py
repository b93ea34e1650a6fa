"""API endpoints package for the APOD cache."""

from apodcache.app.api.health import router as health_router
from apodcache.app.api.pictures import router as pictures_router

__all__ = [
    "health_router",
    "pictures_router",
]
