"""Upstream providers package.

This package provides:
- Base provider interface (BaseProvider)
- NASA APOD client (ApodProvider, FetchResult)
"""

from apodcache.app.providers.base import BaseProvider
from apodcache.app.providers.apod import ApodProvider, FetchResult

__all__ = [
    "BaseProvider",
    "ApodProvider",
    "FetchResult",
]
