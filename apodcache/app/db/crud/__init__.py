"""CRUD operations package."""

from apodcache.app.db.crud.pictures import (
    count_pictures,
    get_pictures_in_range,
    save_pictures,
)

__all__ = [
    "count_pictures",
    "get_pictures_in_range",
    "save_pictures",
]
