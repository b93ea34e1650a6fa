"""Persistent picture cache used by the range resolver."""

import asyncio
from typing import List, Sequence

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from apodcache.app.core.logging import get_logger
from apodcache.app.db.crud import count_pictures, get_pictures_in_range, save_pictures
from apodcache.app.exceptions import StoreError
from apodcache.app.services.ranges import Record

logger = get_logger(__name__)


class PictureStore:
    """Append-only, date-keyed picture store.

    Every read or write runs in its own session and holds the store lock
    only for that database round trip, so concurrent gap tasks take turns
    at the store without waiting on each other's network calls.
    """

    def __init__(self, session_maker: async_sessionmaker[AsyncSession]):
        self._session_maker = session_maker
        self._lock = asyncio.Lock()

    async def query_range(self, start_date: str, end_date: str) -> List[Record]:
        """Cached records with start_date <= date <= end_date, ascending.

        Raises:
            StoreError: If the query fails
        """
        async with self._lock:
            try:
                async with self._session_maker() as session:
                    return await get_pictures_in_range(session, start_date, end_date)
            except SQLAlchemyError as e:
                logger.error(f"Could not query cached pictures: {e}")
                raise StoreError(f"Could not query cached pictures: {e}") from e

    async def insert(self, records: Sequence[Record]) -> None:
        """Insert records in one transaction.

        Raises:
            StoreError: If the insert fails, including when a date is
                already cached; nothing from the batch is kept
        """
        if not records:
            return
        async with self._lock:
            async with self._session_maker() as session:
                try:
                    await save_pictures(session, records)
                except SQLAlchemyError as e:
                    await session.rollback()
                    logger.error(f"Could not store {len(records)} pictures: {e}")
                    raise StoreError(f"Could not store pictures: {e}") from e
        logger.debug(f"Stored {len(records)} pictures")

    async def count(self) -> int:
        async with self._lock:
            async with self._session_maker() as session:
                return await count_pictures(session)
