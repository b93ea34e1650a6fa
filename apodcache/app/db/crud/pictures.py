"""Picture CRUD operations."""
from __future__ import annotations

from typing import Sequence

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from apodcache.app.db.models import PictureUrl
from apodcache.app.services.ranges import Record


async def get_pictures_in_range(
    session: AsyncSession,
    start_date: str,
    end_date: str,
) -> list[Record]:
    """Get cached pictures with start_date <= date <= end_date, ascending.

    Args:
        session: Database session
        start_date: First date, YYYY-MM-DD
        end_date: Last date, YYYY-MM-DD
    """
    result = await session.execute(
        select(PictureUrl)
        .where(PictureUrl.date.between(start_date, end_date))
        .order_by(PictureUrl.date.asc())
    )
    return [row.to_record() for row in result.scalars().all()]


async def save_pictures(
    session: AsyncSession,
    records: Sequence[Record],
    auto_commit: bool = True,
) -> int:
    """Insert new pictures. Existing dates are never updated.

    A date that is already cached violates the primary key and makes
    the flush fail.

    Returns:
        Number of rows added
    """
    session.add_all([PictureUrl.from_record(record) for record in records])
    await session.flush()
    if auto_commit:
        await session.commit()
    return len(records)


async def count_pictures(session: AsyncSession) -> int:
    """Count cached pictures."""
    result = await session.execute(select(func.count()).select_from(PictureUrl))
    return result.scalar_one()
