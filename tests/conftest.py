"""Shared fixtures: a throwaway SQLite store and in-process fakes.

The fakes stand in for the APOD API and the database where a test only
cares about the resolver's behaviour or the HTTP layer.
"""

import asyncio
from datetime import date, timedelta
from typing import List, Sequence

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import create_async_engine

from apodcache.app.db.async_session import get_async_session_maker
from apodcache.app.db.init_db import create_all_tables
from apodcache.app.db.store import PictureStore
from apodcache.app.exceptions import StoreError
from apodcache.app.providers.apod import FetchResult
from apodcache.app.services.ranges import DateRange, Record, format_date


def make_record(day: str) -> Record:
    return Record(date=day, url=f"https://apod.nasa.gov/apod/image/{day}.jpg")


def records_for(date_range: DateRange) -> List[Record]:
    return [
        make_record(format_date(date_range.start + timedelta(days=i)))
        for i in range(date_range.days)
    ]


class FakeApodProvider:
    """Answers every range with one record per day.

    Attributes:
        calls: Ranges requested, in call order
        failures: start date -> exception raised for a range starting there
        delay: Seconds each fetch spends "on the network"
        remaining: Value reported as X-RateLimit-Remaining
    """

    def __init__(self, delay: float = 0.0, remaining: int | None = 999):
        self.calls: List[DateRange] = []
        self.failures: dict[date, Exception] = {}
        self.delay = delay
        self.remaining = remaining
        self.active = 0
        self.max_active = 0

    async def fetch(self, date_range: DateRange, api_key: str) -> FetchResult:
        self.calls.append(date_range)
        self.active += 1
        self.max_active = max(self.max_active, self.active)
        try:
            await asyncio.sleep(self.delay)
        finally:
            self.active -= 1
        if date_range.start in self.failures:
            raise self.failures[date_range.start]
        return FetchResult(records_for(date_range), self.remaining)


class InMemoryStore:
    """Dict-backed store with the same contract as PictureStore."""

    def __init__(self, records: Sequence[Record] = ()):
        self.rows: dict[str, Record] = {r.date: r for r in records}
        self.fail_inserts = False

    async def query_range(self, start_date: str, end_date: str) -> List[Record]:
        return sorted(r for d, r in self.rows.items() if start_date <= d <= end_date)

    async def insert(self, records: Sequence[Record]) -> None:
        if self.fail_inserts:
            raise StoreError("disk full")
        if any(r.date in self.rows for r in records):
            raise StoreError("duplicate date")
        self.rows.update({r.date: r for r in records})

    async def count(self) -> int:
        return len(self.rows)


@pytest.fixture
def fake_provider() -> FakeApodProvider:
    return FakeApodProvider()


@pytest.fixture
def memory_store() -> InMemoryStore:
    return InMemoryStore()


@pytest_asyncio.fixture
async def sqlite_engine(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'apod.db'}")
    await create_all_tables(engine)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def picture_store(sqlite_engine) -> PictureStore:
    return PictureStore(get_async_session_maker(sqlite_engine))
