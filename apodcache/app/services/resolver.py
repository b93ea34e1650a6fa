"""Read-through resolution of picture date ranges.

``RangeResolver.resolve`` serves a date range from the persistent store,
fetching only the missing sub-ranges from the APOD API. Each missing
sub-range is fetched and persisted by its own task, so sub-ranges that
succeed stay cached even when a sibling fails and the whole call errors.
A later call for the same range then only fetches what is still missing.
"""

import asyncio
from typing import List, Optional, Protocol, Sequence

import httpx

from apodcache.app.core.config import settings
from apodcache.app.core.logging import get_log_context, get_logger
from apodcache.app.exceptions import FetchError
from apodcache.app.providers.apod import ApodProvider, FetchResult
from apodcache.app.services.concurrency import ConcurrencyGate
from apodcache.app.services.rate_limit import RateLimitTracker
from apodcache.app.services.ranges import (
    DateRange,
    Record,
    compute_missing_ranges,
    format_date,
)

logger = get_logger(__name__)


class RecordStore(Protocol):
    """What the resolver needs from the persistent cache."""

    async def query_range(self, start_date: str, end_date: str) -> List[Record]: ...

    async def insert(self, records: Sequence[Record]) -> None: ...


class RangeFetcher(Protocol):
    """What the resolver needs from the upstream client."""

    async def fetch(self, date_range: DateRange, api_key: str) -> FetchResult: ...


class RangeResolver:
    """Concurrent APOD range dispatch.

    Holds the process-wide rate-limit tracker and concurrency gate; a single
    instance is shared by all requests.
    """

    def __init__(
        self,
        provider: RangeFetcher,
        tracker: RateLimitTracker,
        gate: ConcurrencyGate,
    ):
        self.provider = provider
        self.tracker = tracker
        self.gate = gate

    @classmethod
    def from_settings(
        cls, http_client: Optional[httpx.AsyncClient] = None
    ) -> "RangeResolver":
        """Build a resolver wired from application settings."""
        return cls(
            provider=ApodProvider(
                settings.apod_base_url,
                http_client=http_client,
                timeout=settings.apod_timeout,
            ),
            tracker=RateLimitTracker(),
            gate=ConcurrencyGate(settings.concurrent_requests),
        )

    async def resolve(
        self,
        store: RecordStore,
        date_range: DateRange,
        api_key: str,
    ) -> List[Record]:
        """Retrieve every picture in ``date_range`` from the cache or upstream.

        Args:
            store: Persistent picture store
            date_range: Inclusive range to serve
            api_key: APOD API key for upstream requests

        Returns:
            Cached and fetched records merged and sorted ascending

        Raises:
            ParseError: If a cached record has a corrupt date
            RateLimitExceeded: If the local quota check refused a fetch
            FetchError: If an upstream call failed
            StoreError: If the store could not be read or written
        """
        start_date = format_date(date_range.start)
        end_date = format_date(date_range.end)
        context = get_log_context(range_start=start_date, range_end=end_date)

        records = await store.query_range(start_date, end_date)
        logger.info(f"{len(records)} records cached for {date_range}", extra=context)

        gaps = compute_missing_ranges(records, date_range.start, date_range.end)
        if not gaps:
            return records

        logger.info(
            f"Computed ranges to fetch from API: {', '.join(str(g) for g in gaps)}",
            extra=context,
        )

        # Every task runs to completion; none is cancelled when a sibling fails
        results = await asyncio.gather(
            *(self._fetch_and_store(store, gap, api_key) for gap in gaps),
            return_exceptions=True,
        )

        fetched: List[Record] = []
        errors: List[BaseException] = []
        for gap, result in zip(gaps, results):
            if isinstance(result, BaseException):
                logger.warning(
                    f"Fetching {gap} failed: {type(result).__name__}: {result}",
                    extra=context,
                )
                errors.append(result)
            else:
                fetched.extend(result)

        if errors:
            raise errors[0]

        # Stable sort; equal dates are kept, not collapsed
        return sorted(records + fetched)

    async def _fetch_and_store(
        self,
        store: RecordStore,
        gap: DateRange,
        api_key: str,
    ) -> List[Record]:
        """Fetch one gap and persist it before returning."""
        async with self.gate.slot():
            await self.tracker.check_budget()
            try:
                result = await self.provider.fetch(gap, api_key)
            except FetchError as e:
                # Any answered call counts against the quota, even a failed one
                if e.response_received:
                    await self.tracker.update_from_response(e.rate_limit_remaining)
                raise
            await self.tracker.update_from_response(result.rate_limit_remaining)

        # Persist right away so progress survives a failure in another gap
        await store.insert(result.records)
        return result.records
