"""NASA Astronomy Picture of the Day (APOD) upstream client."""

import time
from dataclasses import dataclass
from typing import Any, List, Optional

import httpx

from apodcache.app.core.logging import get_log_context, get_logger
from apodcache.app.exceptions import (
    FetchTimeoutError,
    MalformedResponseError,
    ParseError,
    TransportError,
    UpstreamStatusError,
)
from apodcache.app.providers.base import BaseProvider
from apodcache.app.services.ranges import DateRange, Record, format_date, parse_date

logger = get_logger(__name__)

RATE_LIMIT_HEADER = "X-RateLimit-Remaining"


@dataclass
class FetchResult:
    """Records for one fetched range plus the quota signal upstream sent."""

    records: List[Record]
    rate_limit_remaining: Optional[int] = None


def parse_rate_limit_remaining(headers: httpx.Headers) -> Optional[int]:
    """Read the remaining-quota header.

    Returns:
        The remaining request count, or None if the header is absent

    Raises:
        MalformedResponseError: If the header is present but not a
            non-negative integer
    """
    raw = headers.get(RATE_LIMIT_HEADER)
    if raw is None:
        return None
    try:
        value = int(raw.strip())
    except ValueError:
        raise MalformedResponseError(
            f"{RATE_LIMIT_HEADER} is not an integer: {raw!r}"
        ) from None
    if value < 0:
        raise MalformedResponseError(f"{RATE_LIMIT_HEADER} is negative: {value}")
    return value


def parse_records(payload: Any, date_range: Optional[DateRange] = None) -> List[Record]:
    """Turn an APOD JSON array into records.

    Each entry must carry a zero-padded YYYY-MM-DD ``date`` and, when
    ``date_range`` is given, that date must fall inside it. Entries without
    a url (days whose media has no link) are skipped, so such a day stays
    a gap in the cache and every later request covering it asks upstream
    for it again. Anything else that does not look like
    ``{"date": str, "url": str}`` fails the whole response.

    Raises:
        MalformedResponseError: If the payload has the wrong shape
    """
    if not isinstance(payload, list):
        raise MalformedResponseError(
            f"Expected a JSON array, got {type(payload).__name__}"
        )

    records = []
    for item in payload:
        if not isinstance(item, dict) or not isinstance(item.get("date"), str):
            raise MalformedResponseError(f"Unexpected APOD entry: {item!r}"[:200])
        try:
            day = parse_date(item["date"], "date")
        except ParseError as e:
            raise MalformedResponseError(f"APOD entry has {e.message}") from None
        if date_range is not None and not date_range.start <= day <= date_range.end:
            raise MalformedResponseError(
                f"APOD entry for {item['date']} is outside requested range {date_range}"
            )
        url = item.get("url")
        if url is None:
            logger.debug(f"Skipping APOD entry without url for {item['date']}")
            continue
        if not isinstance(url, str):
            raise MalformedResponseError(f"APOD url for {item['date']} is not a string")
        records.append(Record(date=item["date"], url=url))
    return records


class ApodProvider(BaseProvider):
    """APOD API provider with support for shared HTTP client connection pooling.

    One ``fetch`` issues exactly one GET for a whole date range. Failures are
    translated into FetchError subclasses and never retried here.
    """

    async def fetch(self, date_range: DateRange, api_key: str) -> FetchResult:
        """Fetch every picture in ``date_range``.

        Args:
            date_range: Inclusive range to request
            api_key: APOD API key

        Returns:
            FetchResult with parsed records and the rate-limit header value

        Raises:
            FetchTimeoutError: If the call exceeded the fixed timeout
            TransportError: On network or connection failure
            UpstreamStatusError: If upstream answered with a non-2xx status
            MalformedResponseError: If the body or quota header cannot be parsed
        """
        params = {"api_key": api_key, **date_range.as_query()}
        context = get_log_context(
            range_start=format_date(date_range.start),
            range_end=format_date(date_range.end),
        )
        start_time = time.monotonic()

        try:
            async with self._client_context() as client:
                resp = await client.get(self.base_url, params=params, timeout=self.timeout)
        except httpx.TimeoutException as e:
            logger.warning(f"APOD request for {date_range} timed out", extra=context)
            raise FetchTimeoutError(
                f"APOD request for {date_range} timed out after {self.timeout}s"
            ) from e
        except httpx.TransportError as e:
            logger.warning(
                f"APOD request for {date_range} failed: {type(e).__name__}: {e}",
                extra=context,
            )
            raise TransportError(f"Could not reach APOD API: {e}") from e

        duration_ms = int((time.monotonic() - start_time) * 1000)
        logger.info(
            f"APOD call for {date_range} status={resp.status_code} duration={duration_ms}ms",
            extra={**context, "status_code": resp.status_code, "duration_ms": duration_ms},
        )

        # Read the quota header before anything can fail, so every answered
        # call still reaches the tracker
        header_error: Optional[MalformedResponseError] = None
        try:
            remaining = parse_rate_limit_remaining(resp.headers)
        except MalformedResponseError as e:
            header_error, remaining = e, None

        if resp.is_error:
            raise UpstreamStatusError(
                resp.status_code, _error_detail(resp), rate_limit_remaining=remaining
            )
        if header_error is not None:
            raise header_error

        try:
            payload = resp.json()
        except ValueError as e:
            raise MalformedResponseError(
                f"APOD response is not JSON: {e}", rate_limit_remaining=remaining
            ) from e
        try:
            records = parse_records(payload, date_range)
        except MalformedResponseError as e:
            e.rate_limit_remaining = remaining
            raise

        return FetchResult(records=records, rate_limit_remaining=remaining)


def _error_detail(resp: httpx.Response) -> str:
    """Best-effort message from an APOD error body."""
    try:
        body = resp.json()
    except ValueError:
        return resp.text[:200]
    if isinstance(body, dict):
        error = body.get("error")
        if isinstance(error, dict):
            return str(error.get("message") or error.get("code") or "")[:200]
        return str(body.get("msg") or error or "")[:200]
    return ""
