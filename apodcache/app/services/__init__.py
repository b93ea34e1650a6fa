"""Services package for the APOD cache.

This package provides:
- Date ranges and cache gap computation (ranges)
- Upstream rate-limit tracking (rate_limit)
- The concurrency gate for upstream requests (concurrency)
- Read-through range resolution (resolver)

Only the dependency-free helpers are re-exported here. ``resolver`` imports
the APOD provider, which itself imports ``ranges``, so import it directly:

    from apodcache.app.services.resolver import RangeResolver
"""

from apodcache.app.services.ranges import (
    DateRange,
    Record,
    compute_missing_ranges,
    format_date,
    parse_date,
)
from apodcache.app.services.rate_limit import RateLimitState, RateLimitTracker
from apodcache.app.services.concurrency import ConcurrencyGate

__all__ = [
    "DateRange",
    "Record",
    "compute_missing_ranges",
    "format_date",
    "parse_date",
    "RateLimitState",
    "RateLimitTracker",
    "ConcurrencyGate",
]
