"""Local tracker for the upstream APOD request quota.

The upstream reports how many requests are left in the current window via
the ``X-RateLimit-Remaining`` header. The tracker keeps the last reported
value and refuses to call upstream while the quota is known to be spent
and the reset window has not elapsed.

The tracker is a best-effort early exit. Checking the budget and recording
the response are two separate critical sections, so concurrent fetches may
both pass the check before either records its response; upstream remains
the authority on over-limit requests.
"""

import asyncio
from dataclasses import dataclass, replace
from datetime import datetime, timedelta, timezone
from typing import Optional

from apodcache.app.core.config import settings
from apodcache.app.core.logging import get_logger
from apodcache.app.exceptions import RateLimitExceeded

logger = get_logger(__name__)


def _now() -> datetime:
    # Aware UTC: local wall time jumps at DST changes
    return datetime.now(timezone.utc)


@dataclass
class RateLimitState:
    """Process-wide view of the upstream quota.

    Attributes:
        requests_left: Last upstream-reported remaining requests
        last_request_at: When the last upstream call completed
        reset_period: Length of the upstream quota window
    """

    requests_left: int
    last_request_at: datetime
    reset_period: timedelta

    @classmethod
    def default(cls, now: Optional[datetime] = None) -> "RateLimitState":
        """Optimistic initial state taken from settings."""
        return cls(
            requests_left=settings.rate_limit_default_requests,
            last_request_at=now or _now(),
            reset_period=timedelta(seconds=settings.rate_limit_reset_seconds),
        )

    def to_dict(self) -> dict:
        return {
            "requests_left": self.requests_left,
            "last_request_at": self.last_request_at.isoformat(),
            "reset_period_seconds": int(self.reset_period.total_seconds()),
        }


class RateLimitTracker:
    """Guards upstream calls with the last known quota.

    Usage:
        tracker = RateLimitTracker()
        await tracker.check_budget()
        result = await provider.fetch(...)
        await tracker.update_from_response(result.rate_limit_remaining)
    """

    def __init__(self, state: Optional[RateLimitState] = None):
        self._state = state or RateLimitState.default()
        self._lock = asyncio.Lock()

    def _retry_after(self, now: datetime) -> Optional[timedelta]:
        # Clock stepped backwards: treat as no time elapsed
        elapsed = max(now - self._state.last_request_at, timedelta(0))
        if self._state.requests_left == 0 and elapsed < self._state.reset_period:
            return self._state.reset_period - elapsed
        return None

    async def retry_after(self, now: Optional[datetime] = None) -> Optional[timedelta]:
        """Time until upstream may be called again, None if it may be now."""
        async with self._lock:
            return self._retry_after(now or _now())

    async def check_budget(self, now: Optional[datetime] = None) -> None:
        """Fail fast when the quota is spent and the window is still open.

        Raises:
            RateLimitExceeded: With the time left until the window resets
        """
        async with self._lock:
            retry_after = self._retry_after(now or _now())
        if retry_after is not None:
            logger.info(f"Reached request limit. Next request in {retry_after}")
            raise RateLimitExceeded(retry_after)

    async def update_from_response(
        self,
        remaining: Optional[int],
        now: Optional[datetime] = None,
    ) -> None:
        """Record an upstream response.

        Args:
            remaining: Upstream-reported remaining requests, None if absent
            now: Completion time of the call
        """
        now = now or _now()
        async with self._lock:
            self._state.last_request_at = now
            if remaining is None:
                logger.warning(
                    "No X-RateLimit-Remaining header in response from APOD API"
                )
                return
            self._state.requests_left = remaining

    async def snapshot(self) -> RateLimitState:
        """Copy of the current state, safe to read without the lock."""
        async with self._lock:
            return replace(self._state)
