from abc import ABC, abstractmethod
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

import httpx


class BaseProvider(ABC):
    """Base class for upstream data providers.

    A provider built with ``http_client`` borrows that pooled client and
    never closes it. Without one, each call opens a throwaway client.
    """

    def __init__(
        self,
        base_url: str,
        http_client: Optional[httpx.AsyncClient] = None,
        timeout: float = 60.0
    ):
        """
        Args:
            base_url: Endpoint URL, trailing slash stripped
            http_client: Shared client owned by the application lifespan
            timeout: Fixed per-request timeout in seconds
        """
        self.base_url = base_url.rstrip('/')
        self.timeout = timeout
        self._http_client = http_client

    @property
    def http_client(self) -> Optional[httpx.AsyncClient]:
        return self._http_client

    @asynccontextmanager
    async def _client_context(self) -> AsyncIterator[httpx.AsyncClient]:
        """Yield the shared client, or a per-call client closed on exit."""
        if self._http_client is not None:
            yield self._http_client
            return

        async with httpx.AsyncClient(timeout=self.timeout) as client:
            yield client

    @abstractmethod
    async def fetch(self, date_range, api_key: str):
        """Fetch one date range from upstream in a single request."""
