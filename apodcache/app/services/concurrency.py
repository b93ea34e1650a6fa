"""Concurrency gate bounding in-flight upstream requests."""

import asyncio
from contextlib import asynccontextmanager
from typing import AsyncIterator


class ConcurrencyGate:
    """Counting gate with a capacity fixed at construction.

    Callers wait (without polling) for a free slot; asyncio wakes waiters
    in the order they arrived. The slot is released when the ``slot()``
    block exits, whether it returns, raises or is cancelled.

    Usage:
        gate = ConcurrencyGate(5)

        async with gate.slot():
            await provider.fetch(...)
    """

    def __init__(self, capacity: int):
        if capacity < 1:
            raise ValueError("capacity must be at least 1")
        self._capacity = capacity
        self._semaphore = asyncio.Semaphore(capacity)

        # Counters for monitoring
        self._in_flight = 0
        self._peak_in_flight = 0
        self._total_acquired = 0

    @property
    def capacity(self) -> int:
        return self._capacity

    @property
    def in_flight(self) -> int:
        return self._in_flight

    @property
    def peak_in_flight(self) -> int:
        return self._peak_in_flight

    @asynccontextmanager
    async def slot(self) -> AsyncIterator[None]:
        """Hold one slot for the duration of the block."""
        async with self._semaphore:
            # Counter updates never await, so they cannot interleave
            self._in_flight += 1
            self._total_acquired += 1
            self._peak_in_flight = max(self._peak_in_flight, self._in_flight)
            try:
                yield
            finally:
                self._in_flight -= 1

    def get_stats(self) -> dict:
        """Get current gate statistics."""
        return {
            "capacity": self._capacity,
            "in_flight": self._in_flight,
            "available": self._capacity - self._in_flight,
            "utilization": round(self._in_flight / self._capacity, 4),
            "peak_in_flight": self._peak_in_flight,
            "total_acquired": self._total_acquired,
        }
