"""Tests for the concurrency gate."""

import asyncio

import pytest

from apodcache.app.services.concurrency import ConcurrencyGate


class TestConcurrencyGate:
    """Test bounding of in-flight work."""

    @pytest.mark.parametrize("capacity", [0, -1])
    def test_capacity_must_be_positive(self, capacity):
        with pytest.raises(ValueError):
            ConcurrencyGate(capacity)

    @pytest.mark.asyncio
    async def test_never_exceeds_capacity(self):
        gate = ConcurrencyGate(3)
        active = 0
        max_active = 0

        async def work():
            nonlocal active, max_active
            async with gate.slot():
                active += 1
                max_active = max(max_active, active)
                await asyncio.sleep(0.01)
                active -= 1

        await asyncio.gather(*(work() for _ in range(10)))

        assert max_active == 3
        assert gate.peak_in_flight == 3
        assert gate.in_flight == 0

    @pytest.mark.asyncio
    async def test_capacity_one_serializes(self):
        gate = ConcurrencyGate(1)
        order = []

        async def work(i):
            async with gate.slot():
                order.append(("start", i))
                await asyncio.sleep(0)
                order.append(("end", i))

        await asyncio.gather(*(work(i) for i in range(3)))

        assert order == [
            ("start", 0), ("end", 0),
            ("start", 1), ("end", 1),
            ("start", 2), ("end", 2),
        ]

    @pytest.mark.asyncio
    async def test_slot_released_on_exception(self):
        gate = ConcurrencyGate(1)

        with pytest.raises(RuntimeError):
            async with gate.slot():
                raise RuntimeError("fetch failed")

        assert gate.in_flight == 0
        async def acquire():
            async with gate.slot():
                return True

        assert await asyncio.wait_for(acquire(), timeout=1)

    @pytest.mark.asyncio
    async def test_slot_released_on_cancel(self):
        gate = ConcurrencyGate(1)
        entered = asyncio.Event()

        async def hold():
            async with gate.slot():
                entered.set()
                await asyncio.sleep(10)

        task = asyncio.create_task(hold())
        await entered.wait()
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

        assert gate.in_flight == 0

    @pytest.mark.asyncio
    async def test_stats(self):
        gate = ConcurrencyGate(4)

        async with gate.slot():
            stats = gate.get_stats()
            assert stats["in_flight"] == 1
            assert stats["available"] == 3
            assert stats["utilization"] == 0.25

        stats = gate.get_stats()
        assert stats == {
            "capacity": 4,
            "in_flight": 0,
            "available": 4,
            "utilization": 0.0,
            "peak_in_flight": 1,
            "total_acquired": 1,
        }
