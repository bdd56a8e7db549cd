"""
Tests for the keyed mutex registry.

Tests cover:
- Lazy lock creation and identity per key
- Mutual exclusion and FIFO hand-off
- One-shot release capability
- hold() and barrier()
"""

import asyncio
from typing import List

import pytest

from monitorchain.coordination.mutex import LockRelease, MutexRegistry, exclusive_key


class TestLookup:
    """Tests for lock creation."""

    def test_same_key_same_lock(self) -> None:
        registry = MutexRegistry()
        assert registry.lookup("a") is registry.lookup("a")
        assert len(registry) == 1

    def test_distinct_keys_distinct_locks(self) -> None:
        registry = MutexRegistry()
        assert registry.lookup("a") is not registry.lookup("b")
        assert "a" in registry and "b" in registry

    def test_unknown_key_is_not_locked(self) -> None:
        registry = MutexRegistry()
        assert registry.locked("missing") is False
        assert "missing" not in registry

    def test_exclusive_key_differs_from_account_key(self) -> None:
        assert exclusive_key("0xabc") != "0xabc"


class TestAcquire:
    """Tests for acquire/release."""

    @pytest.mark.asyncio
    async def test_acquire_returns_release(self) -> None:
        registry = MutexRegistry()
        release = await registry.acquire("k")

        assert isinstance(release, LockRelease)
        assert registry.locked("k")
        release()
        assert not registry.locked("k")
        assert release.released

    @pytest.mark.asyncio
    async def test_double_release_raises(self) -> None:
        registry = MutexRegistry()
        release = await registry.acquire("k")
        release()

        with pytest.raises(RuntimeError, match="already released"):
            release()

    @pytest.mark.asyncio
    async def test_second_acquirer_waits(self) -> None:
        registry = MutexRegistry()
        first = await registry.acquire("k")
        waiter = asyncio.create_task(registry.acquire("k"))

        await asyncio.sleep(0)
        assert not waiter.done()

        first()
        second = await asyncio.wait_for(waiter, timeout=1)
        assert registry.locked("k")
        second()

    @pytest.mark.asyncio
    async def test_waiters_served_in_arrival_order(self) -> None:
        registry = MutexRegistry()
        order: List[int] = []
        first = await registry.acquire("k")

        async def worker(n: int) -> None:
            async with registry.hold("k"):
                order.append(n)

        tasks = [asyncio.create_task(worker(n)) for n in range(5)]
        await asyncio.sleep(0)
        first()
        await asyncio.gather(*tasks)

        assert order == [0, 1, 2, 3, 4]

    @pytest.mark.asyncio
    async def test_keys_do_not_block_each_other(self) -> None:
        registry = MutexRegistry()
        a = await registry.acquire("a")
        b = await asyncio.wait_for(registry.acquire("b"), timeout=1)
        a()
        b()


class TestHoldAndBarrier:
    """Tests for the context manager and barrier helpers."""

    @pytest.mark.asyncio
    async def test_hold_releases_on_error(self) -> None:
        registry = MutexRegistry()

        with pytest.raises(ValueError):
            async with registry.hold("k"):
                assert registry.locked("k")
                raise ValueError("boom")

        assert not registry.locked("k")

    @pytest.mark.asyncio
    async def test_hold_tolerates_early_release(self) -> None:
        registry = MutexRegistry()
        async with registry.hold("k") as release:
            release()
        assert not registry.locked("k")

    @pytest.mark.asyncio
    async def test_barrier_does_not_keep_lock(self) -> None:
        registry = MutexRegistry()
        await registry.barrier()
        assert not registry.locked("global")

    @pytest.mark.asyncio
    async def test_barrier_waits_for_holder(self) -> None:
        registry = MutexRegistry()
        holder = await registry.acquire("global")
        passed = asyncio.create_task(registry.barrier())

        await asyncio.sleep(0)
        assert not passed.done()

        holder()
        await asyncio.wait_for(passed, timeout=1)
