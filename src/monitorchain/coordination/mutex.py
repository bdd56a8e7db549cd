"""
Keyed async mutual exclusion.

The MutexRegistry hands out one ``asyncio.Lock`` per key (an account
address or the reserved ``"global"`` key). Locks are created lazily and
never removed; the key space is bounded by the number of wallets in use.

Example:
    >>> registry = MutexRegistry()
    >>> async with registry.hold(account):
    ...     ...  # critical section for this account
"""

from __future__ import annotations

import asyncio
import threading
from contextlib import asynccontextmanager
from typing import AsyncIterator, Dict

from monitorchain.constants import GLOBAL_LOCK_KEY
from monitorchain.utils.logging import get_logger

__all__ = ["MutexRegistry", "LockRelease", "GLOBAL_LOCK_KEY", "exclusive_key"]

_logger = get_logger(__name__)


def exclusive_key(address: str) -> str:
    """Key of the caller-requested per-account exclusive lock.

    Distinct from the account's nonce key so an exclusive submission can
    still resolve its own nonce.
    """
    return f"exclusive:{address}"


class LockRelease:
    """
    One-shot capability that releases an acquired lock.

    Calling it a second time raises RuntimeError: a double release would
    let two holders into the same critical section.
    """

    __slots__ = ("_key", "_lock", "_released")

    def __init__(self, key: str, lock: asyncio.Lock) -> None:
        self._key = key
        self._lock = lock
        self._released = False

    @property
    def key(self) -> str:
        return self._key

    @property
    def released(self) -> bool:
        return self._released

    def __call__(self) -> None:
        if self._released:
            raise RuntimeError(f"lock '{self._key}' already released")
        self._released = True
        self._lock.release()
        _logger.debug("Lock released", extra={"key": self._key})

    def __repr__(self) -> str:
        return f"LockRelease(key={self._key!r}, released={self._released})"


class MutexRegistry:
    """Registry of per-key asyncio locks."""

    def __init__(self) -> None:
        self._locks: Dict[str, asyncio.Lock] = {}
        # Guards insertion only; lock waits are cooperative.
        self._insert_lock = threading.Lock()

    def __contains__(self, key: str) -> bool:
        return key in self._locks

    def __len__(self) -> int:
        return len(self._locks)

    def lookup(self, key: str) -> asyncio.Lock:
        """Return the lock for ``key``, creating it if absent."""
        lock = self._locks.get(key)
        if lock is None:
            with self._insert_lock:
                lock = self._locks.setdefault(key, asyncio.Lock())
        return lock

    def locked(self, key: str) -> bool:
        """Whether ``key`` is currently held. Unknown keys are free."""
        lock = self._locks.get(key)
        return lock is not None and lock.locked()

    async def acquire(self, key: str) -> LockRelease:
        """
        Wait until ``key`` is free and take it.

        Waiters are served in arrival order.

        Returns:
            Release capability that must be called exactly once
        """
        lock = self.lookup(key)
        if lock.locked():
            _logger.debug("Waiting for lock", extra={"key": key})
        await lock.acquire()
        return LockRelease(key, lock)

    @asynccontextmanager
    async def hold(self, key: str) -> AsyncIterator[LockRelease]:
        """Hold ``key`` for the duration of the ``async with`` block."""
        release = await self.acquire(key)
        try:
            yield release
        finally:
            if not release.released:
                release()

    async def barrier(self, key: str = GLOBAL_LOCK_KEY) -> None:
        """Wait until ``key`` is momentarily free without keeping it."""
        release = await self.acquire(key)
        release()
