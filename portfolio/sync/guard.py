"""
Per-entity serialization of reconciliation work.
"""
from contextlib import asynccontextmanager
from typing import AsyncIterator, Dict, Hashable
import asyncio


class ReconciliationGuard:
    """
    One asyncio.Lock per entity key.

    An optimistic write holds the key for its whole apply/write/revert
    sequence; live patches for the same key wait until it is released.
    Locks are dropped once nobody holds or waits for them.
    """

    def __init__(self):
        self._locks: Dict[Hashable, asyncio.Lock] = {}
        self._users: Dict[Hashable, int] = {}

    @asynccontextmanager
    async def hold(self, key: Hashable) -> AsyncIterator[None]:
        lock = self._locks.setdefault(key, asyncio.Lock())
        self._users[key] = self._users.get(key, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._users[key] -= 1
            if not self._users[key]:
                del self._users[key]
                del self._locks[key]

    def busy(self, key: Hashable) -> bool:
        lock = self._locks.get(key)
        return lock is not None and lock.locked()
