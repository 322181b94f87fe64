"""
Per-account serialization.

Every mutation of an account (lifecycle or ledger write) holds that
account's lock for its whole verify, mutate, commit and emit step, so no
other operation on the same account observes an intermediate state.
Operations on different accounts run concurrently.

Locks are process-local. Deployments with several writer processes must
also rely on the database row locks taken inside the transaction.
"""

from __future__ import annotations

import asyncio
import weakref
from contextlib import asynccontextmanager
from typing import AsyncIterator

from player_ledger.core.logging.logger import get_logger

logger = get_logger(__name__)


class AccountLockRegistry:
    """
    Hands out one `asyncio.Lock` per account.

    Locks are held weakly: an entry disappears once no task holds or waits
    on it, so the registry does not grow with the number of accounts seen.
    """

    def __init__(self) -> None:
        self._locks: "weakref.WeakValueDictionary[str, asyncio.Lock]" = (
            weakref.WeakValueDictionary()
        )

    def get(self, account: str) -> asyncio.Lock:
        lock = self._locks.get(account)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[account] = lock
        return lock

    @asynccontextmanager
    async def hold(self, account: str) -> AsyncIterator[None]:
        lock = self.get(account)
        if lock.locked():
            logger.debug("Waiting for account lock", extra={"account": account})
        async with lock:
            yield

    def is_locked(self, account: str) -> bool:
        lock = self._locks.get(account)
        return bool(lock is not None and lock.locked())

    def __len__(self) -> int:
        return len(self._locks)
