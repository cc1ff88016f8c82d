"""Per-application mutual exclusion for edits."""

import asyncio
import logging
from contextlib import asynccontextmanager
from weakref import WeakValueDictionary

logger = logging.getLogger(__name__)


class AppLockRegistry:
    """Hands out one asyncio.Lock per application id.

    Locks are kept only while someone holds or waits on them.
    """

    def __init__(self):
        self._locks: WeakValueDictionary[str, asyncio.Lock] = WeakValueDictionary()

    def _lock_for(self, app_id: str) -> asyncio.Lock:
        lock = self._locks.get(app_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[app_id] = lock
        return lock

    def is_locked(self, app_id: str) -> bool:
        lock = self._locks.get(app_id)
        return lock is not None and lock.locked()

    @asynccontextmanager
    async def hold(self, app_id: str):
        lock = self._lock_for(app_id)
        if lock.locked():
            logger.info("Waiting for in-flight edit on %s", app_id)
        async with lock:
            yield
