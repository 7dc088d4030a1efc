"""Advisory per-path locks for cooperative (asyncio) concurrency."""

from __future__ import annotations

import asyncio
import logging
import os
from collections import deque
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator, Deque, Dict

LOGGER = logging.getLogger(__name__)


def normalize_lock_key(path: str | Path) -> str:
    """Return the registry key for ``path`` (user-expanded, absolute)."""

    return os.path.normcase(os.path.abspath(os.path.expanduser(str(path))))


class PathLock:
    """Handle for a granted lock; ``release`` is idempotent."""

    def __init__(self, manager: "PathLockManager", key: str) -> None:
        self._manager = manager
        self._key = key
        self._released = False

    @property
    def key(self) -> str:
        """Return the normalized path this handle guards."""
        return self._key

    @property
    def released(self) -> bool:
        return self._released

    def release(self) -> None:
        """Release the lock and grant it to the next waiter, if any."""
        if self._released:
            return
        self._released = True
        self._manager._release(self._key)


class PathLockManager:
    """FIFO lock registry keyed by normalized path.

    A key present in the registry means the path is held; its deque holds
    the futures of suspended waiters in arrival order. The registry is only
    touched between awaits on the event loop thread, so no extra mutex is
    needed. Locks are advisory and process-local. Callers taking several
    locks must use a consistent order; cycles are not detected.
    """

    def __init__(self) -> None:
        self._waiters: Dict[str, Deque[asyncio.Future[None]]] = {}

    def is_locked(self, path: str | Path) -> bool:
        """Return whether ``path`` currently has a holder."""
        return normalize_lock_key(path) in self._waiters

    def waiting(self, path: str | Path) -> int:
        """Return the number of callers queued behind the holder of ``path``."""
        queue = self._waiters.get(normalize_lock_key(path))
        if not queue:
            return 0
        return sum(1 for future in queue if not future.done())

    async def acquire(self, path: str | Path) -> PathLock:
        """Acquire the lock for ``path``, waiting in FIFO order if it is held.

        Args:
            path: Filesystem path to guard.

        Returns:
            PathLock: Handle whose ``release`` hands the lock to the next waiter.
        """

        key = normalize_lock_key(path)
        queue = self._waiters.get(key)
        if queue is None:
            self._waiters[key] = deque()
            return PathLock(self, key)

        future: asyncio.Future[None] = asyncio.get_running_loop().create_future()
        queue.append(future)
        LOGGER.debug("Waiting for lock on %s (%d queued)", key, len(queue))
        try:
            await future
        except asyncio.CancelledError:
            if future.done() and not future.cancelled():
                # Granted just before cancellation; hand it on.
                self._release(key)
            else:
                try:
                    queue.remove(future)
                except ValueError:
                    pass
            raise
        return PathLock(self, key)

    @asynccontextmanager
    async def hold(self, *paths: str | Path) -> AsyncIterator[list[PathLock]]:
        """Hold locks for ``paths`` (acquired in order, released in reverse).

        Duplicate paths are collapsed so a source and destination that
        normalize to the same key do not deadlock.
        """

        keys: list[str] = []
        for path in paths:
            key = normalize_lock_key(path)
            if key not in keys:
                keys.append(key)

        held: list[PathLock] = []
        try:
            for key in keys:
                held.append(await self.acquire(key))
            yield held
        finally:
            for lock in reversed(held):
                lock.release()

    def _release(self, key: str) -> None:
        queue = self._waiters.get(key)
        if queue is None:
            return
        while queue:
            future = queue.popleft()
            if not future.done():
                future.set_result(None)
                return
        del self._waiters[key]


__all__ = ["PathLock", "PathLockManager", "normalize_lock_key"]
