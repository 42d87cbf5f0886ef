"""
Profile lock - serializes every sequence that switches Anki's active profile.

Anki has a single active-profile slot, so two switch-and-restore
sequences must never interleave. One instance is created per process and
handed to every component that can switch profiles.
"""

import asyncio
from typing import Awaitable, Callable, Optional, TypeVar

T = TypeVar("T")


class ProfileLockError(RuntimeError):
    """Raised when the task holding the lock tries to acquire it again."""


class ProfileLock:
    """
    FIFO, non re-entrant async mutex.

    Waiters are woken in arrival order. There is no timeout: an action
    that never finishes blocks every later profile switch.

    Ownership is per task. A task started by the holder is a separate
    caller: it waits for the lock instead of raising ProfileLockError.

    Usage:
        lock = ProfileLock()
        result = await lock.run(lambda: distribute_to(profile))

        async with lock:
            ...
    """

    def __init__(self) -> None:
        self._lock = asyncio.Lock()
        self._owner: Optional[asyncio.Task] = None

    @property
    def locked(self) -> bool:
        return self._lock.locked()

    async def acquire(self) -> None:
        task = asyncio.current_task()
        if task is not None and self._owner is task:
            raise ProfileLockError("ProfileLock is not re-entrant")
        await self._lock.acquire()
        self._owner = task

    def release(self) -> None:
        self._owner = None
        self._lock.release()

    async def __aenter__(self) -> "ProfileLock":
        await self.acquire()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        self.release()

    async def run(self, action: Callable[[], Awaitable[T]]) -> T:
        """
        Run ``action`` while holding the lock.

        The lock is released on every exit path before the result is
        returned or the exception re-raised.
        """
        async with self:
            return await action()
