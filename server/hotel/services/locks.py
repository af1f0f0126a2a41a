"""In-process per-room locks."""

import asyncio
import weakref


class RoomLockRegistry:
    """
    Hands out one ``asyncio.Lock`` per room id.

    Only rooms someone is currently waiting on or holding keep a lock alive;
    entries vanish once the last holder releases its reference. Cross-process
    serialization is the database's job (row and advisory locks).
    """

    def __init__(self):
        self._locks: "weakref.WeakValueDictionary[int, asyncio.Lock]" = weakref.WeakValueDictionary()

    def lock_for(self, room_id: int) -> asyncio.Lock:
        lock = self._locks.get(room_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[room_id] = lock
        return lock

    def __len__(self) -> int:
        return len(self._locks)


# Global registry shared by every request in this process
room_locks = RoomLockRegistry()
