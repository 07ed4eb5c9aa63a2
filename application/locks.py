"""Per-room serialization for check-then-write sequences"""
import asyncio
from contextlib import AsyncExitStack, asynccontextmanager
from typing import Dict


class RoomLocks:
    """Registry of asyncio locks keyed by room id.

    Every operation that checks availability and then writes a blocking
    reservation holds the lock of the room it books for the whole
    sequence, so two requests for the same room cannot both pass the
    check. Locks are created on first use and acquired in sorted order
    when more than one room is involved.
    """

    def __init__(self):
        self._locks: Dict[str, asyncio.Lock] = {}

    def lock_for(self, room_id: str) -> asyncio.Lock:
        lock = self._locks.get(room_id)
        if lock is None:
            lock = self._locks[room_id] = asyncio.Lock()
        return lock

    @asynccontextmanager
    async def hold(self, *room_ids: str):
        async with AsyncExitStack() as stack:
            for room_id in sorted(set(room_ids)):
                await stack.enter_async_context(self.lock_for(room_id))
            yield
