import asyncio
import weakref
from collections import defaultdict
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager


class KeyedLocks:
    """In-process mutual exclusion per (namespace, id) key.

    Locks are kept per running event loop because an ``asyncio.Lock`` must not
    be awaited from a loop other than the one it first waited on.
    """

    def __init__(self) -> None:
        self._locks: weakref.WeakKeyDictionary[asyncio.AbstractEventLoop, dict] = weakref.WeakKeyDictionary()

    def _lock_for(self, key: tuple[str, int]) -> asyncio.Lock:
        loop = asyncio.get_running_loop()
        locks = self._locks.get(loop)
        if locks is None:
            locks = defaultdict(asyncio.Lock)
            self._locks[loop] = locks
        return locks[key]

    @asynccontextmanager
    async def hold(self, namespace: str, key: int) -> AsyncIterator[None]:
        async with self._lock_for((namespace, key)):
            yield


schedule_locks = KeyedLocks()


def semester_lock(semester_id: int):
    return schedule_locks.hold("semester", semester_id)


def schedule_lock(schedule_id: int):
    return schedule_locks.hold("schedule", schedule_id)
