import asyncio
from collections import defaultdict
from contextlib import asynccontextmanager


class ScopeLocks:
    """
    One asyncio.Lock per conversation scope.

    Messages from the same chat are processed one at a time; different
    chats proceed independently. Must be used from a single event loop.
    """

    def __init__(self):
        self._locks = defaultdict(asyncio.Lock)
        self._waiters = defaultdict(int)

    @asynccontextmanager
    async def hold(self, scope):
        lock = self._locks[scope]
        self._waiters[scope] += 1
        try:
            async with lock:
                yield
        finally:
            self._waiters[scope] -= 1
            # drop idle locks so the map does not grow with every chat ever seen
            if self._waiters[scope] == 0:
                self._waiters.pop(scope, None)
                self._locks.pop(scope, None)

    def __len__(self):
        return len(self._locks)
