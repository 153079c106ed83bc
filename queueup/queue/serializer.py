import asyncio
import inspect
from typing import Any, Awaitable, Callable, Dict, Hashable, Union

from queueup.config import logger

serializer_logger = logger.getChild("queue")

Task = Callable[[], Union[Awaitable[Any], Any]]


class KeyedSerializer:
    """
    Per-key mutual exclusion for async tasks.

    ``run(key, task)`` starts ``task`` only after every task previously scheduled
    for the same key has settled, successfully or not. Waiters are served in
    FIFO order. Different keys never wait on each other.
    """

    def __init__(self):
        self._locks: Dict[Hashable, asyncio.Lock] = {}
        self._pending: Dict[Hashable, int] = {}

    async def run(self, key: Hashable, task: Task) -> Any:
        lock = self._locks.get(key)
        if lock is None:
            lock = self._locks[key] = asyncio.Lock()
        self._pending[key] = self._pending.get(key, 0) + 1
        try:
            async with lock:
                result = task()
                if inspect.isawaitable(result):
                    result = await result
                return result
        finally:
            self._pending[key] -= 1
            if self._pending[key] == 0:
                del self._pending[key]
                del self._locks[key]

    def pending(self, key: Hashable) -> int:
        """Number of tasks running or waiting for ``key``."""
        return self._pending.get(key, 0)

    def __len__(self) -> int:
        return len(self._locks)
