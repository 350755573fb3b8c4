"""Serializes heavy vision work to one in-flight operation."""

import asyncio
import logging
from typing import Awaitable, Callable, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class ConcurrencyThrottle:
    """
    A single-slot gate for vision operations.

    Waiters are admitted in the order they arrived and each operation runs to
    completion, including its own awaits, before the next one starts. The
    slot is released whether the operation returns or raises.
    """

    def __init__(self):
        self._lock = asyncio.Lock()
        self.waiting = 0
        self.admitted = 0

    @property
    def busy(self) -> bool:
        return self._lock.locked()

    async def run_exclusive(self, operation: Callable[[], Awaitable[T]]) -> T:
        if self.busy:
            logger.debug("Vision slot busy, %d operation(s) already queued", self.waiting)

        self.waiting += 1
        try:
            await self._lock.acquire()
        finally:
            self.waiting -= 1

        self.admitted += 1
        try:
            return await operation()
        finally:
            self._lock.release()
