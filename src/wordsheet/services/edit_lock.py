"""Exclusive lock guarding read-then-write operations on the sheet."""
import asyncio
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from wordsheet.config import LockSettings
from wordsheet.errors import LockTimeoutError
from wordsheet.monitoring import lock_timeouts

logger = logging.getLogger(__name__)


class EditLock:
    """Single mutex shared by every writer, with a bounded wait."""

    def __init__(self, settings: LockSettings):
        self.timeout = settings.timeout_seconds
        self._lock = asyncio.Lock()

    def locked(self) -> bool:
        return self._lock.locked()

    @asynccontextmanager
    async def hold(self, operation: str) -> AsyncIterator[None]:
        """Hold the lock for ``operation``.

        Raises:
            LockTimeoutError: if the lock is not acquired within the timeout.
        """
        try:
            await asyncio.wait_for(self._lock.acquire(), timeout=self.timeout)
        except asyncio.TimeoutError:
            lock_timeouts.inc()
            logger.error(f"Abandoned {operation}: edit lock not acquired within {self.timeout}s")
            raise LockTimeoutError(f"Timed out waiting for the edit lock ({operation})") from None
        try:
            yield
        finally:
            self._lock.release()
