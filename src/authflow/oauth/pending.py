# Pending operation: a handle resolved exactly once by a message, timeout or dismissal.
# Created: 2026-10-07

from __future__ import annotations

import asyncio
import logging
from typing import Generic, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class PendingOperation(Generic[T]):
    """Single-producer completion handle keyed by a correlation token.

    The first ``resolve()`` wins; later calls are no-ops and return False.
    Must be created inside a running event loop.
    """

    def __init__(self, key: str):
        self.key = key
        self._future: asyncio.Future[T] = asyncio.get_running_loop().create_future()

    @property
    def done(self) -> bool:
        return self._future.done()

    def resolve(self, value: T) -> bool:
        if self._future.done():
            logger.debug("Pending operation already resolved, ignoring: %s", self.key)
            return False
        self._future.set_result(value)
        return True

    def cancel(self) -> bool:
        return self._future.cancel()

    async def wait(self, timeout: float | None = None) -> T:
        """Wait for the value.

        Raises TimeoutError after *timeout* seconds; the operation is then
        cancelled so a late ``resolve()`` is ignored.
        """
        try:
            return await asyncio.wait_for(asyncio.shield(self._future), timeout=timeout)
        except TimeoutError:
            self._future.cancel()
            raise
