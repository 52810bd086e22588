"""Hand-off queue between the poll worker and the broadcast worker.

A thin layer over ``asyncio.Queue``. Both ends run on the instance's event
loop: the poll worker puts without blocking, the broadcast worker awaits
``get()``. A bounded queue never blocks the producer; it discards the
oldest payload instead, so the newest value always gets through.
"""

from __future__ import annotations

import asyncio
from typing import Any


class HandoffQueue:
    """FIFO of outbound payloads.

    Args:
        maxsize: Maximum queued payloads, 0 for unbounded.

    """

    __slots__ = ("_dropped", "_queue")

    def __init__(self, maxsize: int = 0) -> None:
        self._queue: asyncio.Queue[Any] = asyncio.Queue(maxsize=maxsize)
        self._dropped = 0

    @property
    def maxsize(self) -> int:
        return self._queue.maxsize

    @property
    def dropped(self) -> int:
        """Payloads discarded because the queue was full."""
        return self._dropped

    def put(self, payload: Any) -> bool:
        """Queue a payload without blocking.

        Returns:
            True if an older payload was dropped to make room.

        Raises:
            asyncio.QueueShutDown: If the queue was closed.

        """
        dropped = False
        if self._queue.full():
            try:
                self._queue.get_nowait()
            except asyncio.QueueEmpty:
                pass
            else:
                self._dropped += 1
                dropped = True
        self._queue.put_nowait(payload)
        return dropped

    async def get(self) -> Any:
        """Wait for and remove the oldest payload.

        Raises:
            asyncio.QueueShutDown: Once the queue is closed.

        """
        return await self._queue.get()

    def get_nowait(self) -> Any:
        """Remove the oldest payload, raising ``asyncio.QueueEmpty`` if none."""
        return self._queue.get_nowait()

    def close(self) -> None:
        """Shut the queue down, discarding payloads and waking any waiting getter."""
        self._queue.shutdown(immediate=True)

    def empty(self) -> bool:
        return self._queue.empty()

    def __len__(self) -> int:
        return self._queue.qsize()
