"""
A live, in-process connection to one client.
"""

import asyncio
import logging
from typing import Optional

from farmhub.notifications.events import NotificationEvent

logger = logging.getLogger(__name__)


class NotificationChannel:
    """
    Buffer between event producers and one open event stream.

    Delivery never blocks: when the buffer is full the event is dropped.
    A closed channel accepts nothing and wakes its reader.
    """

    def __init__(self, max_pending: int = 100):
        self._queue: asyncio.Queue[Optional[NotificationEvent]] = asyncio.Queue(maxsize=max_pending)
        self.closed = False

    def deliver(self, event: NotificationEvent) -> bool:
        if self.closed:
            return False
        try:
            self._queue.put_nowait(event)
        except asyncio.QueueFull:
            logger.warning(f"Dropping '{event.type}' event: channel buffer full")
            return False
        return True

    async def next_event(self, timeout: Optional[float] = None) -> Optional[NotificationEvent]:
        """Wait for the next event; None on timeout or when the channel closes."""
        if self.closed and self._queue.empty():
            return None
        try:
            return await asyncio.wait_for(self._queue.get(), timeout)
        except asyncio.TimeoutError:
            return None

    def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        try:
            self._queue.put_nowait(None)
        except asyncio.QueueFull:
            pass
