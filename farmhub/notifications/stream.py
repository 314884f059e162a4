"""
Server-Sent Events stream for one connected user.
"""

import logging
from typing import AsyncIterator, Awaitable, Callable, Optional

from farmhub.notifications.channel import NotificationChannel
from farmhub.notifications.dispatcher import NotificationDispatcher
from farmhub.notifications.events import KEEPALIVE_FRAME, EventType, make_event

logger = logging.getLogger(__name__)


async def event_stream(
    dispatcher: NotificationDispatcher,
    user_id: str,
    channel: NotificationChannel,
    keepalive_seconds: float,
    is_disconnected: Optional[Callable[[], Awaitable[bool]]] = None,
) -> AsyncIterator[str]:
    """
    Register `channel` for `user_id` and yield SSE frames until disconnect.

    The first frame is a `connected` event. Between events a comment frame
    is written every `keepalive_seconds`. The channel is unregistered when
    the client goes away, when the stream is closed, or when a newer stream
    for the same user replaces this one.
    """
    await dispatcher.register(user_id, channel)
    logger.info(f"Notification stream opened for user {user_id}")
    try:
        yield make_event(EventType.CONNECTED, "Connected to notification stream").to_sse()

        while True:
            if is_disconnected is not None and await is_disconnected():
                break

            event = await channel.next_event(timeout=keepalive_seconds)
            if event is not None:
                yield event.to_sse()
            elif channel.closed:
                break
            else:
                yield KEEPALIVE_FRAME
    finally:
        await dispatcher.unregister(user_id, channel)
        logger.info(f"Notification stream closed for user {user_id}")
