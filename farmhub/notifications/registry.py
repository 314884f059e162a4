"""
Notification registry protocol and backends.

The registry maps a user id to that user's live channel. Delivery is
fire-and-forget: an event for a user with no registered channel is dropped.

Backends:
- InMemoryNotificationRegistry: channels live in this process only. A user
  connected to another instance never sees the event.
- RedisNotificationRegistry: events are published to a per-user Redis
  channel; every instance subscribes for the users connected to it and
  forwards into its own in-memory registry.
"""

import asyncio
import logging
from typing import Optional, Protocol

import redis.asyncio as redis
from redis.exceptions import RedisError

from farmhub.notifications.channel import NotificationChannel
from farmhub.notifications.events import NotificationEvent

logger = logging.getLogger(__name__)


class NotificationRegistry(Protocol):
    """Port the coordination core uses to reach connected clients."""

    async def register(self, user_id: str, channel: NotificationChannel) -> None:
        """Attach `channel` for `user_id`, replacing any earlier channel."""
        ...

    async def unregister(self, user_id: str, channel: Optional[NotificationChannel] = None) -> bool:
        """
        Detach the user's channel. Idempotent.

        When `channel` is given, only that exact channel is removed, so a
        stale stream closing late cannot evict its replacement.
        """
        ...

    async def send(self, user_id: str, event: NotificationEvent) -> bool:
        """Push `event` to the user; False if it was dropped."""
        ...

    async def close(self) -> None:
        ...


class InMemoryNotificationRegistry:
    """Process-local registry: one channel per user id."""

    def __init__(self):
        self._channels: dict[str, NotificationChannel] = {}

    def __contains__(self, user_id: str) -> bool:
        return user_id in self._channels

    def __len__(self) -> int:
        return len(self._channels)

    async def register(self, user_id: str, channel: NotificationChannel) -> None:
        previous = self._channels.get(user_id)
        self._channels[user_id] = channel
        if previous is not None and previous is not channel:
            logger.info(f"Replacing stale notification channel for user {user_id}")
            previous.close()

    async def unregister(self, user_id: str, channel: Optional[NotificationChannel] = None) -> bool:
        current = self._channels.get(user_id)
        if current is None or (channel is not None and current is not channel):
            return False
        del self._channels[user_id]
        current.close()
        return True

    async def send(self, user_id: str, event: NotificationEvent) -> bool:
        channel = self._channels.get(user_id)
        if channel is None:
            logger.debug(f"No live channel for user {user_id}; dropping '{event.type}'")
            return False
        return channel.deliver(event)

    async def close(self) -> None:
        for channel in self._channels.values():
            channel.close()
        self._channels.clear()


class RedisNotificationRegistry:
    """
    Registry shared across instances through Redis pub/sub.

    `send` publishes; delivery happens in whichever instance holds the
    user's channel, via a background listener task.
    """

    def __init__(
        self,
        client: redis.Redis,
        prefix: str = "farmhub:notifications",
        local: Optional[InMemoryNotificationRegistry] = None,
        poll_timeout: float = 1.0,
    ):
        self.client = client
        self.prefix = prefix
        self.local = local or InMemoryNotificationRegistry()
        self.poll_timeout = poll_timeout
        self._pubsub = client.pubsub(ignore_subscribe_messages=True)
        self._listener: Optional[asyncio.Task] = None

    @classmethod
    def from_url(cls, url: str, prefix: str = "farmhub:notifications") -> "RedisNotificationRegistry":
        client = redis.from_url(url, decode_responses=True, health_check_interval=30)
        return cls(client, prefix=prefix)

    def channel_name(self, user_id: str) -> str:
        return f"{self.prefix}:{user_id}"

    def user_id_from_channel(self, name: str) -> str:
        return name[len(self.prefix) + 1:]

    async def register(self, user_id: str, channel: NotificationChannel) -> None:
        await self.local.register(user_id, channel)
        await self._pubsub.subscribe(self.channel_name(user_id))
        if self._listener is None or self._listener.done():
            self._listener = asyncio.create_task(self._listen())

    async def unregister(self, user_id: str, channel: Optional[NotificationChannel] = None) -> bool:
        removed = await self.local.unregister(user_id, channel)
        if removed and user_id not in self.local:
            await self._pubsub.unsubscribe(self.channel_name(user_id))
        return removed

    async def send(self, user_id: str, event: NotificationEvent) -> bool:
        receivers = await self.client.publish(self.channel_name(user_id), event.to_json())
        return receivers > 0

    async def handle_message(self, message: dict) -> bool:
        """Forward one pub/sub message to the local channel it is addressed to."""
        if message.get("type") != "message":
            return False

        name = message["channel"]
        if isinstance(name, bytes):
            name = name.decode("utf-8")
        try:
            event = NotificationEvent.from_json(message["data"])
        except (ValueError, KeyError) as e:
            logger.warning(f"Ignoring malformed notification on {name}: {e}")
            return False
        return await self.local.send(self.user_id_from_channel(name), event)

    async def _listen(self) -> None:
        while True:
            try:
                message = await self._pubsub.get_message(
                    ignore_subscribe_messages=True,
                    timeout=self.poll_timeout,
                )
            except RedisError as e:
                logger.error(f"Notification listener lost Redis connection: {e}")
                await asyncio.sleep(self.poll_timeout)
                continue

            if message is None:
                if not self._pubsub.subscribed:
                    await asyncio.sleep(self.poll_timeout)
                continue
            await self.handle_message(message)

    async def close(self) -> None:
        if self._listener is not None:
            self._listener.cancel()
            try:
                await self._listener
            except asyncio.CancelledError:
                pass
            self._listener = None
        await self.local.close()
        await self._pubsub.aclose()
        await self.client.aclose()
