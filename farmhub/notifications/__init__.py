"""
Live notifications for booking and supply-order lifecycle events.
"""

from farmhub.notifications.channel import NotificationChannel
from farmhub.notifications.dispatcher import NotificationDispatcher
from farmhub.notifications.events import KEEPALIVE_FRAME, EventType, NotificationEvent, make_event
from farmhub.notifications.registry import (
    InMemoryNotificationRegistry,
    NotificationRegistry,
    RedisNotificationRegistry,
)
from farmhub.notifications.stream import event_stream

__all__ = [
    "KEEPALIVE_FRAME",
    "EventType",
    "NotificationEvent",
    "make_event",
    "NotificationChannel",
    "NotificationRegistry",
    "InMemoryNotificationRegistry",
    "RedisNotificationRegistry",
    "NotificationDispatcher",
    "event_stream",
]
