"""
Notification event records and Server-Sent Events framing.
"""

import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class EventType(str, Enum):
    CONNECTED = "connected"
    BOOKING_CREATED = "booking_created"
    BOOKING_APPROVED = "booking_approved"
    BOOKING_REJECTED = "booking_rejected"
    BOOKING_COMPLETED = "booking_completed"
    BOOKING_CANCELLED = "booking_cancelled"
    BOOKING_UPDATED = "booking_updated"
    NEW_BOOKING = "new_booking"
    SUPPLY_ORDER_CREATED = "supply_order_created"
    SUPPLY_ORDER_UPDATED = "supply_order_updated"


KEEPALIVE_FRAME = ": keep-alive\n\n"


@dataclass(frozen=True)
class NotificationEvent:
    """
    A small tagged record pushed to a connected client.

    Serialized flat: `{"type": ..., "message": ..., **payload}`.
    """

    type: str
    message: str
    payload: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.type, "message": self.message, **self.payload}

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), default=str)

    def to_sse(self) -> str:
        """Encode as one `data:` frame terminated by a blank line."""
        return f"data: {self.to_json()}\n\n"

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "NotificationEvent":
        data = dict(data)
        event_type = data.pop("type")
        message = data.pop("message", "")
        return cls(type=event_type, message=message, payload=data)

    @classmethod
    def from_json(cls, raw: str | bytes) -> "NotificationEvent":
        return cls.from_dict(json.loads(raw))


def make_event(event_type: EventType, message: str, **payload: Any) -> NotificationEvent:
    return NotificationEvent(type=event_type.value, message=message, payload=payload)
