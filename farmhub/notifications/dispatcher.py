"""
Notification dispatcher.

Builds lifecycle events and fans them out to the interested users through
whatever registry it was given. It has no decision logic: it is told what
happened and who should hear about it.
"""

import logging
from typing import Iterable, Optional

from farmhub.models import Booking, Equipment, SupplyOrder, Supply
from farmhub.notifications.channel import NotificationChannel
from farmhub.notifications.events import EventType, NotificationEvent, make_event
from farmhub.notifications.registry import NotificationRegistry

logger = logging.getLogger(__name__)


# Event the requester receives for each booking transition, and its message
_REQUESTER_EVENTS = {
    "approved": (EventType.BOOKING_APPROVED, "Your booking for {name} has been approved"),
    "rejected": (EventType.BOOKING_REJECTED, "Your booking for {name} has been declined"),
    "completed": (EventType.BOOKING_COMPLETED, "Your booking for {name} has been completed"),
}


def _booking_payload(booking: Booking, equipment: Optional[Equipment]) -> dict:
    payload = {"booking": booking.to_dict()}
    if equipment is not None:
        payload["equipment"] = {"id": str(equipment.id), "name": equipment.name}
    return payload


def _equipment_name(equipment: Optional[Equipment]) -> str:
    return equipment.name if equipment is not None else "equipment"


class NotificationDispatcher:
    """
    Fan-out of booking and supply-order events.

    Delivery is best effort. A registry failure is logged and reported as
    "not delivered"; it never propagates into the operation that raised
    the event.
    """

    def __init__(self, registry: NotificationRegistry):
        self.registry = registry

    async def register(self, user_id: str, channel: NotificationChannel) -> None:
        await self.registry.register(user_id, channel)

    async def unregister(self, user_id: str, channel: Optional[NotificationChannel] = None) -> bool:
        return await self.registry.unregister(user_id, channel)

    async def send(self, user_id: str, event: NotificationEvent) -> bool:
        try:
            return await self.registry.send(user_id, event)
        except Exception as e:
            logger.warning(f"Failed to deliver '{event.type}' to user {user_id}: {e}", exc_info=True)
            return False

    async def fan_out(self, user_ids: Iterable[str], event: NotificationEvent) -> int:
        """Send one event to each distinct user; returns how many were delivered."""
        delivered = 0
        for user_id in dict.fromkeys(user_ids):
            if await self.send(user_id, event):
                delivered += 1
        return delivered

    async def close(self) -> None:
        await self.registry.close()

    # -------------------------------------------------------------------------
    # Bookings
    # -------------------------------------------------------------------------

    async def booking_created(self, booking: Booking, equipment: Optional[Equipment]) -> None:
        name = _equipment_name(equipment)
        payload = _booking_payload(booking, equipment)

        await self.send(
            booking.requester_id,
            make_event(EventType.BOOKING_CREATED, f"Your booking request for {name} has been submitted", **payload),
        )
        owner_message = f"New booking request for {name}"
        await self.send(booking.owner_id, make_event(EventType.BOOKING_CREATED, owner_message, **payload))
        await self.send(booking.owner_id, make_event(EventType.NEW_BOOKING, owner_message, **payload))

    async def booking_transitioned(self, booking: Booking, equipment: Optional[Equipment]) -> None:
        """Notify both parties after approve, reject, complete or cancel."""
        name = _equipment_name(equipment)
        payload = _booking_payload(booking, equipment)
        update = make_event(EventType.BOOKING_UPDATED, f"Booking for {name} is now {booking.status}", **payload)

        if booking.status == "cancelled":
            await self.send(
                booking.owner_id,
                make_event(EventType.BOOKING_CANCELLED, f"Booking for {name} was cancelled by the renter", **payload),
            )
            await self.send(booking.requester_id, update)
            return

        event_type, template = _REQUESTER_EVENTS[booking.status]
        await self.send(booking.requester_id, make_event(event_type, template.format(name=name), **payload))
        await self.send(booking.owner_id, update)

    async def booking_deleted(self, booking: Booking, equipment: Optional[Equipment]) -> None:
        name = _equipment_name(equipment)
        event = make_event(
            EventType.BOOKING_UPDATED,
            f"Booking for {name} was deleted",
            deleted=True,
            **_booking_payload(booking, equipment),
        )
        await self.fan_out([booking.requester_id, booking.owner_id], event)

    # -------------------------------------------------------------------------
    # Supply orders
    # -------------------------------------------------------------------------

    async def supply_order_created(self, order: SupplyOrder, supply: Optional[Supply]) -> None:
        name = supply.name if supply is not None else "supply"
        payload = {"order": order.to_dict()}
        await self.send(
            order.supplier_id,
            make_event(EventType.SUPPLY_ORDER_CREATED, f"New order for {order.quantity} x {name}", **payload),
        )
        await self.send(
            order.buyer_id,
            make_event(EventType.SUPPLY_ORDER_CREATED, f"Your order for {name} has been placed", **payload),
        )

    async def supply_order_updated(self, order: SupplyOrder, actor_id: str) -> None:
        event = make_event(
            EventType.SUPPLY_ORDER_UPDATED,
            f"Order status changed to {order.status}",
            order=order.to_dict(),
        )
        recipients = [order.buyer_id, order.supplier_id]
        await self.fan_out([user_id for user_id in recipients if user_id != actor_id], event)
