"""
Unit tests for the notification dispatcher and the SSE stream.
"""

import asyncio
import uuid
from datetime import date

import pytest

from conftest import BUYER, OWNER, RENTER, SUPPLIER, RecordingRegistry
from farmhub.models import Booking, Equipment, SupplyOrder
from farmhub.notifications import (
    KEEPALIVE_FRAME,
    EventType,
    InMemoryNotificationRegistry,
    NotificationChannel,
    NotificationDispatcher,
    event_stream,
    make_event,
)


def _equipment():
    return Equipment(id=uuid.uuid4(), name="Rotavator", equipment_type="tiller", price_per_day=900.0, owner_id=OWNER)


def _booking(equipment, status):
    return Booking(
        id=uuid.uuid4(),
        equipment_id=equipment.id,
        requester_id=RENTER,
        owner_id=OWNER,
        start_date=date(2025, 7, 1),
        end_date=date(2025, 7, 5),
        status=status,
    )


def _order(status="pending"):
    return SupplyOrder(
        id=uuid.uuid4(),
        supply_id=uuid.uuid4(),
        buyer_id=BUYER,
        supplier_id=SUPPLIER,
        quantity=2,
        total_price=240.0,
        status=status,
        original_supply_quantity=10,
        remaining_supply_quantity=8,
    )


class TestNotificationDispatcher:

    @pytest.mark.asyncio
    async def test_send_swallows_registry_failure(self):
        dispatcher = NotificationDispatcher(RecordingRegistry(fail=True))

        assert await dispatcher.send("u1", make_event(EventType.NEW_BOOKING, "x")) is False

    @pytest.mark.asyncio
    async def test_fan_out_deduplicates(self, dispatcher, registry):
        delivered = await dispatcher.fan_out(["a", "b", "a"], make_event(EventType.BOOKING_UPDATED, "x"))

        assert delivered == 2
        assert [uid for uid, _ in registry.sent] == ["a", "b"]

    @pytest.mark.asyncio
    async def test_completed_booking(self, dispatcher, registry):
        equipment = _equipment()

        await dispatcher.booking_transitioned(_booking(equipment, "completed"), equipment)

        assert registry.types_for(RENTER) == ["booking_completed"]
        assert registry.types_for(OWNER) == ["booking_updated"]

    @pytest.mark.asyncio
    async def test_deleted_booking_reaches_both(self, dispatcher, registry):
        equipment = _equipment()

        await dispatcher.booking_deleted(_booking(equipment, "pending"), equipment)

        assert registry.types_for(RENTER) == ["booking_updated"]
        assert registry.types_for(OWNER) == ["booking_updated"]
        assert registry.sent[0][1].payload["deleted"] is True

    @pytest.mark.asyncio
    async def test_order_update_skips_actor(self, dispatcher, registry):
        await dispatcher.supply_order_updated(_order("shipped"), SUPPLIER)

        assert registry.types_for(BUYER) == ["supply_order_updated"]
        assert registry.types_for(SUPPLIER) == []


class TestEventStream:
    """Test the SSE generator."""

    @pytest.mark.asyncio
    async def test_connected_then_events_then_keepalive(self):
        dispatcher = NotificationDispatcher(InMemoryNotificationRegistry())
        channel = NotificationChannel()
        stream = event_stream(dispatcher, "u1", channel, keepalive_seconds=0.01)

        first = await stream.__anext__()
        assert '"type": "connected"' in first

        await dispatcher.send("u1", make_event(EventType.NEW_BOOKING, "New request"))
        assert "New request" in await stream.__anext__()
        assert await stream.__anext__() == KEEPALIVE_FRAME

        await stream.aclose()
        assert "u1" not in dispatcher.registry

    @pytest.mark.asyncio
    async def test_stops_on_disconnect(self):
        dispatcher = NotificationDispatcher(InMemoryNotificationRegistry())

        async def disconnected():
            return True

        frames = [
            frame async for frame in event_stream(
                dispatcher, "u1", NotificationChannel(), keepalive_seconds=0.01, is_disconnected=disconnected,
            )
        ]

        assert len(frames) == 1
        assert "u1" not in dispatcher.registry

    @pytest.mark.asyncio
    async def test_replaced_stream_ends(self):
        registry = InMemoryNotificationRegistry()
        dispatcher = NotificationDispatcher(registry)
        first = NotificationChannel()
        stream = event_stream(dispatcher, "u1", first, keepalive_seconds=1.0)
        await stream.__anext__()

        second = NotificationChannel()
        await registry.register("u1", second)

        with pytest.raises(StopAsyncIteration):
            await asyncio.wait_for(stream.__anext__(), timeout=1.0)
        assert "u1" in registry
