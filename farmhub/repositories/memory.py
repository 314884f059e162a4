"""
In-memory implementations of the repository protocols.

Used by service tests and for running the coordination core without a
database. Records are ordinary (transient) model instances kept in dicts.
Each conditional write checks and mutates without yielding to the event
loop, so it is atomic for single-process callers.
"""

import uuid
from contextlib import contextmanager
from datetime import date, datetime, timezone
from typing import Any, Generator, Iterable, Optional, Sequence
from uuid import UUID

from farmhub.models import (
    ACTIVE_BOOKING_STATUSES,
    ACTIVE_MAINTENANCE_STATUSES,
    Booking,
    Equipment,
    MaintenanceWindow,
    Supply,
    SupplyOrder,
    SupplyOrderStatus,
)
from farmhub.repositories.base import Reservation
from farmhub.services.overlap import ranges_conflict


def _stamp(record: Any) -> None:
    if record.id is None:
        record.id = uuid.uuid4()
    if record.created_at is None:
        record.created_at = datetime.now(timezone.utc)


def _newest_first(records: Iterable[Any], attribute: str = "created_at") -> list:
    """Same order as the SQL listings: descending on `attribute`."""
    return sorted(records, key=lambda r: getattr(r, attribute), reverse=True)


class InMemoryEquipmentRepository:

    def __init__(self):
        self.records: dict[UUID, Equipment] = {}

    def get(self, equipment_id: UUID) -> Optional[Equipment]:
        return self.records.get(equipment_id)

    def add(self, equipment: Equipment) -> Equipment:
        _stamp(equipment)
        if equipment.available is None:
            equipment.available = True
        self.records[equipment.id] = equipment
        return equipment

    @contextmanager
    def lock(self, equipment_id: UUID) -> Generator[Optional[Equipment], None, None]:
        yield self.records.get(equipment_id)

    def set_available(self, equipment_id: UUID, available: bool) -> None:
        equipment = self.records.get(equipment_id)
        if equipment is not None:
            equipment.available = available

    def list_available(self) -> Sequence[Equipment]:
        return _newest_first(e for e in self.records.values() if e.available)

    def list_by_owner(self, owner_id: str) -> Sequence[Equipment]:
        return _newest_first(e for e in self.records.values() if e.owner_id == owner_id)


class InMemoryBookingRepository:

    def __init__(self):
        self.records: dict[UUID, Booking] = {}

    def get(self, booking_id: UUID) -> Optional[Booking]:
        return self.records.get(booking_id)

    def add(self, booking: Booking) -> Booking:
        _stamp(booking)
        self.records[booking.id] = booking
        return booking

    def find_overlapping(
        self,
        equipment_id: UUID,
        start: date,
        end: date,
        statuses: Iterable[str],
        exclude_id: Optional[UUID] = None,
    ) -> Sequence[Booking]:
        statuses = set(statuses)
        matches = [
            b for b in self.records.values()
            if b.equipment_id == equipment_id
            and b.status in statuses
            and b.id != exclude_id
            and ranges_conflict(b.start_date, b.end_date, start, end)
        ]
        return sorted(matches, key=lambda b: b.start_date)

    def has_active(self, equipment_id: UUID) -> bool:
        return any(
            b.equipment_id == equipment_id and b.status in ACTIVE_BOOKING_STATUSES
            for b in self.records.values()
        )

    def compare_and_set_status(self, booking: Booking, expected: Iterable[str], new: str) -> bool:
        stored = self.records.get(booking.id)
        if stored is None or stored.status not in set(expected):
            return False
        stored.status = new
        booking.status = new
        return True

    def delete(self, booking: Booking) -> None:
        self.records.pop(booking.id, None)

    def list_for_equipment(self, equipment_id: UUID) -> Sequence[Booking]:
        return sorted(
            (b for b in self.records.values() if b.equipment_id == equipment_id),
            key=lambda b: b.start_date,
        )

    def list_for_requester(self, requester_id: str) -> Sequence[Booking]:
        return _newest_first(b for b in self.records.values() if b.requester_id == requester_id)

    def list_for_owner(self, owner_id: str) -> Sequence[Booking]:
        return _newest_first(b for b in self.records.values() if b.owner_id == owner_id)


class InMemoryMaintenanceRepository:

    def __init__(self, equipment: InMemoryEquipmentRepository):
        self.records: dict[UUID, MaintenanceWindow] = {}
        self.equipment = equipment

    def get(self, window_id: UUID) -> Optional[MaintenanceWindow]:
        return self.records.get(window_id)

    def add(self, window: MaintenanceWindow) -> MaintenanceWindow:
        _stamp(window)
        self.records[window.id] = window
        return window

    def find_overlapping(
        self,
        equipment_id: UUID,
        start: date,
        end: date,
        statuses: Iterable[str],
    ) -> Sequence[MaintenanceWindow]:
        statuses = set(statuses)
        matches = [
            w for w in self.records.values()
            if w.equipment_id == equipment_id
            and w.status in statuses
            and ranges_conflict(w.scheduled_date, w.scheduled_date, start, end)
        ]
        return sorted(matches, key=lambda w: w.scheduled_date)

    def has_active(self, equipment_id: UUID) -> bool:
        return any(
            w.equipment_id == equipment_id and w.status in ACTIVE_MAINTENANCE_STATUSES
            for w in self.records.values()
        )

    def compare_and_set_status(
        self,
        window: MaintenanceWindow,
        expected: Iterable[str],
        new: str,
        **fields: Any,
    ) -> bool:
        stored = self.records.get(window.id)
        if stored is None or stored.status not in set(expected):
            return False
        stored.status = new
        for key, value in fields.items():
            setattr(stored, key, value)
        return True

    def update(self, window: MaintenanceWindow, **fields: Any) -> MaintenanceWindow:
        for key, value in fields.items():
            setattr(window, key, value)
        return window

    def delete(self, window: MaintenanceWindow) -> None:
        self.records.pop(window.id, None)

    def list_for_owner(
        self,
        owner_id: str,
        equipment_id: Optional[UUID] = None,
        status: Optional[str] = None,
    ) -> Sequence[MaintenanceWindow]:
        owned = {e.id for e in self.equipment.list_by_owner(owner_id)}
        windows = [
            w for w in self.records.values()
            if w.equipment_id in owned
            and (equipment_id is None or w.equipment_id == equipment_id)
            and (status is None or w.status == status)
        ]
        return sorted(windows, key=lambda w: w.scheduled_date)


class InMemorySupplyRepository:

    def __init__(self):
        self.records: dict[UUID, Supply] = {}

    def get(self, supply_id: UUID) -> Optional[Supply]:
        return self.records.get(supply_id)

    def add(self, supply: Supply) -> Supply:
        _stamp(supply)
        supply.available = supply.available_quantity > 0
        self.records[supply.id] = supply
        return supply

    def reserve(self, supply_id: UUID, quantity: int) -> Optional[Reservation]:
        supply = self.records.get(supply_id)
        if supply is None or not supply.available or supply.available_quantity < quantity:
            return None

        original = supply.available_quantity
        supply.available_quantity = original - quantity
        supply.available = supply.available_quantity > 0
        return Reservation(original_quantity=original, remaining_quantity=supply.available_quantity)

    def restore(self, supply_id: UUID, quantity: int, clamp: bool) -> Optional[int]:
        supply = self.records.get(supply_id)
        if supply is None:
            return None

        restored = supply.available_quantity + quantity
        if clamp:
            restored = min(restored, supply.total_quantity)
        supply.available_quantity = restored
        supply.available = restored > 0
        return restored

    def adjust_total(self, supply_id: UUID, new_total: int) -> Optional[Supply]:
        supply = self.records.get(supply_id)
        if supply is None:
            return None

        shifted = supply.available_quantity + (new_total - supply.total_quantity)
        if shifted < 0:
            return None

        supply.total_quantity = new_total
        supply.available_quantity = shifted
        supply.available = shifted > 0
        return supply

    def list_available(self) -> Sequence[Supply]:
        return _newest_first(s for s in self.records.values() if s.available)

    def list_by_supplier(self, supplier_id: str) -> Sequence[Supply]:
        return _newest_first(s for s in self.records.values() if s.supplier_id == supplier_id)


class InMemorySupplyOrderRepository:

    def __init__(self, supplies: InMemorySupplyRepository):
        self.records: dict[UUID, SupplyOrder] = {}
        self.supplies = supplies

    def get(self, order_id: UUID) -> Optional[SupplyOrder]:
        return self.records.get(order_id)

    def add(self, order: SupplyOrder) -> SupplyOrder:
        _stamp(order)
        if order.order_date is None:
            order.order_date = order.created_at
        self.records[order.id] = order
        return order

    def compare_and_set_status(self, order: SupplyOrder, expected: Iterable[str], new: str) -> bool:
        stored = self.records.get(order.id)
        if stored is None or stored.status not in set(expected):
            return False
        stored.status = new
        return True

    def cancel_and_restore(self, order: SupplyOrder, clamp: bool) -> Optional[int]:
        cancelled = SupplyOrderStatus.CANCELLED.value
        stored = self.records.get(order.id)
        if stored is None or stored.status == cancelled:
            return None

        # Restock first: if it raises, the order keeps its status.
        restored = self.supplies.restore(stored.supply_id, stored.quantity, clamp)
        if restored is None:
            return None
        stored.status = cancelled
        order.status = cancelled
        return restored

    def list_for_buyer(self, buyer_id: str) -> Sequence[SupplyOrder]:
        return _newest_first((o for o in self.records.values() if o.buyer_id == buyer_id), "order_date")

    def list_for_supplier(self, supplier_id: str) -> Sequence[SupplyOrder]:
        return _newest_first((o for o in self.records.values() if o.supplier_id == supplier_id), "order_date")
