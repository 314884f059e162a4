"""
Repository protocols for the coordination core.

Defines one persistence interface per entity. The services depend only on
these protocols, so the same coordination logic runs against the
SQLAlchemy store or the in-memory store used in tests.

Implementations:
- SQLAlchemy*Repository (farmhub.repositories.sqlalchemy)
- InMemory*Repository (farmhub.repositories.memory)

Check-then-act pairs are exposed as single conditional writes
(`compare_and_set_status`, `reserve`, `adjust_total`, `cancel_and_restore`)
that report whether they applied, never as separate read and write calls.
"""

from dataclasses import dataclass
from datetime import date
from typing import Any, ContextManager, Iterable, Optional, Protocol, Sequence
from uuid import UUID

from farmhub.models import Booking, Equipment, MaintenanceWindow, Supply, SupplyOrder


@dataclass(frozen=True)
class Reservation:
    """Supply quantities immediately before and after a reservation."""

    original_quantity: int
    remaining_quantity: int


class EquipmentRepository(Protocol):
    """Persistence for equipment records."""

    def get(self, equipment_id: UUID) -> Optional[Equipment]:
        ...

    def add(self, equipment: Equipment) -> Equipment:
        ...

    def lock(self, equipment_id: UUID) -> ContextManager[Optional[Equipment]]:
        """
        Hold a write lock on the equipment row for a check-then-insert.

        Yields the equipment (or None if absent). Bookings inserted inside
        the block are serialized against other lockers of the same row.
        """
        ...

    def set_available(self, equipment_id: UUID, available: bool) -> None:
        ...

    def list_available(self) -> Sequence[Equipment]:
        ...

    def list_by_owner(self, owner_id: str) -> Sequence[Equipment]:
        ...


class BookingRepository(Protocol):
    """Persistence for bookings."""

    def get(self, booking_id: UUID) -> Optional[Booking]:
        ...

    def add(self, booking: Booking) -> Booking:
        ...

    def find_overlapping(
        self,
        equipment_id: UUID,
        start: date,
        end: date,
        statuses: Iterable[str],
        exclude_id: Optional[UUID] = None,
    ) -> Sequence[Booking]:
        """Bookings in `statuses` whose inclusive day range conflicts with [start, end]."""
        ...

    def has_active(self, equipment_id: UUID) -> bool:
        """Whether any pending or approved booking references the equipment."""
        ...

    def compare_and_set_status(self, booking: Booking, expected: Iterable[str], new: str) -> bool:
        """
        Move `booking` to `new` only if its stored status is in `expected`.

        Returns True if the write applied. `booking` reflects the stored
        state afterwards either way.
        """
        ...

    def delete(self, booking: Booking) -> None:
        ...

    def list_for_equipment(self, equipment_id: UUID) -> Sequence[Booking]:
        ...

    def list_for_requester(self, requester_id: str) -> Sequence[Booking]:
        ...

    def list_for_owner(self, owner_id: str) -> Sequence[Booking]:
        ...


class MaintenanceRepository(Protocol):
    """Persistence for maintenance windows."""

    def get(self, window_id: UUID) -> Optional[MaintenanceWindow]:
        ...

    def add(self, window: MaintenanceWindow) -> MaintenanceWindow:
        ...

    def find_overlapping(
        self,
        equipment_id: UUID,
        start: date,
        end: date,
        statuses: Iterable[str],
    ) -> Sequence[MaintenanceWindow]:
        """Windows in `statuses` whose scheduled day falls inside [start, end]."""
        ...

    def has_active(self, equipment_id: UUID) -> bool:
        """Whether any scheduled or in-progress window references the equipment."""
        ...

    def compare_and_set_status(
        self,
        window: MaintenanceWindow,
        expected: Iterable[str],
        new: str,
        **fields: Any,
    ) -> bool:
        """Conditional status write; `fields` are applied in the same write."""
        ...

    def update(self, window: MaintenanceWindow, **fields: Any) -> MaintenanceWindow:
        ...

    def delete(self, window: MaintenanceWindow) -> None:
        ...

    def list_for_owner(
        self,
        owner_id: str,
        equipment_id: Optional[UUID] = None,
        status: Optional[str] = None,
    ) -> Sequence[MaintenanceWindow]:
        ...


class SupplyRepository(Protocol):
    """Persistence for supplies with atomic stock accounting."""

    def get(self, supply_id: UUID) -> Optional[Supply]:
        ...

    def add(self, supply: Supply) -> Supply:
        ...

    def reserve(self, supply_id: UUID, quantity: int) -> Optional[Reservation]:
        """
        Conditionally decrement available stock.

        Applies only if the supply exists, is available and has at least
        `quantity` units. Returns None when the condition fails.
        """
        ...

    def restore(self, supply_id: UUID, quantity: int, clamp: bool) -> Optional[int]:
        """Add `quantity` back; returns the new available quantity or None if absent."""
        ...

    def adjust_total(self, supply_id: UUID, new_total: int) -> Optional[Supply]:
        """
        Set the total and shift available stock by the same delta.

        Applies only if the resulting available quantity stays >= 0.
        """
        ...

    def list_available(self) -> Sequence[Supply]:
        ...

    def list_by_supplier(self, supplier_id: str) -> Sequence[Supply]:
        ...


class SupplyOrderRepository(Protocol):
    """Persistence for supply orders."""

    def get(self, order_id: UUID) -> Optional[SupplyOrder]:
        ...

    def add(self, order: SupplyOrder) -> SupplyOrder:
        ...

    def compare_and_set_status(self, order: SupplyOrder, expected: Iterable[str], new: str) -> bool:
        ...

    def cancel_and_restore(self, order: SupplyOrder, clamp: bool) -> Optional[int]:
        """
        Cancel the order and return its quantity to the supply as one write.

        Either both the status change and the restock are stored or
        neither is. Returns the supply's new available quantity, or None
        when the order was already cancelled or its supply is gone; nothing
        is written in that case.
        """
        ...

    def list_for_buyer(self, buyer_id: str) -> Sequence[SupplyOrder]:
        ...

    def list_for_supplier(self, supplier_id: str) -> Sequence[SupplyOrder]:
        ...
