"""
SQLAlchemy implementations of the repository protocols.

Every write commits, so conditional writes are visible to other sessions
as soon as they return. Conditional writes are single UPDATE statements
whose WHERE clause carries the precondition; the affected row count tells
whether they applied.
"""

import logging
from contextlib import contextmanager
from datetime import date, datetime, timezone
from typing import Any, Generator, Iterable, Optional, Sequence
from uuid import UUID

from sqlalchemy import and_, case, or_, select, update
from sqlalchemy.orm import Session

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

logger = logging.getLogger(__name__)


def _range_conflict_clause(start_col, end_col, start: date, end: date):
    """SQL form of `ranges_conflict` over two date columns."""
    return or_(
        and_(start_col >= start, start_col <= end),
        and_(end_col >= start, end_col <= end),
        and_(start_col <= start, end_col >= end),
        and_(start_col < start, end_col > end),
    )


def _restore_statement(supply_id: UUID, quantity: int, clamp: bool):
    """UPDATE returning a supply's available quantity after adding `quantity` back."""
    restored = Supply.available_quantity + quantity
    if clamp:
        restored = case((restored > Supply.total_quantity, Supply.total_quantity), else_=restored)

    return (
        update(Supply)
        .where(Supply.id == supply_id)
        .values(
            available_quantity=restored,
            available=case((restored > 0, True), else_=False),
        )
        .returning(Supply.available_quantity)
        .execution_options(synchronize_session=False)
    )


def _refresh_supply(session: Session, supply_id: UUID) -> None:
    supply = session.get(Supply, supply_id)
    if supply is not None:
        session.refresh(supply)


@contextmanager
def _contained(session: Session) -> Generator[None, None, None]:
    """
    Run a read whose failure must not poison the enclosing transaction.

    PostgreSQL aborts the whole transaction after a failed statement, so the
    read runs under a SAVEPOINT there. SQLite keeps the transaction usable.
    """
    if session.get_bind().dialect.name != "postgresql":
        yield
        return

    with session.begin_nested():
        yield


# =============================================================================
# Equipment
# =============================================================================


class SQLAlchemyEquipmentRepository:
    """Equipment persistence."""

    def __init__(self, session: Session):
        self.session = session

    def get(self, equipment_id: UUID) -> Optional[Equipment]:
        return self.session.get(Equipment, equipment_id)

    def add(self, equipment: Equipment) -> Equipment:
        self.session.add(equipment)
        self.session.commit()
        self.session.refresh(equipment)
        return equipment

    @contextmanager
    def lock(self, equipment_id: UUID) -> Generator[Optional[Equipment], None, None]:
        # FOR UPDATE is dropped by the SQLite compiler; SQLite serializes writers itself.
        stmt = select(Equipment).where(Equipment.id == equipment_id).with_for_update()
        equipment = self.session.scalars(stmt).first()
        try:
            yield equipment
        except Exception:
            self.session.rollback()
            raise
        else:
            self.session.commit()

    def set_available(self, equipment_id: UUID, available: bool) -> None:
        self.session.execute(
            update(Equipment)
            .where(Equipment.id == equipment_id)
            .values(available=available)
            .execution_options(synchronize_session=False)
        )
        self.session.commit()
        equipment = self.session.get(Equipment, equipment_id)
        if equipment is not None:
            self.session.refresh(equipment)

    def list_available(self) -> Sequence[Equipment]:
        stmt = (
            select(Equipment)
            .where(Equipment.available.is_(True))
            .order_by(Equipment.created_at.desc())
        )
        return self.session.scalars(stmt).all()

    def list_by_owner(self, owner_id: str) -> Sequence[Equipment]:
        stmt = (
            select(Equipment)
            .where(Equipment.owner_id == owner_id)
            .order_by(Equipment.created_at.desc())
        )
        return self.session.scalars(stmt).all()


# =============================================================================
# Bookings
# =============================================================================


class SQLAlchemyBookingRepository:
    """Booking persistence."""

    def __init__(self, session: Session):
        self.session = session

    def get(self, booking_id: UUID) -> Optional[Booking]:
        return self.session.get(Booking, booking_id)

    def add(self, booking: Booking) -> Booking:
        self.session.add(booking)
        self.session.commit()
        self.session.refresh(booking)
        return booking

    def find_overlapping(
        self,
        equipment_id: UUID,
        start: date,
        end: date,
        statuses: Iterable[str],
        exclude_id: Optional[UUID] = None,
    ) -> Sequence[Booking]:
        conditions = [
            Booking.equipment_id == equipment_id,
            Booking.status.in_(list(statuses)),
            _range_conflict_clause(Booking.start_date, Booking.end_date, start, end),
        ]
        if exclude_id is not None:
            conditions.append(Booking.id != exclude_id)

        stmt = select(Booking).where(and_(*conditions)).order_by(Booking.start_date)
        return self.session.scalars(stmt).all()

    def has_active(self, equipment_id: UUID) -> bool:
        stmt = select(Booking.id).where(
            Booking.equipment_id == equipment_id,
            Booking.status.in_(sorted(ACTIVE_BOOKING_STATUSES)),
        ).limit(1)
        return self.session.execute(stmt).first() is not None

    def compare_and_set_status(self, booking: Booking, expected: Iterable[str], new: str) -> bool:
        result = self.session.execute(
            update(Booking)
            .where(Booking.id == booking.id, Booking.status.in_(list(expected)))
            .values(status=new)
            .execution_options(synchronize_session=False)
        )
        self.session.commit()
        self.session.refresh(booking)
        return result.rowcount == 1

    def delete(self, booking: Booking) -> None:
        self.session.delete(booking)
        self.session.commit()

    def list_for_equipment(self, equipment_id: UUID) -> Sequence[Booking]:
        stmt = select(Booking).where(Booking.equipment_id == equipment_id).order_by(Booking.start_date)
        return self.session.scalars(stmt).all()

    def list_for_requester(self, requester_id: str) -> Sequence[Booking]:
        stmt = (
            select(Booking)
            .where(Booking.requester_id == requester_id)
            .order_by(Booking.created_at.desc())
        )
        return self.session.scalars(stmt).all()

    def list_for_owner(self, owner_id: str) -> Sequence[Booking]:
        stmt = (
            select(Booking)
            .where(Booking.owner_id == owner_id)
            .order_by(Booking.created_at.desc())
        )
        return self.session.scalars(stmt).all()


# =============================================================================
# Maintenance
# =============================================================================


class SQLAlchemyMaintenanceRepository:
    """Maintenance window persistence."""

    def __init__(self, session: Session):
        self.session = session

    def get(self, window_id: UUID) -> Optional[MaintenanceWindow]:
        return self.session.get(MaintenanceWindow, window_id)

    def add(self, window: MaintenanceWindow) -> MaintenanceWindow:
        self.session.add(window)
        self.session.commit()
        self.session.refresh(window)
        return window

    def find_overlapping(
        self,
        equipment_id: UUID,
        start: date,
        end: date,
        statuses: Iterable[str],
    ) -> Sequence[MaintenanceWindow]:
        stmt = (
            select(MaintenanceWindow)
            .where(
                MaintenanceWindow.equipment_id == equipment_id,
                MaintenanceWindow.status.in_(list(statuses)),
                _range_conflict_clause(
                    MaintenanceWindow.scheduled_date,
                    MaintenanceWindow.scheduled_date,
                    start,
                    end,
                ),
            )
            .order_by(MaintenanceWindow.scheduled_date)
        )
        # Callers may treat a failure here as "no windows" and keep writing.
        with _contained(self.session):
            return self.session.scalars(stmt).all()

    def has_active(self, equipment_id: UUID) -> bool:
        stmt = select(MaintenanceWindow.id).where(
            MaintenanceWindow.equipment_id == equipment_id,
            MaintenanceWindow.status.in_(sorted(ACTIVE_MAINTENANCE_STATUSES)),
        ).limit(1)
        return self.session.execute(stmt).first() is not None

    def compare_and_set_status(
        self,
        window: MaintenanceWindow,
        expected: Iterable[str],
        new: str,
        **fields: Any,
    ) -> bool:
        result = self.session.execute(
            update(MaintenanceWindow)
            .where(MaintenanceWindow.id == window.id, MaintenanceWindow.status.in_(list(expected)))
            .values(status=new, **fields)
            .execution_options(synchronize_session=False)
        )
        self.session.commit()
        self.session.refresh(window)
        return result.rowcount == 1

    def update(self, window: MaintenanceWindow, **fields: Any) -> MaintenanceWindow:
        for key, value in fields.items():
            setattr(window, key, value)
        self.session.commit()
        self.session.refresh(window)
        return window

    def delete(self, window: MaintenanceWindow) -> None:
        self.session.delete(window)
        self.session.commit()

    def list_for_owner(
        self,
        owner_id: str,
        equipment_id: Optional[UUID] = None,
        status: Optional[str] = None,
    ) -> Sequence[MaintenanceWindow]:
        stmt = (
            select(MaintenanceWindow)
            .join(Equipment, Equipment.id == MaintenanceWindow.equipment_id)
            .where(Equipment.owner_id == owner_id)
        )
        if equipment_id is not None:
            stmt = stmt.where(MaintenanceWindow.equipment_id == equipment_id)
        if status is not None:
            stmt = stmt.where(MaintenanceWindow.status == status)

        return self.session.scalars(stmt.order_by(MaintenanceWindow.scheduled_date)).all()


# =============================================================================
# Supplies
# =============================================================================


class SQLAlchemySupplyRepository:
    """Supply persistence with single-statement stock accounting."""

    def __init__(self, session: Session):
        self.session = session

    def get(self, supply_id: UUID) -> Optional[Supply]:
        return self.session.get(Supply, supply_id)

    def add(self, supply: Supply) -> Supply:
        supply.available = supply.available_quantity > 0
        self.session.add(supply)
        self.session.commit()
        self.session.refresh(supply)
        return supply

    def reserve(self, supply_id: UUID, quantity: int) -> Optional[Reservation]:
        remaining = Supply.available_quantity - quantity
        stmt = (
            update(Supply)
            .where(
                Supply.id == supply_id,
                Supply.available.is_(True),
                Supply.available_quantity >= quantity,
            )
            .values(
                available_quantity=remaining,
                available=case((remaining > 0, True), else_=False),
            )
            .returning(Supply.available_quantity)
            .execution_options(synchronize_session=False)
        )
        new_quantity = self.session.execute(stmt).scalar_one_or_none()
        self.session.commit()
        if new_quantity is None:
            return None

        _refresh_supply(self.session, supply_id)
        return Reservation(original_quantity=new_quantity + quantity, remaining_quantity=new_quantity)

    def restore(self, supply_id: UUID, quantity: int, clamp: bool) -> Optional[int]:
        new_quantity = self.session.execute(_restore_statement(supply_id, quantity, clamp)).scalar_one_or_none()
        self.session.commit()
        if new_quantity is not None:
            _refresh_supply(self.session, supply_id)
        return new_quantity

    def adjust_total(self, supply_id: UUID, new_total: int) -> Optional[Supply]:
        delta = new_total - Supply.total_quantity
        shifted = Supply.available_quantity + delta
        stmt = (
            update(Supply)
            .where(Supply.id == supply_id, shifted >= 0)
            .values(
                total_quantity=new_total,
                available_quantity=shifted,
                available=case((shifted > 0, True), else_=False),
            )
            .execution_options(synchronize_session=False)
        )
        result = self.session.execute(stmt)
        self.session.commit()
        if result.rowcount != 1:
            return None

        _refresh_supply(self.session, supply_id)
        return self.session.get(Supply, supply_id)

    def list_available(self) -> Sequence[Supply]:
        stmt = select(Supply).where(Supply.available.is_(True)).order_by(Supply.created_at.desc())
        return self.session.scalars(stmt).all()

    def list_by_supplier(self, supplier_id: str) -> Sequence[Supply]:
        stmt = select(Supply).where(Supply.supplier_id == supplier_id).order_by(Supply.created_at.desc())
        return self.session.scalars(stmt).all()


class SQLAlchemySupplyOrderRepository:
    """Supply order persistence."""

    def __init__(self, session: Session):
        self.session = session

    def get(self, order_id: UUID) -> Optional[SupplyOrder]:
        return self.session.get(SupplyOrder, order_id)

    def add(self, order: SupplyOrder) -> SupplyOrder:
        if order.order_date is None:
            order.order_date = datetime.now(timezone.utc)
        self.session.add(order)
        self.session.commit()
        self.session.refresh(order)
        return order

    def compare_and_set_status(self, order: SupplyOrder, expected: Iterable[str], new: str) -> bool:
        result = self.session.execute(
            update(SupplyOrder)
            .where(SupplyOrder.id == order.id, SupplyOrder.status.in_(list(expected)))
            .values(status=new)
            .execution_options(synchronize_session=False)
        )
        self.session.commit()
        self.session.refresh(order)
        return result.rowcount == 1

    def cancel_and_restore(self, order: SupplyOrder, clamp: bool) -> Optional[int]:
        cancelled = SupplyOrderStatus.CANCELLED.value
        try:
            result = self.session.execute(
                update(SupplyOrder)
                .where(SupplyOrder.id == order.id, SupplyOrder.status != cancelled)
                .values(status=cancelled)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount != 1:
                self.session.rollback()
                return None

            new_quantity = self.session.execute(
                _restore_statement(order.supply_id, order.quantity, clamp)
            ).scalar_one_or_none()
            if new_quantity is None:
                self.session.rollback()
                return None

            self.session.commit()
        except Exception:
            self.session.rollback()
            raise

        self.session.refresh(order)
        _refresh_supply(self.session, order.supply_id)
        return new_quantity

    def list_for_buyer(self, buyer_id: str) -> Sequence[SupplyOrder]:
        stmt = select(SupplyOrder).where(SupplyOrder.buyer_id == buyer_id).order_by(SupplyOrder.order_date.desc())
        return self.session.scalars(stmt).all()

    def list_for_supplier(self, supplier_id: str) -> Sequence[SupplyOrder]:
        stmt = (
            select(SupplyOrder)
            .where(SupplyOrder.supplier_id == supplier_id)
            .order_by(SupplyOrder.order_date.desc())
        )
        return self.session.scalars(stmt).all()
