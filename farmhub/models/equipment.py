"""
Equipment and Booking models.

Entities:
- Equipment: Rentable farm equipment owned by a user
- Booking: A rental request for a date range, moved through its lifecycle
  by the requester and the equipment owner
"""

import uuid
from datetime import date
from typing import Optional, TYPE_CHECKING

from sqlalchemy import Boolean, CheckConstraint, Date, Float, ForeignKey, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from farmhub.models.base import BaseModel
from farmhub.models.enums import ACTIVE_BOOKING_STATUSES, TERMINAL_BOOKING_STATUSES, BookingStatus

if TYPE_CHECKING:
    from farmhub.models.maintenance import MaintenanceWindow


class Equipment(BaseModel):
    """
    A piece of farm equipment offered for rent.

    `available` is a cached, derived flag: it is true exactly when no active
    booking and no active maintenance window references the equipment. It is
    only ever written by the availability recomputation in the lifecycle
    services.
    """

    __tablename__ = "equipment"

    name: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
        doc="Equipment name (e.g., 'Mahindra 575 Tractor')"
    )

    equipment_type: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        doc="Free-form type (tractor, harvester, sprayer, ...)"
    )

    price_per_day: Mapped[float] = mapped_column(
        Float,
        nullable=False,
        default=0.0,
        doc="Rental price per day"
    )

    description: Mapped[Optional[str]] = mapped_column(
        Text,
        nullable=True,
        doc="Detailed description"
    )

    owner_id: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        doc="User who owns the equipment"
    )

    available: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=True,
        doc="Derived: no active booking or maintenance references this equipment"
    )

    bookings: Mapped[list["Booking"]] = relationship(
        "Booking",
        back_populates="equipment",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    maintenance_windows: Mapped[list["MaintenanceWindow"]] = relationship(
        "MaintenanceWindow",
        back_populates="equipment",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    __table_args__ = (
        Index("idx_equipment_owner", "owner_id"),
        Index("idx_equipment_available", "available"),
    )

    def __repr__(self) -> str:
        return f"<Equipment(name='{self.name}', owner='{self.owner_id}', available={self.available})>"


class Booking(BaseModel):
    """
    A rental of one piece of equipment over inclusive calendar days.

    Status workflow:
        pending -> approved | rejected | cancelled
        approved -> completed | cancelled
    `rejected`, `completed` and `cancelled` are terminal.
    """

    __tablename__ = "bookings"

    equipment_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("equipment.id", ondelete="CASCADE"),
        nullable=False,
        doc="Equipment being rented"
    )

    requester_id: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        doc="User who requested the booking"
    )

    owner_id: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        doc="Equipment owner, copied from the equipment at creation"
    )

    start_date: Mapped[date] = mapped_column(
        Date,
        nullable=False,
        doc="First rental day (inclusive)"
    )

    end_date: Mapped[date] = mapped_column(
        Date,
        nullable=False,
        doc="Last rental day (inclusive)"
    )

    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=BookingStatus.PENDING.value,
        doc="pending, approved, rejected, completed, cancelled"
    )

    equipment: Mapped["Equipment"] = relationship("Equipment", back_populates="bookings")

    __table_args__ = (
        CheckConstraint("end_date > start_date", name="booking_min_one_day"),
        CheckConstraint(
            "status in ('pending','approved','rejected','completed','cancelled')",
            name="booking_status_valid",
        ),
        Index("idx_booking_equipment", "equipment_id"),
        Index("idx_booking_requester", "requester_id"),
        Index("idx_booking_owner", "owner_id"),
        Index("idx_booking_status", "status"),
        # Composite index for overlap queries
        Index("idx_booking_equipment_dates", "equipment_id", "start_date", "end_date"),
    )

    @property
    def is_active(self) -> bool:
        """Whether this booking blocks the equipment."""
        return self.status in ACTIVE_BOOKING_STATUSES

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_BOOKING_STATUSES

    def __repr__(self) -> str:
        return (
            f"<Booking(equipment_id={self.equipment_id}, "
            f"{self.start_date}..{self.end_date}, status='{self.status}')>"
        )
