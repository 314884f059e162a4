"""
MaintenanceWindow model.

A maintenance window blocks its equipment on the scheduled day while it is
scheduled or in progress.
"""

import uuid
from datetime import date, datetime
from typing import Optional, TYPE_CHECKING

from sqlalchemy import CheckConstraint, Date, DateTime, Float, ForeignKey, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from farmhub.models.base import BaseModel
from farmhub.models.enums import ACTIVE_MAINTENANCE_STATUSES, MaintenancePriority, MaintenanceStatus

if TYPE_CHECKING:
    from farmhub.models.equipment import Equipment


class MaintenanceWindow(BaseModel):
    """
    Scheduled maintenance for a piece of equipment.

    Status workflow:
        scheduled -> in_progress | completed | cancelled
        in_progress -> completed | cancelled
    """

    __tablename__ = "maintenance_windows"

    equipment_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("equipment.id", ondelete="CASCADE"),
        nullable=False,
        doc="Equipment under maintenance"
    )

    maintenance_type: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        doc="routine, repair, inspection, upgrade, emergency"
    )

    scheduled_date: Mapped[date] = mapped_column(
        Date,
        nullable=False,
        doc="Day the equipment is taken out of service"
    )

    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=MaintenanceStatus.SCHEDULED.value,
        doc="scheduled, in_progress, completed, cancelled"
    )

    priority: Mapped[str] = mapped_column(
        String(10),
        nullable=False,
        default=MaintenancePriority.MEDIUM.value,
        doc="low, medium, high, urgent"
    )

    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    cost: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    technician: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)

    completed_date: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
        doc="Set when the window reaches completed"
    )

    equipment: Mapped["Equipment"] = relationship("Equipment", back_populates="maintenance_windows")

    __table_args__ = (
        CheckConstraint("cost IS NULL OR cost >= 0", name="maintenance_cost_non_negative"),
        Index("idx_maintenance_equipment", "equipment_id"),
        Index("idx_maintenance_scheduled", "scheduled_date"),
        Index("idx_maintenance_status", "status"),
    )

    @property
    def is_active(self) -> bool:
        """Whether this window blocks the equipment."""
        return self.status in ACTIVE_MAINTENANCE_STATUSES

    def __repr__(self) -> str:
        return (
            f"<MaintenanceWindow(equipment_id={self.equipment_id}, "
            f"date={self.scheduled_date}, status='{self.status}')>"
        )
