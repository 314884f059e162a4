"""
Equipment availability.

Provides:
- AvailabilityChecker: read-only conflict check of a date range against
  active bookings and maintenance windows
- recompute_availability: the single derivation of `Equipment.available`
"""

import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Optional
from uuid import UUID

from farmhub.models import ACTIVE_BOOKING_STATUSES, ACTIVE_MAINTENANCE_STATUSES, Booking, MaintenanceWindow
from farmhub.repositories.base import BookingRepository, EquipmentRepository, MaintenanceRepository

logger = logging.getLogger(__name__)


@dataclass
class AvailabilityResult:
    """
    Outcome of an availability check.

    `reason` is None when available, otherwise "booking_conflict",
    "maintenance_conflict" or "lookup_failed".
    """

    equipment_id: UUID
    start: date
    end: date
    is_available: bool
    reason: Optional[str] = None
    conflicting_bookings: list[Booking] = field(default_factory=list)
    conflicting_maintenance: list[MaintenanceWindow] = field(default_factory=list)


class AvailabilityChecker:
    """
    Decides whether equipment can be booked for an inclusive day range.

    Only pending/approved bookings and scheduled/in-progress maintenance
    windows block. Failure policy is asymmetric:
    - the booking lookup fails closed (an error means "not available")
    - the maintenance lookup fails open (an error is logged and treated as
      "no maintenance conflict")
    """

    def __init__(self, bookings: BookingRepository, maintenance: MaintenanceRepository):
        self.bookings = bookings
        self.maintenance = maintenance

    def check(
        self,
        equipment_id: UUID,
        start: date,
        end: date,
        exclude_booking_id: Optional[UUID] = None,
    ) -> AvailabilityResult:
        """
        Check a candidate range and report why it is blocked, if it is.

        Args:
            equipment_id: Equipment to check
            start: First requested day (inclusive)
            end: Last requested day (inclusive)
            exclude_booking_id: Booking to ignore (the one being changed)

        Returns:
            AvailabilityResult; never raises for lookup failures
        """
        result = AvailabilityResult(equipment_id=equipment_id, start=start, end=end, is_available=True)

        try:
            conflicts = list(self.bookings.find_overlapping(
                equipment_id, start, end, ACTIVE_BOOKING_STATUSES, exclude_id=exclude_booking_id,
            ))
        except Exception as e:
            logger.error(
                f"Booking lookup failed for equipment {equipment_id}; treating as unavailable: {e}",
                exc_info=True,
            )
            result.is_available = False
            result.reason = "lookup_failed"
            return result

        if conflicts:
            result.is_available = False
            result.reason = "booking_conflict"
            result.conflicting_bookings = conflicts
            return result

        try:
            windows = list(self.maintenance.find_overlapping(
                equipment_id, start, end, ACTIVE_MAINTENANCE_STATUSES,
            ))
        except Exception as e:
            logger.warning(
                f"Maintenance lookup failed for equipment {equipment_id}; continuing without it: {e}",
                exc_info=True,
            )
            windows = []

        if windows:
            result.is_available = False
            result.reason = "maintenance_conflict"
            result.conflicting_maintenance = windows

        return result

    def is_available(self, equipment_id: UUID, start: date, end: date) -> bool:
        return self.check(equipment_id, start, end).is_available


def recompute_availability(
    equipment: EquipmentRepository,
    bookings: BookingRepository,
    maintenance: MaintenanceRepository,
    equipment_id: UUID,
) -> bool:
    """
    Derive and store `available` for one piece of equipment.

    Available means no pending/approved booking and no scheduled/in-progress
    maintenance window references it. Called after every booking and
    maintenance mutation.

    Returns:
        The stored value
    """
    available = not (bookings.has_active(equipment_id) or maintenance.has_active(equipment_id))
    equipment.set_available(equipment_id, available)
    logger.debug(f"Equipment {equipment_id} available={available}")
    return available
