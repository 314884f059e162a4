"""
Equipment catalog: listing, registration and read-only availability lookups.
"""

import logging
from datetime import date
from typing import Optional, Sequence, Union
from uuid import UUID

from farmhub.errors import NotFoundError, ValidationError
from farmhub.models import Equipment
from farmhub.repositories.base import BookingRepository, EquipmentRepository, MaintenanceRepository
from farmhub.services.availability import AvailabilityChecker, AvailabilityResult
from farmhub.services.dates import parse_day

logger = logging.getLogger(__name__)


class EquipmentCatalog:

    def __init__(
        self,
        equipment: EquipmentRepository,
        bookings: BookingRepository,
        maintenance: MaintenanceRepository,
    ):
        self.equipment = equipment
        self.checker = AvailabilityChecker(bookings, maintenance)

    def register(
        self,
        owner_id: str,
        name: str,
        equipment_type: str,
        price_per_day: float,
        description: Optional[str] = None,
    ) -> Equipment:
        if not name or not equipment_type:
            raise ValidationError("Missing required fields: name, type")
        if price_per_day is None or price_per_day < 0:
            raise ValidationError("Price per day cannot be negative")

        equipment = self.equipment.add(Equipment(
            name=name,
            equipment_type=equipment_type,
            price_per_day=price_per_day,
            description=description,
            owner_id=owner_id,
            available=True,
        ))
        logger.info(f"Equipment {equipment.id} registered by {owner_id}")
        return equipment

    def get(self, equipment_id: UUID) -> Equipment:
        equipment = self.equipment.get(equipment_id)
        if equipment is None:
            raise NotFoundError("Equipment not found")
        return equipment

    def list_available(self) -> Sequence[Equipment]:
        return self.equipment.list_available()

    def list_by_owner(self, owner_id: str) -> Sequence[Equipment]:
        return self.equipment.list_by_owner(owner_id)

    def check_availability(
        self,
        equipment_id: UUID,
        start: Union[str, date, None],
        end: Union[str, date, None],
    ) -> AvailabilityResult:
        """Read-only conflict check for a candidate range; no past-date rule applies."""
        start_date = parse_day(start, "startDate")
        end_date = parse_day(end, "endDate")
        if end_date < start_date:
            raise ValidationError("End date must not be before start date")

        self.get(equipment_id)
        return self.checker.check(equipment_id, start_date, end_date)
