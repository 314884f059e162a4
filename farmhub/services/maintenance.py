"""
Maintenance lifecycle.

Status workflow:
    scheduled   -> in_progress | completed | cancelled
    in_progress -> completed | cancelled
`completed` and `cancelled` are terminal. Scheduled and in-progress windows
block their equipment, so every create, status change and delete is
followed by an availability recomputation.
"""

import logging
from datetime import date, datetime, timezone
from typing import Any, Optional, Sequence, Union
from uuid import UUID

from farmhub.errors import ForbiddenError, InvalidTransition, NotFoundError, ValidationError
from farmhub.models import (
    MaintenancePriority,
    MaintenanceStatus,
    MaintenanceType,
    MaintenanceWindow,
)
from farmhub.repositories.base import BookingRepository, EquipmentRepository, MaintenanceRepository
from farmhub.services.availability import recompute_availability
from farmhub.services.dates import Clock, parse_day, today_in

logger = logging.getLogger(__name__)


# Allowed target statuses from each status
MAINTENANCE_TRANSITIONS: dict[str, frozenset[str]] = {
    MaintenanceStatus.SCHEDULED.value: frozenset({
        MaintenanceStatus.IN_PROGRESS.value,
        MaintenanceStatus.COMPLETED.value,
        MaintenanceStatus.CANCELLED.value,
    }),
    MaintenanceStatus.IN_PROGRESS.value: frozenset({
        MaintenanceStatus.COMPLETED.value,
        MaintenanceStatus.CANCELLED.value,
    }),
    MaintenanceStatus.COMPLETED.value: frozenset(),
    MaintenanceStatus.CANCELLED.value: frozenset(),
}

MAINTENANCE_TYPES = frozenset(t.value for t in MaintenanceType)
MAINTENANCE_PRIORITIES = frozenset(p.value for p in MaintenancePriority)


def normalize_maintenance_status(status: Optional[str]) -> str:
    """Accept `in-progress` as an alias and reject unknown statuses."""
    if not status:
        raise ValidationError("status is required")
    normalized = status.strip().lower().replace("-", "_")
    if normalized not in MAINTENANCE_TRANSITIONS:
        raise ValidationError(f"Invalid maintenance status '{status}'")
    return normalized


def default_priority(maintenance_type: str) -> str:
    if maintenance_type == MaintenanceType.EMERGENCY.value:
        return MaintenancePriority.URGENT.value
    return MaintenancePriority.MEDIUM.value


def _validate_type(maintenance_type: Optional[str]) -> str:
    if maintenance_type not in MAINTENANCE_TYPES:
        raise ValidationError(f"Invalid maintenance type '{maintenance_type}'")
    return maintenance_type


def _validate_priority(priority: str) -> str:
    if priority not in MAINTENANCE_PRIORITIES:
        raise ValidationError(f"Invalid maintenance priority '{priority}'")
    return priority


def _validate_cost(cost: Optional[float]) -> Optional[float]:
    if cost is not None and cost < 0:
        raise ValidationError("Cost cannot be negative")
    return cost


class MaintenanceLifecycle:
    """Schedules maintenance windows and moves them through their lifecycle."""

    def __init__(
        self,
        equipment: EquipmentRepository,
        bookings: BookingRepository,
        maintenance: MaintenanceRepository,
        today: Optional[Clock] = None,
    ):
        self.equipment = equipment
        self.bookings = bookings
        self.maintenance = maintenance
        self.today = today or today_in("UTC")

    def _recompute(self, equipment_id: UUID) -> bool:
        return recompute_availability(self.equipment, self.bookings, self.maintenance, equipment_id)

    def _scheduled_day(self, value: Union[str, date, None]) -> date:
        scheduled = parse_day(value, "scheduledDate")
        if scheduled < self.today():
            raise ValidationError("Maintenance date cannot be in the past")
        return scheduled

    def _owned_window(self, window_id: UUID, actor_id: str, verb: str) -> MaintenanceWindow:
        window = self.maintenance.get(window_id)
        if window is None:
            raise NotFoundError("Maintenance record not found")
        equipment = self.equipment.get(window.equipment_id)
        if equipment is None or equipment.owner_id != actor_id:
            raise ForbiddenError(f"You can only {verb} maintenance for your own equipment")
        return window

    def schedule(
        self,
        equipment_id: Optional[UUID],
        actor_id: str,
        maintenance_type: Optional[str],
        scheduled_date: Union[str, date, None],
        description: Optional[str] = None,
        priority: Optional[str] = None,
    ) -> MaintenanceWindow:
        """
        Schedule a maintenance window on the owner's equipment.

        Raises:
            ValidationError: Missing fields, unknown type or priority, or a
                past date
            NotFoundError: Equipment does not exist
            ForbiddenError: Actor does not own the equipment
        """
        if not equipment_id or not maintenance_type or not scheduled_date:
            raise ValidationError("Missing required fields: equipmentId, type, scheduledDate")

        equipment = self.equipment.get(equipment_id)
        if equipment is None:
            raise NotFoundError("Equipment not found")
        if equipment.owner_id != actor_id:
            raise ForbiddenError("You can only schedule maintenance for your own equipment")

        maintenance_type = _validate_type(maintenance_type)
        day = self._scheduled_day(scheduled_date)

        window = self.maintenance.add(MaintenanceWindow(
            equipment_id=equipment_id,
            maintenance_type=maintenance_type,
            scheduled_date=day,
            description=description or "",
            status=MaintenanceStatus.SCHEDULED.value,
            priority=_validate_priority(priority) if priority else default_priority(maintenance_type),
        ))
        self._recompute(equipment_id)

        logger.info(f"Maintenance {window.id} scheduled for equipment {equipment_id} on {day}")
        return window

    def update_status(
        self,
        window_id: UUID,
        actor_id: str,
        status: Optional[str],
        notes: Optional[str] = None,
        cost: Optional[float] = None,
        technician: Optional[str] = None,
    ) -> MaintenanceWindow:
        """
        Move a window along one edge of the maintenance state machine.

        `completed_date` is stamped when the window reaches completed.

        Raises:
            ValidationError: Unknown status or negative cost
            NotFoundError: Window does not exist
            ForbiddenError: Actor does not own the equipment
            InvalidTransition: No such edge from the current status
        """
        target = normalize_maintenance_status(status)
        window = self._owned_window(window_id, actor_id, "update")

        if target not in MAINTENANCE_TRANSITIONS[window.status]:
            raise InvalidTransition(f"Cannot move maintenance from {window.status} to {target}")

        fields: dict[str, Any] = {}
        if notes:
            fields["notes"] = notes
        if cost is not None:
            fields["cost"] = _validate_cost(cost)
        if technician:
            fields["technician"] = technician
        if target == MaintenanceStatus.COMPLETED.value:
            fields["completed_date"] = datetime.now(timezone.utc)

        sources = [s for s, targets in MAINTENANCE_TRANSITIONS.items() if target in targets]
        if not self.maintenance.compare_and_set_status(window, sources, target, **fields):
            raise InvalidTransition(f"Cannot move maintenance from {window.status} to {target}")

        self._recompute(window.equipment_id)
        logger.info(f"Maintenance {window.id} -> {window.status} by {actor_id}")
        return window

    def update(
        self,
        window_id: UUID,
        actor_id: str,
        maintenance_type: Optional[str] = None,
        scheduled_date: Union[str, date, None] = None,
        description: Optional[str] = None,
        priority: Optional[str] = None,
        technician: Optional[str] = None,
        cost: Optional[float] = None,
        notes: Optional[str] = None,
    ) -> MaintenanceWindow:
        """General field update; status is only changed through `update_status`."""
        window = self._owned_window(window_id, actor_id, "update")

        fields: dict[str, Any] = {}
        if maintenance_type:
            fields["maintenance_type"] = _validate_type(maintenance_type)
        if scheduled_date:
            fields["scheduled_date"] = self._scheduled_day(scheduled_date)
        if description is not None:
            fields["description"] = description
        if priority:
            fields["priority"] = _validate_priority(priority)
        if technician is not None:
            fields["technician"] = technician
        if cost is not None:
            fields["cost"] = _validate_cost(cost)
        if notes is not None:
            fields["notes"] = notes

        if fields:
            window = self.maintenance.update(window, **fields)
        return window

    def delete(self, window_id: UUID, actor_id: str) -> None:
        window = self._owned_window(window_id, actor_id, "delete")
        equipment_id = window.equipment_id
        self.maintenance.delete(window)
        self._recompute(equipment_id)
        logger.info(f"Maintenance {window_id} deleted by {actor_id}")

    def list_for_owner(
        self,
        owner_id: str,
        equipment_id: Optional[UUID] = None,
        status: Optional[str] = None,
    ) -> Sequence[MaintenanceWindow]:
        if status:
            status = normalize_maintenance_status(status)
        return self.maintenance.list_for_owner(owner_id, equipment_id=equipment_id, status=status)
