"""
Booking lifecycle.

Owns the booking state machine:

    pending  --approve(owner)-->    approved
    pending  --reject(owner)-->     rejected   [terminal]
    pending  --cancel(requester)--> cancelled  [terminal]
    approved --complete(owner)-->   completed  [terminal]
    approved --cancel(requester)--> cancelled  [terminal]

Every creation, transition and deletion is followed by a recomputation of
the equipment's `available` flag.
"""

import logging
from dataclasses import dataclass
from datetime import date
from typing import Optional, Sequence, Union
from uuid import UUID

from farmhub.errors import (
    BookingConflictError,
    ForbiddenError,
    InvalidTransition,
    MaintenanceConflictError,
    NotFoundError,
    ValidationError,
)
from farmhub.models import Booking, BookingStatus
from farmhub.notifications.dispatcher import NotificationDispatcher
from farmhub.repositories.base import BookingRepository, EquipmentRepository, MaintenanceRepository
from farmhub.services.availability import AvailabilityChecker, recompute_availability
from farmhub.services.dates import Clock, parse_day, today_in
from farmhub.services.locks import KeyedLock

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Transition:
    """One edge of the booking state machine."""

    action: str
    actor: str  # "owner" or "requester"
    sources: frozenset[str]
    target: str


TRANSITIONS = {
    "approve": Transition(
        "approve", "owner", frozenset({BookingStatus.PENDING.value}), BookingStatus.APPROVED.value,
    ),
    "reject": Transition(
        "reject", "owner", frozenset({BookingStatus.PENDING.value}), BookingStatus.REJECTED.value,
    ),
    "complete": Transition(
        "complete", "owner", frozenset({BookingStatus.APPROVED.value}), BookingStatus.COMPLETED.value,
    ),
    "cancel": Transition(
        "cancel",
        "requester",
        frozenset({BookingStatus.PENDING.value, BookingStatus.APPROVED.value}),
        BookingStatus.CANCELLED.value,
    ),
}


def validate_booking_dates(
    start: Union[str, date, None],
    end: Union[str, date, None],
    today: date,
) -> tuple[date, date]:
    """
    Parse and validate a requested rental range.

    Raises:
        ValidationError: Unparseable dates, a day in the past, or an end
            date not after the start date (minimum one-day rental)
    """
    start_date = parse_day(start, "startDate")
    end_date = parse_day(end, "endDate")

    if start_date < today:
        raise ValidationError("Start date cannot be in the past")
    if end_date < today:
        raise ValidationError("End date cannot be in the past")
    if end_date <= start_date:
        raise ValidationError("End date must be after start date")

    return start_date, end_date


class BookingLifecycle:
    """
    Creates bookings and moves them through their lifecycle.

    Check-then-insert on creation runs under a per-equipment asyncio lock
    and the store's row lock on the equipment, so two overlapping requests
    cannot both pass the conflict check. Transitions are compare-and-set
    writes on the stored status.
    """

    def __init__(
        self,
        equipment: EquipmentRepository,
        bookings: BookingRepository,
        maintenance: MaintenanceRepository,
        dispatcher: Optional[NotificationDispatcher] = None,
        locks: Optional[KeyedLock] = None,
        today: Optional[Clock] = None,
    ):
        self.equipment = equipment
        self.bookings = bookings
        self.maintenance = maintenance
        self.dispatcher = dispatcher
        self.locks = locks or KeyedLock()
        self.today = today or today_in("UTC")
        self.checker = AvailabilityChecker(bookings, maintenance)

    def _recompute(self, equipment_id: UUID) -> bool:
        return recompute_availability(self.equipment, self.bookings, self.maintenance, equipment_id)

    async def create_booking(
        self,
        equipment_id: UUID,
        requester_id: str,
        start: Union[str, date, None],
        end: Union[str, date, None],
    ) -> Booking:
        """
        Create a pending booking.

        Args:
            equipment_id: Equipment to rent
            requester_id: User making the request
            start: First rental day (inclusive), ISO string or date
            end: Last rental day (inclusive), ISO string or date

        Returns:
            The persisted booking

        Raises:
            ValidationError: Invalid or past dates
            NotFoundError: Equipment does not exist
            BookingConflictError: An active booking overlaps, or the booking
                lookup failed
            MaintenanceConflictError: An active maintenance window falls in range
        """
        start_date, end_date = validate_booking_dates(start, end, self.today())

        async with self.locks.hold(equipment_id):
            with self.equipment.lock(equipment_id) as equipment:
                if equipment is None:
                    raise NotFoundError("Equipment not found")

                result = self.checker.check(equipment_id, start_date, end_date)
                if result.reason == "maintenance_conflict":
                    raise MaintenanceConflictError(details={
                        "maintenance": [str(w.id) for w in result.conflicting_maintenance],
                    })
                if not result.is_available:
                    raise BookingConflictError(details={
                        "bookings": [str(b.id) for b in result.conflicting_bookings],
                    })

                booking = self.bookings.add(Booking(
                    equipment_id=equipment_id,
                    requester_id=requester_id,
                    owner_id=equipment.owner_id,
                    start_date=start_date,
                    end_date=end_date,
                    status=BookingStatus.PENDING.value,
                ))
                self._recompute(equipment_id)

        logger.info(f"Booking {booking.id} created for equipment {equipment_id} by {requester_id}")
        if self.dispatcher is not None:
            await self.dispatcher.booking_created(booking, equipment)
        return booking

    async def approve(self, booking_id: UUID, actor_id: str) -> Booking:
        return await self.transition(booking_id, actor_id, "approve")

    async def reject(self, booking_id: UUID, actor_id: str) -> Booking:
        return await self.transition(booking_id, actor_id, "reject")

    async def complete(self, booking_id: UUID, actor_id: str) -> Booking:
        return await self.transition(booking_id, actor_id, "complete")

    async def cancel(self, booking_id: UUID, actor_id: str) -> Booking:
        return await self.transition(booking_id, actor_id, "cancel")

    async def transition(self, booking_id: UUID, actor_id: str, action: str) -> Booking:
        """
        Apply one state-machine edge.

        Raises:
            NotFoundError: Booking does not exist
            ForbiddenError: Actor is not the party the edge requires
            InvalidTransition: Current status has no such edge (including
                every terminal status)
        """
        rule = TRANSITIONS.get(action)
        if rule is None:
            raise InvalidTransition(f"Unknown booking action '{action}'")

        booking = self.bookings.get(booking_id)
        if booking is None:
            raise NotFoundError("Booking not found")

        party = booking.owner_id if rule.actor == "owner" else booking.requester_id
        if actor_id != party:
            raise ForbiddenError(f"Not authorized to {action} this booking")

        if booking.status not in rule.sources:
            raise InvalidTransition(f"Cannot {action} a booking that is {booking.status}")

        if not self.bookings.compare_and_set_status(booking, rule.sources, rule.target):
            raise InvalidTransition(f"Cannot {action} a booking that is {booking.status}")

        self._recompute(booking.equipment_id)
        logger.info(f"Booking {booking.id} -> {booking.status} by {actor_id}")

        if self.dispatcher is not None:
            equipment = self.equipment.get(booking.equipment_id)
            await self.dispatcher.booking_transitioned(booking, equipment)
        return booking

    async def delete_booking(self, booking_id: UUID, actor_id: str) -> None:
        """
        Hard-delete a booking from any status.

        Only the equipment owner or the original requester may delete.
        """
        booking = self.bookings.get(booking_id)
        if booking is None:
            raise NotFoundError("Booking not found")
        if actor_id not in (booking.owner_id, booking.requester_id):
            raise ForbiddenError("Not authorized to delete this booking")

        equipment_id = booking.equipment_id
        equipment = self.equipment.get(equipment_id)
        self.bookings.delete(booking)
        self._recompute(equipment_id)
        logger.info(f"Booking {booking_id} deleted by {actor_id}")

        if self.dispatcher is not None:
            await self.dispatcher.booking_deleted(booking, equipment)

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    def list_for_equipment(self, equipment_id: UUID) -> Sequence[Booking]:
        if self.equipment.get(equipment_id) is None:
            raise NotFoundError("Equipment not found")
        return self.bookings.list_for_equipment(equipment_id)

    def list_for_requester(self, requester_id: str) -> Sequence[Booking]:
        return self.bookings.list_for_requester(requester_id)

    def list_for_owner(self, owner_id: str) -> Sequence[Booking]:
        return self.bookings.list_for_owner(owner_id)
