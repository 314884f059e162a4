"""
Coordination services for bookings, maintenance and supply stock.

Services depend only on the repository protocols in
farmhub.repositories.base and on the notification dispatcher.
"""

from farmhub.services.availability import AvailabilityChecker, AvailabilityResult, recompute_availability
from farmhub.services.bookings import TRANSITIONS, BookingLifecycle, validate_booking_dates
from farmhub.services.equipment import EquipmentCatalog
from farmhub.services.inventory import InventoryReservation, InventorySummary, StockCheck
from farmhub.services.locks import KeyedLock
from farmhub.services.maintenance import MAINTENANCE_TRANSITIONS, MaintenanceLifecycle
from farmhub.services.orders import SupplyOrderService
from farmhub.services.overlap import ranges_conflict, ranges_overlap

__all__ = [
    # Availability
    "AvailabilityChecker",
    "AvailabilityResult",
    "recompute_availability",
    "ranges_conflict",
    "ranges_overlap",
    # Bookings
    "BookingLifecycle",
    "TRANSITIONS",
    "validate_booking_dates",
    "KeyedLock",
    # Equipment
    "EquipmentCatalog",
    # Maintenance
    "MaintenanceLifecycle",
    "MAINTENANCE_TRANSITIONS",
    # Inventory
    "InventoryReservation",
    "InventorySummary",
    "StockCheck",
    "SupplyOrderService",
]
