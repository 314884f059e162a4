"""
Status and category vocabularies.

Values are stored as plain strings; the enums give them names and define
which statuses block equipment availability.
"""

from enum import Enum


class BookingStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


ACTIVE_BOOKING_STATUSES = frozenset({BookingStatus.PENDING.value, BookingStatus.APPROVED.value})
TERMINAL_BOOKING_STATUSES = frozenset({
    BookingStatus.REJECTED.value,
    BookingStatus.COMPLETED.value,
    BookingStatus.CANCELLED.value,
})


class MaintenanceStatus(str, Enum):
    SCHEDULED = "scheduled"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


ACTIVE_MAINTENANCE_STATUSES = frozenset({
    MaintenanceStatus.SCHEDULED.value,
    MaintenanceStatus.IN_PROGRESS.value,
})


class MaintenanceType(str, Enum):
    ROUTINE = "routine"
    REPAIR = "repair"
    INSPECTION = "inspection"
    UPGRADE = "upgrade"
    EMERGENCY = "emergency"


class MaintenancePriority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


class SupplyCategory(str, Enum):
    SEEDS = "seeds"
    FERTILIZERS = "fertilizers"
    PESTICIDES = "pesticides"
    TOOLS = "tools"
    MACHINERY = "machinery"
    OTHER = "other"


class SupplyOrderStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"
