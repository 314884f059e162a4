"""
SQLAlchemy models for FarmHub.

This module exports all database models for easy importing and
ensures Alembic can discover them for migrations.
"""

from farmhub.models.base import Base, BaseModel, GUID

from farmhub.models.equipment import Equipment, Booking
from farmhub.models.maintenance import MaintenanceWindow
from farmhub.models.supplies import Supply, SupplyOrder
from farmhub.models.enums import (
    ACTIVE_BOOKING_STATUSES,
    ACTIVE_MAINTENANCE_STATUSES,
    TERMINAL_BOOKING_STATUSES,
    BookingStatus,
    MaintenancePriority,
    MaintenanceStatus,
    MaintenanceType,
    SupplyCategory,
    SupplyOrderStatus,
)

__all__ = [
    # Base classes
    "Base",
    "BaseModel",
    "GUID",
    # Equipment models
    "Equipment",
    "Booking",
    "MaintenanceWindow",
    # Marketplace models
    "Supply",
    "SupplyOrder",
    # Vocabularies
    "ACTIVE_BOOKING_STATUSES",
    "ACTIVE_MAINTENANCE_STATUSES",
    "TERMINAL_BOOKING_STATUSES",
    "BookingStatus",
    "MaintenancePriority",
    "MaintenanceStatus",
    "MaintenanceType",
    "SupplyCategory",
    "SupplyOrderStatus",
]
