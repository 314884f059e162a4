"""
Persistence layer for the coordination core.

`Repositories` bundles one repository per entity so services can be built
from a database session or from in-memory stores with the same call.
"""

from dataclasses import dataclass

from sqlalchemy.orm import Session

from farmhub.repositories.base import (
    BookingRepository,
    EquipmentRepository,
    MaintenanceRepository,
    Reservation,
    SupplyOrderRepository,
    SupplyRepository,
)
from farmhub.repositories.memory import (
    InMemoryBookingRepository,
    InMemoryEquipmentRepository,
    InMemoryMaintenanceRepository,
    InMemorySupplyOrderRepository,
    InMemorySupplyRepository,
)
from farmhub.repositories.sqlalchemy import (
    SQLAlchemyBookingRepository,
    SQLAlchemyEquipmentRepository,
    SQLAlchemyMaintenanceRepository,
    SQLAlchemySupplyOrderRepository,
    SQLAlchemySupplyRepository,
)


@dataclass
class Repositories:
    """One repository per entity, sharing a single store."""

    equipment: EquipmentRepository
    bookings: BookingRepository
    maintenance: MaintenanceRepository
    supplies: SupplyRepository
    orders: SupplyOrderRepository

    @classmethod
    def from_session(cls, session: Session) -> "Repositories":
        return cls(
            equipment=SQLAlchemyEquipmentRepository(session),
            bookings=SQLAlchemyBookingRepository(session),
            maintenance=SQLAlchemyMaintenanceRepository(session),
            supplies=SQLAlchemySupplyRepository(session),
            orders=SQLAlchemySupplyOrderRepository(session),
        )

    @classmethod
    def in_memory(cls) -> "Repositories":
        equipment = InMemoryEquipmentRepository()
        supplies = InMemorySupplyRepository()
        return cls(
            equipment=equipment,
            bookings=InMemoryBookingRepository(),
            maintenance=InMemoryMaintenanceRepository(equipment),
            supplies=supplies,
            orders=InMemorySupplyOrderRepository(supplies),
        )


__all__ = [
    "Repositories",
    "Reservation",
    # Protocols
    "EquipmentRepository",
    "BookingRepository",
    "MaintenanceRepository",
    "SupplyRepository",
    "SupplyOrderRepository",
    # SQLAlchemy
    "SQLAlchemyEquipmentRepository",
    "SQLAlchemyBookingRepository",
    "SQLAlchemyMaintenanceRepository",
    "SQLAlchemySupplyRepository",
    "SQLAlchemySupplyOrderRepository",
    # In-memory
    "InMemoryEquipmentRepository",
    "InMemoryBookingRepository",
    "InMemoryMaintenanceRepository",
    "InMemorySupplyRepository",
    "InMemorySupplyOrderRepository",
]
