"""
Pytest configuration and fixtures for FarmHub tests.

Provides database sessions, in-memory repositories, a recording
notification registry and sample records.
"""

import os

# The application engine is built at import time; keep it off the filesystem.
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")

from datetime import date  # noqa: E402
from typing import Generator, Optional  # noqa: E402

import pytest  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import Session, sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from farmhub.models import Booking, Equipment, MaintenanceWindow, Supply  # noqa: E402
from farmhub.models.base import Base  # noqa: E402
from farmhub.notifications import NotificationChannel, NotificationDispatcher, NotificationEvent  # noqa: E402
from farmhub.repositories import Repositories  # noqa: E402
from farmhub.services import (  # noqa: E402
    BookingLifecycle,
    InventoryReservation,
    KeyedLock,
    MaintenanceLifecycle,
    SupplyOrderService,
)

# Fixed "today" for service tests
TODAY = date(2025, 6, 1)

OWNER = "owner-1"
RENTER = "renter-1"
OTHER = "someone-else"
SUPPLIER = "supplier-1"
BUYER = "buyer-1"


class RecordingRegistry:
    """Notification registry that records every send."""

    def __init__(self, fail: bool = False):
        self.sent: list[tuple[str, NotificationEvent]] = []
        self.channels: dict[str, NotificationChannel] = {}
        self.fail = fail
        self.closed = False

    async def register(self, user_id: str, channel: NotificationChannel) -> None:
        self.channels[user_id] = channel

    async def unregister(self, user_id: str, channel: Optional[NotificationChannel] = None) -> bool:
        return self.channels.pop(user_id, None) is not None

    async def send(self, user_id: str, event: NotificationEvent) -> bool:
        if self.fail:
            raise ConnectionError("registry unavailable")
        self.sent.append((user_id, event))
        return True

    async def close(self) -> None:
        self.closed = True

    def types_for(self, user_id: str) -> list[str]:
        return [event.type for uid, event in self.sent if uid == user_id]


@pytest.fixture(scope="function")
def db_session() -> Generator[Session, None, None]:
    """
    Create a clean database session for each test.

    Uses an in-memory SQLite database that is torn down after each test.

    Yields:
        Session: SQLAlchemy session for database operations
    """
    engine = create_engine(
        "sqlite:///:memory:",
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)

    TestingSessionLocal = sessionmaker(
        autocommit=False,
        autoflush=False,
        bind=engine,
        expire_on_commit=False,
    )
    session = TestingSessionLocal()

    try:
        yield session
    finally:
        session.rollback()
        session.close()
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture
def repos() -> Repositories:
    """In-memory repositories sharing one store."""
    return Repositories.in_memory()


@pytest.fixture
def sql_repos(db_session: Session) -> Repositories:
    return Repositories.from_session(db_session)


@pytest.fixture
def registry() -> RecordingRegistry:
    return RecordingRegistry()


@pytest.fixture
def dispatcher(registry: RecordingRegistry) -> NotificationDispatcher:
    return NotificationDispatcher(registry)


@pytest.fixture
def bookings_service(repos: Repositories, dispatcher: NotificationDispatcher) -> BookingLifecycle:
    return BookingLifecycle(
        repos.equipment,
        repos.bookings,
        repos.maintenance,
        dispatcher=dispatcher,
        locks=KeyedLock(),
        today=lambda: TODAY,
    )


@pytest.fixture
def maintenance_service(repos: Repositories) -> MaintenanceLifecycle:
    return MaintenanceLifecycle(repos.equipment, repos.bookings, repos.maintenance, today=lambda: TODAY)


@pytest.fixture
def inventory(repos: Repositories) -> InventoryReservation:
    return InventoryReservation(repos.supplies, clamp_restored=True, low_stock_threshold=5)


@pytest.fixture
def orders_service(
    repos: Repositories,
    inventory: InventoryReservation,
    dispatcher: NotificationDispatcher,
) -> SupplyOrderService:
    return SupplyOrderService(inventory, repos.orders, dispatcher=dispatcher)


@pytest.fixture
def tractor(repos: Repositories) -> Equipment:
    """
    A persisted (in-memory) tractor owned by OWNER.

    Returns:
        Equipment: Available equipment with no bookings
    """
    return repos.equipment.add(Equipment(
        name="Mahindra 575 Tractor",
        equipment_type="tractor",
        price_per_day=1500.0,
        description="45 HP",
        owner_id=OWNER,
        available=True,
    ))


@pytest.fixture
def seeds(repos: Repositories) -> Supply:
    """Supply with total 10 / available 10."""
    return repos.supplies.add(Supply(
        name="Hybrid Maize Seeds",
        category="seeds",
        unit="kg",
        price=120.0,
        total_quantity=10,
        available_quantity=10,
        supplier_id=SUPPLIER,
    ))


def add_booking(
    repos: Repositories,
    equipment: Equipment,
    start: date,
    end: date,
    status: str = "pending",
    requester_id: str = RENTER,
) -> Booking:
    """Insert a booking directly, bypassing the lifecycle checks."""
    return repos.bookings.add(Booking(
        equipment_id=equipment.id,
        requester_id=requester_id,
        owner_id=equipment.owner_id,
        start_date=start,
        end_date=end,
        status=status,
    ))


def add_window(
    repos: Repositories,
    equipment: Equipment,
    day: date,
    status: str = "scheduled",
) -> MaintenanceWindow:
    return repos.maintenance.add(MaintenanceWindow(
        equipment_id=equipment.id,
        maintenance_type="routine",
        scheduled_date=day,
        status=status,
        priority="medium",
    ))
