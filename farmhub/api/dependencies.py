"""
FastAPI dependency injection providers.

Provides the caller's identity, repositories over the request session,
the notification dispatcher and the coordination services.
"""

import logging
from typing import Optional

from fastapi import Depends, HTTPException, Request
from sqlalchemy.orm import Session

from farmhub.config import Settings, get_settings
from farmhub.database import get_db
from farmhub.errors import UnauthorizedError
from farmhub.notifications import (
    InMemoryNotificationRegistry,
    NotificationDispatcher,
    NotificationRegistry,
    RedisNotificationRegistry,
)
from farmhub.repositories import Repositories
from farmhub.services import (
    BookingLifecycle,
    EquipmentCatalog,
    InventoryReservation,
    KeyedLock,
    MaintenanceLifecycle,
    SupplyOrderService,
)
from farmhub.services.dates import today_in

logger = logging.getLogger(__name__)

# Global dispatcher instance (initialized at startup)
_dispatcher: Optional[NotificationDispatcher] = None

# Serializes booking creation per equipment within this process
booking_locks = KeyedLock()


def build_registry(settings: Settings) -> NotificationRegistry:
    if settings.uses_redis_notifications:
        logger.info(f"Using Redis notification registry at {settings.redis_url}")
        return RedisNotificationRegistry.from_url(
            settings.redis_url,
            prefix=settings.notification_channel_prefix,
        )
    logger.info("Using in-process notification registry")
    return InMemoryNotificationRegistry()


def init_notifications(settings: Optional[Settings] = None) -> NotificationDispatcher:
    """Initialize the notification dispatcher at application startup."""
    global _dispatcher
    _dispatcher = NotificationDispatcher(build_registry(settings or get_settings()))
    logger.info("Notification dispatcher initialized")
    return _dispatcher


async def shutdown_notifications() -> None:
    global _dispatcher
    if _dispatcher is not None:
        await _dispatcher.close()
        _dispatcher = None
        logger.info("Notification dispatcher closed")


def get_dispatcher() -> NotificationDispatcher:
    """
    Dependency injection for the notification dispatcher.

    Raises:
        HTTPException: If the dispatcher was not initialized
    """
    if _dispatcher is None:
        logger.error("Notification dispatcher not initialized")
        raise HTTPException(
            status_code=503,
            detail="Service temporarily unavailable - notifications not initialized",
        )
    return _dispatcher


def get_current_user_id(request: Request) -> str:
    """
    Identity of the caller, as established by the upstream auth layer.

    Priority: identity header > `user_id` cookie

    Raises:
        UnauthorizedError: If neither carries a user id
    """
    settings = get_settings()
    user_id = request.headers.get(settings.identity_header) or request.cookies.get("user_id")
    if not user_id or not user_id.strip():
        raise UnauthorizedError("Authentication required")
    return user_id.strip()


def get_repositories(db: Session = Depends(get_db)) -> Repositories:
    return Repositories.from_session(db)


def get_equipment_catalog(repos: Repositories = Depends(get_repositories)) -> EquipmentCatalog:
    return EquipmentCatalog(repos.equipment, repos.bookings, repos.maintenance)


def get_booking_lifecycle(
    repos: Repositories = Depends(get_repositories),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
) -> BookingLifecycle:
    return BookingLifecycle(
        repos.equipment,
        repos.bookings,
        repos.maintenance,
        dispatcher=dispatcher,
        locks=booking_locks,
        today=today_in(get_settings().timezone),
    )


def get_maintenance_lifecycle(repos: Repositories = Depends(get_repositories)) -> MaintenanceLifecycle:
    return MaintenanceLifecycle(
        repos.equipment,
        repos.bookings,
        repos.maintenance,
        today=today_in(get_settings().timezone),
    )


def get_inventory(repos: Repositories = Depends(get_repositories)) -> InventoryReservation:
    settings = get_settings()
    return InventoryReservation(
        repos.supplies,
        clamp_restored=settings.clamp_restored_stock,
        low_stock_threshold=settings.low_stock_threshold,
    )


def get_order_service(
    repos: Repositories = Depends(get_repositories),
    inventory: InventoryReservation = Depends(get_inventory),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
) -> SupplyOrderService:
    return SupplyOrderService(inventory, repos.orders, dispatcher=dispatcher)
