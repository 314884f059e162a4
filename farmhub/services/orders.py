"""
Supply orders.

Placing an order reserves stock; cancelling it restores the same quantity
exactly once. Other status changes never touch stock.
"""

import logging
from typing import Optional, Sequence
from uuid import UUID

from farmhub.errors import ForbiddenError, InsufficientStockError, InvalidTransition, NotFoundError, ValidationError
from farmhub.models import SupplyOrder, SupplyOrderStatus
from farmhub.notifications.dispatcher import NotificationDispatcher
from farmhub.repositories.base import SupplyOrderRepository
from farmhub.services.inventory import InventoryReservation

logger = logging.getLogger(__name__)

ORDER_STATUSES = frozenset(s.value for s in SupplyOrderStatus)
OPEN_ORDER_STATUSES = ORDER_STATUSES - {SupplyOrderStatus.CANCELLED.value}


class SupplyOrderService:
    """Places supply orders and drives their status."""

    def __init__(
        self,
        inventory: InventoryReservation,
        orders: SupplyOrderRepository,
        dispatcher: Optional[NotificationDispatcher] = None,
    ):
        self.inventory = inventory
        self.orders = orders
        self.dispatcher = dispatcher

    async def place_order(
        self,
        supply_id: UUID,
        buyer_id: str,
        quantity: int = 1,
        delivery_address: Optional[str] = None,
        contact_phone: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> SupplyOrder:
        """
        Reserve stock and record the order.

        The order stamps the supply's available quantity immediately before
        and after its own reservation, so a later cancellation restores
        exactly what this order took.

        Raises:
            ValidationError: Quantity below 1
            NotFoundError: Supply does not exist
            InsufficientStockError: Supply unavailable or short of stock
        """
        if quantity is None or quantity < 1:
            raise ValidationError("Quantity must be at least 1")

        supply = self.inventory.get_supply(supply_id)
        stock = self.inventory.check_stock(supply_id, quantity)
        if not stock.has_stock:
            if not supply.available:
                raise InsufficientStockError("Supply is not available")
            raise InsufficientStockError(f"Insufficient stock. {stock.error}")

        # check_stock is advisory; reserve re-checks in the same write
        reservation = self.inventory.reserve(supply_id, quantity)

        try:
            order = self.orders.add(SupplyOrder(
                supply_id=supply_id,
                buyer_id=buyer_id,
                supplier_id=supply.supplier_id,
                quantity=quantity,
                total_price=round(supply.price * quantity, 2),
                status=SupplyOrderStatus.PENDING.value,
                delivery_address=delivery_address,
                contact_phone=contact_phone,
                notes=notes,
                original_supply_quantity=reservation.original_quantity,
                remaining_supply_quantity=reservation.remaining_quantity,
            ))
        except Exception:
            logger.error(f"Order insert failed; releasing {quantity} of supply {supply_id}", exc_info=True)
            self.inventory.restore(supply_id, quantity)
            raise

        logger.info(f"Order {order.id} placed by {buyer_id} for {quantity} of supply {supply_id}")
        if self.dispatcher is not None:
            await self.dispatcher.supply_order_created(order, supply)
        return order

    async def update_order_status(self, order_id: UUID, actor_id: str, status: Optional[str]) -> SupplyOrder:
        """
        Change an order's status (supplier only).

        Moving to cancelled restores the order's quantity; a second
        cancellation is a no-op. A cancelled order cannot be reopened.

        Raises:
            NotFoundError: Order does not exist
            ForbiddenError: Actor is not the order's supplier
            ValidationError: Unknown status
            InvalidTransition: Attempt to reopen a cancelled order
        """
        order = self.orders.get(order_id)
        if order is None:
            raise NotFoundError("Order not found")
        if order.supplier_id != actor_id:
            raise ForbiddenError("Not authorized to update this order")
        if status not in ORDER_STATUSES:
            raise ValidationError("Invalid status")

        if status == SupplyOrderStatus.CANCELLED.value:
            await self._cancel(order, actor_id)
            return order

        if not self.orders.compare_and_set_status(order, OPEN_ORDER_STATUSES, status):
            raise InvalidTransition("Cancelled orders cannot be reopened")

        logger.info(f"Order {order.id} -> {status} by {actor_id}")
        if self.dispatcher is not None:
            await self.dispatcher.supply_order_updated(order, actor_id)
        return order

    async def _cancel(self, order: SupplyOrder, actor_id: str) -> None:
        # Status and restock are written together; a failure leaves both untouched.
        self.inventory.get_supply(order.supply_id)
        restored = self.orders.cancel_and_restore(order, clamp=self.inventory.clamp_restored)
        if restored is None:
            logger.info(f"Order {order.id} already cancelled; stock left unchanged")
            return

        logger.info(
            f"Order {order.id} cancelled by {actor_id}; restored {order.quantity} of supply "
            f"{order.supply_id}, available is now {restored}"
        )
        if self.dispatcher is not None:
            await self.dispatcher.supply_order_updated(order, actor_id)

    def list_for_user(self, user_id: str, role: Optional[str] = None) -> Sequence[SupplyOrder]:
        """
        Orders where the user is buyer, supplier, or either when `role` is None.
        """
        if role == "supplier":
            return self.orders.list_for_supplier(user_id)
        if role == "buyer":
            return self.orders.list_for_buyer(user_id)
        if role is not None:
            raise ValidationError(f"Invalid role '{role}'")

        merged = {o.id: o for o in self.orders.list_for_buyer(user_id)}
        merged.update((o.id, o) for o in self.orders.list_for_supplier(user_id))
        return sorted(merged.values(), key=lambda o: o.order_date, reverse=True)
