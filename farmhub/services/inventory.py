"""
Supply stock accounting.

Provides:
- InventoryReservation: check, reserve, restore and restock supply
  quantities through the repository's conditional writes
- InventorySummary: per-supplier stock overview
"""

import logging
from dataclasses import dataclass, field
from typing import Optional, Sequence
from uuid import UUID

from farmhub.errors import (
    ForbiddenError,
    InsufficientStockError,
    InvalidQuantity,
    NotFoundError,
    ValidationError,
)
from farmhub.models import Supply, SupplyCategory
from farmhub.repositories.base import Reservation, SupplyRepository

logger = logging.getLogger(__name__)

SUPPLY_CATEGORIES = frozenset(c.value for c in SupplyCategory)


@dataclass
class StockCheck:
    """Result of a stock check; `error` explains a negative answer."""

    has_stock: bool
    available_quantity: int = 0
    error: Optional[str] = None


@dataclass
class InventorySummary:
    """Stock overview for one supplier."""

    total_supplies: int
    low_stock_supplies: int
    out_of_stock_supplies: int
    total_value: float
    supplies: list[Supply] = field(default_factory=list)


def _require_quantity(quantity: int) -> int:
    if quantity is None or quantity < 1:
        raise ValidationError("Quantity must be at least 1")
    return quantity


class InventoryReservation:
    """
    Reserves and restores finite supply stock.

    Invariant kept by every write: 0 <= available_quantity and
    available == (available_quantity > 0). With `clamp_restored` set,
    restored stock never exceeds total_quantity either.
    """

    def __init__(
        self,
        supplies: SupplyRepository,
        clamp_restored: bool = True,
        low_stock_threshold: int = 5,
    ):
        self.supplies = supplies
        self.clamp_restored = clamp_restored
        self.low_stock_threshold = low_stock_threshold

    def get_supply(self, supply_id: UUID) -> Supply:
        supply = self.supplies.get(supply_id)
        if supply is None:
            raise NotFoundError("Supply not found")
        return supply

    def create_supply(
        self,
        supplier_id: str,
        name: str,
        category: str,
        total_quantity: int,
        price: float,
        unit: str = "piece",
        description: Optional[str] = None,
        brand: Optional[str] = None,
    ) -> Supply:
        """Put new stock on sale; all of it starts available."""
        if category not in SUPPLY_CATEGORIES:
            raise ValidationError(f"Invalid supply category '{category}'")
        if total_quantity is None or total_quantity < 0:
            raise ValidationError("Quantity cannot be negative")
        if price is None or price < 0:
            raise ValidationError("Price cannot be negative")

        supply = self.supplies.add(Supply(
            name=name,
            category=category,
            unit=unit or "piece",
            price=price,
            total_quantity=total_quantity,
            available_quantity=total_quantity,
            supplier_id=supplier_id,
            description=description,
            brand=brand,
        ))
        logger.info(f"Supply {supply.id} created by {supplier_id} with {total_quantity} {supply.unit}(s)")
        return supply

    def check_stock(self, supply_id: UUID, requested_quantity: int) -> StockCheck:
        """
        Whether `requested_quantity` units could be reserved right now.

        Fails closed: a missing supply, an unavailable supply or a lookup
        error all answer "no stock".
        """
        try:
            supply = self.supplies.get(supply_id)
        except Exception as e:
            logger.error(f"Stock lookup failed for supply {supply_id}: {e}", exc_info=True)
            return StockCheck(has_stock=False, error="Error checking stock availability")

        if supply is None:
            return StockCheck(has_stock=False, error="Supply not found")
        if not supply.available:
            return StockCheck(has_stock=False, available_quantity=supply.available_quantity,
                              error="Supply is not available")

        has_stock = supply.available_quantity >= requested_quantity
        return StockCheck(
            has_stock=has_stock,
            available_quantity=supply.available_quantity,
            error=None if has_stock else f"Only {supply.available_quantity} {supply.unit}(s) available",
        )

    def reserve(self, supply_id: UUID, quantity: int) -> Reservation:
        """
        Take `quantity` units out of available stock in one conditional write.

        Returns:
            Reservation with the available quantity before and after

        Raises:
            ValidationError: Quantity below 1
            NotFoundError: Supply does not exist
            InsufficientStockError: Not enough available units
        """
        _require_quantity(quantity)

        reservation = self.supplies.reserve(supply_id, quantity)
        if reservation is not None:
            logger.info(
                f"Reserved {quantity} of supply {supply_id}: "
                f"{reservation.original_quantity} -> {reservation.remaining_quantity}"
            )
            return reservation

        supply = self.get_supply(supply_id)
        if not supply.available:
            raise InsufficientStockError("Supply is not available")
        raise InsufficientStockError(
            f"Insufficient stock. Only {supply.available_quantity} {supply.unit}(s) available"
        )

    def restore(self, supply_id: UUID, quantity: int) -> int:
        """
        Return `quantity` units to available stock.

        Returns:
            The new available quantity
        """
        _require_quantity(quantity)

        restored = self.supplies.restore(supply_id, quantity, clamp=self.clamp_restored)
        if restored is None:
            raise NotFoundError("Supply not found")

        logger.info(f"Restored {quantity} of supply {supply_id}; available is now {restored}")
        return restored

    def update_total_quantity(self, supply_id: UUID, new_total: int, requester_id: str) -> Supply:
        """
        Restock or shrink a supply, shifting available stock by the same delta.

        Raises:
            NotFoundError: Supply does not exist
            ForbiddenError: Requester is not the supplier
            InvalidQuantity: Negative total, or a reduction below what
                outstanding orders already hold
        """
        supply = self.get_supply(supply_id)
        if supply.supplier_id != requester_id:
            raise ForbiddenError("Not authorized to update this supply")
        if new_total is None or new_total < 0:
            raise InvalidQuantity("Quantity cannot be negative")

        updated = self.supplies.adjust_total(supply_id, new_total)
        if updated is None:
            raise InvalidQuantity("Cannot reduce quantity below what is already ordered")

        logger.info(
            f"Supply {supply_id} total set to {new_total}; available is now {updated.available_quantity}"
        )
        return updated

    def inventory_summary(self, supplier_id: str) -> InventorySummary:
        supplies = list(self.supplies.list_by_supplier(supplier_id))
        return InventorySummary(
            total_supplies=len(supplies),
            low_stock_supplies=sum(
                1 for s in supplies if 0 < s.available_quantity <= self.low_stock_threshold
            ),
            out_of_stock_supplies=sum(1 for s in supplies if s.available_quantity == 0),
            total_value=round(sum(s.available_quantity * s.price for s in supplies), 2),
            supplies=supplies,
        )

    def list_available(self) -> Sequence[Supply]:
        return self.supplies.list_available()

    def list_by_supplier(self, supplier_id: str) -> Sequence[Supply]:
        return self.supplies.list_by_supplier(supplier_id)
