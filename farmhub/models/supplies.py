"""
Supply and SupplyOrder models.

Entities:
- Supply: Finite stock offered by a supplier
- SupplyOrder: A buyer's order, holding a reservation against the supply
"""

import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import Boolean, CheckConstraint, DateTime, Float, ForeignKey, Index, Integer, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from farmhub.models.base import BaseModel
from farmhub.models.enums import SupplyOrderStatus


class Supply(BaseModel):
    """
    Stock offered on the marketplace.

    Invariants:
    - 0 <= available_quantity
    - available == (available_quantity > 0), maintained by every quantity write
    """

    __tablename__ = "supplies"

    name: Mapped[str] = mapped_column(String(150), nullable=False)

    category: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        doc="seeds, fertilizers, pesticides, tools, machinery, other"
    )

    unit: Mapped[str] = mapped_column(String(20), nullable=False, default="piece")
    price: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)

    total_quantity: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        doc="Units the supplier has put on sale"
    )

    available_quantity: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        doc="Units not reserved by outstanding orders"
    )

    supplier_id: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    brand: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)

    available: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=True,
        doc="Derived: available_quantity > 0"
    )

    orders: Mapped[list["SupplyOrder"]] = relationship("SupplyOrder", back_populates="supply")

    __table_args__ = (
        CheckConstraint("total_quantity >= 0", name="supply_total_non_negative"),
        CheckConstraint("available_quantity >= 0", name="supply_available_non_negative"),
        Index("idx_supply_supplier", "supplier_id"),
        Index("idx_supply_category", "category"),
        Index("idx_supply_available", "available"),
    )

    def __repr__(self) -> str:
        return f"<Supply(name='{self.name}', available={self.available_quantity}/{self.total_quantity})>"


class SupplyOrder(BaseModel):
    """
    An order placed against a supply.

    `original_supply_quantity` / `remaining_supply_quantity` snapshot the
    supply's available quantity immediately before and after the reservation
    made for this order.
    """

    __tablename__ = "supply_orders"

    supply_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("supplies.id"),
        nullable=False,
    )

    buyer_id: Mapped[str] = mapped_column(String(255), nullable=False)
    supplier_id: Mapped[str] = mapped_column(String(255), nullable=False)

    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    total_price: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)

    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=SupplyOrderStatus.PENDING.value,
        doc="pending, confirmed, shipped, delivered, cancelled"
    )

    order_date: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )

    delivery_address: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    contact_phone: Mapped[Optional[str]] = mapped_column(String(30), nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    original_supply_quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    remaining_supply_quantity: Mapped[int] = mapped_column(Integer, nullable=False)

    supply: Mapped["Supply"] = relationship("Supply", back_populates="orders")

    __table_args__ = (
        CheckConstraint("quantity >= 1", name="order_quantity_positive"),
        Index("idx_order_supply", "supply_id"),
        Index("idx_order_buyer", "buyer_id"),
        Index("idx_order_supplier", "supplier_id"),
        Index("idx_order_status", "status"),
    )

    def __repr__(self) -> str:
        return f"<SupplyOrder(supply_id={self.supply_id}, qty={self.quantity}, status='{self.status}')>"
