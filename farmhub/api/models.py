"""
Pydantic request and response models for the FarmHub API.

JSON keys are camelCase; Python attributes stay snake_case.
"""

from datetime import date, datetime
from typing import Any, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base model reading snake_case attributes and speaking camelCase JSON."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


def _strip_required(v: str) -> str:
    if not v.strip():
        raise ValueError("Value cannot be empty")
    return v.strip()


# =============================================================================
# Request Models
# =============================================================================


class CreateEquipmentRequest(CamelModel):
    """Register a piece of equipment for rent."""

    name: str = Field(..., min_length=1, max_length=100, examples=["Mahindra 575 Tractor"])
    equipment_type: str = Field(..., alias="type", min_length=1, max_length=50, examples=["tractor"])
    price_per_day: float = Field(..., ge=0)
    description: Optional[str] = None

    @field_validator("name", "equipment_type")
    @classmethod
    def validate_not_blank(cls, v: str) -> str:
        return _strip_required(v)


class CreateBookingRequest(CamelModel):
    """Request to rent equipment over inclusive calendar days."""

    equipment_id: UUID
    start_date: str = Field(..., description="First rental day (ISO 8601)", examples=["2025-07-01"])
    end_date: str = Field(..., description="Last rental day (ISO 8601)", examples=["2025-07-05"])


class ScheduleMaintenanceRequest(CamelModel):
    equipment_id: Optional[UUID] = None
    maintenance_type: Optional[str] = Field(
        None,
        alias="type",
        description="routine, repair, inspection, upgrade, emergency",
    )
    scheduled_date: Optional[str] = None
    description: Optional[str] = None
    priority: Optional[str] = Field(None, description="low, medium, high, urgent")


class UpdateMaintenanceStatusRequest(CamelModel):
    status: str = Field(..., description="scheduled, in_progress (or in-progress), completed, cancelled")
    notes: Optional[str] = None
    cost: Optional[float] = None
    technician: Optional[str] = None


class UpdateMaintenanceRequest(CamelModel):
    maintenance_type: Optional[str] = Field(None, alias="type")
    scheduled_date: Optional[str] = None
    description: Optional[str] = None
    priority: Optional[str] = None
    technician: Optional[str] = None
    cost: Optional[float] = None
    notes: Optional[str] = None


class CreateSupplyRequest(CamelModel):
    """Put stock on the marketplace."""

    name: str = Field(..., min_length=1, max_length=150)
    category: str = Field(..., description="seeds, fertilizers, pesticides, tools, machinery, other")
    quantity: int = Field(..., ge=0, description="Total units on sale")
    price: float = Field(..., ge=0)
    unit: str = Field(default="piece", max_length=20)
    description: Optional[str] = None
    brand: Optional[str] = None

    @field_validator("name")
    @classmethod
    def validate_name_not_blank(cls, v: str) -> str:
        return _strip_required(v)


class PlaceOrderRequest(CamelModel):
    quantity: int = Field(default=1, ge=1)
    delivery_address: Optional[str] = None
    contact_phone: Optional[str] = Field(None, max_length=30)
    notes: Optional[str] = None


class UpdateOrderStatusRequest(CamelModel):
    status: str = Field(..., description="pending, confirmed, shipped, delivered, cancelled")


class UpdateSupplyQuantityRequest(CamelModel):
    quantity: int = Field(..., description="New total quantity")


# =============================================================================
# Record Models
# =============================================================================


class EquipmentOut(CamelModel):
    id: UUID
    name: str
    equipment_type: str = Field(alias="type")
    price_per_day: float
    description: Optional[str] = None
    owner_id: str
    available: bool
    created_at: Optional[datetime] = None


class BookingOut(CamelModel):
    id: UUID
    equipment_id: UUID
    requester_id: str
    owner_id: str
    start_date: date
    end_date: date
    status: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class MaintenanceOut(CamelModel):
    id: UUID
    equipment_id: UUID
    maintenance_type: str = Field(alias="type")
    scheduled_date: date
    status: str
    priority: str
    description: Optional[str] = None
    notes: Optional[str] = None
    cost: Optional[float] = None
    technician: Optional[str] = None
    completed_date: Optional[datetime] = None
    created_at: Optional[datetime] = None


class SupplyOut(CamelModel):
    id: UUID
    name: str
    category: str
    unit: str
    price: float
    total_quantity: int
    available_quantity: int
    supplier_id: str
    description: Optional[str] = None
    brand: Optional[str] = None
    available: bool
    created_at: Optional[datetime] = None


class SupplyOrderOut(CamelModel):
    id: UUID
    supply_id: UUID
    buyer_id: str
    supplier_id: str
    quantity: int
    total_price: float
    status: str
    order_date: Optional[datetime] = None
    delivery_address: Optional[str] = None
    contact_phone: Optional[str] = None
    notes: Optional[str] = None
    original_supply_quantity: int
    remaining_supply_quantity: int


# =============================================================================
# Response Envelopes
# =============================================================================


class MessageResponse(CamelModel):
    success: bool = True
    message: str


class EquipmentResponse(MessageResponse):
    equipment: EquipmentOut


class EquipmentListResponse(CamelModel):
    success: bool = True
    data: list[EquipmentOut]
    count: int


class AvailabilityOut(CamelModel):
    equipment_id: UUID
    start_date: date
    end_date: date
    available: bool
    reason: Optional[str] = None
    conflicting_bookings: list[UUID] = Field(default_factory=list)
    conflicting_maintenance: list[UUID] = Field(default_factory=list)


class AvailabilityResponse(CamelModel):
    success: bool = True
    data: AvailabilityOut


class BookingResponse(MessageResponse):
    booking: BookingOut


class BookingListResponse(CamelModel):
    success: bool = True
    data: list[BookingOut]
    count: int


class MaintenanceResponse(MessageResponse):
    data: MaintenanceOut


class MaintenanceListResponse(CamelModel):
    success: bool = True
    data: list[MaintenanceOut]


class SupplyResponse(MessageResponse):
    supply: SupplyOut


class SupplyListResponse(CamelModel):
    success: bool = True
    data: list[SupplyOut]
    count: int


class OrderResponse(MessageResponse):
    order: SupplyOrderOut


class OrderListResponse(CamelModel):
    success: bool = True
    data: list[SupplyOrderOut]
    count: int


class InventorySummaryOut(CamelModel):
    total_supplies: int
    low_stock_supplies: int
    out_of_stock_supplies: int
    total_value: float
    supplies: list[SupplyOut] = Field(default_factory=list)


class InventorySummaryResponse(CamelModel):
    success: bool = True
    data: InventorySummaryOut


class HealthResponse(CamelModel):
    """Health check response."""

    status: str
    version: str
    database_connected: bool
    notification_backend: str


class ErrorResponse(BaseModel):
    """Error body returned by every exception handler."""

    success: bool = False
    error: str
    message: str
    details: Optional[Any] = None
