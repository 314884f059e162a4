"""
Supply marketplace API routes.

Static paths are declared before `/{supply_id}` routes so they are not
captured as ids.
"""

import logging
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query

from farmhub.api.dependencies import get_current_user_id, get_inventory, get_order_service
from farmhub.api.models import (
    CreateSupplyRequest,
    InventorySummaryOut,
    InventorySummaryResponse,
    OrderListResponse,
    OrderResponse,
    PlaceOrderRequest,
    SupplyListResponse,
    SupplyOrderOut,
    SupplyOut,
    SupplyResponse,
    UpdateOrderStatusRequest,
    UpdateSupplyQuantityRequest,
)
from farmhub.services import InventoryReservation, SupplyOrderService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/supplies", tags=["Supplies"])


def _supply_list(supplies) -> SupplyListResponse:
    items = [SupplyOut.model_validate(s) for s in supplies]
    return SupplyListResponse(data=items, count=len(items))


@router.post("", response_model=SupplyResponse, status_code=201)
async def create_supply(
    request: CreateSupplyRequest,
    user_id: str = Depends(get_current_user_id),
    inventory: InventoryReservation = Depends(get_inventory),
) -> SupplyResponse:
    supply = inventory.create_supply(
        supplier_id=user_id,
        name=request.name,
        category=request.category,
        total_quantity=request.quantity,
        price=request.price,
        unit=request.unit,
        description=request.description,
        brand=request.brand,
    )
    return SupplyResponse(message="Supply created successfully", supply=SupplyOut.model_validate(supply))


@router.get("", response_model=SupplyListResponse)
async def list_available_supplies(
    inventory: InventoryReservation = Depends(get_inventory),
) -> SupplyListResponse:
    return _supply_list(inventory.list_available())


@router.get("/mine", response_model=SupplyListResponse)
async def list_my_supplies(
    user_id: str = Depends(get_current_user_id),
    inventory: InventoryReservation = Depends(get_inventory),
) -> SupplyListResponse:
    return _supply_list(inventory.list_by_supplier(user_id))


@router.get("/inventory/summary", response_model=InventorySummaryResponse)
async def get_inventory_summary(
    user_id: str = Depends(get_current_user_id),
    inventory: InventoryReservation = Depends(get_inventory),
) -> InventorySummaryResponse:
    summary = inventory.inventory_summary(user_id)
    return InventorySummaryResponse(data=InventorySummaryOut.model_validate(summary))


@router.get("/orders", response_model=OrderListResponse)
async def list_orders(
    role: Optional[str] = Query(None, description="buyer or supplier; both when omitted"),
    user_id: str = Depends(get_current_user_id),
    orders: SupplyOrderService = Depends(get_order_service),
) -> OrderListResponse:
    items = [SupplyOrderOut.model_validate(o) for o in orders.list_for_user(user_id, role)]
    return OrderListResponse(data=items, count=len(items))


@router.put("/orders/{order_id}/status", response_model=OrderResponse)
async def update_order_status(
    order_id: UUID,
    request: UpdateOrderStatusRequest,
    user_id: str = Depends(get_current_user_id),
    orders: SupplyOrderService = Depends(get_order_service),
) -> OrderResponse:
    """Supplier-only status change; cancelling restores the ordered stock once."""
    order = await orders.update_order_status(order_id, user_id, request.status)
    return OrderResponse(message="Order status updated successfully", order=SupplyOrderOut.model_validate(order))


@router.get("/{supply_id}", response_model=SupplyOut)
async def get_supply(
    supply_id: UUID,
    inventory: InventoryReservation = Depends(get_inventory),
) -> SupplyOut:
    return SupplyOut.model_validate(inventory.get_supply(supply_id))


@router.post("/{supply_id}/order", response_model=OrderResponse, status_code=201)
async def place_order(
    supply_id: UUID,
    request: PlaceOrderRequest,
    user_id: str = Depends(get_current_user_id),
    orders: SupplyOrderService = Depends(get_order_service),
) -> OrderResponse:
    order = await orders.place_order(
        supply_id,
        user_id,
        quantity=request.quantity,
        delivery_address=request.delivery_address,
        contact_phone=request.contact_phone,
        notes=request.notes,
    )
    return OrderResponse(message="Order placed successfully", order=SupplyOrderOut.model_validate(order))


@router.put("/{supply_id}/quantity", response_model=SupplyResponse)
async def update_supply_quantity(
    supply_id: UUID,
    request: UpdateSupplyQuantityRequest,
    user_id: str = Depends(get_current_user_id),
    inventory: InventoryReservation = Depends(get_inventory),
) -> SupplyResponse:
    supply = inventory.update_total_quantity(supply_id, request.quantity, user_id)
    return SupplyResponse(
        message="Supply quantity updated successfully",
        supply=SupplyOut.model_validate(supply),
    )
