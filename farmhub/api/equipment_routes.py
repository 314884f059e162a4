"""
Equipment API routes.

1. POST /equipment - Register equipment for rent
2. GET /equipment - List equipment currently available
3. GET /equipment/mine - List the caller's equipment
4. GET /equipment/{id} - Equipment details
5. GET /equipment/{id}/availability - Read-only conflict check for a range
"""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, Query

from farmhub.api.dependencies import get_current_user_id, get_equipment_catalog
from farmhub.api.models import (
    AvailabilityOut,
    AvailabilityResponse,
    CreateEquipmentRequest,
    EquipmentListResponse,
    EquipmentOut,
    EquipmentResponse,
)
from farmhub.services import EquipmentCatalog

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/equipment", tags=["Equipment"])


@router.post("", response_model=EquipmentResponse, status_code=201)
async def create_equipment(
    request: CreateEquipmentRequest,
    user_id: str = Depends(get_current_user_id),
    catalog: EquipmentCatalog = Depends(get_equipment_catalog),
) -> EquipmentResponse:
    equipment = catalog.register(
        owner_id=user_id,
        name=request.name,
        equipment_type=request.equipment_type,
        price_per_day=request.price_per_day,
        description=request.description,
    )
    return EquipmentResponse(
        message="Equipment created successfully",
        equipment=EquipmentOut.model_validate(equipment),
    )


@router.get("", response_model=EquipmentListResponse)
async def list_available_equipment(
    catalog: EquipmentCatalog = Depends(get_equipment_catalog),
) -> EquipmentListResponse:
    items = [EquipmentOut.model_validate(e) for e in catalog.list_available()]
    return EquipmentListResponse(data=items, count=len(items))


@router.get("/mine", response_model=EquipmentListResponse)
async def list_my_equipment(
    user_id: str = Depends(get_current_user_id),
    catalog: EquipmentCatalog = Depends(get_equipment_catalog),
) -> EquipmentListResponse:
    items = [EquipmentOut.model_validate(e) for e in catalog.list_by_owner(user_id)]
    return EquipmentListResponse(data=items, count=len(items))


@router.get("/{equipment_id}", response_model=EquipmentOut)
async def get_equipment(
    equipment_id: UUID,
    catalog: EquipmentCatalog = Depends(get_equipment_catalog),
) -> EquipmentOut:
    return EquipmentOut.model_validate(catalog.get(equipment_id))


@router.get("/{equipment_id}/availability", response_model=AvailabilityResponse)
async def check_equipment_availability(
    equipment_id: UUID,
    start_date: str = Query(..., alias="startDate", description="First day (ISO 8601)"),
    end_date: str = Query(..., alias="endDate", description="Last day (ISO 8601)"),
    catalog: EquipmentCatalog = Depends(get_equipment_catalog),
) -> AvailabilityResponse:
    """
    Check whether the equipment could be booked for an inclusive range.

    Read-only: nothing is reserved.
    """
    result = catalog.check_availability(equipment_id, start_date, end_date)
    return AvailabilityResponse(data=AvailabilityOut(
        equipment_id=result.equipment_id,
        start_date=result.start,
        end_date=result.end,
        available=result.is_available,
        reason=result.reason,
        conflicting_bookings=[b.id for b in result.conflicting_bookings],
        conflicting_maintenance=[w.id for w in result.conflicting_maintenance],
    ))
