"""
Maintenance API routes (equipment owners only).
"""

import logging
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query

from farmhub.api.dependencies import get_current_user_id, get_maintenance_lifecycle
from farmhub.api.models import (
    MaintenanceListResponse,
    MaintenanceOut,
    MaintenanceResponse,
    MessageResponse,
    ScheduleMaintenanceRequest,
    UpdateMaintenanceRequest,
    UpdateMaintenanceStatusRequest,
)
from farmhub.services import MaintenanceLifecycle

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/maintenance", tags=["Maintenance"])


@router.post("/schedule", response_model=MaintenanceResponse, status_code=201)
async def schedule_maintenance(
    request: ScheduleMaintenanceRequest,
    user_id: str = Depends(get_current_user_id),
    lifecycle: MaintenanceLifecycle = Depends(get_maintenance_lifecycle),
) -> MaintenanceResponse:
    window = lifecycle.schedule(
        request.equipment_id,
        user_id,
        request.maintenance_type,
        request.scheduled_date,
        description=request.description,
        priority=request.priority,
    )
    return MaintenanceResponse(
        message="Maintenance scheduled successfully",
        data=MaintenanceOut.model_validate(window),
    )


@router.get("/records", response_model=MaintenanceListResponse)
async def list_maintenance_records(
    equipment_id: Optional[UUID] = Query(None, alias="equipmentId"),
    status: Optional[str] = Query(None),
    user_id: str = Depends(get_current_user_id),
    lifecycle: MaintenanceLifecycle = Depends(get_maintenance_lifecycle),
) -> MaintenanceListResponse:
    """Maintenance windows on the caller's equipment, earliest first."""
    windows = lifecycle.list_for_owner(user_id, equipment_id=equipment_id, status=status)
    return MaintenanceListResponse(data=[MaintenanceOut.model_validate(w) for w in windows])


@router.put("/{window_id}/status", response_model=MaintenanceResponse)
async def update_maintenance_status(
    window_id: UUID,
    request: UpdateMaintenanceStatusRequest,
    user_id: str = Depends(get_current_user_id),
    lifecycle: MaintenanceLifecycle = Depends(get_maintenance_lifecycle),
) -> MaintenanceResponse:
    window = lifecycle.update_status(
        window_id,
        user_id,
        request.status,
        notes=request.notes,
        cost=request.cost,
        technician=request.technician,
    )
    return MaintenanceResponse(
        message="Maintenance status updated successfully",
        data=MaintenanceOut.model_validate(window),
    )


@router.put("/{window_id}", response_model=MaintenanceResponse)
async def update_maintenance(
    window_id: UUID,
    request: UpdateMaintenanceRequest,
    user_id: str = Depends(get_current_user_id),
    lifecycle: MaintenanceLifecycle = Depends(get_maintenance_lifecycle),
) -> MaintenanceResponse:
    window = lifecycle.update(
        window_id,
        user_id,
        maintenance_type=request.maintenance_type,
        scheduled_date=request.scheduled_date,
        description=request.description,
        priority=request.priority,
        technician=request.technician,
        cost=request.cost,
        notes=request.notes,
    )
    return MaintenanceResponse(
        message="Maintenance record updated successfully",
        data=MaintenanceOut.model_validate(window),
    )


@router.delete("/{window_id}", response_model=MessageResponse)
async def delete_maintenance(
    window_id: UUID,
    user_id: str = Depends(get_current_user_id),
    lifecycle: MaintenanceLifecycle = Depends(get_maintenance_lifecycle),
) -> MessageResponse:
    lifecycle.delete(window_id, user_id)
    return MessageResponse(message="Maintenance record deleted successfully")
