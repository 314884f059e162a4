"""
Booking API routes.

1. POST /bookings - Request a booking
2. GET /bookings/stream - Server-Sent Events for the caller
3. GET /bookings/equipment/{id} | /user | /owner - Booking queries
4. PATCH /bookings/{id}/approve | complete | decline | cancel - Lifecycle
5. DELETE /bookings/{id} - Hard delete (owner or requester)
"""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, Request
from fastapi.responses import StreamingResponse

from farmhub.api.dependencies import get_booking_lifecycle, get_current_user_id, get_dispatcher
from farmhub.api.models import (
    BookingListResponse,
    BookingOut,
    BookingResponse,
    CreateBookingRequest,
    MessageResponse,
)
from farmhub.config import get_settings
from farmhub.notifications import NotificationChannel, NotificationDispatcher, event_stream
from farmhub.services import BookingLifecycle

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/bookings", tags=["Bookings"])


def _booking_list(bookings) -> BookingListResponse:
    items = [BookingOut.model_validate(b) for b in bookings]
    return BookingListResponse(data=items, count=len(items))


@router.post(
    "",
    response_model=BookingResponse,
    status_code=201,
    responses={
        400: {"description": "Invalid or past dates"},
        404: {"description": "Equipment not found"},
        409: {"description": "Date conflict or maintenance conflict"},
    },
)
async def create_booking(
    request: CreateBookingRequest,
    user_id: str = Depends(get_current_user_id),
    lifecycle: BookingLifecycle = Depends(get_booking_lifecycle),
) -> BookingResponse:
    booking = await lifecycle.create_booking(
        request.equipment_id,
        user_id,
        request.start_date,
        request.end_date,
    )
    return BookingResponse(message="Booking created successfully", booking=BookingOut.model_validate(booking))


@router.get("/stream")
async def stream_notifications(
    request: Request,
    user_id: str = Depends(get_current_user_id),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
) -> StreamingResponse:
    """
    Open a Server-Sent Events stream of booking notifications.

    A newer stream for the same user replaces this one.
    """
    settings = get_settings()
    return StreamingResponse(
        event_stream(
            dispatcher,
            user_id,
            NotificationChannel(),
            keepalive_seconds=settings.sse_keepalive_seconds,
            is_disconnected=request.is_disconnected,
        ),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "Connection": "keep-alive",
            "X-Accel-Buffering": "no",
        },
    )


@router.get("/equipment/{equipment_id}", response_model=BookingListResponse)
async def list_equipment_bookings(
    equipment_id: UUID,
    lifecycle: BookingLifecycle = Depends(get_booking_lifecycle),
) -> BookingListResponse:
    return _booking_list(lifecycle.list_for_equipment(equipment_id))


@router.get("/user", response_model=BookingListResponse)
async def list_my_bookings(
    user_id: str = Depends(get_current_user_id),
    lifecycle: BookingLifecycle = Depends(get_booking_lifecycle),
) -> BookingListResponse:
    """Bookings the caller requested."""
    return _booking_list(lifecycle.list_for_requester(user_id))


@router.get("/owner", response_model=BookingListResponse)
async def list_owner_bookings(
    user_id: str = Depends(get_current_user_id),
    lifecycle: BookingLifecycle = Depends(get_booking_lifecycle),
) -> BookingListResponse:
    """Bookings on equipment the caller owns."""
    return _booking_list(lifecycle.list_for_owner(user_id))


@router.patch("/{booking_id}/approve", response_model=BookingResponse)
async def approve_booking(
    booking_id: UUID,
    user_id: str = Depends(get_current_user_id),
    lifecycle: BookingLifecycle = Depends(get_booking_lifecycle),
) -> BookingResponse:
    booking = await lifecycle.approve(booking_id, user_id)
    return BookingResponse(message="Booking approved", booking=BookingOut.model_validate(booking))


@router.patch("/{booking_id}/decline", response_model=BookingResponse)
async def decline_booking(
    booking_id: UUID,
    user_id: str = Depends(get_current_user_id),
    lifecycle: BookingLifecycle = Depends(get_booking_lifecycle),
) -> BookingResponse:
    booking = await lifecycle.reject(booking_id, user_id)
    return BookingResponse(message="Booking declined", booking=BookingOut.model_validate(booking))


@router.patch("/{booking_id}/complete", response_model=BookingResponse)
async def complete_booking(
    booking_id: UUID,
    user_id: str = Depends(get_current_user_id),
    lifecycle: BookingLifecycle = Depends(get_booking_lifecycle),
) -> BookingResponse:
    booking = await lifecycle.complete(booking_id, user_id)
    return BookingResponse(message="Booking completed", booking=BookingOut.model_validate(booking))


@router.patch("/{booking_id}/cancel", response_model=BookingResponse)
async def cancel_booking(
    booking_id: UUID,
    user_id: str = Depends(get_current_user_id),
    lifecycle: BookingLifecycle = Depends(get_booking_lifecycle),
) -> BookingResponse:
    booking = await lifecycle.cancel(booking_id, user_id)
    return BookingResponse(message="Booking cancelled", booking=BookingOut.model_validate(booking))


@router.delete("/{booking_id}", response_model=MessageResponse)
async def delete_booking(
    booking_id: UUID,
    user_id: str = Depends(get_current_user_id),
    lifecycle: BookingLifecycle = Depends(get_booking_lifecycle),
) -> MessageResponse:
    await lifecycle.delete_booking(booking_id, user_id)
    return MessageResponse(message="Booking deleted successfully")
