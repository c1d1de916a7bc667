"""
Booking endpoints with concurrency-safe slot booking and cancellation.

Each state-changing endpoint commits before it answers: a 2xx response
means the write is durable, and a failed COMMIT surfaces as 503
`storage_unavailable` instead of a phantom success.
"""

import time

from fastapi import APIRouter, Depends, status
from sqlalchemy.exc import InterfaceError, OperationalError
from sqlalchemy.ext.asyncio import AsyncSession

from turfbook.core.metrics import booking_latency, record_booking_attempt
from turfbook.db.session import get_db
from turfbook.schemas.booking import (
    BookingCancelRequest,
    BookingCancelResponse,
    BookingCreate,
    BookingCreatedResponse,
    BookingResponse,
)
from turfbook.services.booking_service import (
    cancel_booking,
    create_booking,
    get_booking,
    mark_booking_paid,
)
from turfbook.services.cache_service import invalidate_grid_cache
from turfbook.services.slot_service import get_slot
from turfbook.core.logging import get_logger

logger = get_logger(__name__)
router = APIRouter(prefix="/bookings", tags=["Bookings"])


@router.post("/", response_model=BookingCreatedResponse, status_code=status.HTTP_201_CREATED)
async def create_booking_endpoint(
    booking_data: BookingCreate,
    db: AsyncSession = Depends(get_db),
):
    """
    Book a slot for a customer (app, phone, or walk-in).

    The slot row is locked for the whole transaction. If the slot is
    already taken the call fails with 409 `slot_not_available` and nothing
    is written; there is no automatic retry.
    """
    started = time.perf_counter()
    booking = await create_booking(db, booking_data)
    slot = await get_slot(db, booking.slot_id)

    try:
        await db.commit()
    except (OperationalError, InterfaceError):
        record_booking_attempt("error")
        raise

    booking_latency.observe(time.perf_counter() - started)
    record_booking_attempt("success")
    await invalidate_grid_cache(slot.turf_id, slot.date)
    return BookingCreatedResponse(booking_id=booking.id, slot_id=slot.id, slot_status=slot.status)


@router.get("/{booking_id}", response_model=BookingResponse)
async def get_booking_endpoint(booking_id: int, db: AsyncSession = Depends(get_db)):
    return await get_booking(db, booking_id)


@router.post("/{booking_id}/cancel", response_model=BookingCancelResponse)
async def cancel_booking_endpoint(
    booking_id: int,
    request: BookingCancelRequest,
    db: AsyncSession = Depends(get_db),
):
    """Cancel a booking and release its slot back to AVAILABLE, atomically."""
    booking = await cancel_booking(
        db, booking_id, request.slot_id, request.cancelled_by, request.reason
    )
    await db.commit()
    await invalidate_grid_cache(booking.turf_id, booking.booking_date)
    return BookingCancelResponse(success=True, booking_id=booking.id, status=booking.booking_status)


@router.post("/{booking_id}/mark-paid", response_model=BookingResponse)
async def mark_paid_endpoint(booking_id: int, db: AsyncSession = Depends(get_db)):
    """Owner settles the remaining balance; a partially paid slot becomes BOOKED."""
    booking = await mark_booking_paid(db, booking_id)
    await db.commit()
    await invalidate_grid_cache(booking.turf_id, booking.booking_date)
    return booking
