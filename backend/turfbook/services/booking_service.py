"""
Booking service: atomic coupling of slot state and booking records.

CONCURRENCY STRATEGY: Pessimistic Row Lock + Guarded Update + Unique Backstop
============================================================================

Problem:
  Two operators take a phone booking and a walk-in for the same slot at the
  same time. Both see the slot AVAILABLE, both insert a booking.
  Result: double booking.

Solution (create_booking):
  1. SELECT ... FOR UPDATE the slot row. Concurrent reserve/book/cancel on
     the same slot wait here until we commit or roll back.
  2. Verify status in (AVAILABLE, RESERVED) and that no CONFIRMED booking
     references the slot. Otherwise: SlotNotAvailableError, nothing written.
  3. Guarded UPDATE of the slot to its final state:
       advance_amount > 0  -> RESERVED (partially paid, awaiting settlement)
       advance_amount == 0 -> BOOKED   (pay at venue)
     Lease fields are cleared either way.
  4. INSERT the booking with status CONFIRMED.
  5. The endpoint commits before it answers, so a reported booking id is
     always durable.

  The partial unique index on bookings(slot_id) WHERE status='CONFIRMED' is
  the final safety net: if the lock discipline were ever bypassed, the
  second insert fails with IntegrityError and is reported as a conflict.

Cancellation:
  The booking is flipped to CANCELLED with a guarded UPDATE (WHERE status =
  'CONFIRMED'), and the slot is reset to AVAILABLE in the same transaction.
  A cancelled booking never leaves its slot BOOKED, and a slot is never
  freed while its booking still shows CONFIRMED.

Lock ordering: slot first, then booking, in every operation.

No retries: a conflict is a business fact. Storage failures abort the whole
transaction (nothing partial is persisted) and surface as
StorageUnavailableError, which the caller may retry after backoff.
"""

from datetime import date, datetime
from typing import Optional

from sqlalchemy import exists, select, update
from sqlalchemy.exc import IntegrityError, InterfaceError, OperationalError
from sqlalchemy.ext.asyncio import AsyncSession

from turfbook.core.clock import utcnow
from turfbook.core.exceptions import (
    BookingAlreadyCancelledError,
    BookingNotFoundError,
    BookingSlotMismatchError,
    SlotNotAvailableError,
    SlotNotFoundError,
)
from turfbook.core.logging import get_logger
from turfbook.core.metrics import record_booking_attempt, record_cancellation
from turfbook.models.booking import Booking, BookingStatus, PaymentStatus
from turfbook.models.slot import Slot
from turfbook.models.turf import Turf
from turfbook.schemas.booking import BookingCreate
from turfbook.services.slot_service import (
    AVAILABLE,
    BOOKED,
    CLEARED_LEASE,
    RESERVED,
    book_slot,
    lock_slot,
)

logger = get_logger(__name__)

CONFIRMED = BookingStatus.CONFIRMED.value
CANCELLED = BookingStatus.CANCELLED.value
BOOKABLE_STATES = (AVAILABLE, RESERVED)


def _has_active_booking():
    return exists().where(Booking.slot_id == Slot.id, Booking.booking_status == CONFIRMED)


async def _active_booking_id(db: AsyncSession, slot_id: int) -> Optional[int]:
    result = await db.execute(
        select(Booking.id).where(Booking.slot_id == slot_id, Booking.booking_status == CONFIRMED)
    )
    return result.scalars().first()


def resulting_slot_status(advance_amount: float) -> str:
    """RESERVED flags a partially paid booking to the operator; BOOKED means pay at venue."""
    return RESERVED if advance_amount > 0 else BOOKED


def derive_payment_status(amount: float, advance_amount: float) -> str:
    if advance_amount <= 0:
        return PaymentStatus.PAID.value if amount == 0 else PaymentStatus.PAY_AT_TURF.value
    if advance_amount >= amount:
        return PaymentStatus.PAID.value
    return PaymentStatus.PARTIAL.value


async def create_booking(db: AsyncSession, booking_data: BookingCreate) -> Booking:
    """
    Atomically book a slot. Raises SlotNotFoundError or SlotNotAvailableError;
    in both cases nothing is written. The caller commits.
    """
    try:
        return await _book(db, booking_data)
    except (OperationalError, InterfaceError):
        record_booking_attempt("error")
        raise


async def _book(db: AsyncSession, booking_data: BookingCreate) -> Booking:
    slot_id = booking_data.slot_id

    try:
        slot = await lock_slot(db, slot_id)
    except SlotNotFoundError:
        record_booking_attempt("not_found")
        raise

    if slot.status not in BOOKABLE_STATES:
        record_booking_attempt("conflict")
        logger.warning("booking_rejected", slot_id=slot_id, reason="slot_state", status=slot.status)
        raise SlotNotAvailableError(slot_id=slot_id, status=slot.status)

    if await _active_booking_id(db, slot_id) is not None:
        record_booking_attempt("conflict")
        logger.warning("booking_rejected", slot_id=slot_id, reason="active_booking_exists")
        raise SlotNotAvailableError(slot_id=slot_id, status=slot.status)

    owner_id = (
        await db.execute(select(Turf.owner_id).where(Turf.id == slot.turf_id))
    ).scalar_one()

    final_status = resulting_slot_status(booking_data.advance_amount)
    update_result = await db.execute(
        update(Slot)
        .where(
            Slot.id == slot_id,
            Slot.status.in_(BOOKABLE_STATES),
            ~_has_active_booking(),
        )
        .values(status=final_status, **CLEARED_LEASE)
        .execution_options(synchronize_session=False)
    )
    if update_result.rowcount == 0:
        record_booking_attempt("conflict")
        logger.warning("booking_rejected", slot_id=slot_id, reason="lost_race")
        raise SlotNotAvailableError(slot_id=slot_id)

    payment_status = (
        booking_data.payment_status.value
        if booking_data.payment_status
        else derive_payment_status(booking_data.amount, booking_data.advance_amount)
    )
    booking = Booking(
        slot_id=slot_id,
        turf_id=slot.turf_id,
        owner_id=owner_id,
        net_number=slot.net_number,
        booking_date=slot.date,
        start_time=slot.start_time,
        end_time=slot.end_time,
        user_id=booking_data.user_id,
        customer_name=booking_data.customer_name,
        customer_phone=booking_data.customer_phone,
        booking_source=booking_data.booking_source.value,
        payment_mode=booking_data.payment_mode.value,
        payment_status=payment_status,
        amount=booking_data.amount,
        advance_amount=booking_data.advance_amount,
        transaction_id=booking_data.transaction_id,
        booking_status=CONFIRMED,
    )
    db.add(booking)
    try:
        await db.flush()
    except IntegrityError as e:
        # Unique active-booking index fired: a concurrent booking won
        await db.rollback()
        record_booking_attempt("conflict")
        logger.warning("booking_rejected", slot_id=slot_id, reason="unique_violation", error=str(e.orig))
        raise SlotNotAvailableError(slot_id=slot_id) from e

    await db.refresh(booking)
    await db.refresh(slot)

    logger.info(
        "booking_created",
        booking_id=booking.id,
        slot_id=slot_id,
        turf_id=slot.turf_id,
        slot_status=final_status,
        source=booking.booking_source,
        advance=booking_data.advance_amount,
    )
    return booking


async def get_booking(db: AsyncSession, booking_id: int) -> Booking:
    result = await db.execute(
        select(Booking).where(Booking.id == booking_id).execution_options(populate_existing=True)
    )
    booking = result.scalar_one_or_none()
    if not booking:
        raise BookingNotFoundError(f"Booking {booking_id} not found", booking_id=booking_id)
    return booking


async def cancel_booking(
    db: AsyncSession,
    booking_id: int,
    slot_id: Optional[int],
    cancelled_by: str,
    reason: Optional[str] = None,
    now: Optional[datetime] = None,
) -> Booking:
    """
    Cancel a booking and free its slot in one transaction.
    The slot is reset to AVAILABLE whatever its current state.
    """
    now = now or utcnow()
    booking = await get_booking(db, booking_id)

    if slot_id is not None and slot_id != booking.slot_id:
        record_cancellation(False)
        raise BookingSlotMismatchError(booking_id=booking_id, slot_id=slot_id)

    await lock_slot(db, booking.slot_id)

    result = await db.execute(
        update(Booking)
        .where(Booking.id == booking_id, Booking.booking_status == CONFIRMED)
        .values(
            booking_status=CANCELLED,
            cancelled_at=now,
            cancelled_by=cancelled_by,
            cancellation_reason=reason,
        )
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        record_cancellation(False)
        logger.warning("booking_cancel_rejected", booking_id=booking_id, reason="already_cancelled")
        raise BookingAlreadyCancelledError(booking_id=booking_id)

    await db.execute(
        update(Slot)
        .where(Slot.id == booking.slot_id)
        .values(status=AVAILABLE, **CLEARED_LEASE)
        .execution_options(synchronize_session=False)
    )

    await db.refresh(booking)
    record_cancellation(True)
    logger.info(
        "booking_cancelled",
        booking_id=booking_id,
        slot_id=booking.slot_id,
        cancelled_by=cancelled_by,
        reason=reason,
    )
    return booking


async def mark_booking_paid(db: AsyncSession, booking_id: int) -> Booking:
    """
    Owner settles the balance of a confirmed booking.
    A partially paid (RESERVED) slot becomes BOOKED.
    """
    booking = await get_booking(db, booking_id)
    await lock_slot(db, booking.slot_id)

    result = await db.execute(
        update(Booking)
        .where(Booking.id == booking_id, Booking.booking_status == CONFIRMED)
        .values(payment_status=PaymentStatus.PAID.value)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        logger.warning("booking_settle_rejected", booking_id=booking_id, reason="cancelled")
        raise BookingAlreadyCancelledError(booking_id=booking_id)

    await book_slot(db, booking.slot_id)
    await db.refresh(booking)

    logger.info("booking_paid", booking_id=booking_id, slot_id=booking.slot_id)
    return booking


async def list_turf_bookings(
    db: AsyncSession,
    turf_id: int,
    booking_date: Optional[date] = None,
    booking_status: Optional[str] = None,
) -> list[Booking]:
    """Bookings of one turf, newest date first, then by start time."""
    query = select(Booking).where(Booking.turf_id == turf_id)
    if booking_date is not None:
        query = query.where(Booking.booking_date == booking_date)
    if booking_status is not None:
        query = query.where(Booking.booking_status == booking_status)
    result = await db.execute(
        query.order_by(Booking.booking_date.desc(), Booking.start_time.asc(), Booking.id.asc())
    )
    return list(result.scalars().all())
