"""
Booking model: a confirmed or historical reservation of exactly one slot.

Key design decisions:
- Partial unique index on slot_id WHERE booking_status = 'CONFIRMED' makes
  double-booking structurally impossible even if the locking discipline
  were ever bypassed; cancelled rows accumulate as audit history
- turf_id/owner_id/date/time are denormalized from the slot for listing
  queries; the slot binding never changes after insert
- Status field allows cancellation without deleting records
"""

import enum

from sqlalchemy import (
    Column, Integer, String, Date, Time, DateTime, Numeric, ForeignKey,
    CheckConstraint, Index, text,
)

from turfbook.db.base import Base, TimestampMixin


class BookingStatus(str, enum.Enum):
    CONFIRMED = "CONFIRMED"
    CANCELLED = "CANCELLED"


class BookingSource(str, enum.Enum):
    APP = "APP"
    PHONE = "PHONE"
    WALK_IN = "WALK_IN"


class PaymentMode(str, enum.Enum):
    ONLINE = "ONLINE"
    OFFLINE = "OFFLINE"


class PaymentStatus(str, enum.Enum):
    PAID = "PAID"
    PARTIAL = "PARTIAL"
    PAY_AT_TURF = "PAY_AT_TURF"
    PENDING = "PENDING"
    FAILED = "FAILED"


class Booking(Base, TimestampMixin):
    __tablename__ = "bookings"

    id = Column(Integer, primary_key=True, index=True)
    slot_id = Column(Integer, ForeignKey("slots.id", ondelete="RESTRICT"), nullable=False, index=True)
    turf_id = Column(Integer, ForeignKey("turfs.id", ondelete="CASCADE"), nullable=False)
    owner_id = Column(String(64), nullable=False)
    net_number = Column(Integer, nullable=False, default=1)
    booking_date = Column(Date, nullable=False)
    start_time = Column(Time, nullable=False)
    end_time = Column(Time, nullable=False)

    # Customer
    user_id = Column(String(64), nullable=True)
    customer_name = Column(String(255), nullable=False)
    customer_phone = Column(String(32), nullable=False)
    booking_source = Column(String(20), nullable=False, default=BookingSource.APP.value)

    # Payment
    payment_mode = Column(String(20), nullable=False, default=PaymentMode.OFFLINE.value)
    payment_status = Column(String(20), nullable=False, default=PaymentStatus.PAY_AT_TURF.value)
    amount = Column(Numeric(10, 2), nullable=False)
    advance_amount = Column(Numeric(10, 2), nullable=False, default=0)
    transaction_id = Column(String(255), nullable=True)

    booking_status = Column(String(20), nullable=False, default=BookingStatus.CONFIRMED.value)
    cancelled_at = Column(DateTime(timezone=True), nullable=True)
    cancelled_by = Column(String(64), nullable=True)
    cancellation_reason = Column(String(500), nullable=True)

    __table_args__ = (
        # At most one active booking per slot
        Index(
            "uq_bookings_active_slot",
            "slot_id",
            unique=True,
            postgresql_where=text("booking_status = 'CONFIRMED'"),
            sqlite_where=text("booking_status = 'CONFIRMED'"),
        ),
        # Owner listings: one turf, one date
        Index("ix_bookings_turf_date", "turf_id", "booking_date"),
        CheckConstraint("amount >= 0", name="check_booking_amount_non_negative"),
        CheckConstraint(
            "advance_amount >= 0 AND advance_amount <= amount",
            name="check_booking_advance_within_amount",
        ),
        CheckConstraint("booking_status IN ('CONFIRMED', 'CANCELLED')", name="check_booking_status"),
    )

    def __repr__(self) -> str:
        return f"<Booking(id={self.id}, slot={self.slot_id}, status={self.booking_status})>"
