"""
Slot model: one bookable time unit for one net of a turf on one date.

Key design decisions:
- Unique (turf_id, date, start_time, net_number) is the slot's identity;
  regeneration can never duplicate a row
- `status` is the lifecycle state (AVAILABLE, RESERVED, BOOKED, BLOCKED)
- Lease fields (`reserved_by`, `reserved_until`) are only meaningful while
  RESERVED; an expiry in the past means the lease has lapsed (soft expiry)
- A RESERVED slot with no `reserved_until` is an advance-paid booking, not a
  lease, and cannot be re-leased
- `blocked_by` is set for owner blocks; auto-blocks from schedule generation
  leave it empty so they can be lifted when operating hours change
"""

import enum

from sqlalchemy import (
    Column, Integer, String, Date, Time, DateTime, Numeric, ForeignKey,
    UniqueConstraint, CheckConstraint, Index,
)

from turfbook.db.base import Base, TimestampMixin


class SlotStatus(str, enum.Enum):
    AVAILABLE = "AVAILABLE"
    RESERVED = "RESERVED"
    BOOKED = "BOOKED"
    BLOCKED = "BLOCKED"


# States schedule generation may delete or resync
REMOVABLE_STATES = (SlotStatus.AVAILABLE.value, SlotStatus.BLOCKED.value)


class Slot(Base, TimestampMixin):
    __tablename__ = "slots"

    id = Column(Integer, primary_key=True, index=True)
    turf_id = Column(Integer, ForeignKey("turfs.id", ondelete="CASCADE"), nullable=False)
    net_number = Column(Integer, nullable=False, default=1)
    date = Column(Date, nullable=False)
    start_time = Column(Time, nullable=False)
    end_time = Column(Time, nullable=False)
    price = Column(Numeric(10, 2), nullable=False, default=0)
    price_type = Column(String(40), nullable=False, default="")
    status = Column(String(20), nullable=False, default=SlotStatus.AVAILABLE.value)

    # Reservation lease
    reserved_by = Column(String(64), nullable=True)
    reserved_until = Column(DateTime(timezone=True), nullable=True)

    # Manual / automatic block
    blocked_by = Column(String(64), nullable=True)
    block_reason = Column(String(255), nullable=True)

    __table_args__ = (
        UniqueConstraint("turf_id", "date", "start_time", "net_number", name="uq_slot_turf_date_start_net"),
        CheckConstraint(
            "status IN ('AVAILABLE', 'RESERVED', 'BOOKED', 'BLOCKED')",
            name="check_slot_status",
        ),
        CheckConstraint("net_number > 0", name="check_slot_net_positive"),
        # Slot grid query: one turf, one date, ordered by net and time
        Index("ix_slots_turf_date", "turf_id", "date"),
        # Lease sweep: RESERVED rows ordered by expiry
        Index("ix_slots_status_reserved_until", "status", "reserved_until"),
    )

    def __repr__(self) -> str:
        return (
            f"<Slot(id={self.id}, turf={self.turf_id}, net={self.net_number}, "
            f"date={self.date}, start={self.start_time}, status={self.status})>"
        )
