"""
Turf model: one venue with its operating hours and tariff table.

Key design decisions:
- Operating hours and slot duration drive schedule generation; changing them
  only affects slots still in removable states on the next generation run
- `pricing_rules` is stored as JSON (per-net, per-day-type, per-period prices)
  and validated by the pricing schema before it is written
- `number_of_nets` fans generation out to one slot grid per playing surface
"""

from sqlalchemy import JSON, Column, Integer, String, Time, CheckConstraint

from turfbook.db.base import Base, TimestampMixin


class Turf(Base, TimestampMixin):
    __tablename__ = "turfs"

    id = Column(Integer, primary_key=True, index=True)
    owner_id = Column(String(64), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    city = Column(String(100), nullable=True)
    open_time = Column(Time, nullable=False)
    close_time = Column(Time, nullable=False)
    slot_duration_minutes = Column(Integer, nullable=False, default=60)
    number_of_nets = Column(Integer, nullable=False, default=1)
    days_open = Column(JSON, nullable=False, default=list)  # ["MON", ..., "SUN"]
    pricing_rules = Column(JSON, nullable=False, default=dict)
    public_holidays = Column(JSON, nullable=False, default=list)  # ISO dates
    status = Column(String(20), nullable=False, default="OPEN")

    __table_args__ = (
        CheckConstraint("slot_duration_minutes > 0", name="check_turf_slot_duration_positive"),
        CheckConstraint("number_of_nets > 0", name="check_turf_nets_positive"),
        CheckConstraint("status IN ('OPEN', 'CLOSED', 'RENOVATION')", name="check_turf_status"),
    )

    def __repr__(self) -> str:
        return f"<Turf(id={self.id}, name={self.name}, nets={self.number_of_nets})>"
