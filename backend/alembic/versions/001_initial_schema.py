"""Initial schema: turfs, slots, bookings with the double-booking backstop.

Revision ID: 001
Revises: None
Create Date: 2026-10-18
"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps() -> list:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    ]


def upgrade() -> None:
    # Turfs table
    op.create_table(
        "turfs",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("owner_id", sa.String(64), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("city", sa.String(100), nullable=True),
        sa.Column("open_time", sa.Time(), nullable=False),
        sa.Column("close_time", sa.Time(), nullable=False),
        sa.Column("slot_duration_minutes", sa.Integer(), nullable=False, server_default=sa.text("60")),
        sa.Column("number_of_nets", sa.Integer(), nullable=False, server_default=sa.text("1")),
        sa.Column("days_open", sa.JSON(), nullable=False),
        sa.Column("pricing_rules", sa.JSON(), nullable=False),
        sa.Column("public_holidays", sa.JSON(), nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default=sa.text("'OPEN'")),
        *_timestamps(),
        sa.CheckConstraint("slot_duration_minutes > 0", name="check_turf_slot_duration_positive"),
        sa.CheckConstraint("number_of_nets > 0", name="check_turf_nets_positive"),
        sa.CheckConstraint("status IN ('OPEN', 'CLOSED', 'RENOVATION')", name="check_turf_status"),
    )
    op.create_index("ix_turfs_id", "turfs", ["id"])
    op.create_index("ix_turfs_owner_id", "turfs", ["owner_id"])

    # Slots table
    op.create_table(
        "slots",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("turf_id", sa.Integer(), sa.ForeignKey("turfs.id", ondelete="CASCADE"), nullable=False),
        sa.Column("net_number", sa.Integer(), nullable=False, server_default=sa.text("1")),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("start_time", sa.Time(), nullable=False),
        sa.Column("end_time", sa.Time(), nullable=False),
        sa.Column("price", sa.Numeric(10, 2), nullable=False, server_default=sa.text("0")),
        sa.Column("price_type", sa.String(40), nullable=False, server_default=sa.text("''")),
        sa.Column("status", sa.String(20), nullable=False, server_default=sa.text("'AVAILABLE'")),
        sa.Column("reserved_by", sa.String(64), nullable=True),
        sa.Column("reserved_until", sa.DateTime(timezone=True), nullable=True),
        sa.Column("blocked_by", sa.String(64), nullable=True),
        sa.Column("block_reason", sa.String(255), nullable=True),
        *_timestamps(),
        sa.UniqueConstraint("turf_id", "date", "start_time", "net_number", name="uq_slot_turf_date_start_net"),
        sa.CheckConstraint(
            "status IN ('AVAILABLE', 'RESERVED', 'BOOKED', 'BLOCKED')",
            name="check_slot_status",
        ),
        sa.CheckConstraint("net_number > 0", name="check_slot_net_positive"),
    )
    op.create_index("ix_slots_id", "slots", ["id"])
    # The owner dashboard always asks for one turf's grid on one date
    op.create_index("ix_slots_turf_date", "slots", ["turf_id", "date"])
    # Lease sweep scans RESERVED rows by expiry
    op.create_index("ix_slots_status_reserved_until", "slots", ["status", "reserved_until"])

    # Bookings table
    op.create_table(
        "bookings",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("slot_id", sa.Integer(), sa.ForeignKey("slots.id", ondelete="RESTRICT"), nullable=False),
        sa.Column("turf_id", sa.Integer(), sa.ForeignKey("turfs.id", ondelete="CASCADE"), nullable=False),
        sa.Column("owner_id", sa.String(64), nullable=False),
        sa.Column("net_number", sa.Integer(), nullable=False, server_default=sa.text("1")),
        sa.Column("booking_date", sa.Date(), nullable=False),
        sa.Column("start_time", sa.Time(), nullable=False),
        sa.Column("end_time", sa.Time(), nullable=False),
        sa.Column("user_id", sa.String(64), nullable=True),
        sa.Column("customer_name", sa.String(255), nullable=False),
        sa.Column("customer_phone", sa.String(32), nullable=False),
        sa.Column("booking_source", sa.String(20), nullable=False, server_default=sa.text("'APP'")),
        sa.Column("payment_mode", sa.String(20), nullable=False, server_default=sa.text("'OFFLINE'")),
        sa.Column("payment_status", sa.String(20), nullable=False, server_default=sa.text("'PAY_AT_TURF'")),
        sa.Column("amount", sa.Numeric(10, 2), nullable=False),
        sa.Column("advance_amount", sa.Numeric(10, 2), nullable=False, server_default=sa.text("0")),
        sa.Column("transaction_id", sa.String(255), nullable=True),
        sa.Column("booking_status", sa.String(20), nullable=False, server_default=sa.text("'CONFIRMED'")),
        sa.Column("cancelled_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("cancelled_by", sa.String(64), nullable=True),
        sa.Column("cancellation_reason", sa.String(500), nullable=True),
        *_timestamps(),
        sa.CheckConstraint("amount >= 0", name="check_booking_amount_non_negative"),
        sa.CheckConstraint(
            "advance_amount >= 0 AND advance_amount <= amount",
            name="check_booking_advance_within_amount",
        ),
        sa.CheckConstraint("booking_status IN ('CONFIRMED', 'CANCELLED')", name="check_booking_status"),
    )
    op.create_index("ix_bookings_id", "bookings", ["id"])
    op.create_index("ix_bookings_slot_id", "bookings", ["slot_id"])
    op.create_index("ix_bookings_turf_date", "bookings", ["turf_id", "booking_date"])
    # DOUBLE-BOOKING BACKSTOP: at most one CONFIRMED booking per slot.
    # Cancelled bookings stay as history, so the index is partial.
    op.create_index(
        "uq_bookings_active_slot",
        "bookings",
        ["slot_id"],
        unique=True,
        postgresql_where=sa.text("booking_status = 'CONFIRMED'"),
        sqlite_where=sa.text("booking_status = 'CONFIRMED'"),
    )


def downgrade() -> None:
    op.drop_table("bookings")
    op.drop_table("slots")
    op.drop_table("turfs")
