"""
Slot lifecycle transitions with per-slot mutual exclusion.

STATE MACHINE
=============

  AVAILABLE --reserve--> RESERVED --book--> BOOKED
      ^  |                  |                  |
      |  +--block--> BLOCKED |                  |
      +------release/expiry--+----cancel-------+

CONCURRENCY STRATEGY: Row Lock + Guarded Update
===============================================

Problem:
  Two customers try to reserve the same slot at the same moment.
  Both read status=AVAILABLE, both write RESERVED, both think they hold it.

Solution:
  1. SELECT ... FOR UPDATE on the slot row. Every state-changing operation
     on the same slot queues behind this lock until the holder commits.
  2. The write itself is a compare-and-swap:
       UPDATE slots SET status='RESERVED', ...
       WHERE id = :slot_id AND (status = 'AVAILABLE'
             OR (status = 'RESERVED' AND reserved_until < :now))
     rowcount == 1 means we won; rowcount == 0 means someone else holds it.

  The guard repeats the check the lock already protects, so the transition
  stays correct on engines where FOR UPDATE is a no-op (SQLite serializes
  writers instead). Locks are per row: operations on different slots never
  wait on each other and there is no global lock.

Soft expiry:
  A lapsed lease is never swept eagerly. The guard treats a RESERVED slot
  whose reserved_until is in the past as free, so the next reserve simply
  takes it over. Reads may show an expired lease as RESERVED until then.
  `expire_stale_leases` exists as an optional hygiene sweep; correctness
  never depends on it.

No retries:
  A lost race is a business fact ("someone else has it"), not a transient
  error. reserve_slot returns False and the caller picks another slot.
"""

from datetime import date, datetime, timedelta
from typing import Optional

from sqlalchemy import and_, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from turfbook.core.clock import utcnow
from turfbook.core.config import get_settings
from turfbook.core.exceptions import (
    NotTurfOwnerError,
    SlotNotFoundError,
    SlotStateConflictError,
)
from turfbook.core.logging import get_logger
from turfbook.core.metrics import record_reservation, record_transition
from turfbook.models.slot import Slot, SlotStatus
from turfbook.models.turf import Turf

logger = get_logger(__name__)
settings = get_settings()

AVAILABLE = SlotStatus.AVAILABLE.value
RESERVED = SlotStatus.RESERVED.value
BOOKED = SlotStatus.BOOKED.value
BLOCKED = SlotStatus.BLOCKED.value

CLEARED_LEASE = {"reserved_by": None, "reserved_until": None}


def lease_lapsed(now: datetime):
    """SQL predicate: slot is RESERVED under a lease whose expiry has passed."""
    return and_(
        Slot.status == RESERVED,
        Slot.reserved_until.is_not(None),
        Slot.reserved_until < now,
    )


def resolve_lease_minutes(lease_minutes: Optional[int]) -> int:
    if not lease_minutes or lease_minutes <= 0:
        return settings.SLOT_LEASE_MINUTES
    return min(lease_minutes, settings.MAX_LEASE_MINUTES)


async def lock_slot(db: AsyncSession, slot_id: int) -> Slot:
    """
    Take the exclusive row lock on a slot and return its current state.
    Must be the first lock acquired in any transaction touching a slot
    (slot before booking) so concurrent operations cannot deadlock.
    """
    result = await db.execute(
        select(Slot)
        .where(Slot.id == slot_id)
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    slot = result.scalar_one_or_none()
    if not slot:
        raise SlotNotFoundError(f"Slot {slot_id} not found", slot_id=slot_id)
    return slot


async def get_slot(db: AsyncSession, slot_id: int) -> Slot:
    result = await db.execute(
        select(Slot).where(Slot.id == slot_id).execution_options(populate_existing=True)
    )
    slot = result.scalar_one_or_none()
    if not slot:
        raise SlotNotFoundError(f"Slot {slot_id} not found", slot_id=slot_id)
    return slot


async def list_slots(
    db: AsyncSession,
    turf_id: int,
    slot_date: date,
    net_number: Optional[int] = None,
) -> list[Slot]:
    """Slot grid for one turf and date, ordered by net then start time."""
    query = select(Slot).where(Slot.turf_id == turf_id, Slot.date == slot_date)
    if net_number is not None:
        query = query.where(Slot.net_number == net_number)
    result = await db.execute(
        query.order_by(Slot.net_number, Slot.start_time).execution_options(populate_existing=True)
    )
    return list(result.scalars().all())


async def reserve_slot(
    db: AsyncSession,
    slot_id: int,
    holder_id: str,
    lease_minutes: Optional[int] = None,
    now: Optional[datetime] = None,
) -> bool:
    """
    Lease a slot to `holder_id` for `lease_minutes`.

    Succeeds when the slot is AVAILABLE or RESERVED under a lapsed lease.
    Returns False, never raises, when the slot is BOOKED, BLOCKED, paid in
    advance, or leased by anyone with time left on the lease. A holder
    re-reserving its own live lease is rejected as well; release first.
    """
    now = now or utcnow()
    minutes = resolve_lease_minutes(lease_minutes)

    slot = await lock_slot(db, slot_id)
    previous_status = slot.status

    result = await db.execute(
        update(Slot)
        .where(
            Slot.id == slot_id,
            or_(Slot.status == AVAILABLE, lease_lapsed(now)),
        )
        .values(
            status=RESERVED,
            reserved_by=holder_id,
            reserved_until=now + timedelta(minutes=minutes),
        )
        .execution_options(synchronize_session=False)
    )
    acquired = result.rowcount == 1
    record_reservation(acquired)

    if not acquired:
        logger.info(
            "slot_reserve_rejected",
            slot_id=slot_id,
            holder_id=holder_id,
            status=previous_status,
            current_holder=slot.reserved_by,
        )
        return False

    await db.refresh(slot)
    logger.info(
        "slot_reserved",
        slot_id=slot_id,
        holder_id=holder_id,
        lease_minutes=minutes,
        took_over_lapsed_lease=previous_status == RESERVED,
    )
    return True


async def release_slot(db: AsyncSession, slot_id: int) -> None:
    """Drop any lease and make the slot AVAILABLE. Idempotent; unknown ids are a no-op."""
    result = await db.execute(
        update(Slot)
        .where(Slot.id == slot_id)
        .values(status=AVAILABLE, **CLEARED_LEASE)
        .execution_options(synchronize_session=False)
    )
    record_transition("release")
    logger.info("slot_released", slot_id=slot_id, matched=result.rowcount)


async def book_slot(db: AsyncSession, slot_id: int) -> Slot:
    """
    Mark a slot BOOKED and clear its lease.
    Does not validate the prior state: callers (the booking transaction,
    settlement) hold the slot lock and have already checked it.
    """
    result = await db.execute(
        update(Slot)
        .where(Slot.id == slot_id)
        .values(status=BOOKED, **CLEARED_LEASE)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        raise SlotNotFoundError(f"Slot {slot_id} not found", slot_id=slot_id)

    record_transition("book")
    slot = await get_slot(db, slot_id)
    logger.info("slot_booked", slot_id=slot_id)
    return slot


async def _check_owner(db: AsyncSession, slot: Slot, owner_id: str) -> None:
    turf_owner = (
        await db.execute(select(Turf.owner_id).where(Turf.id == slot.turf_id))
    ).scalar_one_or_none()
    if turf_owner != owner_id:
        logger.warning("slot_owner_mismatch", slot_id=slot.id, owner_id=owner_id)
        raise NotTurfOwnerError(slot_id=slot.id)


async def block_slot(
    db: AsyncSession,
    slot_id: int,
    owner_id: str,
    reason: Optional[str] = None,
) -> Slot:
    """
    Owner override: take an AVAILABLE slot off sale. Re-blocking a BLOCKED
    slot updates its reason. Never applies to RESERVED or BOOKED slots.
    """
    slot = await lock_slot(db, slot_id)
    await _check_owner(db, slot, owner_id)

    result = await db.execute(
        update(Slot)
        .where(Slot.id == slot_id, Slot.status.in_([AVAILABLE, BLOCKED]))
        .values(status=BLOCKED, blocked_by=owner_id, block_reason=reason, **CLEARED_LEASE)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        logger.warning("slot_block_rejected", slot_id=slot_id, status=slot.status)
        raise SlotStateConflictError(
            f"Cannot block a {slot.status} slot", slot_id=slot_id, status=slot.status
        )

    await db.refresh(slot)
    record_transition("block")
    logger.info("slot_blocked", slot_id=slot_id, owner_id=owner_id, reason=reason)
    return slot


async def unblock_slot(db: AsyncSession, slot_id: int, owner_id: str) -> Slot:
    """Lift a block. Unblocking an AVAILABLE slot is a no-op."""
    slot = await lock_slot(db, slot_id)
    await _check_owner(db, slot, owner_id)

    result = await db.execute(
        update(Slot)
        .where(Slot.id == slot_id, Slot.status.in_([AVAILABLE, BLOCKED]))
        .values(status=AVAILABLE, blocked_by=None, block_reason=None)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        logger.warning("slot_unblock_rejected", slot_id=slot_id, status=slot.status)
        raise SlotStateConflictError(
            f"Cannot unblock a {slot.status} slot", slot_id=slot_id, status=slot.status
        )

    await db.refresh(slot)
    record_transition("unblock")
    logger.info("slot_unblocked", slot_id=slot_id, owner_id=owner_id)
    return slot


async def expire_stale_leases(db: AsyncSession, now: Optional[datetime] = None) -> int:
    """
    Hygiene sweep: return lapsed leases to AVAILABLE.
    Advance-paid RESERVED slots carry no expiry and are never touched.
    """
    now = now or utcnow()
    result = await db.execute(
        update(Slot)
        .where(lease_lapsed(now))
        .values(status=AVAILABLE, **CLEARED_LEASE)
        .execution_options(synchronize_session=False)
    )
    expired = result.rowcount
    if expired:
        record_transition("expire")
    logger.info("stale_leases_expired", expired=expired)
    return expired
