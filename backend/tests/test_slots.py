"""
Tests for slot leases, owner blocks, and the lease sweep.
"""

import asyncio
from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from turfbook.core.exceptions import NotTurfOwnerError, SlotNotFoundError, SlotStateConflictError
from turfbook.models.slot import Slot
from turfbook.services.slot_service import (
    block_slot,
    book_slot,
    expire_stale_leases,
    get_slot,
    release_slot,
    reserve_slot,
    resolve_lease_minutes,
    unblock_slot,
)

T0 = datetime(2030, 5, 1, 17, 0, tzinfo=timezone.utc)


def naive(value: datetime) -> datetime:
    # SQLite hands back naive datetimes; every stored value is UTC
    return value.replace(tzinfo=None)


@pytest.mark.asyncio
async def test_reserve_available_slot(db_session: AsyncSession, test_slot: Slot):
    """Reserving an AVAILABLE slot leases it for the default 10 minutes."""
    assert await reserve_slot(db_session, test_slot.id, "user-a", now=T0) is True
    await db_session.commit()

    slot = await get_slot(db_session, test_slot.id)
    assert slot.status == "RESERVED"
    assert slot.reserved_by == "user-a"
    assert naive(slot.reserved_until) == naive(T0 + timedelta(minutes=10))


@pytest.mark.asyncio
async def test_reserve_rejected_while_lease_live(db_session: AsyncSession, test_slot: Slot):
    assert await reserve_slot(db_session, test_slot.id, "user-a", now=T0)
    assert await reserve_slot(db_session, test_slot.id, "user-b", now=T0 + timedelta(minutes=5)) is False

    slot = await get_slot(db_session, test_slot.id)
    assert slot.reserved_by == "user-a"


@pytest.mark.asyncio
async def test_same_holder_cannot_extend_live_lease(db_session: AsyncSession, test_slot: Slot):
    assert await reserve_slot(db_session, test_slot.id, "user-a", now=T0)
    assert await reserve_slot(db_session, test_slot.id, "user-a", now=T0 + timedelta(minutes=1)) is False


@pytest.mark.asyncio
async def test_lapsed_lease_is_taken_over(db_session: AsyncSession, test_slot: Slot):
    """A leases at T0; 11 minutes later B reserves successfully without any sweep."""
    assert await reserve_slot(db_session, test_slot.id, "user-a", now=T0)
    await db_session.commit()

    later = T0 + timedelta(minutes=11)
    assert await reserve_slot(db_session, test_slot.id, "user-b", now=later) is True
    await db_session.commit()

    slot = await get_slot(db_session, test_slot.id)
    assert slot.status == "RESERVED"
    assert slot.reserved_by == "user-b"
    assert naive(slot.reserved_until) == naive(later + timedelta(minutes=10))


@pytest.mark.asyncio
async def test_reserve_booked_or_blocked_slot_fails(
    db_session: AsyncSession, test_slot: Slot, blocked_slot: Slot
):
    await book_slot(db_session, test_slot.id)
    assert await reserve_slot(db_session, test_slot.id, "user-a", now=T0) is False
    assert await reserve_slot(db_session, blocked_slot.id, "user-a", now=T0) is False


@pytest.mark.asyncio
async def test_advance_paid_reservation_never_lapses(db_session: AsyncSession, test_slot: Slot):
    """RESERVED without an expiry is a partially paid booking, not a lease."""
    test_slot.status = "RESERVED"
    test_slot.reserved_until = None
    await db_session.commit()

    far_future = T0 + timedelta(days=365)
    assert await reserve_slot(db_session, test_slot.id, "user-b", now=far_future) is False
    assert await expire_stale_leases(db_session, now=far_future) == 0


@pytest.mark.asyncio
async def test_reserve_unknown_slot(db_session: AsyncSession):
    with pytest.raises(SlotNotFoundError):
        await reserve_slot(db_session, 9999, "user-a", now=T0)


@pytest.mark.asyncio
async def test_lease_minutes_capped(db_session: AsyncSession, test_slot: Slot):
    assert resolve_lease_minutes(None) == 10
    assert resolve_lease_minutes(0) == 10
    assert resolve_lease_minutes(500) == 60

    assert await reserve_slot(db_session, test_slot.id, "user-a", lease_minutes=500, now=T0)
    slot = await get_slot(db_session, test_slot.id)
    assert naive(slot.reserved_until) == naive(T0 + timedelta(minutes=60))


@pytest.mark.asyncio
async def test_release_is_idempotent(db_session: AsyncSession, test_slot: Slot):
    assert await reserve_slot(db_session, test_slot.id, "user-a", now=T0)

    await release_slot(db_session, test_slot.id)
    await release_slot(db_session, test_slot.id)
    # Unknown ids are a no-op
    await release_slot(db_session, 9999)
    await db_session.commit()

    slot = await get_slot(db_session, test_slot.id)
    assert slot.status == "AVAILABLE"
    assert slot.reserved_by is None
    assert slot.reserved_until is None

    assert await reserve_slot(db_session, test_slot.id, "user-b", now=T0)


@pytest.mark.asyncio
async def test_book_slot_clears_lease(db_session: AsyncSession, test_slot: Slot):
    assert await reserve_slot(db_session, test_slot.id, "user-a", now=T0)
    slot = await book_slot(db_session, test_slot.id)
    assert slot.status == "BOOKED"
    assert slot.reserved_by is None
    assert slot.reserved_until is None


@pytest.mark.asyncio
async def test_book_unknown_slot(db_session: AsyncSession):
    with pytest.raises(SlotNotFoundError):
        await book_slot(db_session, 9999)


@pytest.mark.asyncio
async def test_block_and_unblock(db_session: AsyncSession, test_slot: Slot):
    slot = await block_slot(db_session, test_slot.id, "owner-1", "Tournament")
    assert slot.status == "BLOCKED"
    assert slot.blocked_by == "owner-1"
    assert slot.block_reason == "Tournament"
    assert await reserve_slot(db_session, test_slot.id, "user-a", now=T0) is False

    slot = await unblock_slot(db_session, test_slot.id, "owner-1")
    assert slot.status == "AVAILABLE"
    assert slot.blocked_by is None
    assert slot.block_reason is None


@pytest.mark.asyncio
async def test_block_requires_owner(db_session: AsyncSession, test_slot: Slot):
    with pytest.raises(NotTurfOwnerError):
        await block_slot(db_session, test_slot.id, "someone-else", "Mine now")

    slot = await get_slot(db_session, test_slot.id)
    assert slot.status == "AVAILABLE"


@pytest.mark.asyncio
async def test_block_rejected_for_reserved_or_booked(db_session: AsyncSession, test_slot: Slot):
    assert await reserve_slot(db_session, test_slot.id, "user-a", now=T0)
    with pytest.raises(SlotStateConflictError):
        await block_slot(db_session, test_slot.id, "owner-1", "Maintenance")

    await book_slot(db_session, test_slot.id)
    with pytest.raises(SlotStateConflictError):
        await block_slot(db_session, test_slot.id, "owner-1", "Maintenance")
    with pytest.raises(SlotStateConflictError):
        await unblock_slot(db_session, test_slot.id, "owner-1")


@pytest.mark.asyncio
async def test_expire_stale_leases(db_session: AsyncSession, test_slot: Slot):
    assert await reserve_slot(db_session, test_slot.id, "user-a", now=T0)
    await db_session.commit()

    assert await expire_stale_leases(db_session, now=T0 + timedelta(minutes=5)) == 0
    assert await expire_stale_leases(db_session, now=T0 + timedelta(minutes=11)) == 1
    await db_session.commit()

    slot = await get_slot(db_session, test_slot.id)
    assert slot.status == "AVAILABLE"
    assert slot.reserved_by is None


@pytest.mark.asyncio
async def test_concurrent_reserve_single_winner(session_factory, test_slot: Slot):
    """
    Several holders reserve the same slot at once from separate sessions.
    Exactly one gets the lease.
    """
    async def attempt(holder_id: str) -> bool:
        async with session_factory() as session:
            acquired = await reserve_slot(session, test_slot.id, holder_id, now=T0)
            await session.commit()
            return acquired

    results = await asyncio.gather(*(attempt(f"user-{i}") for i in range(5)))
    assert sum(results) == 1

    async with session_factory() as session:
        slot = await get_slot(session, test_slot.id)
        winner = [f"user-{i}" for i, ok in enumerate(results) if ok][0]
        assert slot.status == "RESERVED"
        assert slot.reserved_by == winner
