"""
Slot endpoints: lease (reserve/release), direct book, and owner blocks.

Every state-changing call runs under the slot's row lock inside the
request transaction and commits before the response is built, so the grid
cache is only invalidated once the change is visible. See
services.slot_service.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from turfbook.core.exceptions import SlotNotFoundError
from turfbook.db.session import get_db
from turfbook.schemas.slot import (
    BlockRequest,
    ExpireLeasesResponse,
    OperationResult,
    ReserveRequest,
    SlotResponse,
    UnblockRequest,
)
from turfbook.services.cache_service import invalidate_grid_cache
from turfbook.services.slot_service import (
    block_slot,
    book_slot,
    expire_stale_leases,
    get_slot,
    release_slot,
    reserve_slot,
    unblock_slot,
)

router = APIRouter(prefix="/slots", tags=["Slots"])


@router.post("/expire-leases", response_model=ExpireLeasesResponse)
async def expire_leases_endpoint(db: AsyncSession = Depends(get_db)):
    """Optional sweep returning lapsed leases to AVAILABLE. Safe to call from a cron."""
    expired = await expire_stale_leases(db)
    await db.commit()
    return ExpireLeasesResponse(expired=expired)


@router.get("/{slot_id}", response_model=SlotResponse)
async def get_slot_endpoint(slot_id: int, db: AsyncSession = Depends(get_db)):
    return await get_slot(db, slot_id)


@router.post("/{slot_id}/reserve", response_model=OperationResult)
async def reserve_slot_endpoint(
    slot_id: int,
    request: ReserveRequest,
    db: AsyncSession = Depends(get_db),
):
    """
    Hold a slot while the customer pays.
    Returns success=false (not an error) when someone else holds it.
    """
    acquired = await reserve_slot(db, slot_id, request.holder_id, request.lease_minutes)
    await db.commit()
    if acquired:
        slot = await get_slot(db, slot_id)
        await invalidate_grid_cache(slot.turf_id, slot.date)
    return OperationResult(success=acquired)


@router.post("/{slot_id}/release", response_model=OperationResult)
async def release_slot_endpoint(slot_id: int, db: AsyncSession = Depends(get_db)):
    """Drop a hold. Idempotent."""
    await release_slot(db, slot_id)
    await db.commit()
    try:
        slot = await get_slot(db, slot_id)
    except SlotNotFoundError:
        return OperationResult(success=True)
    await invalidate_grid_cache(slot.turf_id, slot.date)
    return OperationResult(success=True)


@router.post("/{slot_id}/book", response_model=SlotResponse)
async def book_slot_endpoint(slot_id: int, db: AsyncSession = Depends(get_db)):
    """Mark a slot BOOKED without creating a booking record."""
    slot = await book_slot(db, slot_id)
    await db.commit()
    await invalidate_grid_cache(slot.turf_id, slot.date)
    return slot


@router.post("/{slot_id}/block", response_model=SlotResponse)
async def block_slot_endpoint(
    slot_id: int,
    request: BlockRequest,
    db: AsyncSession = Depends(get_db),
):
    """Owner takes an available slot off sale."""
    slot = await block_slot(db, slot_id, request.owner_id, request.reason)
    await db.commit()
    await invalidate_grid_cache(slot.turf_id, slot.date)
    return slot


@router.post("/{slot_id}/unblock", response_model=SlotResponse)
async def unblock_slot_endpoint(
    slot_id: int,
    request: UnblockRequest,
    db: AsyncSession = Depends(get_db),
):
    slot = await unblock_slot(db, slot_id, request.owner_id)
    await db.commit()
    await invalidate_grid_cache(slot.turf_id, slot.date)
    return slot
