"""
Turf endpoints: configuration, schedule generation, and the day's slot grid.
"""

from datetime import date
from typing import Literal, Optional

from fastapi import APIRouter, Depends, Header, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from turfbook.db.session import get_db
from turfbook.schemas.booking import BookingResponse
from turfbook.schemas.slot import GenerateSlotsRequest, GenerateSlotsResponse, SlotGridResponse, SlotResponse
from turfbook.schemas.turf import TurfCreate, TurfResponse, TurfUpdate
from turfbook.services.booking_service import list_turf_bookings
from turfbook.services.cache_service import get_cached_grid, invalidate_grid_cache, set_cached_grid
from turfbook.services.schedule_service import generate_slots_for_day
from turfbook.services.slot_service import list_slots
from turfbook.services.turf_service import create_turf, get_turf, update_turf
from turfbook.core.logging import get_logger

logger = get_logger(__name__)
router = APIRouter(prefix="/turfs", tags=["Turfs"])


@router.post("/", response_model=TurfResponse, status_code=status.HTTP_201_CREATED)
async def create_turf_endpoint(turf_data: TurfCreate, db: AsyncSession = Depends(get_db)):
    """Register a turf with its operating hours and tariff table."""
    turf = await create_turf(db, turf_data)
    await db.commit()
    return turf


@router.get("/{turf_id}", response_model=TurfResponse)
async def get_turf_endpoint(turf_id: int, db: AsyncSession = Depends(get_db)):
    return await get_turf(db, turf_id)


@router.patch("/{turf_id}", response_model=TurfResponse)
async def update_turf_endpoint(
    turf_id: int,
    turf_data: TurfUpdate,
    owner_id: str = Header(..., alias="X-Owner-Id"),
    db: AsyncSession = Depends(get_db),
):
    """
    Change hours, nets, or tariffs. Existing slots pick up the change the
    next time the day is generated.
    """
    turf = await update_turf(db, turf_id, owner_id, turf_data)
    await db.commit()
    await invalidate_grid_cache(turf_id)
    return turf


@router.post("/{turf_id}/slots/generate", response_model=GenerateSlotsResponse)
async def generate_slots_endpoint(
    turf_id: int,
    request: GenerateSlotsRequest,
    db: AsyncSession = Depends(get_db),
):
    """
    Materialize (or resync) the slot grid for one day across all nets.
    Booked and reserved slots are never altered.
    """
    turf = await get_turf(db, turf_id)
    created = await generate_slots_for_day(db, turf, request.date, request.force_regenerate)
    await db.commit()
    await invalidate_grid_cache(turf_id, request.date)
    return GenerateSlotsResponse(turf_id=turf_id, date=request.date, created=created)


@router.get("/{turf_id}/slots", response_model=SlotGridResponse)
async def list_slots_endpoint(
    turf_id: int,
    slot_date: date = Query(..., alias="date"),
    net_number: Optional[int] = Query(None, ge=1),
    db: AsyncSession = Depends(get_db),
):
    """
    The day's slot grid. Cached briefly in Redis; lapsed leases may still
    show as RESERVED until the slot is next touched.
    """
    cached = await get_cached_grid(turf_id, slot_date, net_number)
    if cached:
        logger.info("slot_grid_cache_hit", turf_id=turf_id, date=str(slot_date))
        cached["cached"] = True
        return SlotGridResponse(**cached)

    await get_turf(db, turf_id)
    slots = await list_slots(db, turf_id, slot_date, net_number)
    response_data = {
        "turf_id": turf_id,
        "date": slot_date,
        "slots": [SlotResponse.model_validate(s).model_dump(mode="json") for s in slots],
        "cached": False,
    }
    await set_cached_grid(turf_id, slot_date, net_number, response_data)
    return SlotGridResponse(**response_data)


@router.get("/{turf_id}/bookings", response_model=list[BookingResponse])
async def list_bookings_endpoint(
    turf_id: int,
    booking_date: Optional[date] = Query(None, alias="date"),
    booking_status: Optional[Literal["CONFIRMED", "CANCELLED"]] = Query(None, alias="status"),
    db: AsyncSession = Depends(get_db),
):
    await get_turf(db, turf_id)
    return await list_turf_bookings(db, turf_id, booking_date, booking_status)
