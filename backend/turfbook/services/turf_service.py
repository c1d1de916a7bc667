"""
Turf service handling venue configuration.
Changing hours or tariffs does not touch existing slots until the next
schedule generation run resyncs them.
"""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from fastapi import HTTPException, status

from turfbook.core.exceptions import NotTurfOwnerError, TurfNotFoundError
from turfbook.core.logging import get_logger
from turfbook.models.turf import Turf
from turfbook.schemas.turf import TurfCreate, TurfUpdate

logger = get_logger(__name__)


async def create_turf(db: AsyncSession, turf_data: TurfCreate) -> Turf:
    turf = Turf(
        owner_id=turf_data.owner_id,
        name=turf_data.name,
        city=turf_data.city,
        open_time=turf_data.open_time,
        close_time=turf_data.close_time,
        slot_duration_minutes=turf_data.slot_duration_minutes,
        number_of_nets=turf_data.number_of_nets,
        days_open=list(turf_data.days_open),
        pricing_rules=turf_data.pricing_rules.model_dump(mode="json"),
        public_holidays=[d.isoformat() for d in turf_data.public_holidays],
        status="OPEN",
    )
    db.add(turf)
    await db.flush()
    await db.refresh(turf)

    logger.info("turf_created", turf_id=turf.id, owner_id=turf.owner_id, nets=turf.number_of_nets)
    return turf


async def get_turf(db: AsyncSession, turf_id: int) -> Turf:
    result = await db.execute(select(Turf).where(Turf.id == turf_id))
    turf = result.scalar_one_or_none()
    if not turf:
        raise TurfNotFoundError(f"Turf {turf_id} not found", turf_id=turf_id)
    return turf


async def update_turf(db: AsyncSession, turf_id: int, owner_id: str, turf_data: TurfUpdate) -> Turf:
    """Partial update of a turf's configuration. Only the owner may change it."""
    turf = await get_turf(db, turf_id)
    if turf.owner_id != owner_id:
        raise NotTurfOwnerError("Only the turf owner can change its configuration", turf_id=turf_id)

    changes = turf_data.model_dump(exclude_unset=True)
    if "pricing_rules" in changes and turf_data.pricing_rules is not None:
        changes["pricing_rules"] = turf_data.pricing_rules.model_dump(mode="json")
    if "public_holidays" in changes and turf_data.public_holidays is not None:
        changes["public_holidays"] = [d.isoformat() for d in turf_data.public_holidays]

    open_time = changes.get("open_time", turf.open_time)
    close_time = changes.get("close_time", turf.close_time)
    if open_time is None or close_time is None or close_time <= open_time:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="close_time must be after open_time",
        )

    for field, value in changes.items():
        if value is not None:
            setattr(turf, field, value)
    await db.flush()
    await db.refresh(turf)

    logger.info("turf_updated", turf_id=turf_id, fields=sorted(changes))
    return turf
