"""
Schedule generation: materialize a day's slot grid for every net of a turf.

Grid rule:
  One slot per duration increment from opening time up to and including a
  slot that starts exactly at closing time. A slot whose end falls at or
  before closing is AVAILABLE; one that would run past closing is created
  BLOCKED with reason "Closed" instead of being omitted, so dashboards can
  always render a complete grid. 06:00-23:00 at 60 minutes gives 17
  AVAILABLE slots (06:00..22:00) plus a BLOCKED 23:00 slot.

Regeneration:
  Only rows in removable states (AVAILABLE, BLOCKED) are ever touched.
  Existing rows get their price/tariff label and auto-block status resynced
  to the current configuration; missing start times are inserted; booked and
  reserved rows are left exactly as they are. With force_regenerate on a
  future date, AVAILABLE rows that never carried a booking are deleted first.
  Every write is guarded on the status we read, so a slot leased between
  our read and our write is left alone.

Each net runs in its own savepoint: a failure on one net (e.g. a concurrent
generator inserting the same rows) is logged and the other nets still land.
"""

from dataclasses import dataclass
from datetime import date, time
from typing import Optional

from sqlalchemy import delete, exists, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from turfbook.core.clock import utcnow
from turfbook.core.config import get_settings
from turfbook.core.logging import get_logger
from turfbook.core.metrics import record_slots_generated
from turfbook.models.booking import Booking
from turfbook.models.slot import REMOVABLE_STATES, Slot, SlotStatus
from turfbook.models.turf import Turf
from turfbook.schemas.turf import PricingRules
from turfbook.services.pricing import calculate_slot_price

logger = get_logger(__name__)
settings = get_settings()

AVAILABLE = SlotStatus.AVAILABLE.value
BLOCKED = SlotStatus.BLOCKED.value
WEEKDAY_CODES = ["MON", "TUE", "WED", "THU", "FRI", "SAT", "SUN"]
MINUTES_PER_DAY = 24 * 60


@dataclass(frozen=True)
class GridEntry:
    start_time: time
    end_time: time
    within_hours: bool


def _minutes(value: time) -> int:
    return value.hour * 60 + value.minute


def _clock(minutes: int) -> time:
    minutes %= MINUTES_PER_DAY
    return time(minutes // 60, minutes % 60)


def build_day_grid(open_time: time, close_time: time, duration_minutes: int) -> list[GridEntry]:
    """
    Start times from opening through closing inclusive.
    Length is (close - open) // duration + 1.
    """
    open_at = _minutes(open_time)
    close_at = _minutes(close_time)
    grid = []
    start = open_at
    while start <= close_at:
        end = start + duration_minutes
        grid.append(GridEntry(_clock(start), _clock(end), end <= close_at))
        start += duration_minutes
    return grid


def is_open_on(turf: Turf, slot_date: date) -> bool:
    if turf.status != "OPEN":
        return False
    days_open = WEEKDAY_CODES if turf.days_open is None else turf.days_open
    return WEEKDAY_CODES[slot_date.weekday()] in days_open


async def generate_slots_for_day(
    db: AsyncSession,
    turf: Turf,
    slot_date: date,
    force_regenerate: bool = False,
    today: Optional[date] = None,
) -> int:
    """Generate (or resync) every net's grid for `slot_date`. Returns the number of rows created."""
    today = today or utcnow().date()
    pricing_rules = PricingRules.model_validate(turf.pricing_rules)
    holidays = [date.fromisoformat(str(d)) for d in (turf.public_holidays or [])]
    grid = build_day_grid(turf.open_time, turf.close_time, turf.slot_duration_minutes)
    day_open = is_open_on(turf, slot_date)

    total_created = 0
    for net_number in range(1, turf.number_of_nets + 1):
        try:
            async with db.begin_nested():
                if force_regenerate and slot_date > today:
                    await _delete_unbooked_available(db, turf.id, slot_date, net_number)
                created = await _generate_net(
                    db, turf, slot_date, net_number, grid, day_open, pricing_rules, holidays
                )
        except IntegrityError as e:
            logger.error(
                "slot_generation_net_failed",
                turf_id=turf.id,
                date=str(slot_date),
                net_number=net_number,
                error=str(e.orig),
            )
            continue
        total_created += created

    logger.info(
        "slots_generated",
        turf_id=turf.id,
        date=str(slot_date),
        nets=turf.number_of_nets,
        created=total_created,
        force=force_regenerate,
    )
    return total_created


async def _delete_unbooked_available(db: AsyncSession, turf_id: int, slot_date: date, net_number: int) -> None:
    result = await db.execute(
        delete(Slot)
        .where(
            Slot.turf_id == turf_id,
            Slot.date == slot_date,
            Slot.net_number == net_number,
            Slot.status == AVAILABLE,
            ~exists().where(Booking.slot_id == Slot.id),
        )
        .execution_options(synchronize_session="fetch")
    )
    logger.info(
        "available_slots_deleted",
        turf_id=turf_id,
        date=str(slot_date),
        net_number=net_number,
        deleted=result.rowcount,
    )


async def _generate_net(
    db: AsyncSession,
    turf: Turf,
    slot_date: date,
    net_number: int,
    grid: list[GridEntry],
    day_open: bool,
    pricing_rules: PricingRules,
    holidays: list[date],
) -> int:
    result = await db.execute(
        select(Slot)
        .where(Slot.turf_id == turf.id, Slot.date == slot_date, Slot.net_number == net_number)
        .execution_options(populate_existing=True)
    )
    existing = {slot.start_time: slot for slot in result.scalars().all()}
    closed_reason = settings.CLOSED_BLOCK_REASON

    new_slots = []
    counts = {AVAILABLE: 0, BLOCKED: 0}
    grid_starts = set()
    for entry in grid:
        grid_starts.add(entry.start_time)
        tariff = calculate_slot_price(pricing_rules, slot_date, entry.start_time, holidays, net_number)
        bookable = day_open and entry.within_hours

        slot = existing.get(entry.start_time)
        if slot is None:
            status = AVAILABLE if bookable else BLOCKED
            new_slots.append(Slot(
                turf_id=turf.id,
                net_number=net_number,
                date=slot_date,
                start_time=entry.start_time,
                end_time=entry.end_time,
                price=tariff.price,
                price_type=tariff.label,
                status=status,
                block_reason=None if bookable else closed_reason,
            ))
            counts[status] += 1
            continue

        await _resync_slot(db, slot, bookable, tariff.price, tariff.label, entry.end_time)

    # Start times that fell out of the operating window are auto-blocked
    for start_time, slot in existing.items():
        if start_time not in grid_starts:
            await _resync_slot(db, slot, False, float(slot.price), slot.price_type, slot.end_time)

    if new_slots:
        db.add_all(new_slots)
        await db.flush()

    for status, count in counts.items():
        record_slots_generated(status, count)
    return len(new_slots)


async def _resync_slot(
    db: AsyncSession,
    slot: Slot,
    bookable: bool,
    price: float,
    price_type: str,
    end_time: time,
) -> None:
    """Bring a removable row in line with current hours and tariff. Owner blocks keep their status."""
    if slot.status not in REMOVABLE_STATES:
        return

    closed_reason = settings.CLOSED_BLOCK_REASON
    changes = {}
    if float(slot.price) != float(price) or slot.price_type != price_type:
        changes.update(price=price, price_type=price_type)
    if slot.end_time != end_time:
        changes["end_time"] = end_time

    owner_blocked = slot.status == BLOCKED and slot.blocked_by is not None
    if not owner_blocked:
        if not bookable and slot.status == AVAILABLE:
            changes.update(status=BLOCKED, block_reason=closed_reason)
        elif bookable and slot.status == BLOCKED and slot.block_reason == closed_reason:
            changes.update(status=AVAILABLE, block_reason=None)

    if not changes:
        return

    await db.execute(
        update(Slot)
        .where(Slot.id == slot.id, Slot.status == slot.status)
        .values(**changes)
        .execution_options(synchronize_session=False)
    )
    logger.debug("slot_resynced", slot_id=slot.id, changes=sorted(changes))
