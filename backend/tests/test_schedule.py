"""
Tests for day schedule generation and its idempotent resync.
"""

from datetime import time, timedelta

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from turfbook.models.turf import Turf
from turfbook.schemas.booking import BookingCreate
from turfbook.schemas.turf import NetPricing, PeriodPrices, PricingRules
from turfbook.services.booking_service import create_booking
from turfbook.services.schedule_service import build_day_grid, generate_slots_for_day
from turfbook.services.slot_service import block_slot, list_slots, reserve_slot

from tests.conftest import FUTURE_DATE, make_turf


def tiered_pricing(number_of_nets: int = 1) -> dict:
    """Morning 600, afternoon 700, evening 1000, night 500; net N costs N*100 more."""
    nets = []
    for n in range(1, number_of_nets + 1):
        bump = (n - 1) * 100
        periods = PeriodPrices(
            morning=600 + bump, afternoon=700 + bump, evening=1000 + bump, night=500 + bump
        )
        weekend = PeriodPrices(
            morning=900 + bump, afternoon=900 + bump, evening=1200 + bump, night=900 + bump
        )
        nets.append(NetPricing(net_number=n, weekday=periods, weekend=weekend, holiday=weekend))
    return PricingRules(net_pricing=nets).model_dump(mode="json")


def by_start(slots) -> dict:
    return {s.start_time: s for s in slots}


def test_day_grid_includes_closing_slot():
    grid = build_day_grid(time(6, 0), time(23, 0), 60)
    assert len(grid) == 18
    assert grid[0].start_time == time(6, 0)
    assert grid[-1].start_time == time(23, 0)
    assert sum(e.within_hours for e in grid) == 17
    assert grid[-1].within_hours is False
    assert grid[-2].end_time == time(23, 0)


def test_day_grid_uneven_duration():
    # 06:00-08:00 at 45 minutes: 06:00, 06:45, 07:30 (runs past close)
    grid = build_day_grid(time(6, 0), time(8, 0), 45)
    assert [e.start_time for e in grid] == [time(6, 0), time(6, 45), time(7, 30)]
    assert [e.within_hours for e in grid] == [True, True, False]


@pytest.mark.asyncio
async def test_generate_day(db_session: AsyncSession, test_turf: Turf):
    """06:00-23:00 hourly: 17 AVAILABLE slots plus a BLOCKED 23:00 slot."""
    created = await generate_slots_for_day(db_session, test_turf, FUTURE_DATE)
    await db_session.commit()
    assert created == 18

    slots = await list_slots(db_session, test_turf.id, FUTURE_DATE)
    assert len(slots) == 18
    available = [s for s in slots if s.status == "AVAILABLE"]
    assert len(available) == 17
    assert available[0].start_time == time(6, 0)
    assert available[-1].start_time == time(22, 0)

    closing = by_start(slots)[time(23, 0)]
    assert closing.status == "BLOCKED"
    assert closing.block_reason == "Closed"
    assert closing.blocked_by is None


@pytest.mark.asyncio
async def test_generate_prices_and_labels(db_session: AsyncSession):
    turf = make_turf(pricing_rules=tiered_pricing())
    db_session.add(turf)
    await db_session.commit()

    await generate_slots_for_day(db_session, turf, FUTURE_DATE)
    slots = by_start(await list_slots(db_session, turf.id, FUTURE_DATE))

    # FUTURE_DATE is a Wednesday
    assert float(slots[time(7, 0)].price) == 600
    assert slots[time(7, 0)].price_type == "WEEKDAY_MORNING"
    assert float(slots[time(13, 0)].price) == 700
    assert float(slots[time(19, 0)].price) == 1000
    assert slots[time(19, 0)].price_type == "WEEKDAY_EVENING"

    holiday_turf = make_turf(
        name="Holiday Arena",
        pricing_rules=tiered_pricing(),
        public_holidays=[FUTURE_DATE.isoformat()],
    )
    db_session.add(holiday_turf)
    await db_session.commit()

    await generate_slots_for_day(db_session, holiday_turf, FUTURE_DATE)
    slots = by_start(await list_slots(db_session, holiday_turf.id, FUTURE_DATE))
    assert float(slots[time(19, 0)].price) == 1200
    assert slots[time(19, 0)].price_type == "HOLIDAY_EVENING"


@pytest.mark.asyncio
async def test_regenerate_is_idempotent(db_session: AsyncSession, test_turf: Turf):
    """Running generation twice creates nothing new and leaves booked and leased slots alone."""
    await generate_slots_for_day(db_session, test_turf, FUTURE_DATE)
    await db_session.commit()
    slots = by_start(await list_slots(db_session, test_turf.id, FUTURE_DATE))

    booked = slots[time(18, 0)]
    leased = slots[time(19, 0)]
    await create_booking(db_session, BookingCreate(
        slot_id=booked.id, customer_name="Ravi", customer_phone="98765", amount=800,
    ))
    assert await reserve_slot(db_session, leased.id, "user-a")
    await db_session.commit()

    created = await generate_slots_for_day(db_session, test_turf, FUTURE_DATE)
    await db_session.commit()
    assert created == 0

    slots = by_start(await list_slots(db_session, test_turf.id, FUTURE_DATE))
    assert len(slots) == 18
    assert slots[time(18, 0)].status == "BOOKED"
    assert slots[time(18, 0)].id == booked.id
    assert slots[time(19, 0)].status == "RESERVED"
    assert slots[time(19, 0)].reserved_by == "user-a"


@pytest.mark.asyncio
async def test_regenerate_resyncs_tariff(db_session: AsyncSession, test_turf: Turf):
    await generate_slots_for_day(db_session, test_turf, FUTURE_DATE)
    await db_session.commit()
    slots = by_start(await list_slots(db_session, test_turf.id, FUTURE_DATE))
    await create_booking(db_session, BookingCreate(
        slot_id=slots[time(18, 0)].id, customer_name="Ravi", customer_phone="98765", amount=800,
    ))
    await db_session.commit()

    test_turf.pricing_rules = PricingRules.flat(950).model_dump(mode="json")
    await db_session.commit()

    await generate_slots_for_day(db_session, test_turf, FUTURE_DATE)
    await db_session.commit()

    slots = by_start(await list_slots(db_session, test_turf.id, FUTURE_DATE))
    assert float(slots[time(7, 0)].price) == 950
    # Booked slots keep the price they were sold at
    assert float(slots[time(18, 0)].price) == 800


@pytest.mark.asyncio
async def test_regenerate_follows_hours_change(db_session: AsyncSession, test_turf: Turf):
    """Shortening hours auto-blocks free slots; restoring them lifts only auto-blocks."""
    await generate_slots_for_day(db_session, test_turf, FUTURE_DATE)
    await db_session.commit()
    slots = by_start(await list_slots(db_session, test_turf.id, FUTURE_DATE))
    await block_slot(db_session, slots[time(22, 0)].id, "owner-1", "Private event")
    await db_session.commit()

    test_turf.close_time = time(21, 0)
    await db_session.commit()
    await generate_slots_for_day(db_session, test_turf, FUTURE_DATE)
    await db_session.commit()

    slots = by_start(await list_slots(db_session, test_turf.id, FUTURE_DATE))
    assert slots[time(20, 0)].status == "AVAILABLE"
    assert slots[time(21, 0)].status == "BLOCKED"
    assert slots[time(21, 0)].block_reason == "Closed"
    assert slots[time(22, 0)].block_reason == "Private event"

    test_turf.close_time = time(23, 0)
    await db_session.commit()
    await generate_slots_for_day(db_session, test_turf, FUTURE_DATE)
    await db_session.commit()

    slots = by_start(await list_slots(db_session, test_turf.id, FUTURE_DATE))
    assert slots[time(21, 0)].status == "AVAILABLE"
    assert slots[time(21, 0)].block_reason is None
    # Owner blocks are never lifted by generation
    assert slots[time(22, 0)].status == "BLOCKED"
    assert slots[time(22, 0)].blocked_by == "owner-1"
    assert slots[time(23, 0)].status == "BLOCKED"


@pytest.mark.asyncio
async def test_force_regenerate_keeps_booked(db_session: AsyncSession, test_turf: Turf):
    await generate_slots_for_day(db_session, test_turf, FUTURE_DATE)
    await db_session.commit()
    slots = by_start(await list_slots(db_session, test_turf.id, FUTURE_DATE))
    booked_id = slots[time(18, 0)].id
    await create_booking(db_session, BookingCreate(
        slot_id=booked_id, customer_name="Ravi", customer_phone="98765", amount=800,
    ))
    await db_session.commit()

    created = await generate_slots_for_day(db_session, test_turf, FUTURE_DATE, force_regenerate=True)
    await db_session.commit()
    # 16 free AVAILABLE rows were dropped and rebuilt
    assert created == 16

    slots = by_start(await list_slots(db_session, test_turf.id, FUTURE_DATE))
    assert len(slots) == 18
    assert slots[time(18, 0)].id == booked_id
    assert slots[time(18, 0)].status == "BOOKED"


@pytest.mark.asyncio
async def test_force_regenerate_ignored_for_today(db_session: AsyncSession, test_turf: Turf):
    await generate_slots_for_day(db_session, test_turf, FUTURE_DATE)
    await db_session.commit()

    created = await generate_slots_for_day(
        db_session, test_turf, FUTURE_DATE, force_regenerate=True, today=FUTURE_DATE
    )
    assert created == 0


@pytest.mark.asyncio
async def test_closed_weekday_is_fully_blocked(db_session: AsyncSession):
    turf = make_turf(days_open=["SAT", "SUN"])
    db_session.add(turf)
    await db_session.commit()

    created = await generate_slots_for_day(db_session, turf, FUTURE_DATE)
    slots = await list_slots(db_session, turf.id, FUTURE_DATE)
    assert created == 18
    assert all(s.status == "BLOCKED" and s.block_reason == "Closed" for s in slots)

    weekend_day = FUTURE_DATE + timedelta(days=3)  # Saturday
    await generate_slots_for_day(db_session, turf, weekend_day)
    slots = await list_slots(db_session, turf.id, weekend_day)
    assert sum(s.status == "AVAILABLE" for s in slots) == 17


@pytest.mark.asyncio
async def test_turf_under_renovation_is_fully_blocked(db_session: AsyncSession):
    turf = make_turf(status="RENOVATION")
    db_session.add(turf)
    await db_session.commit()

    await generate_slots_for_day(db_session, turf, FUTURE_DATE)
    slots = await list_slots(db_session, turf.id, FUTURE_DATE)
    assert len(slots) == 18
    assert all(s.status == "BLOCKED" for s in slots)


@pytest.mark.asyncio
async def test_generate_every_net(db_session: AsyncSession):
    turf = make_turf(number_of_nets=2, pricing_rules=tiered_pricing(2))
    db_session.add(turf)
    await db_session.commit()

    created = await generate_slots_for_day(db_session, turf, FUTURE_DATE)
    await db_session.commit()
    assert created == 36

    net_two = by_start(await list_slots(db_session, turf.id, FUTURE_DATE, net_number=2))
    assert len(net_two) == 18
    assert all(s.net_number == 2 for s in net_two.values())
    assert float(net_two[time(19, 0)].price) == 1100
