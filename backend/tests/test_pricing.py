"""
Tests for tariff lookup.
"""

from datetime import date, time

import pytest

from turfbook.schemas.turf import NetPricing, PeriodPrices, PricingRules
from turfbook.services.pricing import calculate_slot_price, day_type, period

WEDNESDAY = date(2030, 5, 1)
SATURDAY = date(2030, 5, 4)


@pytest.fixture
def rules() -> PricingRules:
    weekday = PeriodPrices(morning=600, afternoon=700, evening=1000, night=500)
    weekend = PeriodPrices(morning=800, afternoon=900, evening=1200, night=700)
    holiday = PeriodPrices(morning=1000, afternoon=1000, evening=1500, night=1000)
    return PricingRules(net_pricing=[
        NetPricing(net_number=1, weekday=weekday, weekend=weekend, holiday=holiday),
        NetPricing(
            net_number=2,
            weekday=PeriodPrices(morning=650, afternoon=750, evening=1050, night=550),
            weekend=weekend,
            holiday=holiday,
        ),
    ])


@pytest.mark.parametrize("start, expected", [
    (time(0, 0), "NIGHT"),
    (time(5, 30), "NIGHT"),
    (time(6, 0), "MORNING"),
    (time(11, 59), "MORNING"),
    (time(12, 0), "AFTERNOON"),
    (time(18, 0), "EVENING"),
    (time(23, 0), "EVENING"),
])
def test_period(start, expected):
    assert period(start) == expected


def test_day_type():
    assert day_type(WEDNESDAY, []) == "WEEKDAY"
    assert day_type(SATURDAY, []) == "WEEKEND"
    assert day_type(date(2030, 5, 5), []) == "WEEKEND"
    # Holidays take precedence over weekends
    assert day_type(SATURDAY, [SATURDAY]) == "HOLIDAY"
    assert day_type(WEDNESDAY, [WEDNESDAY]) == "HOLIDAY"


def test_calculate_slot_price(rules: PricingRules):
    tariff = calculate_slot_price(rules, WEDNESDAY, time(19, 0))
    assert tariff.price == 1000
    assert tariff.label == "WEEKDAY_EVENING"

    tariff = calculate_slot_price(rules, SATURDAY, time(9, 0))
    assert tariff.price == 800
    assert tariff.label == "WEEKEND_MORNING"

    tariff = calculate_slot_price(rules, WEDNESDAY, time(14, 0), [WEDNESDAY])
    assert tariff.price == 1000
    assert tariff.label == "HOLIDAY_AFTERNOON"


def test_price_per_net(rules: PricingRules):
    assert calculate_slot_price(rules, WEDNESDAY, time(7, 0), net_number=2).price == 650
    # Nets without their own row fall back to the first net
    assert calculate_slot_price(rules, WEDNESDAY, time(7, 0), net_number=5).price == 600


def test_flat_pricing():
    rules = PricingRules.flat(750, number_of_nets=3)
    assert len(rules.net_pricing) == 3
    assert calculate_slot_price(rules, SATURDAY, time(2, 0), net_number=3).price == 750
